"""Pytest configuration for BPSets."""
import os
from types import SimpleNamespace

import pytest

from bpsets.base.config import BPSetsConfig, set_config
from bpsets.engine.memorizer import Memorizer
from bpsets.toolkit.aws import set_client_factory


def pytest_configure():
    # Never let a test pick up a developer's real AWS profile or region.
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.pop("BPSETS_METADATA_PATH", None)


class StubPaginator:
    def __init__(self, client, operation):
        self.client = client
        self.operation = operation

    def paginate(self, **params):
        self.client.calls.append((f"paginate:{self.operation}", params))
        pages = self.client.pages.get(self.operation, [{}])
        if isinstance(pages, BaseException):
            raise pages
        return iter(pages)


class StubClient:
    """
    Minimal stand-in for a boto3 client.

    Any attribute is an operation. responses maps operation name to a
    response dict, an exception to raise, or a callable taking the call's
    keyword arguments. pages maps paginated operation name to its page list.
    """

    def __init__(self, service=None, region="us-east-1", responses=None, pages=None):
        self.calls = []
        self.responses = dict(responses or {})
        self.pages = dict(pages or {})
        if service:
            self.meta = SimpleNamespace(
                service_model=SimpleNamespace(service_name=service),
                region_name=region,
            )
        else:
            self.meta = None

    def __getattr__(self, operation):
        if operation.startswith("_"):
            raise AttributeError(operation)

        def method(**params):
            self.calls.append((operation, params))
            response = self.responses.get(operation, {})
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                return response(**params)
            return response

        return method

    def get_paginator(self, operation):
        return StubPaginator(self, operation)

    def count(self, operation):
        return sum(1 for name, _ in self.calls if name == operation)


class StubClientFactory:
    """Hands out one StubClient per service, like AWSClientFactory."""

    def __init__(self, **clients):
        self.clients = clients

    def client(self, service):
        if service not in self.clients:
            self.clients[service] = StubClient(service=service)
        return self.clients[service]


@pytest.fixture(autouse=True)
def isolated_state():
    """Each test starts with default config, no cached responses and no AWS."""
    set_config(BPSetsConfig())
    Memorizer.purge()
    set_client_factory(StubClientFactory())
    yield
    Memorizer.purge()
    set_client_factory(None)
    set_config(None)


@pytest.fixture
def stub_client():
    return StubClient


@pytest.fixture
def stub_factory():
    """Install a StubClientFactory and return it for per-test setup."""
    factory = StubClientFactory()
    set_client_factory(factory)
    return factory
