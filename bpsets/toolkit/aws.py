"""
bpsets/toolkit/aws.py
boto3 client factory shared by the built-in rules.

One boto3 Session per factory, one client per service. Clients are created
lazily on first use, so constructing the rule catalog never needs
credentials or a region; a missing region surfaces as that rule's check
error instead of a start-up failure.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from bpsets.base.config import AWSConfig, get_config
from bpsets.engine.memorizer import Memorizer

logger = logging.getLogger(__name__)


class AWSClientFactory:
    def __init__(self, config: Optional[AWSConfig] = None):
        self.config = config or get_config().aws
        self._session: Optional[boto3.session.Session] = None
        self._clients: Dict[str, Any] = {}

    @property
    def session(self) -> boto3.session.Session:
        if self._session is None:
            self._session = boto3.session.Session(
                profile_name=self.config.profile,
                region_name=self.config.region,
            )
        return self._session

    def botocore_config(self) -> Config:
        return Config(
            retries={"max_attempts": self.config.max_attempts, "mode": "standard"},
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
        )

    def client(self, service: str) -> Any:
        client = self._clients.get(service)
        if client is None:
            client = self.session.client(service, config=self.botocore_config())
            self._clients[service] = client
            logger.debug(f"[AWS] Created {service} client ({client.meta.region_name})")
        return client


_factory: Optional[AWSClientFactory] = None


def get_client_factory() -> AWSClientFactory:
    global _factory
    if _factory is None:
        _factory = AWSClientFactory()
    return _factory


def set_client_factory(factory: Optional[AWSClientFactory]) -> None:
    """
    Replace the process-wide factory (tests inject stub clients here).

    Every registered Memorizer is purged as well: each one holds the client
    it was created with, and reads must go to the same clients as writes.
    """
    global _factory
    _factory = factory
    Memorizer.purge()
