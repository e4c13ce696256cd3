"""
Shared plumbing for the built-in AWS rules.

AWSBPSet resolves boto3 clients lazily through the process-wide client
factory. Reads go through memo_for() / memo_client; writes go through call(),
which is never memoized.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from bpsets.engine.memorizer import Memorizer
from bpsets.toolkit.aws import get_client_factory
from bpsets.toolkit.bpset import BPSet
from bpsets.utils.async_helpers import call_blocking


class AWSBPSet(BPSet):
    # Primary boto3 service name, e.g. "ec2"
    service: ClassVar[str]

    def client_for(self, service: str) -> Any:
        return get_client_factory().client(service)

    def memo_for(self, service: str) -> Memorizer:
        return self.memo(self.client_for(service))

    @property
    def client(self) -> Any:
        return self.client_for(self.service)

    @property
    def memo_client(self) -> Memorizer:
        return self.memo_for(self.service)

    async def call(self, operation: str, service: Optional[str] = None, **params: Any) -> Any:
        """Run a mutating operation directly against the client."""
        client = self.client_for(service or self.service)
        return await call_blocking(getattr(client, operation), **params)
