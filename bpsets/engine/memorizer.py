"""
bpsets/engine/memorizer.py
Memoize AWS SDK read operations for the length of one audit pass.

Many BPSets read the same inventory (every EC2 rule starts with
describe_instances, every S3 rule with list_buckets). Wrapping a client with
Memorizer.memo() makes those reads hit AWS once per pass.

Design:
- Registry key: sha256(json([client identity, salt])), one Memorizer each
- Entry key:    sha256(json([operation, params])) with sorted keys
- Value:        the operation's response, exactly as the client returned it
- Failures are never cached; an identical retry goes upstream again
- Identical reads already in flight are coalesced onto one upstream call

Only read operations may go through a Memorizer. A mutating call would be
executed once and then silently answered from the cache. Use .client for
writes.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bpsets.utils.async_helpers import call_blocking

logger = logging.getLogger(__name__)


def _tagged(value: Any) -> Dict[str, Any]:
    # Wrap non-JSON values in a type tag so they never share a key with their
    # plain string form
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    if isinstance(value, date):
        return {"__date__": value.isoformat()}
    if isinstance(value, time):
        return {"__time__": value.isoformat()}
    if isinstance(value, (bytes, bytearray)):
        return {"__bytes__": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, Decimal):
        return {"__decimal__": str(value)}
    if isinstance(value, (set, frozenset)):
        return {"__set__": sorted(fingerprint(item) for item in value)}
    raise TypeError(f"Cannot fingerprint value of type {type(value).__name__}")


def fingerprint(*parts: Any) -> str:
    """
    SHA-256 over a canonical JSON serialization of parts.

    datetimes, bytes, Decimals and sets are type-tagged; any other non-JSON
    value raises TypeError.
    """
    serialized = json.dumps(list(parts), sort_keys=True, separators=(",", ":"), default=_tagged)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def client_identity(client: Any) -> str:
    """
    Derive the identity a client is memoized under.

    boto3 clients share one generated class per service, so the class name
    alone would merge the caches of two regions. Use "<service>:<region>"
    when botocore metadata is available, the class name otherwise.
    """
    meta = getattr(client, "meta", None)
    service_model = getattr(meta, "service_model", None)
    service_name = getattr(service_model, "service_name", None)
    if isinstance(service_name, str) and service_name:
        region = getattr(meta, "region_name", None) or "global"
        return f"{service_name}:{region}"
    return type(client).__name__


class Memorizer:
    """
    Per-client-identity response cache.

    Obtain instances through Memorizer.memo(); the constructor is internal.
    """

    _registry: Dict[str, "Memorizer"] = {}

    @classmethod
    def memo(cls, client: Any, salt: str = "", namespace: Optional[str] = None) -> "Memorizer":
        """
        Return the Memorizer registered for this client's identity, creating
        one if absent.

        Args:
            client: The SDK client to wrap
            salt: Extra discriminator when one identity needs several caches
            namespace: Explicit identity, overriding the derived one
        """
        identity = namespace or client_identity(client)
        key = fingerprint(identity, salt)

        memorized = cls._registry.get(key)
        if memorized is not None:
            return memorized

        memorized = cls(client, identity)
        cls._registry[key] = memorized
        logger.debug(f"[Memorizer] Registered cache for {identity}")
        return memorized

    @classmethod
    def reset(cls) -> None:
        """Drop every cached response but keep one Memorizer per identity."""
        for memorized in cls._registry.values():
            memorized.clear()
        logger.info(f"[Memorizer] Cleared {len(cls._registry)} client caches")

    @classmethod
    def purge(cls) -> None:
        """Forget every registered Memorizer."""
        for memorized in cls._registry.values():
            memorized.clear()
        cls._registry.clear()

    @classmethod
    def identities(cls) -> List[str]:
        return [memorized.identity for memorized in cls._registry.values()]

    def __init__(self, client: Any, identity: str):
        self.client = client
        self.identity = identity
        self.hits = 0
        self.misses = 0
        self._entries: Dict[str, Any] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        # Bumped on clear() so a call that started before a reset cannot
        # repopulate the fresh cache with its result
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Memorizer(identity={self.identity!r}, entries={len(self._entries)})"

    def clear(self) -> None:
        self._entries.clear()
        self._inflight.clear()
        self._generation += 1

    async def send(self, operation: str, **params: Any) -> Any:
        """
        Call client.<operation>(**params), answering identical repeats from
        the cache.
        """
        method = getattr(self.client, operation)
        return await self._lookup(
            fingerprint(operation, params),
            operation,
            lambda: call_blocking(method, **params),
        )

    async def paginate(self, operation: str, **params: Any) -> List[Any]:
        """
        Collect every page of client.get_paginator(operation) into one list,
        memoized as a single entry.
        """
        return await self._lookup(
            fingerprint(f"paginate:{operation}", params),
            f"paginate:{operation}",
            lambda: call_blocking(self._collect_pages, operation, params),
        )

    def _collect_pages(self, operation: str, params: Dict[str, Any]) -> List[Any]:
        paginator = self.client.get_paginator(operation)
        return list(paginator.paginate(**params))

    async def _lookup(
        self,
        key: str,
        label: str,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        if key in self._entries:
            self.hits += 1
            logger.debug(f"[Memorizer] {label} answered from cache ({self.identity})")
            return self._entries[key]

        pending = self._inflight.get(key)
        if pending is None:
            self.misses += 1
            pending = asyncio.ensure_future(loader())
            self._inflight[key] = pending
            pending.add_done_callback(
                lambda task, generation=self._generation: self._settle(key, label, task, generation)
            )
        else:
            self.hits += 1
            logger.debug(f"[Memorizer] {label} joined an in-flight call ({self.identity})")

        # shield: a cancelled caller must not cancel a call other callers share
        return await asyncio.shield(pending)

    def _settle(self, key: str, label: str, task: asyncio.Task, generation: int) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"[Memorizer] {label} failed, not cached: {exc}")
            return
        if generation == self._generation:
            self._entries[key] = task.result()
        logger.debug(f"[Memorizer] {label} executed ({self.identity})")
