"""
bpsets/engine/orchestrator.py
BPManager: registry and scheduler for every BPSet.

Construct one BPManager per process and hand it to whatever needs it (API
handlers, CLI commands, tests). It loads every rule and its metadata up
front, runs checks one at a time or all together, mirrors each rule's
statistics into a registry record for reporting, and routes fix requests.

Failure isolation: one rule's failure (exception, timeout) only ever lands
in that rule's status and error log. run_check_all() always resolves once
every rule has settled. The only errors that reach the caller are caller
mistakes: unknown rule names and missing fix parameters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from bpsets.base.config import BPSetsConfig, get_config
from bpsets.contracts.models import (
    BPSetMetadata,
    BPSetRecord,
    BPSetStats,
    BPSetStatus,
    FixParameterInput,
    normalize_fix_parameters,
)
from bpsets.engine.memorizer import Memorizer
from bpsets.errors import ErrorCode, UnknownBPSetError, handle_error
from bpsets.toolkit.bpset import BPSet, require_parameters
from bpsets.toolkit.metadata_source import BuiltinMetadataSource, JsonMetadataSource, MetadataSource
from bpsets.toolkit.registry import BPSetRegistry, load_default_registry
from bpsets.utils.async_helpers import maybe_await, run_with_timeout

logger = logging.getLogger(__name__)

FinishedCallback = Callable[[str], Any]


class BPManager:
    """Loads, runs and tracks every registered BPSet."""

    def __init__(
        self,
        registry: Optional[BPSetRegistry] = None,
        metadata_source: Optional[MetadataSource] = None,
        config: Optional[BPSetsConfig] = None,
    ):
        self.config = config or get_config()
        self._bpsets: Dict[str, BPSet] = {}
        self._records: Dict[str, BPSetRecord] = {}

        self._load_bpsets(registry or load_default_registry())
        self._load_metadata(metadata_source or self._default_metadata_source())

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _default_metadata_source(self) -> MetadataSource:
        if self.config.scan.metadata_path:
            return JsonMetadataSource(self.config.scan.metadata_path)
        return BuiltinMetadataSource(self._bpsets.values())

    def _load_bpsets(self, registry: BPSetRegistry) -> None:
        for name, bpset in registry.create_all().items():
            self._bpsets[name] = bpset
            logger.info(f"[BPManager] BPSet {name} loaded")

    def _load_metadata(self, source: MetadataSource) -> None:
        declared: Dict[str, BPSetMetadata] = {}
        for metadata in source.load():
            if metadata.name not in self._bpsets:
                logger.warning(f"[BPManager] Metadata for {metadata.name} has no matching BPSet; ignored")
                continue
            declared[metadata.name] = metadata

        for idx, (name, bpset) in enumerate(self._bpsets.items()):
            metadata = declared.get(name)
            if metadata is None:
                metadata = bpset.get_metadata()
                logger.debug(f"[BPManager] {name} has no declared metadata; using built-in")
            self._records[name] = BPSetRecord(metadata=metadata, stats=BPSetStats(), idx=idx)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._bpsets)

    def __contains__(self, name: object) -> bool:
        return name in self._bpsets

    def get_bpset(self, name: str) -> BPSet:
        try:
            return self._bpsets[name]
        except KeyError:
            raise UnknownBPSetError(name) from None

    def get_record(self, name: str) -> BPSetRecord:
        try:
            return self._records[name]
        except KeyError:
            raise UnknownBPSetError(name) from None

    def get_metadata(self, name: str) -> BPSetMetadata:
        return self.get_record(name).metadata

    def get_bpsets(self) -> List[BPSet]:
        return list(self._bpsets.values())

    def get_records(self) -> List[BPSetRecord]:
        return list(self._records.values())

    def get_metadatas(self) -> List[BPSetMetadata]:
        """Merged metadata of every BPSet in registration order."""
        return [record.metadata for record in self._records.values()]

    # ------------------------------------------------------------------
    # Check
    # ------------------------------------------------------------------

    async def run_check_once(self, name: str) -> None:
        bpset = self.get_bpset(name)
        record = self._records[name]
        record.stats.status = BPSetStatus.CHECKING
        await self._check(name, bpset, record)

    async def run_check_all(self, on_finished: Optional[FinishedCallback] = None) -> List[None]:
        """
        Run every check concurrently and wait for all of them to settle.

        Args:
            on_finished: Called with the rule name as each rule settles, in
                completion order. May be a plain function or a coroutine
                function.
        """
        for record in self._records.values():
            record.stats.status = BPSetStatus.CHECKING

        limit = self.config.scan.max_concurrent_checks
        semaphore = asyncio.Semaphore(limit) if limit > 0 else None

        async def run_one(name: str, bpset: BPSet) -> None:
            if semaphore is None:
                await self._check(name, bpset, self._records[name])
            else:
                async with semaphore:
                    await self._check(name, bpset, self._records[name])
            if on_finished is not None:
                await self._notify(on_finished, name)

        logger.info(f"[BPManager] Checking {len(self._bpsets)} BPSets")
        results = await asyncio.gather(
            *(run_one(name, bpset) for name, bpset in self._bpsets.items())
        )
        logger.info(f"[BPManager] Check finished: {self.summary()['status']}")
        return list(results)

    async def _check(self, name: str, bpset: BPSet, record: BPSetRecord) -> None:
        timeout = self.config.scan.check_timeout_seconds
        try:
            await run_with_timeout(bpset.check(), timeout, name=name)
        except asyncio.TimeoutError:
            bpset.mark_error(f"Check timed out after {timeout}s", ErrorCode.BPSET_CHECK_TIMEOUT)
        except Exception as exc:
            # BPSet.check() records its own failures; this catches rules that
            # override check() and break that contract
            error = handle_error(exc, code=ErrorCode.BPSET_CHECK_FAILED)
            logger.error(f"[BPManager] {name} raised from check(): {error}")
            bpset.mark_error(error.message, error.code)

        self._mirror(bpset, record)

    async def _notify(self, on_finished: FinishedCallback, name: str) -> None:
        try:
            await maybe_await(on_finished(name))
        except Exception:
            logger.exception(f"[BPManager] on_finished callback failed for {name}")

    def _mirror(self, bpset: BPSet, record: BPSetRecord) -> None:
        stats = bpset.get_stats()
        if stats.status == BPSetStatus.CHECKING:
            # check() returned without settling its status
            stats.status = BPSetStatus.FINISHED
        record.stats = stats.copy()

    # ------------------------------------------------------------------
    # Fix
    # ------------------------------------------------------------------

    async def run_fix(
        self,
        name: str,
        required_parameters: Optional[Iterable[FixParameterInput]] = None,
        resources: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Remediate the non-compliant resources captured by the last check.

        Args:
            name: BPSet name
            required_parameters: Checked against the merged metadata, then
                passed through to BPSet.fix()
            resources: Optional subset to fix; ids not in the captured
                non-compliant list are skipped

        Raises:
            UnknownBPSetError: name is not registered
            MissingFixParameterError: a declared parameter was not supplied
        """
        bpset = self.get_bpset(name)
        record = self._records[name]
        parameters = list(required_parameters or ())
        # Declared metadata may require more than the rule itself declares
        require_parameters(name, record.metadata.required_parameter_names, normalize_fix_parameters(parameters))

        targets = list(record.stats.non_compliant_resources)

        if resources is not None:
            wanted = set(resources)
            skipped = wanted.difference(targets)
            if skipped:
                logger.warning(f"[BPManager] {name}: skipping resources not flagged by the last check: {sorted(skipped)}")
            targets = [resource for resource in targets if resource in wanted]

        logger.info(f"[BPManager] Fixing {len(targets)} resources with {name}")
        try:
            await bpset.fix(targets, parameters)
        finally:
            record.stats.status = bpset.get_stats().status
            record.stats.error_message = list(bpset.get_stats().error_message)

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def clear_stats(self, name: Optional[str] = None) -> None:
        """Reset one BPSet (or all of them) and its record to LOADED."""
        names = [name] if name is not None else list(self._bpsets)
        for key in names:
            self.get_bpset(key).clear_stats()
            self._records[key].stats = BPSetStats()

    def reset_cache(self) -> None:
        """Start a fresh audit pass: drop every memoized AWS response."""
        Memorizer.reset()

    def summary(self) -> Dict[str, Any]:
        status = {state.value: 0 for state in BPSetStatus}
        compliant = 0
        non_compliant = 0
        for record in self._records.values():
            status[record.stats.status.value] += 1
            compliant += len(record.stats.compliant_resources)
            non_compliant += len(record.stats.non_compliant_resources)
        return {
            "total": len(self._records),
            "status": status,
            "compliant_resources": compliant,
            "non_compliant_resources": non_compliant,
        }
