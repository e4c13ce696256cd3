"""
BPSet Protocol for BPSets.

Defines the interface every best-practice rule implements. A rule discovers
the resources it covers, sorts them into compliant and non-compliant, and
knows how to remediate the non-compliant ones.

Rules own their statistics. check() and fix() recover from their own
failures by recording a timestamped error and moving to ERROR, so one broken
rule never aborts a batch. The single exception is a caller mistake: fix()
raises MissingFixParameterError before touching AWS when a declared
parameter is absent.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple

from bpsets.contracts.models import (
    BPSetMetadata,
    BPSetStats,
    BPSetStatus,
    ErrorEntry,
    FixParameterInput,
    normalize_fix_parameters,
)
from bpsets.engine.memorizer import Memorizer
from bpsets.errors import ErrorCode, InvalidFixParameterError, MissingFixParameterError, handle_error

logger = logging.getLogger(__name__)

CheckResult = Tuple[List[str], List[str]]


class BPSet(ABC):
    """
    Base class for all best-practice rules.

    Subclasses must provide:
      - metadata: BPSetMetadata class attribute (name is the registry key)
      - check_impl(): async, returns (compliant, non_compliant) resource ids
      - fix_resource() for per-resource remediation, or fix_impl() for fixes
        that act on the whole account at once

    Resource ids are whatever uniquely names the resource to its fix, usually
    an ARN or the service's own identifier.
    """

    metadata: ClassVar[BPSetMetadata]

    def __init__(self) -> None:
        self.stats = BPSetStats()

    @property
    def name(self) -> str:
        return self.metadata.name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} status={self.stats.status.value}>"

    # ------------------------------------------------------------------
    # Metadata & statistics
    # ------------------------------------------------------------------

    def get_metadata(self) -> BPSetMetadata:
        return self.metadata

    def get_stats(self) -> BPSetStats:
        return self.stats

    def clear_stats(self) -> None:
        self.stats.reset()

    def mark_error(self, message: str, code: ErrorCode = ErrorCode.BPSET_CHECK_FAILED) -> ErrorEntry:
        """Record an error raised outside check()/fix(), e.g. a timeout."""
        logger.warning(f"[BPSet:{self.name}] {message}")
        return self.stats.record_error(message, code)

    @staticmethod
    def memo(client: Any, salt: str = "") -> Memorizer:
        return Memorizer.memo(client, salt)

    # ------------------------------------------------------------------
    # Check
    # ------------------------------------------------------------------

    async def check(self) -> None:
        self.stats.status = BPSetStatus.CHECKING
        try:
            compliant, non_compliant = await self.check_impl()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = handle_error(exc, code=ErrorCode.BPSET_CHECK_FAILED)
            logger.error(f"[BPSet:{self.name}] check failed: {error}")
            self.stats.record_error(error.message, error.code)
            return

        self.stats.compliant_resources = list(compliant)
        self.stats.non_compliant_resources = list(non_compliant)
        self.stats.status = BPSetStatus.FINISHED
        logger.debug(
            f"[BPSet:{self.name}] {len(compliant)} compliant, "
            f"{len(non_compliant)} non-compliant"
        )

    @abstractmethod
    async def check_impl(self) -> CheckResult:
        """Discover resources and return (compliant, non_compliant) ids."""
        ...

    # ------------------------------------------------------------------
    # Fix
    # ------------------------------------------------------------------

    async def fix(
        self,
        non_compliant_resources: Sequence[str],
        required_parameters: Optional[Iterable[FixParameterInput]] = None,
    ) -> None:
        params = self.validate_parameters(required_parameters)

        try:
            await self.fix_impl(list(non_compliant_resources), params)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = handle_error(exc, code=ErrorCode.BPSET_FIX_FAILED)
            logger.error(f"[BPSet:{self.name}] fix failed: {error}")
            self.stats.record_error(error.message, error.code)

    def validate_parameters(
        self, required_parameters: Optional[Iterable[FixParameterInput]]
    ) -> Dict[str, str]:
        """
        Resolve caller parameters and fail fast on any missing declared one.

        Raises:
            MissingFixParameterError: a declared parameter is absent or blank
        """
        params = normalize_fix_parameters(required_parameters)
        require_parameters(self.name, self.metadata.required_parameter_names, params)
        return params

    async def fix_impl(self, resources: List[str], params: Dict[str, str]) -> None:
        """
        Default remediation loop: fix_resource() per resource.

        A failing resource does not stop the loop. Failures are summarized
        into one error entry once every resource has been attempted.
        """
        failed: List[str] = []
        for resource_id in resources:
            try:
                await self.fix_resource(resource_id, params)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error(f"[BPSet:{self.name}] fix failed for {resource_id}: {exc}")
                failed.append(f"{resource_id} ({handle_error(exc).message})")

        if failed:
            self.stats.record_error(
                f"Fix failed for {len(failed)} of {len(resources)} resources: " + "; ".join(failed),
                ErrorCode.BPSET_FIX_FAILED,
            )

    async def fix_resource(self, resource_id: str, params: Dict[str, str]) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not implement fix_resource()")

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def int_parameter(self, params: Dict[str, str], name: str) -> int:
        value = params.get(name, "")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidFixParameterError(self.name, name, f"expected an integer, got {value!r}")


def require_parameters(bpset: str, names: Iterable[str], params: Dict[str, str]) -> None:
    """Raise MissingFixParameterError for the first name absent or blank in params."""
    for name in names:
        if not str(params.get(name, "")).strip():
            raise MissingFixParameterError(bpset, name)
