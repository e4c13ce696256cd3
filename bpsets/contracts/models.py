"""
bpsets/contracts/models.py
Data models for BPSet metadata, run statistics and registry records.

Metadata is validated by pydantic because it may come from a declarative
JSON document with camelCase keys. Run statistics are plain mutable
dataclasses owned by a single rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from bpsets.errors import ErrorCode


# ---------------------------------------------------------------------------
# Metadata (immutable)
# ---------------------------------------------------------------------------

class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class RequiredParameter(_FrozenModel):
    """A named parameter a rule needs before it can run its fix."""
    name: str = Field(min_length=1)
    description: str = ""
    default: str = ""
    example: str = ""


class CommandUsage(_FrozenModel):
    """An AWS API operation used by check or fix, with the reason it is needed."""
    name: str = Field(min_length=1)
    reason: str = ""


class BPSetMetadata(_FrozenModel):
    name: str = Field(min_length=1)
    description: str = ""
    priority: int = Field(default=3, ge=1)
    priority_reason: str = Field(default="", alias="priorityReason")
    aws_service: str = Field(default="", alias="awsService")
    aws_service_category: str = Field(default="", alias="awsServiceCategory")
    best_practice_category: str = Field(default="", alias="bestPracticeCategory")
    required_parameters_for_fix: Tuple[RequiredParameter, ...] = Field(
        default=(), alias="requiredParametersForFix"
    )
    is_fix_function_uses_destructive_command: bool = Field(
        default=False, alias="isFixFunctionUsesDestructiveCommand"
    )
    command_used_in_check_function: Tuple[CommandUsage, ...] = Field(
        default=(), alias="commandUsedInCheckFunction"
    )
    command_used_in_fix_function: Tuple[CommandUsage, ...] = Field(
        default=(), alias="commandUsedInFixFunction"
    )
    advise_before_fix_function: str = Field(default="", alias="adviseBeforeFixFunction")

    @property
    def required_parameter_names(self) -> List[str]:
        return [param.name for param in self.required_parameters_for_fix]


class FixParameter(_FrozenModel):
    """One caller-supplied name/value pair passed to fix()."""
    name: str
    value: str


FixParameterInput = Union[FixParameter, Mapping[str, Any], Tuple[str, str]]


def normalize_fix_parameters(params: Iterable[FixParameterInput] | None) -> Dict[str, str]:
    """
    Collapse caller-supplied fix parameters into a name -> value dict.

    Accepts FixParameter models, {"name": ..., "value": ...} mappings or
    (name, value) pairs. Later duplicates win.
    """
    resolved: Dict[str, str] = {}
    for item in params or ():
        if isinstance(item, FixParameter):
            param = item
        elif isinstance(item, Mapping):
            param = FixParameter.model_validate(item)
        else:
            name, value = item
            param = FixParameter(name=name, value=value)
        resolved[param.name] = param.value
    return resolved


# ---------------------------------------------------------------------------
# Run statistics (mutable, one per rule)
# ---------------------------------------------------------------------------

class BPSetStatus(str, Enum):
    LOADED = "LOADED"
    CHECKING = "CHECKING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ErrorEntry:
    date: datetime
    message: str
    code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR

    @classmethod
    def now(cls, message: str, code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR) -> "ErrorEntry":
        return cls(date=datetime.now(timezone.utc), message=message, code=code)

    def to_dict(self) -> Dict[str, str]:
        return {"date": self.date.isoformat(), "message": self.message, "code": self.code.value}


@dataclass
class BPSetStats:
    compliant_resources: List[str] = field(default_factory=list)
    non_compliant_resources: List[str] = field(default_factory=list)
    status: BPSetStatus = BPSetStatus.LOADED
    error_message: List[ErrorEntry] = field(default_factory=list)

    def reset(self) -> None:
        self.compliant_resources = []
        self.non_compliant_resources = []
        self.status = BPSetStatus.LOADED
        self.error_message = []

    def record_error(self, message: str, code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR) -> ErrorEntry:
        entry = ErrorEntry.now(message, code)
        self.error_message.append(entry)
        self.status = BPSetStatus.ERROR
        return entry

    def copy(self) -> "BPSetStats":
        # ErrorEntry is frozen, so copying the lists is enough to avoid aliasing
        return BPSetStats(
            compliant_resources=list(self.compliant_resources),
            non_compliant_resources=list(self.non_compliant_resources),
            status=self.status,
            error_message=list(self.error_message),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compliant_resources": list(self.compliant_resources),
            "non_compliant_resources": list(self.non_compliant_resources),
            "status": self.status.value,
            "error_message": [entry.to_dict() for entry in self.error_message],
        }


# ---------------------------------------------------------------------------
# Registry record (orchestrator-owned)
# ---------------------------------------------------------------------------

@dataclass
class BPSetRecord:
    """Metadata plus the orchestrator's mirror of a rule's statistics."""
    metadata: BPSetMetadata
    stats: BPSetStats = field(default_factory=BPSetStats)
    idx: int = 0

    @property
    def name(self) -> str:
        return self.metadata.name

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = self.metadata.model_dump(mode="json")
        payload.update(self.stats.to_dict())
        payload["idx"] = self.idx
        return payload
