"""
Declarative metadata sources.

The orchestrator merges rule instances with metadata records by name. The
built-in source reads each rule's own metadata; JsonMetadataSource reads a
JSON array of records, camelCase or snake_case keys, so the metadata of a
deployment can be reviewed and adjusted without touching rule code.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Protocol, Union

from pydantic import ValidationError

from bpsets.contracts.models import BPSetMetadata
from bpsets.errors import ConfigError, ErrorCode
from bpsets.toolkit.bpset import BPSet

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    def load(self) -> List[BPSetMetadata]:
        ...


class BuiltinMetadataSource:
    """Metadata exactly as each rule declares it."""

    def __init__(self, bpsets: Iterable[BPSet]):
        self._bpsets = list(bpsets)

    def load(self) -> List[BPSetMetadata]:
        return [bpset.get_metadata() for bpset in self._bpsets]


class JsonMetadataSource:
    """Metadata records read from a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[BPSetMetadata]:
        if not self.path.exists():
            raise ConfigError(
                ErrorCode.CONFIG_FILE_NOT_FOUND,
                f"Metadata file not found: {self.path}",
                details={"path": str(self.path)},
            )

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                f"Metadata file is not valid JSON: {exc}",
                details={"path": str(self.path)},
            ) from exc

        if not isinstance(raw, list):
            raise ConfigError(
                ErrorCode.CONFIG_INVALID,
                "Metadata file must contain a list of records",
                details={"path": str(self.path)},
            )

        records: List[BPSetMetadata] = []
        for index, item in enumerate(raw):
            try:
                records.append(BPSetMetadata.model_validate(item))
            except ValidationError as exc:
                violations = [
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                    for err in exc.errors()
                ]
                raise ConfigError(
                    ErrorCode.CONFIG_INVALID,
                    f"Metadata record #{index} is invalid: {'; '.join(violations)}",
                    details={"path": str(self.path), "index": index, "violations": violations},
                ) from exc

        logger.info(f"[Metadata] Loaded {len(records)} records from {self.path}")
        return records
