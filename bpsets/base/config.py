# ============================================================================
# bpsets/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines every configuration setting the auditor reads: how AWS clients are
# built, how many checks may run at once, how long one check may take and
# where logs go.
#
# KEY CONCEPTS:
# 1. Frozen dataclasses: one immutable section per concern
# 2. Environment Variables: BPSETS_* settings override defaults
# 3. Process-wide accessor: get_config() / set_config()
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ============================================================================
# AWS Client Configuration
# ============================================================================
# Controls how boto3 sessions and clients are created.

@dataclass(frozen=True)
class AWSConfig:
    # None lets boto3 resolve the region from its own config chain
    region: Optional[str] = None

    # Named profile from ~/.aws/credentials (None = default chain)
    profile: Optional[str] = None

    # botocore retry budget per API call ("standard" retry mode)
    max_attempts: int = 3

    connect_timeout: float = 10.0
    read_timeout: float = 60.0


# ============================================================================
# Audit Execution Configuration
# ============================================================================

@dataclass(frozen=True)
class ScanConfig:
    # How many BPSet checks may be in flight at once (0 = all of them)
    max_concurrent_checks: int = 0

    # Wall-clock budget for a single check in seconds (0 = no timeout)
    # A check that exceeds it ends in ERROR without blocking its siblings
    check_timeout_seconds: float = 0.0

    # Optional JSON file of declarative metadata records
    metadata_path: Optional[str] = None


# ============================================================================
# Storage Configuration
# ============================================================================

@dataclass(frozen=True)
class StorageConfig:
    base_dir: Path = field(default_factory=lambda: Path.home() / ".bpsets")


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    # File logging is opt-in so library use never writes to the home directory
    file_enabled: bool = False
    file_name: str = "bpsets.log"
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass
class BPSetsConfig:
    aws: AWSConfig = field(default_factory=AWSConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "BPSetsConfig":
        aws = AWSConfig(
            region=os.getenv("BPSETS_AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or None,
            profile=os.getenv("BPSETS_AWS_PROFILE") or None,
            max_attempts=int(os.getenv("BPSETS_AWS_MAX_ATTEMPTS", "3")),
            connect_timeout=float(os.getenv("BPSETS_AWS_CONNECT_TIMEOUT", "10")),
            read_timeout=float(os.getenv("BPSETS_AWS_READ_TIMEOUT", "60")),
        )

        scan = ScanConfig(
            max_concurrent_checks=int(os.getenv("BPSETS_MAX_CONCURRENT_CHECKS", "0")),
            check_timeout_seconds=float(os.getenv("BPSETS_CHECK_TIMEOUT", "0")),
            metadata_path=os.getenv("BPSETS_METADATA_PATH") or None,
        )

        base_dir = Path(os.getenv("BPSETS_DATA_DIR", str(Path.home() / ".bpsets")))
        storage = StorageConfig(base_dir=base_dir)

        log = LogConfig(
            level=os.getenv("BPSETS_LOG_LEVEL", "INFO"),
            file_enabled=_env_bool("BPSETS_LOG_FILE"),
        )

        return cls(
            aws=aws,
            scan=scan,
            storage=storage,
            log=log,
            debug=_env_bool("BPSETS_DEBUG"),
        )


# ============================================================================
# Global Configuration Accessors
# ============================================================================

_config: Optional[BPSetsConfig] = None


def get_config() -> BPSetsConfig:
    """
    Get the process-wide configuration, loading it from the environment on
    first use.
    """
    global _config
    if _config is None:
        _config = BPSetsConfig.from_env()
    return _config


def set_config(config: Optional[BPSetsConfig]) -> None:
    """Replace the process-wide configuration (None forces a reload)."""
    global _config
    _config = config


def setup_logging(config: Optional[BPSetsConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Sets up console logging and, when enabled, a rotating log file under
    storage.base_dir. Call this once at application startup.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_enabled:
        from logging.handlers import RotatingFileHandler
        cfg.storage.base_dir.mkdir(parents=True, exist_ok=True)
        log_path = cfg.storage.base_dir / cfg.log.file_name
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
