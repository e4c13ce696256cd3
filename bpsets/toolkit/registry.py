"""
Static BPSet registration table.

Rules register themselves with the @register decorator when their module is
imported. Importing bpsets.rules therefore fills the default table with the
whole built-in catalog, in import order. That order is the registration
order the orchestrator preserves for listing.
"""

from __future__ import annotations

import importlib
import logging
from typing import Callable, Dict, List, Optional, Type, TypeVar

from bpsets.errors import DuplicateBPSetError
from bpsets.toolkit.bpset import BPSet

logger = logging.getLogger(__name__)

BPSetFactory = Callable[[], BPSet]
B = TypeVar("B", bound=Type[BPSet])


class BPSetRegistry:
    """Ordered mapping of rule name to a zero-argument factory."""

    def __init__(self) -> None:
        self._factories: Dict[str, BPSetFactory] = {}

    def __len__(self) -> int:
        return len(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def add(self, name: str, factory: BPSetFactory) -> None:
        if name in self._factories:
            raise DuplicateBPSetError(name)
        self._factories[name] = factory
        logger.debug(f"[Registry] {name} registered")

    def register(self, cls: B) -> B:
        """Class decorator: register cls under its metadata name."""
        metadata = getattr(cls, "metadata", None)
        name = metadata.name if metadata is not None else cls.__name__
        self.add(name, cls)
        return cls

    def names(self) -> List[str]:
        return list(self._factories)

    def create_all(self) -> Dict[str, BPSet]:
        """Instantiate every registered rule, keyed by name."""
        return {name: factory() for name, factory in self._factories.items()}


# The process-wide table the built-in rules register into
registry = BPSetRegistry()
register = registry.register

_BUILTIN_PACKAGE = "bpsets.rules"


def load_default_registry(package: Optional[str] = None) -> BPSetRegistry:
    """Import the rule catalog so every built-in rule registers itself."""
    importlib.import_module(package or _BUILTIN_PACKAGE)
    logger.debug(f"[Registry] {len(registry)} BPSets available")
    return registry
