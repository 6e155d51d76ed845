"""
Backend selection.

The active engine is decided once per process: a non-empty DATABASE_URL
selects PostgreSQL, anything else selects the embedded SQLite file. After
the first decision the configuration is never consulted again, even if the
environment changes later.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..config import FleetDBConfig, load_config
from .backend_base import BackendKind

logger = logging.getLogger(__name__)


class BackendSelector:
    """
    Caches the BackendKind decision.

    Parameters
    ----------
    config : FleetDBConfig, optional
        Configuration to decide from. When omitted, ``load_config()`` runs
        lazily on the first ``select()``.
    """

    def __init__(
        self,
        config: Optional[FleetDBConfig] = None,
        *,
        loader: Callable[[], FleetDBConfig] = load_config,
    ):
        self._config = config
        self._loader = loader
        self._kind: Optional[BackendKind] = None
        self._lock = threading.Lock()

    def select(self, config: Optional[FleetDBConfig] = None) -> BackendKind:
        """
        Return the cached decision, making it on the first call.

        ``config`` is consulted only when no decision exists yet and the
        selector was built without one.
        """
        if self._kind is not None:
            return self._kind

        with self._lock:
            if self._kind is None:
                cfg = self._config or config or self._loader()
                self._kind = (
                    BackendKind.NETWORKED_SERVER
                    if cfg.uses_postgres
                    else BackendKind.EMBEDDED_FILE
                )
                logger.info("Using %s backend", self._kind.value)
        return self._kind

    @property
    def selected(self) -> Optional[BackendKind]:
        """The cached decision, or None if select() has not run yet."""
        return self._kind


_default_selector = BackendSelector()


def default_selector() -> BackendSelector:
    """The selector shared by every provider that is not given its own."""
    return _default_selector


def select_backend() -> BackendKind:
    """Process-wide backend decision."""
    return _default_selector.select()


def reset_backend_selection() -> None:
    """Forget the process-wide decision. Intended for tests."""
    global _default_selector
    _default_selector = BackendSelector()


__all__ = [
    "BackendSelector",
    "default_selector",
    "select_backend",
    "reset_backend_selection",
]
