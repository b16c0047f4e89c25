"""Global configuration for root-tactics.

This module provides a package-wide configuration surface: the logging level
of the ``root_tactics`` logger, small environment helpers, and a seeded NumPy
random generator used to lay out soil deposits. The `rng` proxy always
reflects the current generator, so code importing it keeps working after
`configure` or inside `use`.
"""

from __future__ import annotations

import contextlib
import logging
import os
from typing import Any, ContextManager, Iterator, Optional

import numpy as np


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("root_tactics.config")
_PACKAGE_LOGGER = logging.getLogger("root_tactics")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).strip().upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Args:
        level: A standard logging level name or integer.
    """
    _PACKAGE_LOGGER.setLevel(_parse_log_level(level))


# Default level can be overridden by env.
set_log_level(os.getenv("ROOT_TACTICS_LOGLEVEL", "WARNING"))


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def int_env(varname: str, default: int) -> int:
    """Read an environment variable and interpret it as an integer."""
    return int(os.getenv(varname, str(default)))


# -----------------------------------------------------------------------------
# Config singleton + dynamic proxy
# -----------------------------------------------------------------------------
class Config:
    """Global configuration for root-tactics.

    Holds the default seed and the active random generator. World layout
    helpers draw from `rng`; the growth core itself is deterministic.
    """

    def __init__(self) -> None:
        """Initialize config using environment defaults."""
        self._seed_default = int_env("ROOT_TACTICS_SEED", 1234)
        self._rng: np.random.Generator = np.random.Generator(
            np.random.PCG64(self._seed_default)
        )
        _LOGGER.info("Config initialized: seed=%d", self._seed_default)

    def configure(self, *, seed: Optional[int] = None) -> Config:
        """Replace the active generator with a freshly seeded one.

        Args:
            seed: Optional seed (defaults to the environment default).

        Returns:
            The `Config` instance (for chaining).
        """
        seed_value = self._seed_default if seed is None else int(seed)
        _LOGGER.info("Reconfiguring: seed=%d", seed_value)
        self._rng = np.random.Generator(np.random.PCG64(seed_value))
        return self

    @contextlib.contextmanager
    def use(self, *, seed: Optional[int] = None) -> Iterator[None]:
        """Temporarily switch to a freshly seeded generator.

        Args:
            seed: Optional seed for the temporary generator.

        Yields:
            None. Restores the previous generator on exit.
        """
        prev = self._rng
        try:
            self.configure(seed=seed)
            yield
        finally:
            self._rng = prev
            _LOGGER.info("Restored previous RNG")

    def seed(self, s: int = 1234) -> None:
        """Reseed the current generator deterministically."""
        _LOGGER.info("Reseeding RNG to %d", s)
        self._rng = np.random.Generator(np.random.PCG64(s))

    @property
    def default_seed(self) -> int:
        """Return the seed read from the environment at import time."""
        return self._seed_default

    @property
    def rng(self) -> np.random.Generator:
        """Return the active random generator."""
        return self._rng


class _RNGProxy:
    """Proxy for `rng` that forwards attribute access to the current generator."""

    def __init__(self, _cfg: Config) -> None:
        self._cfg = _cfg

    def __getattr__(self, name: str) -> Any:  # noqa: D401
        return getattr(self._cfg.rng, name)


# Singleton & forwards
config = Config()
rng = _RNGProxy(config)


def configure(*, seed: Optional[int] = None) -> Config:
    """Reseed the active generator (module-level)."""
    return config.configure(seed=seed)


def use(*, seed: Optional[int] = None) -> ContextManager[None]:
    """Temporarily switch generator within a context manager (module-level)."""
    return config.use(seed=seed)


def seed(s: int = 1234) -> None:
    """Reseed the current generator deterministically (module-level)."""
    config.seed(s)
