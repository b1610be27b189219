"""Exception and warning types raised by the simplification pipeline."""

from __future__ import annotations

__all__ = [
    "MalformedInputWarning",
    "MalformedLayoutError",
    "NonConvergenceWarning",
    "SafetyCapWarning",
]


class MalformedLayoutError(ValueError):
    """Raised by the strict loader when route data has the wrong shape."""


class MalformedInputWarning(UserWarning):
    """A public operation received malformed data and did nothing."""


class NonConvergenceWarning(UserWarning):
    """Auto merge/reduce stopped at a ceiling before meeting its threshold."""


class SafetyCapWarning(UserWarning):
    """A fixed-point loop hit its pass limit and was stopped early."""
