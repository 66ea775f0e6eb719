"""Process-wide selector used by the web routes."""

from __future__ import annotations

from practice.core.selector import Selector, build_selector

# Global selector instance
_selector: Selector | None = None


def get_selector() -> Selector:
    """Get the global selector, wiring it from config on first use."""
    global _selector
    if _selector is None:
        _selector = build_selector()
    return _selector


def set_selector(selector: Selector) -> None:
    """Install a pre-built selector (app factory and tests)."""
    global _selector
    _selector = selector


def reset_selector() -> None:
    """Reset the selector (for testing)."""
    global _selector
    _selector = None
