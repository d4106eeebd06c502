"""Registry of test-data driver extensions keyed by driver id."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

DriverFactory = Callable[..., Any]

_DRIVER_REGISTRY: Dict[str, DriverFactory] = {}


def register_driver(driver_id: str, factory: DriverFactory) -> None:
    """Register a driver extension factory under ``driver_id``."""
    if driver_id in _DRIVER_REGISTRY:
        raise ValueError(
            f"Driver '{driver_id}' is already registered. "
            "Use a different driver id or unregister first."
        )
    _DRIVER_REGISTRY[driver_id] = factory


def unregister_driver(driver_id: str) -> None:
    _DRIVER_REGISTRY.pop(driver_id, None)


def get_driver(driver_id: str, **kwargs: Any) -> Any:
    """Build the extension registered under ``driver_id``."""
    if driver_id not in _DRIVER_REGISTRY:
        available = list(_DRIVER_REGISTRY.keys())
        raise KeyError(
            f"Driver '{driver_id}' not found in registry. Available: {available}"
        )
    return _DRIVER_REGISTRY[driver_id](**kwargs)


def list_drivers() -> List[str]:
    """List all registered driver ids."""
    return sorted(_DRIVER_REGISTRY.keys())


__all__ = [
    "register_driver",
    "unregister_driver",
    "get_driver",
    "list_drivers",
]
