"""Platform client construction, keyed by the ``BACKOFFICE_PLATFORM`` setting.

Each flavour lives in ``backoffice/platform/<name>.py`` and exports an
``ADAPTER``; ``_ADAPTER_MODULES`` maps the setting value to that module.
"""

from __future__ import annotations

import importlib

from backoffice.platform._base import PlatformAdapter, PlatformClient, PlatformError

__all__ = ["PlatformAdapter", "PlatformClient", "PlatformError", "resolve_platform"]

_ADAPTER_MODULES = {
    "postgrest": "backoffice.platform.postgrest",
}


def resolve_platform(platform_id: str) -> PlatformAdapter:
    """Adapter for *platform_id* (case-insensitive); ``ValueError`` if unknown."""
    try:
        module_path = _ADAPTER_MODULES[platform_id.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported BACKOFFICE_PLATFORM '{platform_id}'; "
            f"expected one of {sorted(_ADAPTER_MODULES)}"
        ) from None
    return importlib.import_module(module_path).ADAPTER
