"""Cobalt core: reactive settings registry and diagnostics manager."""

__version__ = "1.0.0"

from cobalt_core.context import CoreContext  # noqa: E402

__all__ = ["CoreContext", "__version__"]
