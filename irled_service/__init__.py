"""HTTP text protocol for an infrared-controlled LED strip."""

from .server import create_app  # noqa: F401
from .services.lifecycle import LifecycleController  # noqa: F401

__all__ = ["LifecycleController", "create_app"]
