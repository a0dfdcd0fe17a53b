"""Image Relay - server-side relay for a hosted image-generation API."""

__version__ = "0.1.0"

from imagerelay.core.config import RelayConfig, config
from imagerelay.core.model_registry import ModelRegistry, load_registry
from imagerelay.core.model_selector import ModelSelector

__all__ = [
    "ModelRegistry",
    "ModelSelector",
    "RelayConfig",
    "config",
    "load_registry",
]
