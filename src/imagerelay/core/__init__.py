"""Core relay logic: model catalogue, selection, payload building.

- **capabilities**: The fixed capability vocabulary and form metadata
- **model_registry**: Immutable catalogue of backend models
- **model_selector**: Capability-driven model selection with explicit
  fallback outcomes
- **request_builder**: Normalised upstream payload construction
- **sanitizer**: Strips backend ids from relayed records
- **leonardo_client**: Async client for the upstream REST API
- **config**: Pydantic Settings configuration (``IMAGERELAY_*`` variables)

Everything except the client is pure and safe to call concurrently.

Usage Example
-------------
    from imagerelay.core import ModelSelector, build_payload, load_registry
    from imagerelay.core.request_builder import GenerationRequest

    registry = load_registry()
    selector = ModelSelector(registry, default_identifier="lightning-xl")
    choice = selector.select({"transparency": True})
    payload = build_payload(
        registry,
        choice.model.identifier,
        GenerationRequest(prompt="a lighthouse", capabilities={"transparency": True}),
    )
"""

from imagerelay.core.config import RelayConfig, config
from imagerelay.core.errors import (
    InvalidModelIdentifier,
    MalformedUpstreamResponse,
    RelayError,
    UpstreamServiceError,
)
from imagerelay.core.model_registry import Model, ModelRegistry, load_registry
from imagerelay.core.model_selector import ModelSelection, ModelSelector, SelectionOutcome
from imagerelay.core.request_builder import GenerationRequest, build_payload

__all__ = [
    "GenerationRequest",
    "InvalidModelIdentifier",
    "MalformedUpstreamResponse",
    "Model",
    "ModelRegistry",
    "ModelSelection",
    "ModelSelector",
    "RelayConfig",
    "RelayError",
    "SelectionOutcome",
    "UpstreamServiceError",
    "build_payload",
    "config",
    "load_registry",
]
