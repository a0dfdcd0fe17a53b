"""Build the upstream generation payload from a user request.

The payload is a flat dict ready for JSON serialisation.  Rules:

- ``prompt``, ``modelId``, ``num_images``, ``width``, ``height`` and
  ``public`` are always present; counts and dimensions are coerced to int.
- ``presetStyle`` is sent only when set and not the ``"NONE"`` sentinel.
- A capability flag is sent only when the capability is enabled.
- Dependent sub-parameters (``photoRealVersion``, ``promptMagicStrength``,
  ...) are sent only when their capability is enabled *and* the value is
  non-empty.
- ``transparency`` carries the chosen mode and defaults to its first option.

The prompt is forwarded as given; emptiness is checked by the form.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .capabilities import (
    DEPENDENT_FIELDS,
    NO_STYLE,
    SELECT_OPTIONS,
    Capability,
    capability_name,
)
from .errors import InvalidModelIdentifier
from .model_registry import ModelRegistry

logger = logging.getLogger(__name__)

DEFAULT_NUM_IMAGES = 2
DEFAULT_DIMENSION = 1024


@dataclass
class GenerationRequest:
    """Parameters for one generation, as collected by the form.

    ``capabilities`` maps capability names to their toggle value.  For
    select-valued capabilities (transparency) the value may be the chosen
    option string instead of ``True``.  ``options`` holds the dependent
    sub-parameters keyed by their payload name.
    """

    prompt: str
    num_images: int | str = DEFAULT_NUM_IMAGES
    width: int | str = DEFAULT_DIMENSION
    height: int | str = DEFAULT_DIMENSION
    preset_style: str | None = None
    public: bool = False
    capabilities: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)

    def toggles(self) -> dict[str, Any]:
        """Capability toggles keyed by plain capability name."""
        return {capability_name(name): value for name, value in self.capabilities.items()}

    def enabled_capabilities(self) -> set[str]:
        """Names of capabilities switched on in this request."""
        return {name for name, value in self.toggles().items() if _is_set(value)}


def _is_set(value: Any) -> bool:
    """True for values that count as supplied: not None, False or blank."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _select_value(capability: Capability, value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return SELECT_OPTIONS[capability][0]


def build_payload(
    registry: ModelRegistry,
    identifier: str,
    params: GenerationRequest,
) -> dict[str, Any]:
    """Assemble the upstream payload for *params* on model *identifier*.

    Args:
        registry: Registry used to resolve the backend id.
        identifier: Public model identifier chosen by the caller.
        params: The generation request.

    Returns:
        Flat payload dict.  Contains the backend ``modelId``; it must only
        be sent upstream, never returned to the caller.

    Raises:
        InvalidModelIdentifier: If *identifier* is not registered.
        ValueError: If a count, dimension or numeric sub-parameter cannot
            be converted.
    """
    model_id = registry.backend_id_for(identifier)
    if model_id is None:
        raise InvalidModelIdentifier(identifier)

    payload: dict[str, Any] = {
        "prompt": params.prompt,
        "modelId": model_id,
        "num_images": int(params.num_images),
        "width": int(params.width),
        "height": int(params.height),
        "public": bool(params.public),
    }

    if params.preset_style and params.preset_style != NO_STYLE:
        payload["presetStyle"] = params.preset_style

    toggles = params.toggles()
    enabled = params.enabled_capabilities()
    for capability in Capability:
        if capability.value not in enabled:
            continue

        if capability in SELECT_OPTIONS:
            payload[capability.value] = _select_value(capability, toggles[capability.value])
        else:
            payload[capability.value] = True

        for key, convert in DEPENDENT_FIELDS.get(capability, {}).items():
            value = params.options.get(key)
            if _is_set(value):
                payload[key] = convert(value)

    logger.debug(f"Built payload for '{identifier}' with {sorted(enabled)}")
    return payload
