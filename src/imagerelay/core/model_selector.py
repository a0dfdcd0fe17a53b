"""Pick the best backend model for a set of requested capabilities.

Selection rules
---------------
1. Dynamic selection disabled -> the configured default model.
2. Nothing requested -> the configured default model.
3. Keep only models supporting *every* requested capability.
4. None left -> log a warning and fall back to the configured default.
5. Otherwise rank the survivors by ascending priority (missing priority
   last), then by the number of capabilities each model supports (more is
   better), then by declaration order, and take the first.

The configured default is the model whose identifier matches
``default_identifier``; if it is not registered, the first declared model.

The outcome is returned explicitly as a :class:`ModelSelection` so callers
can tell a real match from a fallback without reading logs.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from .capabilities import capability_name
from .model_registry import Model, ModelRegistry

logger = logging.getLogger(__name__)


class SelectionOutcome(str, Enum):
    """How a :class:`ModelSelection` was reached."""

    SELECTED = "selected"
    DEFAULT_REQUESTED = "default"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class ModelSelection:
    """Result of :meth:`ModelSelector.select`."""

    model: Model
    outcome: SelectionOutcome
    requested: frozenset[str] = frozenset()

    @property
    def degraded(self) -> bool:
        return self.outcome is SelectionOutcome.DEGRADED


def requested_capabilities(
    capabilities: str | Iterable[str] | Mapping[str, object],
) -> frozenset[str]:
    """Normalise a capability request into a set of names.

    Accepts either an iterable of names or a toggle mapping such as
    ``{"alchemy": True, "photoReal": False}``; for a mapping only entries
    whose value is exactly ``True`` count.  A single name (string or
    :class:`Capability`) is treated as a one-element request.
    """
    if isinstance(capabilities, str):
        return frozenset({capability_name(capabilities)})
    if isinstance(capabilities, Mapping):
        return frozenset(
            capability_name(name) for name, value in capabilities.items() if value is True
        )
    return frozenset(capability_name(name) for name in capabilities)


class ModelSelector:
    """Capability-driven model selection over a :class:`ModelRegistry`.

    Args:
        registry: The model catalogue.
        default_identifier: Identifier of the fallback model.
        dynamic: When False, :meth:`select` always returns the default.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        default_identifier: str,
        dynamic: bool = True,
    ) -> None:
        self.registry = registry
        self.default_identifier = default_identifier
        self.dynamic = dynamic
        self._order = {model.identifier: index for index, model in enumerate(registry)}

    def default_model(self) -> Model:
        """The configured default model (first declared model if unregistered)."""
        return self.registry.default_model(self.default_identifier)

    def _rank(self, model: Model) -> tuple[float, int, int]:
        priority = math.inf if model.priority is None else model.priority
        return (priority, -model.feature_count, self._order[model.identifier])

    def select(
        self, capabilities: str | Iterable[str] | Mapping[str, object] = ()
    ) -> ModelSelection:
        """Choose a model for the requested capabilities.

        Args:
            capabilities: A capability name, a collection of names, or a
                name -> enabled mapping.
                Names outside the capability vocabulary are never supported.

        Returns:
            A :class:`ModelSelection`.  Never raises for lack of a match.
        """
        requested = requested_capabilities(capabilities)

        if not self.dynamic or not requested:
            return ModelSelection(self.default_model(), SelectionOutcome.DEFAULT_REQUESTED, requested)

        compatible = [model for model in self.registry if model.supports_all(requested)]

        if not compatible:
            fallback = self.default_model()
            logger.warning(
                f"No model supports all selected features {sorted(requested)}. "
                f"Using default model '{fallback.identifier}'."
            )
            return ModelSelection(fallback, SelectionOutcome.DEGRADED, requested)

        best = min(compatible, key=self._rank)
        logger.debug(f"Selected model '{best.identifier}' for {sorted(requested)}")
        return ModelSelection(best, SelectionOutcome.SELECTED, requested)
