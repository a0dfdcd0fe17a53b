"""Static catalogue of backend generation models.

The registry is built once at startup from a JSON catalogue (by default the
``models.json`` shipped in :mod:`imagerelay.data`) and is read-only
afterwards.  It is passed explicitly to the selector and the request builder
rather than read from module-level state, so tests can build small
registries of their own.

Each :class:`Model` has two identities:

- ``id`` -- the opaque backend identifier sent to the upstream service.
  It must never leave the server.
- ``identifier`` -- the public slug used by callers.

Usage Example
-------------
    >>> from imagerelay.core.model_registry import load_registry
    >>> registry = load_registry()
    >>> registry.get("kino-xl").name
    'Leonardo Kino XL'
    >>> [m["identifier"] for m in registry.public_models()][:2]
    ['lightning-xl', 'kino-xl']
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .capabilities import capability_name, is_capability

logger = logging.getLogger(__name__)

DEFAULT_CATALOGUE = "models.json"


@dataclass(frozen=True)
class Model:
    """A backend generation model and the capabilities it supports.

    Attributes:
        id: Opaque backend identifier.  Server-side only.
        identifier: Stable public slug.
        name: Display name.
        description: One-line description for the UI.
        supports: Capability name -> supported flag.
        is_default: Marks the fallback model.  Not used for ranking.
        priority: Lower is preferred.  ``None`` ranks after every explicit
            priority.
    """

    id: str
    identifier: str
    name: str
    description: str = ""
    supports: Mapping[str, bool] = field(default_factory=dict)
    is_default: bool = False
    priority: int | None = None

    def __post_init__(self) -> None:
        unknown = [name for name in self.supports if not is_capability(name)]
        if unknown:
            raise ValueError(
                f"Model '{self.identifier}' declares unknown capabilities: "
                f"{sorted(map(str, unknown))}"
            )
        not_bool = sorted(
            capability_name(name)
            for name, value in self.supports.items()
            if not isinstance(value, bool)
        )
        if not_bool:
            raise ValueError(
                f"Model '{self.identifier}' has non-boolean support flags: {not_bool}"
            )
        if self.priority is not None and (
            isinstance(self.priority, bool) or not isinstance(self.priority, int)
        ):
            raise ValueError(
                f"Model '{self.identifier}' priority must be an integer, got {self.priority!r}"
            )
        object.__setattr__(
            self,
            "supports",
            MappingProxyType({capability_name(k): v for k, v in self.supports.items()}),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Model:
        """Build a model from a catalogue entry (camelCase keys)."""
        return cls(
            id=data["id"],
            identifier=data["identifier"],
            name=data["name"],
            description=data.get("description", ""),
            supports=data.get("supports", {}),
            is_default=bool(data.get("isDefault", False)),
            priority=data.get("priority"),
        )

    def supports_all(self, capabilities: Iterable[str]) -> bool:
        """Return True if every capability in *capabilities* is supported."""
        return all(self.supports.get(name, False) for name in capabilities)

    @property
    def feature_count(self) -> int:
        """Number of capabilities this model supports."""
        return sum(1 for supported in self.supports.values() if supported)

    def public_info(self) -> dict[str, Any]:
        """Client-safe description of the model.  Never includes ``id``."""
        info: dict[str, Any] = {
            "identifier": self.identifier,
            "name": self.name,
            "description": self.description,
            "supports": dict(self.supports),
            "priority": self.priority,
        }
        if self.is_default:
            info["isDefault"] = True
        return info


class ModelRegistry:
    """Immutable, ordered collection of :class:`Model` entries.

    Declaration order is preserved and used as the final tie-break by the
    selector.

    Raises:
        ValueError: On duplicate identifiers, duplicate backend ids, or more
            than one default model.
    """

    def __init__(self, models: Iterable[Model]) -> None:
        self._models: tuple[Model, ...] = tuple(models)
        self._by_identifier: dict[str, Model] = {}
        backend_ids: set[str] = set()

        for model in self._models:
            if model.identifier in self._by_identifier:
                raise ValueError(f"Duplicate model identifier: {model.identifier}")
            if model.id in backend_ids:
                raise ValueError(f"Duplicate backend id for model '{model.identifier}'")
            self._by_identifier[model.identifier] = model
            backend_ids.add(model.id)

        defaults = [m.identifier for m in self._models if m.is_default]
        if len(defaults) > 1:
            raise ValueError(f"At most one default model is allowed, got {defaults}")

    def __iter__(self) -> Iterator[Model]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

    @property
    def models(self) -> tuple[Model, ...]:
        return self._models

    def get(self, identifier: str) -> Model | None:
        """Look up a model by its public identifier."""
        return self._by_identifier.get(identifier)

    def get_by_backend_id(self, backend_id: str) -> Model | None:
        """Look up a model by its backend id.  Internal use only."""
        return next((m for m in self._models if m.id == backend_id), None)

    def backend_id_for(self, identifier: str) -> str | None:
        """Resolve a public identifier to its backend id, or None if unknown."""
        model = self._by_identifier.get(identifier)
        return model.id if model else None

    def default_model(self, identifier: str | None = None) -> Model:
        """Return the fallback model.

        With an *identifier*, returns that model or, if it is not
        registered, the first declared model.  Without one, returns the
        model flagged ``isDefault`` or the first declared model.
        """
        if not self._models:
            raise LookupError("Model registry is empty")
        if identifier is None:
            flagged = next((m for m in self._models if m.is_default), None)
            return flagged or self._models[0]
        if identifier not in self._by_identifier:
            logger.warning(f"Default model '{identifier}' is not registered")
            return self._models[0]
        return self._by_identifier[identifier]

    def model_supports(self, identifier: str, capabilities: Iterable[str]) -> bool:
        """Return True if the model exists and supports every capability."""
        model = self._by_identifier.get(identifier)
        return model is not None and model.supports_all(capabilities)

    def public_models(self) -> list[dict[str, Any]]:
        """Client-safe model list, in declaration order."""
        return [model.public_info() for model in self._models]


def load_registry(path: Path | str | None = None) -> ModelRegistry:
    """Load a registry from a JSON catalogue.

    The catalogue is an object with a ``models`` list.  With no *path*, the
    catalogue bundled with the package is used.

    Args:
        path: Optional path to a catalogue file.

    Returns:
        A new :class:`ModelRegistry`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the catalogue is malformed or violates registry
            invariants.
    """
    if path is None:
        text = resources.files("imagerelay.data").joinpath(DEFAULT_CATALOGUE).read_text("utf-8")
        source = f"imagerelay.data/{DEFAULT_CATALOGUE}"
    else:
        text = Path(path).read_text(encoding="utf-8")
        source = str(path)

    try:
        data = json.loads(text)
        models = [Model.from_dict(entry) for entry in data["models"]]
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise ValueError(f"Malformed model catalogue {source}: {e}") from e

    registry = ModelRegistry(models)
    logger.info(f"Loaded {len(registry)} models from {source}")
    return registry
