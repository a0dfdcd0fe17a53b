"""Capability vocabulary shared by the registry, selector and request builder.

A *capability* is a named optional feature a generation request may enable
(``alchemy``, ``transparency``, ...).  The set of names is fixed: every
model's ``supports`` map is keyed by these names, and any other name is
treated as unsupported by every model.

This module also carries the form-facing metadata for each capability
(label, tooltip, dependent fields, select options) and the list of preset
styles.  Both are served to the frontend by ``GET /api/config`` so the form
and the server agree on field names and defaults.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class Capability(str, Enum):
    """Capability names understood by the upstream generation service."""

    TRANSPARENCY = "transparency"
    ALCHEMY = "alchemy"
    PHOTO_REAL = "photoReal"
    PROMPT_MAGIC = "promptMagic"
    HIGH_CONTRAST = "highContrast"
    HIGH_RESOLUTION = "highResolution"
    EXPANDED_DOMAIN = "expandedDomain"
    FANTASY_AVATAR = "fantasyAvatar"
    ENHANCE_PROMPT = "enhancePrompt"


CAPABILITY_NAMES: frozenset[str] = frozenset(c.value for c in Capability)

# Sentinel preset style meaning "no style" -- never forwarded upstream.
NO_STYLE = "NONE"


# ---------------------------------------------------------------------------
# Dependent sub-parameters.
#
# Maps each capability to the payload keys that may only be sent when the
# capability is enabled.  The value is a converter applied to non-empty
# values before they are placed in the payload.
# ---------------------------------------------------------------------------
DEPENDENT_FIELDS: dict[Capability, dict[str, type]] = {
    Capability.PHOTO_REAL: {"photoRealVersion": str},
    Capability.PROMPT_MAGIC: {"promptMagicVersion": str, "promptMagicStrength": float},
    Capability.HIGH_CONTRAST: {"contrastRatio": float},
    Capability.ENHANCE_PROMPT: {"enhancePromptInstruction": str},
}

# Capabilities whose payload value is a chosen option rather than ``True``.
# The first option is used when the capability is enabled without a choice.
SELECT_OPTIONS: dict[Capability, tuple[str, ...]] = {
    Capability.TRANSPARENCY: ("foreground_only",),
}


CAPABILITY_OPTIONS: list[dict[str, Any]] = [
    {
        "id": Capability.ALCHEMY.value,
        "label": "Alchemy",
        "tooltip": "Enhanced image quality and more artistic outputs. Uses more compute.",
        "default": False,
    },
    {
        "id": Capability.PHOTO_REAL.value,
        "label": "PhotoReal",
        "tooltip": "Generate photorealistic images. Works best with photographic prompts.",
        "default": False,
        "conditional_fields": [
            {
                "id": "photoRealVersion",
                "label": "PhotoReal Version",
                "type": "select",
                "options": ["v1", "v2"],
                "default": "v2",
            },
        ],
    },
    {
        "id": Capability.PROMPT_MAGIC.value,
        "label": "Prompt Magic",
        "tooltip": "AI-powered prompt improvements. Adds creative details automatically.",
        "default": False,
        "conditional_fields": [
            {
                "id": "promptMagicVersion",
                "label": "Version",
                "type": "select",
                "options": ["v2", "v3"],
                "default": "v2",
            },
            {
                "id": "promptMagicStrength",
                "label": "Strength (0.1 - 1.0)",
                "type": "number",
                "min": 0.1,
                "max": 1.0,
                "step": 0.1,
                "default": 0.5,
            },
        ],
    },
    {
        "id": Capability.TRANSPARENCY.value,
        "label": "Transparency",
        "tooltip": "Generate images with transparent backgrounds for compositing.",
        "default": False,
        "value_type": "select",
        "options": list(SELECT_OPTIONS[Capability.TRANSPARENCY]),
    },
    {
        "id": Capability.HIGH_CONTRAST.value,
        "label": "High Contrast",
        "tooltip": "More vivid and distinct color separation.",
        "default": False,
    },
    {
        "id": Capability.HIGH_RESOLUTION.value,
        "label": "High Resolution",
        "tooltip": "Higher resolution output. May increase generation time.",
        "default": False,
    },
    {
        "id": Capability.EXPANDED_DOMAIN.value,
        "label": "Expanded Domain",
        "tooltip": "Explore visual concepts beyond the model's typical training domain.",
        "default": False,
    },
    {
        "id": Capability.FANTASY_AVATAR.value,
        "label": "Fantasy Avatar",
        "tooltip": "Optimized for fantasy-style character avatars and portraits.",
        "default": False,
    },
    {
        "id": Capability.ENHANCE_PROMPT.value,
        "label": "Enhance Prompt",
        "tooltip": "Automatically enhance and expand the prompt for more detail.",
        "default": False,
        "conditional_fields": [
            {
                "id": "enhancePromptInstruction",
                "label": "Enhancement Instructions",
                "type": "text",
                "default": "",
            },
        ],
    },
]


PRESET_STYLES: list[dict[str, str]] = [
    {"value": NO_STYLE, "label": "None (Default)"},
    {"value": "ANIME", "label": "Anime"},
    {"value": "BOKEH", "label": "Bokeh"},
    {"value": "CINEMATIC", "label": "Cinematic"},
    {"value": "CINEMATIC_CLOSEUP", "label": "Cinematic Closeup"},
    {"value": "CREATIVE", "label": "Creative"},
    {"value": "DYNAMIC", "label": "Dynamic"},
    {"value": "ENVIRONMENT", "label": "Environment"},
    {"value": "FASHION", "label": "Fashion"},
    {"value": "FILM", "label": "Film"},
    {"value": "FOOD", "label": "Food"},
    {"value": "GENERAL", "label": "General"},
    {"value": "HDR", "label": "HDR"},
    {"value": "ILLUSTRATION", "label": "Illustration"},
    {"value": "LEONARDO", "label": "Leonardo"},
    {"value": "LONG_EXPOSURE", "label": "Long Exposure"},
    {"value": "MACRO", "label": "Macro"},
    {"value": "MINIMALISTIC", "label": "Minimalistic"},
    {"value": "MOODY", "label": "Moody"},
    {"value": "NEUTRAL", "label": "Neutral"},
    {"value": "PHOTOGRAPHY", "label": "Photography"},
    {"value": "PORTRAIT", "label": "Portrait"},
    {"value": "RAYTRACED", "label": "Raytraced"},
    {"value": "RENDER_3D", "label": "3D Render"},
    {"value": "RETRO", "label": "Retro"},
    {"value": "SKETCH_BW", "label": "Sketch B&W"},
    {"value": "SKETCH_COLOR", "label": "Sketch Color"},
    {"value": "STOCK_PHOTO", "label": "Stock Photo"},
    {"value": "VIBRANT", "label": "Vibrant"},
    {"value": "UNPROCESSED", "label": "Unprocessed"},
]


def capability_name(name: Capability | str) -> str:
    """Plain string name for a capability given as an enum member or string."""
    return name.value if isinstance(name, Capability) else str(name)


def is_capability(name: Capability | str) -> bool:
    """Return True if *name* is part of the capability vocabulary."""
    return capability_name(name) in CAPABILITY_NAMES
