"""Pydantic request models for the Image Relay API.

FastAPI uses these for request validation and OpenAPI documentation.  The
generation form posts camelCase keys, so every multi-word field declares a
camelCase alias; snake_case names are accepted too.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
SelectModelRequest
    Payload for ``POST /api/models/select``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from imagerelay.core.capabilities import Capability
from imagerelay.core.request_builder import GenerationRequest


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Prompt text, forwarded as given.
        num_images: Number of images to generate.
        width: Image width in pixels.
        height: Image height in pixels.
        model_identifier: Public model identifier.  ``None`` means the
            configured default, or the selector's choice when
            ``auto_select`` is set.
        auto_select: Choose the model from the enabled capabilities.
        preset_style: Preset style name; ``"NONE"`` means no style.
        public: Publish the result in the community gallery.
        transparency: ``True`` or a transparency mode such as
            ``"foreground_only"``.
        photo_real_version, prompt_magic_version, prompt_magic_strength,
        contrast_ratio, enhance_prompt_instruction: Sub-parameters, only
            forwarded when their capability is enabled.
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., description="Prompt text.")
    num_images: int = Field(default=2, alias="numImages", description="Number of images.")
    width: int = Field(default=1024, description="Image width in pixels.")
    height: int = Field(default=1024, description="Image height in pixels.")
    model_identifier: str | None = Field(
        default=None,
        alias="modelIdentifier",
        description="Public model identifier (e.g. 'kino-xl').",
    )
    auto_select: bool = Field(
        default=False,
        alias="autoSelect",
        description="Pick the model from the enabled capabilities.",
    )
    preset_style: str | None = Field(
        default=None,
        alias="presetStyle",
        description="Preset style, or 'NONE' to skip.",
    )
    public: bool = Field(default=False, description="Make generated images public.")

    # Capability toggles
    alchemy: bool = False
    photo_real: bool = Field(default=False, alias="photoReal")
    prompt_magic: bool = Field(default=False, alias="promptMagic")
    transparency: bool | str | None = None
    high_contrast: bool = Field(default=False, alias="highContrast")
    high_resolution: bool = Field(default=False, alias="highResolution")
    expanded_domain: bool = Field(default=False, alias="expandedDomain")
    fantasy_avatar: bool = Field(default=False, alias="fantasyAvatar")
    enhance_prompt: bool = Field(default=False, alias="enhancePrompt")

    # Dependent sub-parameters
    photo_real_version: str | None = Field(default=None, alias="photoRealVersion")
    prompt_magic_version: str | None = Field(default=None, alias="promptMagicVersion")
    prompt_magic_strength: float | None = Field(default=None, alias="promptMagicStrength")
    contrast_ratio: float | None = Field(default=None, alias="contrastRatio")
    enhance_prompt_instruction: str | None = Field(
        default=None, alias="enhancePromptInstruction"
    )

    @field_validator("prompt_magic_strength", "contrast_ratio", mode="before")
    @classmethod
    def _blank_number_is_none(cls, value: Any) -> Any:
        # The form sends "" for an untouched number input.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def capability_toggles(self) -> dict[str, Any]:
        """Capability name -> toggle value, keyed by the upstream names."""
        return {
            Capability.ALCHEMY.value: self.alchemy,
            Capability.PHOTO_REAL.value: self.photo_real,
            Capability.PROMPT_MAGIC.value: self.prompt_magic,
            Capability.TRANSPARENCY.value: self.transparency,
            Capability.HIGH_CONTRAST.value: self.high_contrast,
            Capability.HIGH_RESOLUTION.value: self.high_resolution,
            Capability.EXPANDED_DOMAIN.value: self.expanded_domain,
            Capability.FANTASY_AVATAR.value: self.fantasy_avatar,
            Capability.ENHANCE_PROMPT.value: self.enhance_prompt,
        }

    def enabled_capabilities(self) -> set[str]:
        """Names of the capabilities switched on, for model selection."""
        return {
            name
            for name, value in self.capability_toggles().items()
            if value is True or (isinstance(value, str) and value.strip())
        }

    def to_generation_request(self) -> GenerationRequest:
        """Convert to the core :class:`GenerationRequest`."""
        return GenerationRequest(
            prompt=self.prompt,
            num_images=self.num_images,
            width=self.width,
            height=self.height,
            preset_style=self.preset_style,
            public=self.public,
            capabilities=self.capability_toggles(),
            options={
                "photoRealVersion": self.photo_real_version,
                "promptMagicVersion": self.prompt_magic_version,
                "promptMagicStrength": self.prompt_magic_strength,
                "contrastRatio": self.contrast_ratio,
                "enhancePromptInstruction": self.enhance_prompt_instruction,
            },
        )


class SelectModelRequest(BaseModel):
    """Request body for the ``POST /api/models/select`` endpoint.

    Attributes:
        capabilities: Capability name -> enabled flag, as the form's
            toggles hold them.  Only ``True`` entries are requested.
    """

    capabilities: dict[str, bool] = Field(
        default_factory=dict,
        description="Capability toggles, e.g. {'transparency': true}.",
    )
