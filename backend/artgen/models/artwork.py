"""Artwork domain models: moods, palettes and the parameter recipe."""
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Mood(str, Enum):
    """Palette/style presets a prompt can resolve to."""

    melancholic = "melancholic"
    hopeful = "hopeful"
    dramatic = "dramatic"
    serene = "serene"
    joyful = "joyful"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class MoodPalette(_Frozen):
    """Five-colour palette attached to a mood. Colours are ``#rrggbb``."""

    primary: str
    secondary: str
    accent: str
    shadow: str
    highlight: str


class CanvasParams(_Frozen):
    width: int
    height: int
    background_color: str
    background_gradient: str


class SkinTones(_Frozen):
    base: str
    shadow: str
    highlight: str
    midtone: str


class HairTones(_Frozen):
    base: str
    highlight: str
    shadow: str


class EyeTones(_Frozen):
    iris: str
    sclera: str
    lid: str


class LipTones(_Frozen):
    upper: str
    lower: str
    shine: str


class AmbientTones(_Frozen):
    cheek_shine: str
    forehead_shine: str


class Palette(_Frozen):
    """Colours derived from a mood palette by brightness shifting."""

    skin: SkinTones
    hair: HairTones
    eyes: EyeTones
    lips: LipTones
    ambient: AmbientTones


class HeadParams(_Frozen):
    """Head geometry. Sizes and offsets are percentages of the canvas."""

    width: float
    height: float
    top: float
    left: float
    border_radius: str
    rotation: float


class HairParams(_Frozen):
    front_tendrils: int = Field(..., ge=0)
    back_tendrils: int = Field(..., ge=0)
    highlight_tendrils: int = Field(..., ge=0)
    curliness: float
    flow_angle: float

    @property
    def total_tendrils(self) -> int:
        return self.front_tendrils + self.back_tendrils + self.highlight_tendrils


class FeatureParams(_Frozen):
    eye_size: float
    nose_size: float
    lip_fullness: float


class LightingParams(_Frozen):
    intensity: float
    angle: float
    shadow_layers: int = Field(..., ge=0)


class StyleParams(_Frozen):
    blur: float
    contrast: Literal["low", "medium", "high", "dramatic"]
    aesthetic: Literal["oil-painting", "watercolor", "geometric", "minimalist"]


class ArtworkParameters(_Frozen):
    """Full structured recipe for one generated portrait."""

    mood: Mood
    canvas: CanvasParams
    palette: Palette
    head: HeadParams
    hair: HairParams
    features: FeatureParams
    lighting: LightingParams
    style: StyleParams
