"""Parameter synthesis: value stream + mood -> ArtworkParameters."""
import logging
import math
from collections.abc import Sequence
from typing import NamedTuple

from pydantic import ValidationError

from artgen.models.artwork import ArtworkParameters, Mood
from artgen.services.errors import ParameterInvariantError, SchemaMismatchError
from artgen.services.mood import palette_for
from artgen.services.randomness import map_range

logger = logging.getLogger(__name__)

VALUE_STREAM_LENGTH = 30
STREAM_MIN = 0.0
STREAM_MAX = 100.0

CANVAS_WIDTH = 650
CANVAS_HEIGHT = 800
HEAD_SIZE = 37.0
HEAD_BORDER_RADIUS = "50% 50% 76% 24% / 40% 2% 98% 61%"


class FieldSpec(NamedTuple):
    """One stream-driven field: dotted path, stream index, range, integer flag."""

    path: str
    index: int
    low: float
    high: float
    integer: bool = False


FIELD_SPECS: tuple[FieldSpec, ...] = (
    FieldSpec("head.top", 0, 12, 16),
    FieldSpec("head.left", 1, 27, 31),
    FieldSpec("head.rotation", 2, 10, 25),
    FieldSpec("hair.front_tendrils", 3, 35, 45, integer=True),
    FieldSpec("hair.back_tendrils", 4, 20, 30, integer=True),
    FieldSpec("hair.highlight_tendrils", 5, 4, 8, integer=True),
    FieldSpec("hair.curliness", 6, 0.5, 1.0),
    FieldSpec("hair.flow_angle", 7, -15, 15),
    FieldSpec("features.eye_size", 8, 0.9, 1.1),
    FieldSpec("features.nose_size", 9, 0.95, 1.05),
    FieldSpec("features.lip_fullness", 10, 0.9, 1.2),
    FieldSpec("lighting.intensity", 11, 0.6, 1.0),
    FieldSpec("lighting.angle", 12, 0, 360),
    FieldSpec("lighting.shadow_layers", 13, 6, 12, integer=True),
    FieldSpec("style.blur", 14, 0.5, 2.5),
)

REQUIRED_VALUES = max(spec.index for spec in FIELD_SPECS) + 1

# Every numeric field of ArtworkParameters and its declared [min, max].
PARAMETER_RANGES: dict[str, tuple[float, float]] = {
    "canvas.width": (CANVAS_WIDTH, CANVAS_WIDTH),
    "canvas.height": (CANVAS_HEIGHT, CANVAS_HEIGHT),
    "head.width": (HEAD_SIZE, HEAD_SIZE),
    "head.height": (HEAD_SIZE, HEAD_SIZE),
    **{spec.path: (spec.low, spec.high) for spec in FIELD_SPECS},
}


def adjust_brightness(hex_color: str, amount: int) -> str:
    """Shift each RGB channel of ``#rrggbb`` by ``amount``, clamped to 0-255."""
    value = hex_color.lstrip("#")
    channels = [int(value[i : i + 2], 16) for i in (0, 2, 4)]
    shifted = [max(0, min(255, channel + amount)) for channel in channels]
    return "#" + "".join(f"{channel:02x}" for channel in shifted)


def _field_value(spec: FieldSpec, values: Sequence[float]) -> float | int:
    mapped = map_range(values[spec.index], STREAM_MIN, STREAM_MAX, spec.low, spec.high)
    return math.floor(mapped) if spec.integer else mapped


def synthesize_parameters(values: Sequence[float], mood: Mood) -> ArtworkParameters:
    """Build the artwork recipe from pre-drawn stream values and a mood.

    Args:
        values: Stream values in ``[0, 100)``; at least ``REQUIRED_VALUES``.
        mood: Resolved mood whose palette seeds the derived colours.

    Returns:
        A validated, frozen ``ArtworkParameters``.

    Raises:
        SchemaMismatchError: ``values`` is shorter than the schema needs.
        ParameterInvariantError: A field ended up outside its declared range.
    """
    if len(values) < REQUIRED_VALUES:
        raise SchemaMismatchError(
            f"Parameter schema needs {REQUIRED_VALUES} stream values, got {len(values)}"
        )

    fields = {spec.path: _field_value(spec, values) for spec in FIELD_SPECS}
    colors = palette_for(mood)

    data = {
        "mood": mood,
        "canvas": {
            "width": CANVAS_WIDTH,
            "height": CANVAS_HEIGHT,
            "background_color": colors.shadow,
            "background_gradient": f"linear-gradient(to right, {colors.shadow}, {colors.primary})",
        },
        "palette": {
            "skin": {
                "base": colors.primary,
                "shadow": colors.shadow,
                "highlight": colors.accent,
                "midtone": colors.secondary,
            },
            "hair": {
                "base": adjust_brightness(colors.shadow, -20),
                "highlight": colors.accent,
                "shadow": colors.shadow,
            },
            "eyes": {
                "iris": colors.accent,
                "sclera": adjust_brightness(colors.primary, 30),
                "lid": colors.primary,
            },
            "lips": {
                "upper": adjust_brightness(colors.secondary, -10),
                "lower": colors.secondary,
                "shine": colors.highlight,
            },
            "ambient": {
                "cheek_shine": adjust_brightness(colors.accent, 20),
                "forehead_shine": colors.highlight,
            },
        },
        "head": {
            "width": HEAD_SIZE,
            "height": HEAD_SIZE,
            "top": fields["head.top"],
            "left": fields["head.left"],
            "border_radius": HEAD_BORDER_RADIUS,
            "rotation": fields["head.rotation"],
        },
        "hair": {
            "front_tendrils": fields["hair.front_tendrils"],
            "back_tendrils": fields["hair.back_tendrils"],
            "highlight_tendrils": fields["hair.highlight_tendrils"],
            "curliness": fields["hair.curliness"],
            "flow_angle": fields["hair.flow_angle"],
        },
        "features": {
            "eye_size": fields["features.eye_size"],
            "nose_size": fields["features.nose_size"],
            "lip_fullness": fields["features.lip_fullness"],
        },
        "lighting": {
            "intensity": fields["lighting.intensity"],
            "angle": fields["lighting.angle"],
            "shadow_layers": fields["lighting.shadow_layers"],
        },
        "style": {
            "blur": fields["style.blur"],
            "contrast": "dramatic" if mood is Mood.dramatic else "high",
            "aesthetic": "oil-painting",
        },
    }

    try:
        params = ArtworkParameters.model_validate(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ParameterInvariantError(field, error.get("input"), 0, math.inf) from exc

    validate_parameters(params)
    return params


def _lookup(params: ArtworkParameters, path: str) -> float:
    node: object = params
    for attr in path.split("."):
        node = getattr(node, attr)
    return node  # type: ignore[return-value]


def validate_parameters(params: ArtworkParameters) -> None:
    """Check every numeric field against ``PARAMETER_RANGES``.

    Raises:
        ParameterInvariantError: On the first field out of range.
    """
    for path, (low, high) in PARAMETER_RANGES.items():
        value = _lookup(params, path)
        if not low <= value <= high:
            logger.error(
                "Parameter %s=%r outside [%s, %s]",
                path,
                value,
                low,
                high,
                extra={"service": "ParameterSynthesizer", "field": path},
            )
            raise ParameterInvariantError(path, value, low, high)
