"""Expand ArtworkParameters into CSS rules and matching HTML markup.

Output is a pure function of the parameters: no clock, no randomness, fixed
number formatting. Rendering the same parameters twice is byte-identical.
"""
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, NamedTuple

from artgen.models.artwork import ArtworkParameters

CSS_HEADER = "/* CSS Art Generator - Generated Artwork */\n"
DOCUMENT_TITLE = "CSS Art - Generated Portrait"

_TOKEN_PATTERN = re.compile(r"\{\{(\w+)\}\}")

FACE_FEATURES = (
    "nose",
    "forehead",
    "cheekbone",
    "cheekshine",
    "foreheadshine",
    "eye",
    "bottomlip",
    "toplip",
)


class RenderedArtwork(NamedTuple):
    css: str
    html: str


def render_artwork(params: ArtworkParameters) -> RenderedArtwork:
    """Render CSS and the HTML markup that uses its class names."""
    return RenderedArtwork(css=render_css(params), html=render_markup(params))


def render_css(params: ArtworkParameters) -> str:
    """Generate the complete stylesheet for one portrait."""
    return "".join(
        [
            CSS_HEADER,
            _base_styles(),
            _canvas_styles(params),
            _head_styles(params),
            _hair_styles(params),
            _feature_styles(params),
            _lighting_styles(params),
        ]
    )


def render_markup(params: ArtworkParameters) -> str:
    """Generate the portrait markup: fixed face features plus one div per tendril."""
    hair = params.hair
    return _render_template(
        _load_template("portrait_markup.html"),
        {
            "BACK_TENDRILS": _tendril_divs(hair.back_tendrils),
            "FRONT_TENDRILS": _tendril_divs(hair.front_tendrils),
            "HIGHLIGHT_TENDRILS": _tendril_divs(hair.highlight_tendrils),
        },
    )


def render_document(css: str, markup: str, title: str = DOCUMENT_TITLE) -> str:
    """Wrap CSS and markup into a standalone HTML document with inline styles."""
    return _render_template(
        _load_template("portrait.html"),
        {"TITLE": _escape_html(title), "CSS": css, "MARKUP": markup},
    )


def _fmt(value: float, digits: int = 2) -> str:
    """Fixed-precision number formatting used for every emitted value."""
    text = f"{value:.{digits}f}"
    return "0" + text[2:] if text.startswith("-0") and float(text) == 0 else text


def _tendril_divs(count: int) -> str:
    return "".join(
        f'                <div class="tendril tendril-{i}"></div>\n' for i in range(1, count + 1)
    )


def _base_styles() -> str:
    return """
div, div:after, div:before {
  position: absolute;
  print-color-adjust: exact;
  filter: opacity(1);
  box-sizing: border-box;
}

html {
  min-width: 765px;
}

body {
  background-color: #0e0909;
  background-image: linear-gradient(to bottom, #121f27, #040709);
  padding: 2.25% 5px;
  margin: 0;
  display: flex;
  justify-content: center;
  align-items: center;
  min-height: 100vh;
}

"""


def _canvas_styles(params: ArtworkParameters) -> str:
    canvas = params.canvas
    return f"""
.paper {{
  position: relative;
  margin: auto;
  background-color: {canvas.background_color};
  overflow: hidden;
  box-sizing: content-box;
  width: {canvas.width}px;
  height: {canvas.height}px;
}}

.container {{
  position: relative;
  margin: auto;
  width: 100%;
  height: 100%;
  background-image: {canvas.background_gradient};
}}

"""


def _shadow_stack(params: ArtworkParameters) -> list[str]:
    """Outer glow layers cast away from the light source, fading outward."""
    layers = params.lighting.shadow_layers
    radians = math.radians(params.lighting.angle)
    color = params.palette.skin.shadow
    stack = []
    for i in range(1, layers + 1):
        dx = -math.cos(radians) * i * 3
        dy = -math.sin(radians) * i * 3
        alpha = int(255 * params.lighting.intensity * (1 - i / (layers + 1)) * 0.5)
        stack.append(f"{_fmt(dx, 1)}px {_fmt(dy, 1)}px {i * 4}px 0 {color}{alpha:02x}")
    return stack


def _head_styles(params: ArtworkParameters) -> str:
    head = params.head
    skin = params.palette.skin
    shadows = [
        f"inset 7px 33px 14px -4px {skin.highlight}",
        f"inset -5px -1px 12px -1px {skin.highlight}55",
        f"inset -70px -2px 63px 2px {skin.shadow}96",
        f"inset 20px 2px 20px -3px {skin.midtone}",
        *_shadow_stack(params),
    ]
    box_shadow = ",\n    ".join(shadows)
    return f"""
.head {{
  border-radius: {head.border_radius};
  transform: rotate({_fmt(head.rotation)}deg);
  background-color: {skin.base};
  background-image:
    linear-gradient(150deg, {skin.highlight}03 75%, {skin.highlight} 78%),
    linear-gradient(152deg, transparent 88%, {skin.shadow} 91%);
  box-shadow:
    {box_shadow};
  width: {_fmt(head.width)}%;
  height: {_fmt(head.height)}%;
  left: {_fmt(head.left)}%;
  top: {_fmt(head.top)}%;
}}

"""


def _hair_styles(params: ArtworkParameters) -> str:
    hair = params.hair
    tones = params.palette.hair
    css = f"""
.hair {{
  width: 65%;
  height: 60%;
  top: 2.5%;
  left: 17%;
  transform: rotate({_fmt(hair.flow_angle)}deg);
}}

.hair.back {{
  z-index: 1;
}}

.hair.front {{
  z-index: 100;
}}

.hair.highlights {{
  z-index: 101;
  opacity: 0.6;
}}

.tendril {{
  width: 5%;
  height: 100%;
  filter: blur({_fmt(params.style.blur)}px);
  transform-origin: 50% 0;
}}

.tendril:before, .tendril:after {{
  content: "";
  width: 100%;
  height: 100%;
  left: 0;
  top: 0;
  position: absolute;
}}

.front .tendril:before {{
  background-image: radial-gradient(
    ellipse farthest-corner at -28% 50%,
    transparent 49%,
    {tones.shadow}91 55%,
    {tones.base}76,
    transparent 85%
  );
  background-size: 100% 8%;
  background-position: 0 22%;
}}

.front .tendril:after {{
  background-image: radial-gradient(
    ellipse farthest-corner at 128% 50%,
    transparent 57%,
    {tones.base},
    transparent 71%
  );
  background-size: 100% 8%;
}}

.back .tendril:before {{
  background-image: radial-gradient(
    ellipse farthest-corner at -28% 50%,
    transparent 53%,
    {tones.highlight} 67%,
    transparent 71%
  );
  background-size: 100% 8%;
  background-position: 0 22%;
}}

.back .tendril:after {{
  background-image: radial-gradient(
    ellipse farthest-corner at 128% 50%,
    transparent 59%,
    {tones.highlight},
    transparent 71%
  );
  background-size: 100% 8%;
}}

.highlights .tendril:before {{
  background-image: radial-gradient(
    ellipse farthest-corner at 50% 50%,
    {tones.highlight}cc 10%,
    transparent 60%
  );
  background-size: 100% 6%;
}}

"""
    rules = []
    front = hair.front_tendrils
    for i in range(1, front + 1):
        rules.append(
            _tendril_rule(
                "front",
                i,
                left=30 + (50 / front) * i,
                height=40 + math.sin(i) * 20,
                top=10 + math.cos(i) * 15,
                rotation=-180 + (360 / front) * i * hair.curliness,
                opacity=0.6 + 0.4 * (math.sin(i * hair.curliness) + 1) / 2,
            )
        )
    back = hair.back_tendrils
    for i in range(1, back + 1):
        rules.append(
            _tendril_rule(
                "back",
                i,
                left=20 + (80 / back) * i,
                height=35 + math.sin(i) * 25,
                top=5 + math.cos(i) * 20,
                rotation=-90 + (180 / back) * i,
            )
        )
    highlights = hair.highlight_tendrils
    for i in range(1, highlights + 1):
        rules.append(
            _tendril_rule(
                "highlights",
                i,
                left=35 + (30 / highlights) * i,
                height=30 + math.sin(i * hair.curliness) * 10,
                top=8 + math.cos(i) * 6,
                rotation=-45 + (90 / highlights) * i * hair.curliness,
            )
        )
    return css + "".join(rules)


def _tendril_rule(
    zone: str,
    index: int,
    *,
    left: float,
    height: float,
    top: float,
    rotation: float,
    opacity: float | None = None,
) -> str:
    lines = [
        f".{zone} .tendril-{index} {{",
        f"  left: {_fmt(left, 1)}%;",
        f"  height: {_fmt(height, 1)}%;",
        f"  top: {_fmt(top, 1)}%;",
        f"  transform: rotate({_fmt(rotation, 1)}deg);",
    ]
    if opacity is not None:
        lines.append(f"  opacity: {_fmt(opacity)};")
    lines.append("}\n\n")
    return "\n".join(lines)


def _feature_styles(params: ArtworkParameters) -> str:
    skin = params.palette.skin
    eyes = params.palette.eyes
    lips = params.palette.lips
    features = params.features
    return f"""
.forehead {{
  width: 60%;
  height: 30%;
  top: 4%;
  left: 22%;
  border-radius: 50%;
  background-image: radial-gradient(ellipse at 50% 60%, {skin.highlight}40 10%, transparent 65%);
}}

.eye {{
  background-image: radial-gradient(ellipse at 42% 43%, {skin.shadow}50 23%, transparent 56%);
  transform: rotate(-11deg) scale({_fmt(features.eye_size, 3)});
  width: 24%;
  height: 30%;
  left: 4%;
  top: 36%;
}}

.iris {{
  width: 51%;
  height: 100%;
  left: 0;
  top: 12%;
  border-radius: 0 40% 40% 0;
  background-color: {eyes.iris};
}}

.eyeball {{
  width: 49%;
  height: 20%;
  top: 41%;
  left: 33%;
  overflow: hidden;
  background-color: {eyes.sclera};
  border-top: 2px solid {eyes.lid};
  border-radius: 0 0 90% 10% / 0 0 81% 87%;
}}

.nose {{
  width: {_fmt(18 * features.nose_size)}%;
  height: {_fmt(20 * features.nose_size)}%;
  transform: rotate(22deg);
  background-image:
    linear-gradient(163deg, {skin.midtone} 19%, transparent 23%);
  box-shadow:
    inset 6px -5px 5px -3px {skin.highlight},
    inset 0px 9px 12px -5px {skin.shadow};
  border-radius: 0% 90% 80% 15% / 0% 9% 56% 15%;
  top: 55%;
  left: -3.5%;
}}

.toplip {{
  border-radius: 20% 10% 90% 20% / 30% 0 98% 70%;
  background-color: {lips.upper};
  box-shadow:
    inset 5px 0px 2px -2px {lips.shine},
    inset -2px -4px 8px -1px {skin.shadow};
  width: {_fmt(15 * features.lip_fullness)}%;
  height: {_fmt(4 * features.lip_fullness)}%;
  transform: rotate(25deg);
  bottom: 18%;
  left: 3%;
}}

.bottomlip {{
  border-radius: 20% 10% 47% 50% / 30% 0 98% 70%;
  background-color: {lips.lower};
  box-shadow:
    inset 3px 1px 2px 1px {lips.shine},
    inset 5px 1px 11px 4px {skin.shadow};
  width: {_fmt(11 * features.lip_fullness)}%;
  height: {_fmt(8 * features.lip_fullness)}%;
  transform: rotate(7deg);
  bottom: 11%;
  left: 5%;
}}

"""


def _lighting_styles(params: ArtworkParameters) -> str:
    ambient = params.palette.ambient
    intensity = _fmt(params.lighting.intensity)
    contrast = {"low": 0.9, "medium": 1.0, "high": 1.1, "dramatic": 1.3}[params.style.contrast]
    return f"""
.cheekshine {{
  transform: rotate(-48deg);
  width: 24%;
  box-shadow:
    0 0 43px 17px {ambient.cheek_shine},
    0 0 13px 2px {ambient.cheek_shine}54;
  left: 22%;
  top: 55%;
  opacity: {intensity};
}}

.foreheadshine {{
  transform: rotate(13deg);
  box-shadow: -27px 0 22px 3px {ambient.forehead_shine};
  top: 19%;
  height: 22%;
  left: 34%;
  opacity: {intensity};
}}

.cheekbone {{
  transform: rotate(-32deg);
  width: 31%;
  box-shadow: 0 0 40px 37px {params.palette.skin.shadow}72;
  left: 27%;
  top: 59%;
}}

.container {{
  filter: contrast({_fmt(contrast)});
}}

"""


def _render_template(template: str, replacements: dict[str, str]) -> str:
    """Replace ``{{TOKEN}}`` placeholders in one pass over the template.

    Substituted values are never rescanned, so text inside a value that looks
    like a placeholder stays literal. Unknown tokens are left in place.
    """
    return _TOKEN_PATTERN.sub(
        lambda match: replacements.get(match.group(1), match.group(0)), template
    )


@lru_cache(maxsize=None)
def _load_template(filename: str) -> str:
    """Load and cache template assets from ``templates/``."""
    return (Path(__file__).parent.parent / "templates" / filename).read_text(encoding="utf-8")


def _escape_html(value: Any) -> str:
    """Escape a value for direct inclusion in HTML text content."""
    text = str(value)
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
