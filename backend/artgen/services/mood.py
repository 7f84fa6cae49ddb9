"""Mood presets and prompt-to-mood resolution."""
import logging
import re
from typing import Optional

from artgen.models.artwork import Mood, MoodPalette

logger = logging.getLogger(__name__)

MOOD_PALETTES: dict[Mood, MoodPalette] = {
    Mood.melancholic: MoodPalette(
        primary="#0a3d62",
        secondary="#3c6382",
        accent="#60a3bc",
        shadow="#000814",
        highlight="#e3f2fd",
    ),
    Mood.hopeful: MoodPalette(
        primary="#f9ca24",
        secondary="#f0932b",
        accent="#fffa65",
        shadow="#573b1a",
        highlight="#fff9e6",
    ),
    Mood.dramatic: MoodPalette(
        primary="#1e1e1e",
        secondary="#ff0844",
        accent="#d11145",
        shadow="#000000",
        highlight="#ff6b9d",
    ),
    Mood.serene: MoodPalette(
        primary="#a8dadc",
        secondary="#457b9d",
        accent="#48cae4",
        shadow="#1d3557",
        highlight="#ade8f4",
    ),
    Mood.joyful: MoodPalette(
        primary="#ff6b6b",
        secondary="#4ecdc4",
        accent="#ffe66d",
        shadow="#2d3561",
        highlight="#ffeaa7",
    ),
}

# Checked in order after exact mood names; first hit wins.
MOOD_SYNONYMS: list[tuple[Mood, re.Pattern[str]]] = [
    (Mood.melancholic, re.compile(r"sad|blue|melancholy|somber")),
    (Mood.hopeful, re.compile(r"happy|bright|optimistic|light")),
    (Mood.dramatic, re.compile(r"intense|dark|moody|shadow")),
    (Mood.serene, re.compile(r"calm|peaceful|gentle|soft")),
    (Mood.joyful, re.compile(r"vibrant|energetic|lively|cheerful")),
]

DEFAULT_MOOD = Mood.serene


def detect_mood(prompt: str) -> Optional[Mood]:
    """Infer a mood from prompt keywords, or ``None`` when nothing matches."""
    lowered = prompt.lower()
    for mood in Mood:
        if mood.value in lowered:
            return mood
    for mood, pattern in MOOD_SYNONYMS:
        if pattern.search(lowered):
            return mood
    return None


def resolve_mood(
    prompt: str,
    explicit: Optional[Mood] = None,
    default: Mood = DEFAULT_MOOD,
) -> Mood:
    """Return the explicit mood if given, else the inferred one, else ``default``."""
    if explicit is not None:
        return explicit
    detected = detect_mood(prompt)
    if detected is None:
        logger.debug("No mood keyword in prompt, using default %s", default.value)
        return default
    return detected


def palette_for(mood: Mood) -> MoodPalette:
    return MOOD_PALETTES[mood]
