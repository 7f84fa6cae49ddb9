"""Generate a CSS portrait offline, without the web service.

This script is independent of the FastAPI app: no quota, no counter. The
prompt is still validated with the same policy the service uses.

Usage:
    # Run from the project root
    python scripts/generate_artwork.py "serene portrait in blue tones"
    python scripts/generate_artwork.py "stormy face" --mood dramatic --out artworks/
    python scripts/generate_artwork.py "quiet study" --seed "quiet study::0::replay::anonymous"
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

# Add backend/ to the path when run as a standalone script
_BACKEND_PATH = Path(__file__).parent.parent / "backend"
if str(_BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(_BACKEND_PATH))

from artgen.core.config import get_settings
from artgen.models.artwork import Mood
from artgen.services.generation import Artwork, create_artwork, write_artifacts
from artgen.services.security import PromptPolicy, validate_prompt


def generate(
    prompt: str,
    output_dir: Path,
    mood: Optional[Mood] = None,
    creator: Optional[str] = None,
    seed: Optional[str] = None,
) -> tuple[Artwork, Path]:
    """Validate the prompt, run the pipeline and write the artifact files.

    Args:
        prompt: Text prompt describing the portrait.
        output_dir: Directory receiving the .html, .json and .txt files.
        mood: Explicit mood; inferred from the prompt when omitted.
        creator: Optional creator attribution.
        seed: Replay an existing seed instead of deriving a fresh one.

    Returns:
        The artwork and the path of the standalone HTML document.

    Raises:
        ValueError: The prompt failed validation.
    """
    settings = get_settings()
    result = validate_prompt(prompt, PromptPolicy.from_settings(settings))
    if not result.valid:
        raise ValueError(result.reason)

    artwork = create_artwork(
        prompt,
        preset_mood=mood,
        creator=creator,
        seed=seed,
        default_mood=Mood(settings.default_mood),
        hash_algorithm=settings.fingerprint_algorithm,
    )
    stem = f"artwork_{artwork.provenance.fingerprint}"
    html_path = write_artifacts(artwork, output_dir, stem)
    return artwork, html_path


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate a standalone CSS portrait from a text prompt."
    )
    parser.add_argument("prompt", help="Prompt describing the portrait.")
    parser.add_argument(
        "--mood",
        choices=[mood.value for mood in Mood],
        help="Explicit mood preset (default: inferred from the prompt).",
    )
    parser.add_argument("--creator", help="Creator attribution.")
    parser.add_argument("--seed", help="Reuse a seed string to reproduce an artwork.")
    parser.add_argument(
        "--out",
        type=Path,
        default=Path("artworks"),
        help="Output directory (default: ./artworks).",
    )
    args = parser.parse_args(argv)

    try:
        artwork, html_path = generate(
            args.prompt,
            output_dir=args.out,
            mood=Mood(args.mood) if args.mood else None,
            creator=args.creator,
            seed=args.seed,
        )
    except ValueError as exc:
        print(f"Prompt rejected: {exc}", file=sys.stderr)
        return 2

    print(f"Mood:        {artwork.mood.value}")
    print(f"Fingerprint: {artwork.provenance.fingerprint}")
    print(f"Seed:        {artwork.seed}")
    print(f"Written:     {html_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
