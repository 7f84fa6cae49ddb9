"""GenerationService: runs one accepted prompt through the artwork pipeline."""
import logging
import os
import secrets
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Literal, NamedTuple, Optional

from artgen.models.artwork import ArtworkParameters, Mood
from artgen.models.generation import (
    GenerationRequest,
    GenerationResponse,
    ProvenanceRecord,
)
from artgen.services.counter import GenerationCounter, format_generation_number
from artgen.services.errors import ArtworkNotFoundError
from artgen.services.gatekeeper import Gatekeeper
from artgen.services.mood import DEFAULT_MOOD, resolve_mood
from artgen.services.parameters import VALUE_STREAM_LENGTH, synthesize_parameters
from artgen.services.provenance import (
    create_provenance,
    embed_provenance_in_css,
    export_provenance_json,
    generate_certificate,
)
from artgen.services.randomness import derive_seed, generate_random_values
from artgen.services.renderer import render_css, render_document, render_markup

logger = logging.getLogger(__name__)

ARTWORK_URL_PREFIX = "/artworks"
ARTIFACT_SUFFIXES = (".html", ".json", ".txt")


class Artwork(NamedTuple):
    """Everything the pipeline produces for one prompt."""

    seed: str
    mood: Mood
    parameters: ArtworkParameters
    provenance: ProvenanceRecord
    css: str
    html: str
    document: str
    certificate: str


def create_artwork(
    prompt: str,
    preset_mood: Optional[Mood] = None,
    creator: Optional[str] = None,
    *,
    seed: Optional[str] = None,
    default_mood: Mood = DEFAULT_MOOD,
    hash_algorithm: str = "rolling",
    timestamp: Optional[str] = None,
) -> Artwork:
    """Run seed -> value stream -> mood -> parameters -> render -> provenance.

    No validation or quota happens here; callers that face the network go
    through ``GenerationService``.
    """
    if seed is None:
        seed = derive_seed(prompt, creator)
    mood = resolve_mood(prompt, explicit=preset_mood, default=default_mood)
    values = generate_random_values(seed, VALUE_STREAM_LENGTH)
    parameters = synthesize_parameters(values, mood)

    provenance = create_provenance(
        prompt,
        seed,
        parameters,
        creator=creator,
        timestamp=timestamp,
        algorithm=hash_algorithm,
    )
    css = embed_provenance_in_css(render_css(parameters), provenance)
    html = render_markup(parameters)
    return Artwork(
        seed=seed,
        mood=mood,
        parameters=parameters,
        provenance=provenance,
        css=css,
        html=html,
        document=render_document(css, html),
        certificate=generate_certificate(provenance),
    )


def artifact_stem(generation_number: int) -> str:
    return f"artwork_{generation_number:06d}"


def write_artifacts(artwork: Artwork, output_dir: Path, stem: str) -> Path:
    """Write ``<stem>.html``, ``<stem>.json`` and ``<stem>.txt``; return the HTML path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    html_path = output_dir / f"{stem}.html"
    html_path.write_text(artwork.document, encoding="utf-8")
    (output_dir / f"{stem}.json").write_text(
        export_provenance_json(artwork.provenance), encoding="utf-8"
    )
    (output_dir / f"{stem}.txt").write_text(artwork.certificate, encoding="utf-8")
    return html_path


def rename_artifacts(output_dir: Path, old_stem: str, new_stem: str) -> None:
    for suffix in ARTIFACT_SUFFIXES:
        os.replace(output_dir / f"{old_stem}{suffix}", output_dir / f"{new_stem}{suffix}")


def remove_artifacts(output_dir: Path, stem: str) -> None:
    if not output_dir.is_dir():
        return
    for suffix in ARTIFACT_SUFFIXES:
        (output_dir / f"{stem}{suffix}").unlink(missing_ok=True)


class GenerationService:
    """Orchestrates one generation request.

    Responsibilities:
    1. Pass the prompt and caller through the Gatekeeper
    2. Run the artwork pipeline
    3. Register the generation with the counter
    4. Write the downloadable document and certificates
    5. Return GenerationResponse

    A failure after admission gives the quota slot back and propagates.
    """

    def __init__(
        self,
        gatekeeper: Gatekeeper,
        counter: GenerationCounter,
        artworks_dir: Optional[Path] = None,
        save_artifacts: bool = True,
        default_mood: Mood = DEFAULT_MOOD,
        hash_algorithm: str = "rolling",
        provenance_cache_size: int = 1000,
    ) -> None:
        self.gatekeeper = gatekeeper
        self.counter = counter
        self.artworks_dir = Path(artworks_dir) if artworks_dir is not None else Path("data/artworks")
        self.save_artifacts = save_artifacts
        self.default_mood = default_mood
        self.hash_algorithm = hash_algorithm
        self._provenance_cache_size = provenance_cache_size
        # generation number -> provenance, newest last
        self._provenance: OrderedDict[int, ProvenanceRecord] = OrderedDict()
        self._provenance_lock = threading.Lock()

    def generate(
        self,
        request: GenerationRequest,
        caller_id: Optional[str],
        user_agent: Optional[str] = None,
    ) -> GenerationResponse:
        """Validate, generate, count and return one artwork.

        Raises:
            PromptRejectedError: Prompt failed validation.
            RateLimitExceededError: Caller quota exhausted.
            ParameterInvariantError: Synthesizer produced out-of-range geometry.
            OSError: Artifact files could not be written.
        """
        admission = self.gatekeeper.admit(request.prompt, caller_id, user_agent)
        staging_stem: Optional[str] = None
        try:
            artwork = create_artwork(
                request.prompt,
                preset_mood=request.preset_mood,
                creator=request.creator,
                default_mood=self.default_mood,
                hash_algorithm=self.hash_algorithm,
            )
            # Artifacts are written before counting; only the rename follows it.
            if self.save_artifacts:
                staging_stem = f".pending_{secrets.token_hex(8)}"
                write_artifacts(artwork, self.artworks_dir, staging_stem)
            generation_number = self.counter.increment(
                artwork.provenance.fingerprint,
                artwork.provenance.prompt_hash,
                admission.caller_hash,
            )
        except Exception as exc:
            self.gatekeeper.release(admission)
            if staging_stem is not None:
                remove_artifacts(self.artworks_dir, staging_stem)
            logger.error(
                "Generation failed: %s",
                exc,
                exc_info=True,
                extra={"service": "GenerationService", "error_type": type(exc).__name__},
            )
            raise

        document_url: Optional[str] = None
        if staging_stem is not None:
            stem = artifact_stem(generation_number)
            try:
                rename_artifacts(self.artworks_dir, staging_stem, stem)
            except OSError:
                logger.error(
                    "Generation %s counted but its artifacts could not be published",
                    format_generation_number(generation_number),
                    exc_info=True,
                    extra={"service": "GenerationService", "staging_stem": staging_stem},
                )
                raise
            document_url = f"{ARTWORK_URL_PREFIX}/{stem}.html"

        self._remember(generation_number, artwork.provenance)

        logger.info(
            "generation: number=%d mood=%s tendrils=%d",
            generation_number,
            artwork.mood.value,
            artwork.parameters.hair.total_tendrils,
        )

        return GenerationResponse(
            generation_number=generation_number,
            display_number=format_generation_number(generation_number),
            mood=artwork.mood,
            html=artwork.html,
            css=artwork.css,
            document=artwork.document,
            document_url=document_url,
            provenance=artwork.provenance,
            certificate=artwork.certificate,
        )

    def _remember(self, generation_number: int, provenance: ProvenanceRecord) -> None:
        with self._provenance_lock:
            self._provenance[generation_number] = provenance
            while len(self._provenance) > self._provenance_cache_size:
                self._provenance.popitem(last=False)

    def get_provenance(self, generation_number: int) -> ProvenanceRecord:
        """Look up a provenance record in memory, then on disk.

        Raises:
            ArtworkNotFoundError: No record for ``generation_number``.
        """
        with self._provenance_lock:
            cached = self._provenance.get(generation_number)
        if cached is not None:
            return cached
        json_path = self.artworks_dir / f"{artifact_stem(generation_number)}.json"
        if json_path.exists():
            return ProvenanceRecord.model_validate_json(json_path.read_text(encoding="utf-8"))
        raise ArtworkNotFoundError(f"No artwork for generation {generation_number}")

    def get_certificate(
        self, generation_number: int, fmt: Literal["text", "json"] = "text"
    ) -> str:
        """Certificate for a generation as plain text or JSON."""
        provenance = self.get_provenance(generation_number)
        if fmt == "json":
            return export_provenance_json(provenance)
        return generate_certificate(provenance)
