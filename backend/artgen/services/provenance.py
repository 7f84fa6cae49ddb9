"""Provenance records, the CSS comment stamp and the plain-text certificate."""
from datetime import datetime, timezone
from typing import Optional

from artgen.models.artwork import ArtworkParameters
from artgen.models.generation import ProvenanceRecord
from artgen.services.randomness import hash_hex
from artgen.services.security import sanitize_prompt

GENERATOR_VERSION = "1.0.0"
ANONYMOUS = "Anonymous"

_RULE = "━" * 70

_ALGORITHM_LABELS = {
    "rolling": "rolling hash, not cryptographic",
    "sha256": "SHA-256",
}


def canonical_parameters_json(params: ArtworkParameters) -> str:
    """Stable JSON of the parameter record, used as hash input."""
    return params.model_dump_json()


def create_provenance(
    prompt: str,
    seed: str,
    parameters: ArtworkParameters,
    creator: Optional[str] = None,
    timestamp: Optional[str] = None,
    algorithm: str = "rolling",
) -> ProvenanceRecord:
    """Stamp a finished parameter record with its inputs and fingerprints.

    The fingerprint covers seed, prompt, parameters JSON and timestamp.
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc).isoformat()
    parameters_json = canonical_parameters_json(parameters)
    return ProvenanceRecord(
        prompt=prompt,
        prompt_hash=hash_hex(prompt, algorithm),
        parameters_hash=hash_hex(parameters_json, algorithm),
        fingerprint=hash_hex(seed + prompt + parameters_json + timestamp, algorithm),
        hash_algorithm=algorithm,
        timestamp=timestamp,
        creator=creator,
        random_seed=seed,
        generator_version=GENERATOR_VERSION,
        parameters=parameters,
    )


def _comment_safe(text: str) -> str:
    return sanitize_prompt(text).replace("*/", "* /")


def embed_provenance_in_css(css: str, provenance: ProvenanceRecord) -> str:
    """Prepend a provenance comment block to generated CSS."""
    creator = _comment_safe(provenance.creator or ANONYMOUS)
    comment = f"""
/*
 * ═══════════════════════════════════════════════════════════════
 * PROVENANCE
 * ═══════════════════════════════════════════════════════════════
 *
 * Prompt:      {_comment_safe(provenance.prompt)}
 * Fingerprint: {provenance.fingerprint} ({_ALGORITHM_LABELS[provenance.hash_algorithm]})
 * Created:     {provenance.timestamp}
 * Creator:     {creator}
 *
 * This artwork uses techniques pioneered by Diana Smith (cyanHarlow)
 * https://github.com/cyanharlow/purecss-pink
 *
 * ═══════════════════════════════════════════════════════════════
 */

"""
    return comment + css


def generate_certificate(provenance: ProvenanceRecord) -> str:
    """Render a human-readable certificate for a provenance record."""
    params = provenance.parameters
    seed = provenance.random_seed
    seed_display = seed[:32] + "..." if len(seed) > 32 else seed
    lines = [
        "╔════════════════════════════════════════════════════════════════════════╗",
        "║                    CSS ART CERTIFICATE OF PROVENANCE                   ║",
        "║                  Inspired by Diana Smith (cyanHarlow)                  ║",
        "╚════════════════════════════════════════════════════════════════════════╝",
        "",
        "ARTWORK DETAILS",
        _RULE,
        f"Prompt:           {provenance.prompt}",
        f"Created:          {provenance.timestamp}",
        f"Creator:          {provenance.creator or ANONYMOUS}",
        f"Generator:        CSS Art Generator v{provenance.generator_version}",
        f"Mood:             {params.mood.value}",
        "",
        "IDENTIFIERS",
        _RULE,
        f"Fingerprint:      {provenance.fingerprint}",
        f"Prompt Hash:      {provenance.prompt_hash}",
        f"Parameters Hash:  {provenance.parameters_hash}",
        f"Random Seed:      {seed_display}",
        f"Hash Algorithm:   {_ALGORITHM_LABELS[provenance.hash_algorithm]}",
        "",
        "TECHNICAL DETAILS",
        _RULE,
        f"Canvas:           {params.canvas.width}x{params.canvas.height}px",
        f"Head Rotation:    {params.head.rotation:.1f}°",
        f"Hair Tendrils:    {params.hair.total_tendrils}",
        f"Shadow Layers:    {params.lighting.shadow_layers}",
        f"Style:            {params.style.aesthetic} / {params.style.contrast} contrast",
        "",
        "VERIFICATION",
        _RULE,
        "This certificate records:",
        "  - the exact prompt used for generation",
        "  - the complete parameter set (view source to inspect)",
        "  - the creation timestamp and creator attribution",
        "The identifiers above are bookkeeping hashes. Unless the hash",
        "algorithm is SHA-256 they do not resist collisions or tampering.",
        "",
        "ATTRIBUTION",
        _RULE,
        "This artwork is generated using techniques pioneered by:",
        "  Diana Smith (cyanHarlow)",
        "  https://github.com/cyanharlow/purecss-pink",
        _RULE,
    ]
    return "\n".join(lines)


def export_provenance_json(provenance: ProvenanceRecord) -> str:
    """Machine-readable JSON rendering of a provenance record."""
    return provenance.model_dump_json(indent=2)
