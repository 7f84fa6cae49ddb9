"""Generation request/response, provenance and counter data models."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from artgen.models.artwork import ArtworkParameters, Mood


class GenerationRequest(BaseModel):
    """Request model for the generation endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., max_length=2000)
    preset_mood: Optional[Mood] = Field(default=None, alias="presetMood")
    creator: Optional[str] = Field(default=None, max_length=200)


class ProvenanceRecord(BaseModel):
    """What inputs produced a given artwork. Never mutated after creation.

    The hashes are bookkeeping identifiers. With the default ``rolling``
    algorithm they carry no collision or tamper resistance.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    prompt_hash: str
    parameters_hash: str
    fingerprint: str
    hash_algorithm: str
    timestamp: str
    creator: Optional[str] = None
    random_seed: str
    generator_version: str
    parameters: ArtworkParameters


class GenerationResponse(BaseModel):
    """Response returned to the caller for an accepted generation."""

    generation_number: int
    display_number: str
    mood: Mood
    html: str
    css: str
    document: str
    document_url: Optional[str] = None
    provenance: ProvenanceRecord
    certificate: str


class GenerationRecord(BaseModel):
    """One entry of the bounded recent-requests log."""

    generation_number: int
    fingerprint: str
    prompt_hash: str
    timestamp: str
    caller_hash: Optional[str] = None


class CounterSnapshot(BaseModel):
    """Read-only view of the generation counter."""

    total_generated: int
    last_generation: str
    started_at: str


class CounterStats(BaseModel):
    total_generated: int
    average_per_day: int
    last_24_hours: int
    started_at: str
    last_generation: str


class VerificationResult(BaseModel):
    generation_number: int
    fingerprint: str
    verified: bool
