"""Generation and counter API router."""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

from artgen.models.generation import (
    CounterSnapshot,
    CounterStats,
    GenerationRequest,
    GenerationResponse,
    VerificationResult,
)
from artgen.services.errors import (
    ArtworkNotFoundError,
    ParameterInvariantError,
    PromptRejectedError,
    RateLimitExceededError,
)
from artgen.services.generation import GenerationService

router = APIRouter(prefix="/api", tags=["generation"])


def get_generation_service(request: Request) -> GenerationService:
    """FastAPI dependency: retrieve GenerationService from app.state.

    Returns HTTP 503 if the service was not initialized at startup.
    """
    svc: Optional[GenerationService] = getattr(request.app.state, "generation_service", None)
    if svc is None:
        raise HTTPException(
            status_code=503,
            detail="Generation service unavailable. Service not initialized.",
        )
    return svc


def caller_address(request: Request) -> Optional[str]:
    """Client address: first X-Forwarded-For hop, X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


@router.post("/generate", response_model=GenerationResponse)
def generate_artwork(
    body: GenerationRequest,
    request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> GenerationResponse:
    """Generate one portrait from a prompt.

    Raises:
        HTTPException 400: Prompt failed validation.
        HTTPException 429: Caller exceeded the generation quota.
        HTTPException 500: Parameter invariant violated.
        HTTPException 422: Malformed body (handled by FastAPI automatically).
    """
    try:
        return service.generate(
            body,
            caller_id=caller_address(request),
            user_agent=request.headers.get("user-agent"),
        )
    except PromptRejectedError as exc:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid prompt", "message": exc.reason},
        ) from exc
    except RateLimitExceededError as exc:
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Rate limit exceeded",
                "message": str(exc),
                "retry_after": exc.retry_after,
            },
            headers={"Retry-After": str(exc.retry_after)},
        ) from exc
    except ParameterInvariantError as exc:
        raise HTTPException(
            status_code=500,
            detail={"error": "Generation failed", "message": "Artwork parameters failed validation"},
        ) from exc


@router.get("/counter", response_model=CounterSnapshot)
def get_counter(service: GenerationService = Depends(get_generation_service)) -> CounterSnapshot:
    """Total accepted generations, last generation time and start time."""
    return service.counter.read()


@router.get("/counter/stats", response_model=CounterStats)
def get_counter_stats(
    service: GenerationService = Depends(get_generation_service),
) -> CounterStats:
    return service.counter.stats()


@router.get("/counter/verify", response_model=VerificationResult)
def verify_generation(
    generation_number: int,
    fingerprint: str,
    service: GenerationService = Depends(get_generation_service),
) -> VerificationResult:
    """Check a generation number / fingerprint pair against the recent log."""
    return VerificationResult(
        generation_number=generation_number,
        fingerprint=fingerprint,
        verified=service.counter.verify(generation_number, fingerprint),
    )


@router.get("/artworks/{generation_number}/certificate")
def get_certificate(
    generation_number: int,
    format: Literal["text", "json"] = "text",
    service: GenerationService = Depends(get_generation_service),
) -> Response:
    """Certificate for a generation as plain text (default) or JSON."""
    try:
        certificate = service.get_certificate(generation_number, fmt=format)
    except ArtworkNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if format == "json":
        return Response(content=certificate, media_type="application/json")
    return PlainTextResponse(certificate)
