"""Study feature routes: translate, speech, quiz and chunk preview."""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from models import (
    ChunkPreviewRequest,
    ChunkPreviewResponse,
    QuizRequest,
    QuizResponse,
    RateLimitResult,
    SpeechResponse,
    StudyRequest,
    TranslateResponse,
)
from services import DailyRateLimiter, StudyService, WindowRateLimiter, resolve_identifier
from utils import get_logger

router = APIRouter(prefix="/api", tags=["study"])
logger = get_logger(__name__)


def get_study_service(request: Request) -> StudyService:
    """Dependency to get the study service from application state."""
    return request.app.state.study_service  # type: ignore[no-any-return]


def get_daily_limiter(request: Request) -> DailyRateLimiter:
    return request.app.state.daily_limiter  # type: ignore[no-any-return]


def get_window_limiter(request: Request) -> WindowRateLimiter:
    return request.app.state.window_limiter  # type: ignore[no-any-return]


def _client_host(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _caller_address(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    return forwarded or _client_host(request) or "anonymous"


def _quota_exceeded(result: RateLimitResult, message: str) -> JSONResponse:
    retry_after = math.ceil(result.retry_after_seconds)
    return JSONResponse(
        status_code=429,
        content={"error": message, **result.model_dump(by_alias=True)},
        headers={"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"},
    )


async def _admit_daily(request: Request, response: Response, limiter: DailyRateLimiter) -> RateLimitResult:
    identifier = resolve_identifier(request.headers, _client_host(request))
    result = await limiter.check(identifier)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    return result


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    body: StudyRequest,
    request: Request,
    response: Response,
    service: StudyService = Depends(get_study_service),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
):
    """Translate study material into the target language."""
    admission = await _admit_daily(request, response, limiter)
    if not admission.allowed:
        return _quota_exceeded(admission, "Daily request limit reached. Try again tomorrow.")
    return await service.translate(body.text, body.target_lang)


@router.post("/tts", response_model=SpeechResponse)
async def text_to_speech(
    body: StudyRequest,
    request: Request,
    response: Response,
    service: StudyService = Depends(get_study_service),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
):
    """Synthesize speech for study material, one clip per chunk."""
    admission = await _admit_daily(request, response, limiter)
    if not admission.allowed:
        return _quota_exceeded(admission, "Daily request limit reached. Try again tomorrow.")
    return await service.synthesize(body.text, body.target_lang)


@router.post("/quiz", response_model=QuizResponse)
async def quiz(
    body: QuizRequest,
    request: Request,
    response: Response,
    service: StudyService = Depends(get_study_service),
    limiter: DailyRateLimiter = Depends(get_daily_limiter),
):
    """Generate a short quiz from study material."""
    admission = await _admit_daily(request, response, limiter)
    if not admission.allowed:
        return _quota_exceeded(admission, "Daily request limit reached. Try again tomorrow.")
    return await service.generate_quiz(body.text, body.target_lang, body.difficulty, body.count)


@router.post("/chunk", response_model=ChunkPreviewResponse)
async def chunk_preview(
    body: ChunkPreviewRequest,
    request: Request,
    response: Response,
    service: StudyService = Depends(get_study_service),
    limiter: WindowRateLimiter = Depends(get_window_limiter),
):
    """Show how material would be split, without calling any model."""
    admission = await limiter.check(_caller_address(request), "chunk")
    if not admission.allowed:
        return _quota_exceeded(admission, "Rate limit exceeded. Try again later.")
    response.headers["X-RateLimit-Remaining"] = str(admission.remaining)
    result = service.preview_chunks(body.text)
    return ChunkPreviewResponse(chunks=result.chunks, warnings=result.warnings)
