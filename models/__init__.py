"""Data models for the Study Assistant gateway.

This module contains all Pydantic models used throughout the application,
ensuring strict type safety and runtime validation."""

# Import all enums
from .enums import QuizDifficulty, QuotaStrategy

# Import chunking models
from .chunking import ChunkResult

# Import quota models
from .quota import QuotaRecord, RateLimitResult

# Import study feature models
from .study import (
    AudioClip,
    ChunkPreviewRequest,
    ChunkPreviewResponse,
    MultipleChoiceQuestion,
    Quiz,
    QuizRequest,
    QuizResponse,
    ShortAnswerQuestion,
    SpeechResponse,
    StudyRequest,
    TranslateResponse,
)

__all__ = [
    # Enums
    "QuizDifficulty",
    "QuotaStrategy",
    # Chunking models
    "ChunkResult",
    # Quota models
    "QuotaRecord",
    "RateLimitResult",
    # Study feature models
    "AudioClip",
    "ChunkPreviewRequest",
    "ChunkPreviewResponse",
    "MultipleChoiceQuestion",
    "Quiz",
    "QuizRequest",
    "QuizResponse",
    "ShortAnswerQuestion",
    "SpeechResponse",
    "StudyRequest",
    "TranslateResponse",
]
