"""Request and response models for the study feature routes."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import QuizDifficulty


class StudyRequest(BaseModel):
    """Text submitted for a study feature."""

    text: str = Field(..., description="Study material")
    target_lang: str = Field(..., alias="targetLang", description="Target language code")

    model_config = ConfigDict(populate_by_name=True)


class TranslateResponse(BaseModel):
    translation: str
    warnings: List[str] = Field(default_factory=list)


class AudioClip(BaseModel):
    """One synthesized chunk of speech."""

    audio_base64: str = Field(..., alias="audioBase64")
    mime: str

    model_config = ConfigDict(populate_by_name=True)


class SpeechResponse(BaseModel):
    clips: List[AudioClip]
    warnings: List[str] = Field(default_factory=list)


class QuizRequest(StudyRequest):
    difficulty: Optional[QuizDifficulty] = None
    count: Optional[int] = Field(default=None, ge=1, le=20)


class MultipleChoiceQuestion(BaseModel):
    question: str
    options: List[str] = Field(default_factory=list)
    answer: str = ""


class ShortAnswerQuestion(BaseModel):
    question: str
    answer: str = ""


class Quiz(BaseModel):
    """Quiz with multiple-choice and short-answer sections."""

    mcq: List[MultipleChoiceQuestion] = Field(default_factory=list)
    short: List[ShortAnswerQuestion] = Field(default_factory=list)


class QuizResponse(BaseModel):
    quiz: Quiz
    warnings: List[str] = Field(default_factory=list)


class ChunkPreviewRequest(BaseModel):
    text: str


class ChunkPreviewResponse(BaseModel):
    chunks: List[str]
    warnings: List[str] = Field(default_factory=list)
