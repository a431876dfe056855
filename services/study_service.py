"""Study features built on the chunker and the inference client."""

import json
from typing import Any, Dict, List, Optional

from config import ApplicationConfig
from models import (
    AudioClip,
    ChunkResult,
    Quiz,
    QuizDifficulty,
    QuizResponse,
    SpeechResponse,
    TranslateResponse,
)
from utils import create_contextual_logger

from .chunker import PARAGRAPH_SEPARATOR, split_into_chunks
from .exceptions import MalformedInputError, PayloadTooLargeError
from .inference_client import InferenceClient

FALLBACK_QUIZ: Dict[str, Any] = {
    "mcq": [
        {
            "question": "What is a key idea from the material?",
            "options": ["Option A", "Option B", "Option C", "Option D"],
            "answer": "Option A",
        }
    ],
    "short": [
        {"question": "Summarize the main point in one sentence.", "answer": "Sample answer."}
    ],
}


def extract_generated_text(data: Any, field: str = "generated_text") -> str:
    """Pull the text field out of a list-or-object model response."""
    if isinstance(data, list):
        first = data[0] if data else {}
        if isinstance(first, dict):
            return str(first.get(field) or first.get("generated_text") or "")
        return ""
    if isinstance(data, dict):
        return str(data.get(field) or data.get("generated_text") or "")
    return ""


def parse_quiz(raw: str) -> Optional[Quiz]:
    """Parse the outermost JSON object in ``raw`` as a quiz, or return None."""
    start = raw.find("{")
    end = raw.rfind("}")
    candidate = raw[start:end + 1] if start >= 0 and end > start else raw
    try:
        return Quiz.model_validate(json.loads(candidate))
    except ValueError:
        return None


def build_quiz_prompt(
    text: str,
    lang: str,
    difficulty: Optional[QuizDifficulty] = None,
    count: Optional[int] = None,
) -> str:
    lines = [
        "You are an education assistant. Based on the following study material, "
        "generate a small quiz in JSON with two sections:",
        '{"mcq":[{"question":"...","options":["A","B","C","D"],"answer":"A"}],'
        '"short":[{"question":"...","answer":"..."}]}',
        "The JSON must be valid and concise. Use the target language: " f"{lang}.",
    ]
    if difficulty:
        lines.append(f"Difficulty: {QuizDifficulty(difficulty).value}.")
    if count:
        lines.append(f"Write about {count} questions in total.")
    lines.append(f"Study Material:\n{text}")
    return "\n".join(lines)


class StudyService:
    """Turns caller text into chunked, cached model calls and reassembles the results."""

    def __init__(self, config: ApplicationConfig, inference_client: InferenceClient) -> None:
        self.config = config
        self.inference_client = inference_client
        self.logger = create_contextual_logger(__name__, service="study_service")

    def _validate(self, text: str, target_lang: Optional[str] = "-") -> None:
        if not text or not text.strip():
            raise MalformedInputError("Missing text")
        if not target_lang or not target_lang.strip():
            raise MalformedInputError("Missing targetLang")
        if len(text.encode("utf-8")) > self.config.max_upload_bytes:
            raise PayloadTooLargeError(
                f"Text exceeds the {self.config.max_upload_bytes} byte upload limit"
            )

    def preview_chunks(self, text: str) -> ChunkResult:
        self._validate(text)
        return split_into_chunks(text, self.config.chunk_char_limit)

    async def translate(self, text: str, target_lang: str) -> TranslateResponse:
        self._validate(text, target_lang)
        chunked = split_into_chunks(text, self.config.chunk_char_limit)

        # Sequential so that part i lands at position i.
        parts: List[str] = []
        for chunk in chunked.chunks:
            data = await self.inference_client.invoke(
                self.config.translation_model,
                {
                    "inputs": chunk,
                    "parameters": {"forced_bos_token": target_lang},
                    "options": {"wait_for_model": True},
                },
            )
            parts.append(extract_generated_text(data, "translation_text"))

        self.logger.info("Translation completed", parts=len(parts), target_lang=target_lang)
        return TranslateResponse(translation=PARAGRAPH_SEPARATOR.join(parts), warnings=chunked.warnings)

    async def synthesize(self, text: str, target_lang: str) -> SpeechResponse:
        self._validate(text, target_lang)
        chunked = split_into_chunks(text, self.config.chunk_char_limit)

        clips: List[AudioClip] = []
        for chunk in chunked.chunks:
            audio = await self.inference_client.invoke(
                self.config.tts_model,
                {
                    "inputs": chunk,
                    "parameters": {"language": target_lang},
                    "options": {"wait_for_model": True},
                },
                accept=self.config.tts_accept,
            )
            clips.append(AudioClip(audio_base64=audio["base64"], mime=audio["contentType"]))

        return SpeechResponse(clips=clips, warnings=chunked.warnings)

    async def generate_quiz(
        self,
        text: str,
        target_lang: str,
        difficulty: Optional[QuizDifficulty] = None,
        count: Optional[int] = None,
    ) -> QuizResponse:
        self._validate(text, target_lang)
        chunked = split_into_chunks(text, self.config.chunk_char_limit)
        warnings: List[str] = []
        if len(chunked.chunks) > 1:
            warnings.append(
                f"Quiz was generated from the first of {len(chunked.chunks)} parts of the material."
            )

        data = await self.inference_client.invoke(
            self.config.quiz_model,
            {
                "inputs": build_quiz_prompt(chunked.chunks[0], target_lang, difficulty, count),
                "parameters": {"max_new_tokens": 256, "temperature": 0.3},
                "options": {"wait_for_model": True},
            },
        )
        quiz = parse_quiz(extract_generated_text(data))
        if quiz is None:
            self.logger.warning("Quiz output was not valid JSON, using fallback quiz")
            quiz = Quiz.model_validate(FALLBACK_QUIZ)
        return QuizResponse(quiz=quiz, warnings=warnings)
