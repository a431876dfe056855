"""Paragraph and sentence aware text chunking.

Long study material is split into pieces no longer than a character limit
so each piece can be sent to a length-limited model on its own. Paragraphs
are kept whole where possible, then sentences; only a single sentence longer
than the limit is ever cut mid-way.
"""

import re
from typing import List

from models import ChunkResult

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

_LINE_ENDINGS = re.compile(r"\r\n?")
_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def normalize_newlines(text: str) -> str:
    """Collapse CRLF and lone CR line endings to LF."""
    return _LINE_ENDINGS.sub("\n", text)


def _hard_cut(sentence: str, limit: int) -> List[str]:
    slices = (sentence[start:start + limit].strip() for start in range(0, len(sentence), limit))
    return [piece for piece in slices if piece]


class _ChunkBuilder:
    """Greedy packer shared by the paragraph and sentence passes."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.chunks: List[str] = []
        self.current = ""

    def fits(self, buffer: str, piece: str, separator: str) -> bool:
        joined = len(buffer) + (len(separator) if buffer else 0) + len(piece)
        return joined <= self.limit

    def flush(self) -> None:
        if self.current.strip():
            self.chunks.append(self.current.strip())
        self.current = ""

    def add_paragraph(self, paragraph: str) -> None:
        if self.fits(self.current, paragraph, PARAGRAPH_SEPARATOR):
            self.current = f"{self.current}{PARAGRAPH_SEPARATOR}{paragraph}" if self.current else paragraph
            return

        self.flush()
        if len(paragraph) > self.limit:
            self._add_sentences(paragraph)
        else:
            self.current = paragraph

    def _add_sentences(self, paragraph: str) -> None:
        buffer = ""
        for sentence in _SENTENCE_BREAK.split(paragraph):
            if self.fits(buffer, sentence, SENTENCE_SEPARATOR):
                buffer = f"{buffer}{SENTENCE_SEPARATOR}{sentence}" if buffer else sentence
                continue

            if buffer:
                self.chunks.append(buffer.strip())
                buffer = ""

            if len(sentence) > self.limit:
                self.chunks.extend(_hard_cut(sentence, self.limit))
            else:
                buffer = sentence

        if buffer.strip():
            self.chunks.append(buffer.strip())


def split_into_chunks(text: str, limit: int) -> ChunkResult:
    """Split ``text`` into ordered chunks of at most ``limit`` characters.

    Never raises for string input. Empty or whitespace-only text yields a
    single empty chunk, and a limit below one is treated as one.
    """
    limit = max(1, int(limit))
    clean = normalize_newlines(text).strip()
    if len(clean) <= limit:
        return ChunkResult(chunks=[clean])

    builder = _ChunkBuilder(limit)
    for paragraph in _PARAGRAPH_BREAK.split(clean):
        builder.add_paragraph(paragraph)
    builder.flush()

    chunks = builder.chunks or [""]
    warnings = []
    if len(chunks) > 1:
        warnings.append(f"Input was chunked into {len(chunks)} parts to process safely.")
    return ChunkResult(chunks=chunks, warnings=warnings)
