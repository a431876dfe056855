"""Chunking result models."""

from typing import List

from pydantic import BaseModel, Field


class ChunkResult(BaseModel):
    """Ordered chunks of a text plus any warnings raised while splitting."""

    chunks: List[str] = Field(..., min_length=1, description="Chunks in input order")
    warnings: List[str] = Field(default_factory=list, description="Human readable notices")
