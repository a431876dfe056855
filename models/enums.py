"""Enumeration types for the gateway models."""

from enum import Enum


class QuotaStrategy(str, Enum):
    """Backing store that answered a daily quota check."""

    DURABLE = "durable"
    IN_PROCESS = "in_process"
    WINDOW = "window"


class QuizDifficulty(str, Enum):
    """Requested quiz difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
