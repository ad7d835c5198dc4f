"""
Errors raised by the quiz engine.

Hierarchy:
    QuizError
    ├── NoCandidates          (recovered inside the session composer)
    ├── InsufficientContent   (user-visible: not enough material)
    ├── InvalidSelection      (integration error, fail fast)
    ├── UnknownUnit
    ├── InvalidUnit
    ├── ConfigError
    └── StoreError            (persistence adapter failure)
"""

from typing import Optional


class QuizError(Exception):
    """Base class for all quiz engine errors."""


class NoCandidates(QuizError):
    """A synthesis attempt found no valid correct-answer candidates."""

    def __init__(self, kind: str, subject: Optional[str] = None):
        self.kind = kind
        self.subject = subject
        target = f" for '{subject}'" if subject else ""
        super().__init__(f"No candidates for {kind}{target}")


class InsufficientContent(QuizError):
    """The session composer could not reach the requested question count."""

    def __init__(self, unit_key: str, requested: int, produced: int, attempts: int):
        self.unit_key = unit_key
        self.requested = requested
        self.produced = produced
        self.attempts = attempts
        super().__init__(
            f"Not enough material in unit '{unit_key}' for {requested} questions "
            f"(found {produced} after {attempts} attempts)"
        )


class InvalidSelection(QuizError):
    """A submitted selection does not fit the question's options."""


class UnknownUnit(QuizError, KeyError):
    def __init__(self, unit_key: str):
        self.unit_key = unit_key
        super().__init__(unit_key)

    def __str__(self) -> str:
        return f"Unknown unit '{self.unit_key}'"


class InvalidUnit(QuizError, ValueError):
    """A unit is missing its key/title or references entities it does not list."""


class ConfigError(QuizError, ValueError):
    pass


class StoreError(QuizError):
    """A knowledge or progress store could not complete a read or write."""
