"""
Quiz configuration.

All tunables live here and can be overridden from the environment
(or a .env file):

    QUIZ_MASTERY_THRESHOLD       correct answers before a question is retired
    QUIZ_MIN_DISTRACTORS         lower bound of distractors per question
    QUIZ_MAX_DISTRACTORS         upper bound of distractors per question
    QUIZ_FACT_ANSWER_CAP         max answers for background/result/features questions
    QUIZ_SEQUENCE_LENGTH         length of the ordered run in development questions
    QUIZ_ATTEMPTS_PER_QUESTION   draws allowed per requested question
    QUIZ_DEFAULT_QUESTION_COUNT  session size when none is given
    QUIZ_KIND_WEIGHTS            overrides, e.g. "event-development=5,person-places=0"
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError

# Load environment variables from .env
load_dotenv()


# Relative frequency of each question kind.
DEFAULT_KIND_WEIGHTS: Dict[str, float] = {
    "person-events": 1,
    "person-places": 1,
    "person-groups": 1,
    "person-institutions": 2,
    "event-people": 1,
    "event-places": 1,
    "group-people": 1,
    "group-activities": 2,
    "event-background": 2,
    "event-development": 3,
    "event-result": 2,
    "event-features": 3,
    "event-year": 1,
    "institution-features": 3,
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def parse_kind_weights(raw: Optional[str]) -> Dict[str, float]:
    """Parse "kind=weight,kind=weight" into a dict of overrides."""
    if not raw:
        return {}

    overrides = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        kind, sep, value = part.partition("=")
        if not sep:
            raise ConfigError(f"Malformed kind weight {part!r}, expected kind=weight")
        try:
            overrides[kind.strip()] = float(value)
        except ValueError:
            raise ConfigError(f"Weight for {kind.strip()!r} must be a number") from None
    return overrides


@dataclass
class QuizConfig:
    """Tunable parameters for question generation and mastery tracking."""
    mastery_threshold: int = 4
    min_distractors: int = 7
    max_distractors: int = 9
    fact_answer_cap: int = 3
    sequence_length: int = 3
    attempts_per_question: int = 50
    default_question_count: int = 10
    kind_weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_KIND_WEIGHTS))

    def __post_init__(self):
        if self.mastery_threshold < 1:
            raise ConfigError("mastery_threshold must be at least 1")
        if self.min_distractors < 0 or self.min_distractors > self.max_distractors:
            raise ConfigError(
                f"Invalid distractor range [{self.min_distractors}, {self.max_distractors}]"
            )
        if self.fact_answer_cap < 1 or self.sequence_length < 1:
            raise ConfigError("fact_answer_cap and sequence_length must be at least 1")
        if self.attempts_per_question < 1:
            raise ConfigError("attempts_per_question must be at least 1")
        if self.default_question_count < 1:
            raise ConfigError("default_question_count must be at least 1")

        unknown = set(self.kind_weights) - set(DEFAULT_KIND_WEIGHTS)
        if unknown:
            raise ConfigError(f"Unknown question kinds in weights: {sorted(unknown)}")
        if any(w < 0 for w in self.kind_weights.values()):
            raise ConfigError("Kind weights must not be negative")
        if not any(w > 0 for w in self.kind_weights.values()):
            raise ConfigError("At least one kind weight must be positive")

    @classmethod
    def from_env(cls) -> "QuizConfig":
        """Build a config from QUIZ_* environment variables."""
        weights = dict(DEFAULT_KIND_WEIGHTS)
        weights.update(parse_kind_weights(os.getenv("QUIZ_KIND_WEIGHTS")))

        return cls(
            mastery_threshold=_env_int("QUIZ_MASTERY_THRESHOLD", 4),
            min_distractors=_env_int("QUIZ_MIN_DISTRACTORS", 7),
            max_distractors=_env_int("QUIZ_MAX_DISTRACTORS", 9),
            fact_answer_cap=_env_int("QUIZ_FACT_ANSWER_CAP", 3),
            sequence_length=_env_int("QUIZ_SEQUENCE_LENGTH", 3),
            attempts_per_question=_env_int("QUIZ_ATTEMPTS_PER_QUESTION", 50),
            default_question_count=_env_int("QUIZ_DEFAULT_QUESTION_COUNT", 10),
            kind_weights=weights,
        )
