"""
Mastery Tracker - Per-question success counters and the review queue.

Lifecycle of a fingerprint:
    Unseen ──wrong──► NeedsReview ──correct──► count+1 ... ──count = threshold──► Retired

Policies:
    - correct: counter +1, fingerprint leaves the wrong queue
    - wrong:   counter untouched, question joins the wrong queue once
    - the wrong queue is unbounded; the only way out is a correct answer
      (or an explicit progress reset)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .config import QuizConfig
from .errors import InvalidSelection
from .question import Question, is_ordered


@dataclass
class ProgressState:
    """Mastery state of one user."""
    correct_counts: Dict[str, int] = field(default_factory=dict)
    wrong_queue: List[Question] = field(default_factory=list)

    def correct_count(self, fingerprint: str) -> int:
        return self.correct_counts.get(fingerprint, 0)

    def in_wrong_queue(self, fingerprint: str) -> bool:
        return any(q.fingerprint == fingerprint for q in self.wrong_queue)

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        return {
            "correctCounts": dict(self.correct_counts),
            "wrongQueue": [q.to_dict() for q in self.wrong_queue],
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProgressState":
        data = data or {}
        return cls(
            correct_counts={k: int(v) for k, v in (data.get("correctCounts") or {}).items()},
            wrong_queue=[Question.from_dict(q) for q in data.get("wrongQueue") or []],
        )


@dataclass
class SubmissionResult:
    """Outcome of grading one answer."""
    correct: bool
    fingerprint: str
    correct_count: int
    retired: bool
    in_wrong_queue: bool
    expected: List[str]
    saved: bool = True

    def to_dict(self) -> dict:
        return {
            "correct": self.correct,
            "fingerprint": self.fingerprint,
            "correct_count": self.correct_count,
            "retired": self.retired,
            "in_wrong_queue": self.in_wrong_queue,
            "expected": list(self.expected),
            "saved": self.saved,
        }


def validate_selection(question: Question, selection: Sequence[str]):
    """
    Reject selections that cannot come from a well-behaved client.

    Raises:
        InvalidSelection: on an option not in the question, or a repeated option
    """
    options = set(question.options)
    unknown = [s for s in selection if s not in options]
    if unknown:
        raise InvalidSelection(f"Selection contains options not in the question: {unknown}")
    if len(set(selection)) != len(selection):
        raise InvalidSelection("Selection repeats an option")


def grade(question: Question, selection: Sequence[str]) -> bool:
    """
    Compare a selection to the question's answer.

    Ordered questions (flagged, or of an ordered kind) must match position
    by position; all others are compared as sets.
    """
    validate_selection(question, selection)

    if question.order_sensitive or is_ordered(question.kind):
        return list(selection) == list(question.answer)
    return sorted(selection) == sorted(question.answer)


class MasteryTracker:
    """Applies graded submissions to a ProgressState."""

    def __init__(self, config: Optional[QuizConfig] = None):
        self.config = config or QuizConfig()

    def record(self, progress: ProgressState, question: Question,
               selection: Sequence[str]) -> SubmissionResult:
        """Grade a submission and update the progress state in place."""
        correct = grade(question, selection)
        fp = question.fingerprint

        if correct:
            progress.correct_counts[fp] = progress.correct_count(fp) + 1
            progress.wrong_queue = [q for q in progress.wrong_queue if q.fingerprint != fp]
        elif not progress.in_wrong_queue(fp):
            progress.wrong_queue.append(Question.from_dict(question.to_dict()))

        count = progress.correct_count(fp)
        return SubmissionResult(
            correct=correct,
            fingerprint=fp,
            correct_count=count,
            retired=count >= self.config.mastery_threshold,
            in_wrong_queue=progress.in_wrong_queue(fp),
            expected=list(question.answer),
        )
