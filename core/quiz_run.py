"""
Quiz Run - Plays a composed question list back one question at a time.

When a pass over the list ends, every question whose latest attempt in
this run was wrong is queued once more. The run finishes after a pass
that leaves nothing wrong.
"""

from typing import Dict, List, Optional, Sequence

from .mastery_tracker import SubmissionResult
from .question import Question


class QuizRun:
    def __init__(self, engine, questions: Sequence[Question]):
        self.engine = engine
        self.queue: List[Question] = list(questions)
        self.position = 0
        self.attempts = 0
        self.first_attempt: Dict[str, bool] = {}
        self.latest: Dict[str, bool] = {}
        self._answered = False
        self._order: List[Question] = []

        seen = set()
        for question in self.queue:
            if question.fingerprint not in seen:
                seen.add(question.fingerprint)
                self._order.append(question)

    @property
    def current(self) -> Optional[Question]:
        if self.position < len(self.queue):
            return self.queue[self.position]
        return None

    @property
    def finished(self) -> bool:
        return self.current is None

    def answer(self, selection: Sequence[str]) -> SubmissionResult:
        """Submit an answer to the current question."""
        question = self.current
        if question is None:
            raise RuntimeError("Quiz run is finished")
        if self._answered:
            raise RuntimeError("Current question was already answered")

        result = self.engine.submit_answer(question, selection)
        self.attempts += 1
        self.first_attempt.setdefault(result.fingerprint, result.correct)
        self.latest[result.fingerprint] = result.correct
        self._answered = True
        return result

    def advance(self) -> Optional[Question]:
        """Move to the next question, queueing a retry pass at the end of a pass."""
        if self.finished:
            return None
        if not self._answered:
            raise RuntimeError("Answer the current question before advancing")

        self.position += 1
        self._answered = False

        if self.position == len(self.queue):
            retry = [q for q in self._order if self.latest.get(q.fingerprint) is False]
            self.queue.extend(retry)

        return self.current

    def summary(self) -> dict:
        total = len(self._order)
        first_correct = sum(1 for ok in self.first_attempt.values() if ok)
        return {
            "total_questions": total,
            "first_attempt_correct": first_correct,
            "attempts": self.attempts,
            "percentage": round(first_correct * 100 / total) if total else 0,
            "outstanding": sum(1 for ok in self.latest.values() if not ok),
            "finished": self.finished,
        }
