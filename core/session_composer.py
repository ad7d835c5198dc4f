"""
Session Composer - Assembles a quiz session from synthesized questions.

Each draw:
    - pick a kind by weighted random choice
    - synthesize a question of that kind
    - discard it if synthesis failed, if it is retired (mastered), or if
      the session already holds the same fingerprint

Composition stops at the target count, or raises InsufficientContent
once the attempt budget is spent.
"""

import random
from typing import Dict, List, Optional

from loguru import logger

from .config import QuizConfig
from .errors import InsufficientContent, NoCandidates
from .knowledge_graph import KnowledgeBase
from .mastery_tracker import ProgressState
from .question import Question
from .question_synthesizer import RULES, QuestionSynthesizer


class SessionComposer:
    """Builds unique, non-mastered question lists for one unit at a time."""

    def __init__(self, kb: KnowledgeBase, config: Optional[QuizConfig] = None,
                 rng: Optional[random.Random] = None):
        self.kb = kb
        self.config = config or QuizConfig()
        self.rng = rng or random.Random()
        self.synthesizer = QuestionSynthesizer(kb, self.config, self.rng)

        weights = {k: w for k, w in self.config.kind_weights.items() if k in RULES and w > 0}
        self.kinds: List[str] = list(weights)
        self.weights: List[float] = [weights[k] for k in self.kinds]

    def draw_kind(self) -> str:
        return self.rng.choices(self.kinds, weights=self.weights, k=1)[0]

    def is_retired(self, question: Question, progress: ProgressState) -> bool:
        return progress.correct_count(question.fingerprint) >= self.config.mastery_threshold

    def compose(self, unit_key: str, target_count: int,
                progress: Optional[ProgressState] = None) -> List[Question]:
        """
        Compose a session of exactly ``target_count`` questions.

        Args:
            unit_key: Unit to quiz on
            target_count: Number of questions wanted
            progress: Mastery state used to skip retired questions

        Returns:
            Questions with pairwise distinct fingerprints

        Raises:
            UnknownUnit: if the unit does not exist
            InsufficientContent: if the attempt budget runs out first
        """
        self.kb.get_unit(unit_key)
        progress = progress or ProgressState()

        questions: List[Question] = []
        seen = set()
        discarded: Dict[str, int] = {"no_candidates": 0, "retired": 0, "duplicate": 0}
        max_attempts = target_count * self.config.attempts_per_question
        attempts = 0

        while len(questions) < target_count:
            if attempts >= max_attempts:
                logger.warning(
                    f"Gave up composing '{unit_key}': {len(questions)}/{target_count} "
                    f"after {attempts} draws, discarded {discarded}"
                )
                raise InsufficientContent(unit_key, target_count, len(questions), attempts)
            attempts += 1

            kind = self.draw_kind()
            try:
                question = self.synthesizer.synthesize(kind, unit_key)
            except NoCandidates as e:
                discarded["no_candidates"] += 1
                logger.debug(f"Draw {attempts}: {e}")
                continue

            fp = question.fingerprint
            if self.is_retired(question, progress):
                discarded["retired"] += 1
                logger.debug(f"Draw {attempts}: retired {kind} question for '{question.subject}'")
                continue
            if fp in seen:
                discarded["duplicate"] += 1
                continue

            seen.add(fp)
            questions.append(question)

        logger.info(f"Composed {len(questions)} questions for '{unit_key}' in {attempts} draws")
        return questions

    def compose_review(self, progress: ProgressState) -> List[Question]:
        """A shuffled copy of the wrong queue; no weighting and no mastery filter."""
        questions = [Question.from_dict(q.to_dict()) for q in progress.wrong_queue]
        self.rng.shuffle(questions)
        return questions
