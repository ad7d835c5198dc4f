"""
Quiz Engine - Per-user application context.

One engine per user identity owns:
    - the user's KnowledgeBase
    - the user's ProgressState (mastery counts + wrong queue)
    - the store both are persisted to

Mastery persists per identity; it is only cleared by reset_progress().
All operations on one engine are serialized by a re-entrant lock.
"""

import random
import threading
from typing import List, Optional, Sequence

from loguru import logger

from .config import QuizConfig
from .errors import StoreError
from .knowledge_graph import KnowledgeBase, Unit
from .mastery_tracker import MasteryTracker, ProgressState, SubmissionResult
from .question import Question
from .quiz_run import QuizRun
from .session_composer import SessionComposer
from .stores import MemoryStore


class QuizEngine:
    """
    Entry point for the presentation layer.

    Persistence is a side effect after each mutation. A failed save never
    rolls back the in-memory update: the engine flags itself pending and
    ``flush()`` retries.
    """

    def __init__(self, user_id: str, kb: KnowledgeBase,
                 progress: Optional[ProgressState] = None, store=None,
                 config: Optional[QuizConfig] = None,
                 rng: Optional[random.Random] = None):
        self.user_id = user_id
        self.kb = kb
        self.progress = progress or ProgressState()
        self.store = store if store is not None else MemoryStore()
        self.config = config or QuizConfig()
        self.rng = rng or random.Random()

        self.composer = SessionComposer(kb, self.config, self.rng)
        self.tracker = MasteryTracker(self.config)

        self.progress_pending = False
        self.units_pending = False
        self._lock = threading.RLock()

    @classmethod
    def load(cls, user_id: str, store, config: Optional[QuizConfig] = None,
             rng: Optional[random.Random] = None, seed: bool = True) -> "QuizEngine":
        """
        Load a user's knowledge base and progress from a store.

        A user with no stored units gets the sample knowledge base
        (or an empty one when ``seed`` is False).
        """
        data = store.load_units(user_id)
        if data is None:
            kb = KnowledgeBase.sample() if seed else KnowledgeBase()
            store.save_units(user_id, kb.to_dict())
            logger.info(f"Seeded {len(kb.units)} units for new user {user_id}")
        else:
            kb = KnowledgeBase.from_dict(data)

        progress = store.load_progress(user_id)
        return cls(user_id, kb, progress=progress, store=store, config=config, rng=rng)

    @property
    def pending_save(self) -> bool:
        return self.progress_pending or self.units_pending

    # ==================== Sessions ====================

    def compose_session(self, unit_key: str, count: Optional[int] = None) -> List[Question]:
        """Compose a fresh session for a unit, skipping retired questions."""
        with self._lock:
            count = count or self.config.default_question_count
            return self.composer.compose(unit_key, count, self.progress)

    def compose_review(self) -> List[Question]:
        """Every question in the wrong queue, shuffled."""
        with self._lock:
            return self.composer.compose_review(self.progress)

    def start_run(self, unit_key: str, count: Optional[int] = None) -> QuizRun:
        return QuizRun(self, self.compose_session(unit_key, count))

    def start_review_run(self) -> QuizRun:
        return QuizRun(self, self.compose_review())

    def submit_answer(self, question: Question, selection: Sequence[str]) -> SubmissionResult:
        """
        Grade a selection and update mastery.

        Returns:
            SubmissionResult; ``saved`` is False if persisting failed

        Raises:
            InvalidSelection: if the selection does not fit the question
        """
        with self._lock:
            result = self.tracker.record(self.progress, question, selection)
            result.saved = self._save_progress()
            return result

    def reset_progress(self) -> bool:
        """Clear all mastery counts and the wrong queue."""
        with self._lock:
            self.progress = ProgressState()
            logger.info(f"Reset progress for {self.user_id}")
            return self._save_progress()

    # ==================== Units ====================

    def save_unit(self, unit: Unit) -> bool:
        """Add or replace a unit; global pools are recomputed."""
        with self._lock:
            self.kb.put_unit(unit)
            return self._save_units()

    def delete_unit(self, unit_key: str) -> bool:
        with self._lock:
            self.kb.delete_unit(unit_key)
            return self._save_units()

    # ==================== Persistence ====================

    def _save_progress(self) -> bool:
        try:
            self.store.save_progress(self.user_id, self.progress)
        except StoreError as e:
            self.progress_pending = True
            logger.warning(f"Progress for {self.user_id} not saved, kept in memory: {e}")
            return False
        self.progress_pending = False
        return True

    def _save_units(self) -> bool:
        try:
            self.store.save_units(self.user_id, self.kb.to_dict())
        except StoreError as e:
            self.units_pending = True
            logger.warning(f"Units for {self.user_id} not saved, kept in memory: {e}")
            return False
        self.units_pending = False
        return True

    def flush(self) -> bool:
        """
        Retry any saves that failed earlier.

        Returns:
            True if nothing is pending afterwards
        """
        with self._lock:
            if self.progress_pending and not self._save_progress():
                logger.error(f"Retry of progress save for {self.user_id} failed")
            if self.units_pending and not self._save_units():
                logger.error(f"Retry of units save for {self.user_id} failed")
            return not self.pending_save
