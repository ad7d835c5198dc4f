"""
Redis Store - Knowledge base and mastery state per user.

Key Structure:
    user:{user_id}:units           -> String (JSON of {"units": {...}})
    user:{user_id}:correct_counts  -> Hash (fingerprint -> success count)
    user:{user_id}:wrong_queue     -> String (JSON list of question bodies)
"""

import os
import json
from typing import Optional

import redis
from dotenv import load_dotenv

from core.errors import StoreError
from core.mastery_tracker import ProgressState
from core.question import Question

# Load environment variables from .env
load_dotenv()


class RedisStore:
    def __init__(self, client: Optional[redis.Redis] = None):
        """Connect to Redis using environment variables, unless a client is given."""
        self.client = client or redis.Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", 6379)),
            db=int(os.getenv("REDIS_DB", 0)),
            password=os.getenv("REDIS_PASSWORD", None),
            decode_responses=True  # Return strings instead of bytes
        )

    # ==================== Key Builders ====================

    def _units_key(self, user_id: str) -> str:
        """Redis key for the user's knowledge base."""
        return f"user:{user_id}:units"

    def _counts_key(self, user_id: str) -> str:
        """Redis key for per-fingerprint success counts."""
        return f"user:{user_id}:correct_counts"

    def _wrong_key(self, user_id: str) -> str:
        """Redis key for the wrong-question queue."""
        return f"user:{user_id}:wrong_queue"

    # ==================== Knowledge Base ====================

    def load_units(self, user_id: str) -> Optional[dict]:
        """
        Load the user's stored knowledge base.

        Args:
            user_id: User to load

        Returns:
            Dict with a "units" map, or None for a user with no data yet
        """
        try:
            raw = self.client.get(self._units_key(user_id))
        except redis.RedisError as e:
            raise StoreError(f"Could not load units for {user_id}: {e}") from e
        return json.loads(raw) if raw else None

    def save_units(self, user_id: str, data: dict):
        """
        Store the user's knowledge base (units plus derived pools).

        Args:
            user_id: User to update
            data: Output of KnowledgeBase.to_dict()
        """
        try:
            self.client.set(self._units_key(user_id), json.dumps(data, ensure_ascii=False))
        except redis.RedisError as e:
            raise StoreError(f"Could not save units for {user_id}: {e}") from e

    # ==================== Progress ====================

    def load_progress(self, user_id: str) -> ProgressState:
        """
        Load mastery counts and the wrong queue.

        Returns:
            ProgressState, empty for a new user
        """
        try:
            counts_raw = self.client.hgetall(self._counts_key(user_id))
            wrong_raw = self.client.get(self._wrong_key(user_id))
        except redis.RedisError as e:
            raise StoreError(f"Could not load progress for {user_id}: {e}") from e

        wrong_queue = [Question.from_dict(q) for q in json.loads(wrong_raw)] if wrong_raw else []
        return ProgressState(
            correct_counts={k: int(v) for k, v in counts_raw.items()},
            wrong_queue=wrong_queue,
        )

    def save_progress(self, user_id: str, state: ProgressState):
        """
        Replace the stored progress with ``state`` in one MULTI/EXEC
        transaction, so a failed save leaves the previous progress intact.

        Args:
            user_id: User to update
            state: Full in-memory progress state
        """
        counts_key = self._counts_key(user_id)
        try:
            with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(counts_key)
                if state.correct_counts:
                    pipe.hset(counts_key, mapping=state.correct_counts)
                pipe.set(
                    self._wrong_key(user_id),
                    json.dumps([q.to_dict() for q in state.wrong_queue], ensure_ascii=False),
                )
                pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Could not save progress for {user_id}: {e}") from e

    # ==================== Cleanup ====================

    def delete_user(self, user_id: str):
        """
        Delete all data for a user (for testing/cleanup).

        Args:
            user_id: User to delete
        """
        try:
            self.client.delete(
                self._units_key(user_id),
                self._counts_key(user_id),
                self._wrong_key(user_id)
            )
        except redis.RedisError as e:
            raise StoreError(f"Could not delete {user_id}: {e}") from e
