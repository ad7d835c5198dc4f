"""
In-memory knowledge and progress store.

Same interface as ``redis_store.RedisStore``:
    load_units(user_id)            -> dict or None for a new user
    save_units(user_id, data)
    load_progress(user_id)         -> ProgressState (empty for a new user)
    save_progress(user_id, state)
    delete_user(user_id)

Values are stored as JSON-shaped copies, so callers never share
mutable state with the store.
"""

import copy
from typing import Dict, Optional

from .mastery_tracker import ProgressState


class MemoryStore:
    def __init__(self):
        self.units: Dict[str, dict] = {}
        self.progress: Dict[str, dict] = {}

    def load_units(self, user_id: str) -> Optional[dict]:
        data = self.units.get(user_id)
        return copy.deepcopy(data) if data is not None else None

    def save_units(self, user_id: str, data: dict):
        self.units[user_id] = copy.deepcopy(data)

    def load_progress(self, user_id: str) -> ProgressState:
        return ProgressState.from_dict(self.progress.get(user_id))

    def save_progress(self, user_id: str, state: ProgressState):
        self.progress[user_id] = state.to_dict()

    def delete_user(self, user_id: str):
        self.units.pop(user_id, None)
        self.progress.pop(user_id, None)
