"""
Pytest Configuration and Fixtures.

Provides small hand-built units, seeded randomness and an in-memory
Redis stand-in shared by all tests.
"""

import copy
import random

import pytest
import redis

from core.config import QuizConfig
from core.knowledge_graph import KnowledgeBase, Unit


UNIT_A = {
    "title": "Unit A",
    "people": ["Kim", "Lee", "Park"],
    "events": ["E1", "E2", "E3"],
    "places": ["P1", "P2", "P3"],
    "groups": ["G1"],
    "institutions": ["I1"],
    "connections": {
        "Kim": {"events": ["E1", "E2"], "places": ["P1"], "groups": ["G1"], "institutions": ["I1"]},
        "Lee": {"events": ["E1"], "places": ["P2"], "groups": ["G1"], "institutions": []},
        "Park": {"events": ["E3"], "places": ["P3"], "groups": [], "institutions": []},
    },
    "eventDetails": {
        "E1": {
            "background": ["B1", "B2", "B3", "B4"],
            "development": ["D1", "D2", "D3", "D4"],
            "result": ["R1", "R2"],
            "features": ["F1"],
            "years": ["1919"],
        },
        "E2": {
            "background": ["B5"],
            "development": ["D5", "D6"],
            "result": ["R3"],
            "features": [],
            "years": ["1931"],
        },
        "E3": {
            "background": [],
            "development": ["D7"],
            "result": ["R4", "R5"],
            "features": ["F2", "F3"],
            "years": ["1932"],
        },
    },
    "groupDetails": {"G1": {"activities": ["A1", "A2"]}},
    "institutionDetails": {"I1": {"features": ["IF1", "IF2"]}},
}

UNIT_B = {
    "title": "Unit B",
    "people": ["Choi", "Kim"],
    "events": ["X1"],
    "places": ["Q1", "P1"],
    "groups": [],
    "institutions": ["I2"],
    "connections": {
        "Choi": {"events": ["X1"], "places": ["Q1"], "groups": [], "institutions": ["I2"]},
        "Kim": {"events": ["X1"], "places": ["P1"], "groups": [], "institutions": []},
    },
    "eventDetails": {
        "X1": {
            "background": ["XB1", "B1"],
            "development": ["XD1", "XD2"],
            "result": ["XR1"],
            "features": ["XF1"],
            "years": ["1945"],
        },
    },
    "groupDetails": {},
    "institutionDetails": {"I2": {"features": ["IF3"]}},
}


@pytest.fixture
def unit_a_data():
    return copy.deepcopy(UNIT_A)


@pytest.fixture
def unit_a(unit_a_data):
    return Unit.from_dict(unit_a_data, key="A")


@pytest.fixture
def kb():
    """Two units sharing the names 'Kim', 'P1' and the fact 'B1'."""
    return KnowledgeBase.from_dict({"units": {"A": copy.deepcopy(UNIT_A), "B": copy.deepcopy(UNIT_B)}})


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def config():
    return QuizConfig()


@pytest.fixture
def tiny_kb():
    """A unit that can only ever produce one question fingerprint."""
    return KnowledgeBase([Unit.from_dict({
        "title": "Tiny",
        "people": ["Solo"],
        "events": ["Only"],
        "connections": {"Solo": {"events": ["Only"]}},
    }, key="tiny")])


@pytest.fixture
def tiny_config():
    return QuizConfig(
        min_distractors=0,
        max_distractors=0,
        attempts_per_question=20,
        kind_weights={"person-events": 1},
    )


class MockRedis:
    """Mock Redis client for testing (strings, hashes and MULTI/EXEC pipelines)."""

    def __init__(self):
        self.data = {}
        self.fail = False
        self.fail_on = set()  # command names that raise, e.g. {"hset"}

    def _check(self, command=None):
        if self.fail:
            raise redis.ConnectionError("mock redis is down")
        if command in self.fail_on:
            raise redis.ResponseError(f"mock {command} failed")

    def pipeline(self, transaction=True):
        return MockPipeline(self)

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value):
        self._check("set")
        self.data[key] = value
        return True

    def hgetall(self, key):
        self._check()
        return dict(self.data.get(key, {}))

    def hset(self, key, field=None, value=None, mapping=None):
        self._check("hset")
        h = self.data.setdefault(key, {})
        if field is not None:
            h[field] = str(value)
        for k, v in (mapping or {}).items():
            h[k] = str(v)
        return len(mapping or {}) + (1 if field is not None else 0)

    def delete(self, *keys):
        self._check("delete")
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def mock_redis():
    return MockRedis()


class MockPipeline:
    """Queues commands and applies them all or none on execute()."""

    def __init__(self, client):
        self.client = client
        self.commands = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.commands = []
        return False

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.commands.append((name, args, kwargs))
            return self
        return queue

    def execute(self):
        scratch = MockRedis()
        scratch.data = copy.deepcopy(self.client.data)
        scratch.fail = self.client.fail
        scratch.fail_on = self.client.fail_on
        results = [getattr(scratch, name)(*args, **kwargs) for name, args, kwargs in self.commands]
        self.client.data = scratch.data
        self.commands = []
        return results
