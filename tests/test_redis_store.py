"""Tests for redis_store.py"""

import pytest

from core.errors import StoreError
from core.mastery_tracker import ProgressState
from core.question import Question
from redis_store import RedisStore


@pytest.fixture
def store(mock_redis):
    return RedisStore(client=mock_redis)


def test_new_user_has_nothing(store):
    assert store.load_units("u1") is None
    progress = store.load_progress("u1")
    assert progress.correct_counts == {}
    assert progress.wrong_queue == []


def test_units_roundtrip(store, kb, mock_redis):
    store.save_units("u1", kb.to_dict())
    assert "user:u1:units" in mock_redis.data

    data = store.load_units("u1")
    assert set(data["units"]) == {"A", "B"}
    assert "Q1" in data["allPlaces"]


def test_progress_layout(store, mock_redis):
    question = Question("event-development", "Order it.", ["D2", "D1"], ["D1", "D2"],
                        order_sensitive=True, unit_key="A", subject="E1")
    store.save_progress("u1", ProgressState(correct_counts={"fp1": 3}, wrong_queue=[question]))

    assert mock_redis.data["user:u1:correct_counts"] == {"fp1": "3"}
    restored = store.load_progress("u1")
    assert restored.correct_counts == {"fp1": 3}
    assert restored.wrong_queue == [question]


def test_save_progress_replaces_old_counts(store, mock_redis):
    store.save_progress("u1", ProgressState(correct_counts={"old": 1}))
    store.save_progress("u1", ProgressState(correct_counts={"new": 2}))
    assert store.load_progress("u1").correct_counts == {"new": 2}


def test_delete_user(store, kb, mock_redis):
    store.save_units("u1", kb.to_dict())
    store.save_progress("u1", ProgressState(correct_counts={"fp": 1}))
    store.delete_user("u1")
    assert mock_redis.data == {}


def test_redis_errors_become_store_errors(store, mock_redis):
    mock_redis.fail = True
    with pytest.raises(StoreError):
        store.load_units("u1")
    with pytest.raises(StoreError):
        store.save_progress("u1", ProgressState())
    with pytest.raises(StoreError):
        store.load_progress("u1")


def test_failed_progress_save_keeps_previous_progress(store, mock_redis):
    store.save_progress("u1", ProgressState(correct_counts={"fp": 3}))

    mock_redis.fail_on = {"hset"}
    with pytest.raises(StoreError):
        store.save_progress("u1", ProgressState(correct_counts={"fp": 4}))

    mock_redis.fail_on = set()
    assert store.load_progress("u1").correct_counts == {"fp": 3}
