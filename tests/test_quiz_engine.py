"""Tests for core/quiz_engine.py and core/quiz_run.py"""

import random

import pytest

from core.errors import InvalidSelection, StoreError, UnknownUnit
from core.knowledge_graph import Unit
from core.question import Question
from core.quiz_engine import QuizEngine
from core.quiz_run import QuizRun
from core.stores import MemoryStore


class FlakyStore(MemoryStore):
    """MemoryStore whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.down = False

    def save_units(self, user_id, data):
        if self.down:
            raise StoreError("store is down")
        super().save_units(user_id, data)

    def save_progress(self, user_id, state):
        if self.down:
            raise StoreError("store is down")
        super().save_progress(user_id, state)


def make_question(prompt, answer="A"):
    return Question("person-events", prompt, ["A", "B", "C"], [answer])


@pytest.fixture
def engine(kb):
    return QuizEngine("tester", kb, store=MemoryStore(), rng=random.Random(0))


# ==================== Loading ====================

def test_new_user_gets_sample_units():
    store = MemoryStore()
    engine = QuizEngine.load("newbie", store)
    assert engine.kb.unit_keys() == ["unit-1", "unit-2"]
    assert store.load_units("newbie")["units"].keys() == {"unit-1", "unit-2"}


def test_new_user_without_seed_is_empty():
    engine = QuizEngine.load("blank", MemoryStore(), seed=False)
    assert engine.kb.units == {}


def test_existing_user_is_restored(kb):
    store = MemoryStore()
    store.save_units("returning", kb.to_dict())
    first = QuizEngine.load("returning", store)
    question = first.compose_session("A", 1)[0]
    first.submit_answer(question, question.answer)

    second = QuizEngine.load("returning", store)
    assert second.kb.unit_keys() == ["A", "B"]
    assert second.progress.correct_count(question.fingerprint) == 1


# ==================== Answers ====================

def test_submit_persists_progress(engine):
    question = make_question("one")
    result = engine.submit_answer(question, ["B"])
    assert not result.correct
    assert result.saved
    assert result.expected == ["A"]
    assert engine.store.load_progress("tester").in_wrong_queue(question.fingerprint)


def test_invalid_selection_propagates(engine):
    with pytest.raises(InvalidSelection):
        engine.submit_answer(make_question("one"), ["Z"])


def test_failed_save_keeps_state_and_flush_retries(kb):
    store = FlakyStore()
    engine = QuizEngine("tester", kb, store=store)
    question = make_question("one")

    store.down = True
    result = engine.submit_answer(question, ["A"])
    assert result.correct
    assert result.saved is False
    assert engine.pending_save
    assert engine.progress.correct_count(question.fingerprint) == 1
    assert not engine.flush()

    store.down = False
    assert engine.flush()
    assert not engine.pending_save
    assert store.load_progress("tester").correct_count(question.fingerprint) == 1


def test_reset_progress(engine):
    question = make_question("one")
    engine.submit_answer(question, ["A"])
    engine.submit_answer(make_question("two"), ["C"])

    assert engine.reset_progress()
    assert engine.progress.correct_counts == {}
    assert engine.progress.wrong_queue == []
    assert engine.store.load_progress("tester").correct_counts == {}


def test_review_session_holds_wrong_answers(engine):
    questions = engine.compose_session("A", 4)
    for question in questions[:2]:
        wrong = [o for o in question.options if o not in question.answer][:1] or []
        engine.submit_answer(question, wrong)

    review = engine.compose_review()
    assert {q.fingerprint for q in review} == {q.fingerprint for q in questions[:2]}


def test_default_session_size(engine):
    assert len(engine.compose_session("A")) == engine.config.default_question_count


# ==================== Units ====================

def test_save_and_delete_unit(engine):
    unit = Unit.from_dict({
        "title": "Unit C",
        "people": ["Han"],
        "events": ["Z1"],
        "connections": {"Han": {"events": ["Z1"]}},
    }, key="C")

    assert engine.save_unit(unit)
    assert "Z1" in engine.kb.all_entities["events"]
    assert "C" in engine.store.load_units("tester")["units"]

    assert engine.delete_unit("C")
    assert "Z1" not in engine.kb.all_entities["events"]
    with pytest.raises(UnknownUnit):
        engine.delete_unit("C")


def test_unit_save_failure_is_pending(kb):
    store = FlakyStore()
    engine = QuizEngine("tester", kb, store=store)
    store.down = True
    assert engine.delete_unit("B") is False
    assert engine.units_pending
    assert engine.kb.unit_keys() == ["A"]

    store.down = False
    assert engine.flush()
    assert list(store.load_units("tester")["units"]) == ["A"]


# ==================== Quiz Runs ====================

def test_run_retries_wrong_questions(engine):
    first, second = make_question("one"), make_question("two")
    run = QuizRun(engine, [first, second])

    assert not run.answer(["B"]).correct
    run.advance()
    assert run.answer(["A"]).correct
    assert run.advance() is first

    assert run.answer(["A"]).correct
    assert run.advance() is None
    assert run.finished

    assert run.summary() == {
        "total_questions": 2,
        "first_attempt_correct": 1,
        "attempts": 3,
        "percentage": 50,
        "outstanding": 0,
        "finished": True,
    }


def test_run_keeps_retrying_until_correct(engine):
    run = QuizRun(engine, [make_question("one")])
    for _ in range(3):
        run.answer(["C"])
        run.advance()
    assert not run.finished
    assert run.summary()["outstanding"] == 1

    run.answer(["A"])
    run.advance()
    assert run.finished
    assert run.summary()["attempts"] == 4


def test_run_requires_one_answer_per_step(engine):
    run = QuizRun(engine, [make_question("one")])
    with pytest.raises(RuntimeError):
        run.advance()
    run.answer(["A"])
    with pytest.raises(RuntimeError):
        run.answer(["A"])
    run.advance()
    with pytest.raises(RuntimeError):
        run.answer(["A"])


def test_start_run_uses_composed_session(engine):
    run = engine.start_run("A", 3)
    assert len(run.queue) == 3
    assert run.current is run.queue[0]
