"""
Question Synthesizer - Builds one question of a given kind.

Steps for every kind:
    1. pick a random subject entity from the unit
    2. derive the full list of correct candidates for that subject
    3. choose k correct answers (a contiguous run for ordered kinds)
    4. add distractors from the in-unit and cross-unit pools
    5. shuffle the options
"""

import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .config import QuizConfig
from .distractor_sampler import DistractorSampler
from .errors import NoCandidates
from .knowledge_graph import KnowledgeBase, unique
from . import question as q
from .question import Question


@dataclass(frozen=True)
class KindRule:
    """How to synthesize one question kind."""
    kind: str
    subject_kind: str
    candidates: Callable[[KnowledgeBase, str, str], List[str]]
    template: str
    target_kind: Optional[str] = None   # entity kind of the options
    category: Optional[str] = None      # fact category of the options
    capped: bool = False                # k limited by fact_answer_cap
    ordered: bool = False               # answer is a contiguous, ordered run

    def in_unit_pool(self, kb: KnowledgeBase, unit_key: str) -> List[str]:
        if self.category:
            return kb.unit_fact_pool(unit_key, self.subject_kind, self.category)
        return kb.unit_pool(unit_key, self.target_kind)

    def cross_unit_pool(self, kb: KnowledgeBase, unit_key: str) -> List[str]:
        if self.category:
            return kb.cross_unit_fact_pool(unit_key, self.subject_kind, self.category)
        return kb.cross_unit_pool(unit_key, self.target_kind)


def _facts(kind: str, category: str) -> Callable[[KnowledgeBase, str, str], List[str]]:
    return lambda kb, unit, entity: kb.facts_of(unit, kind, entity, category)


RULES: Dict[str, KindRule] = {rule.kind: rule for rule in [
    KindRule(q.PERSON_EVENTS, "people", KnowledgeBase.events_of,
             "Select all events that '{subject}' took part in.", target_kind="events"),
    KindRule(q.PERSON_PLACES, "people", KnowledgeBase.places_of,
             "Select all places where '{subject}' was active.", target_kind="places"),
    KindRule(q.PERSON_GROUPS, "people", KnowledgeBase.groups_of,
             "Select all groups that '{subject}' belonged to.", target_kind="groups"),
    KindRule(q.PERSON_INSTITUTIONS, "people", KnowledgeBase.institutions_of,
             "Select all institutions associated with '{subject}'.", target_kind="institutions"),
    KindRule(q.EVENT_PEOPLE, "events", KnowledgeBase.people_with_event,
             "Select all people who took part in '{subject}'.", target_kind="people"),
    KindRule(q.EVENT_PLACES, "events", KnowledgeBase.places_reachable_from_event,
             "Select all places where '{subject}' took place.", target_kind="places"),
    KindRule(q.GROUP_PEOPLE, "groups", KnowledgeBase.people_with_group,
             "Select all members of '{subject}'.", target_kind="people"),
    KindRule(q.GROUP_ACTIVITIES, "groups", _facts("groups", "activities"),
             "Select all activities of '{subject}'.", category="activities"),
    KindRule(q.EVENT_BACKGROUND, "events", _facts("events", "background"),
             "Select all items that belong to the background of '{subject}'.",
             category="background", capped=True),
    KindRule(q.EVENT_DEVELOPMENT, "events", _facts("events", "development"),
             "Select the stages in the development of '{subject}' and arrange them in order.",
             category="development", ordered=True),
    KindRule(q.EVENT_RESULT, "events", _facts("events", "result"),
             "Select all results and significance of '{subject}'.",
             category="result", capped=True),
    KindRule(q.EVENT_FEATURES, "events", _facts("events", "features"),
             "Select all features of the event '{subject}'.",
             category="features", capped=True),
    KindRule(q.EVENT_YEAR, "events", _facts("events", "years"),
             "Select the year(s) of '{subject}'.", category="years"),
    KindRule(q.INSTITUTION_FEATURES, "institutions", _facts("institutions", "features"),
             "Select all features of the institution '{subject}'.",
             category="features", capped=True),
]}


class QuestionSynthesizer:
    """
    Stateless single-shot question builder.

    Raises ``NoCandidates`` when the drawn subject has nothing to ask
    about; callers redraw.
    """

    def __init__(self, kb: KnowledgeBase, config: Optional[QuizConfig] = None,
                 rng: Optional[random.Random] = None):
        self.kb = kb
        self.config = config or QuizConfig()
        self.rng = rng or random.Random()
        self.sampler = DistractorSampler(self.rng)

    def synthesize(self, kind: str, unit_key: str, subject: Optional[str] = None) -> Question:
        """
        Build a question of ``kind`` from a unit.

        Args:
            kind: One of the kind tags in ``RULES``
            unit_key: Unit to draw the subject and in-unit distractors from
            subject: Force a subject instead of drawing one at random

        Returns:
            A question whose answer is a subset of its options
        """
        rule = RULES.get(kind)
        if rule is None:
            raise ValueError(f"Unknown question kind: {kind}")

        if subject is None:
            subjects = self.kb.unit_pool(unit_key, rule.subject_kind)
            if not subjects:
                raise NoCandidates(kind)
            subject = self.rng.choice(subjects)

        candidates = unique(rule.candidates(self.kb, unit_key, subject))
        if not candidates:
            raise NoCandidates(kind, subject)

        answer = self._choose_answer(rule, candidates)

        total_wanted = self.rng.randint(self.config.min_distractors, self.config.max_distractors)
        # Unchosen true candidates are never offered as distractors
        distractors = self.sampler.sample(
            candidates,
            rule.in_unit_pool(self.kb, unit_key),
            rule.cross_unit_pool(self.kb, unit_key),
            total_wanted,
            kind=kind,
        )

        options = answer + distractors
        self.rng.shuffle(options)

        return Question(
            kind=kind,
            prompt=rule.template.format(subject=subject),
            options=options,
            answer=answer,
            order_sensitive=rule.ordered,
            unit_key=unit_key,
            subject=subject,
        )

    def _choose_answer(self, rule: KindRule, candidates: List[str]) -> List[str]:
        if rule.ordered:
            k = min(self.config.sequence_length, len(candidates))
            start = self.rng.randrange(len(candidates) - k + 1)
            return candidates[start:start + k]

        cap = len(candidates)
        if rule.capped:
            cap = min(cap, self.config.fact_answer_cap)
        k = self.rng.randint(1, cap)
        return self.rng.sample(candidates, k)
