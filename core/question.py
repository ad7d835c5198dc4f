"""
Question records and fingerprints.

A fingerprint identifies "the same question" across sessions: two
questions match when they share kind, prompt and option set, whatever
order the options were shuffled into.
"""

import json
from dataclasses import dataclass
from typing import List, Optional


# Kind tags. The value is part of the fingerprint, so never rename one.
PERSON_EVENTS = "person-events"
PERSON_PLACES = "person-places"
PERSON_GROUPS = "person-groups"
PERSON_INSTITUTIONS = "person-institutions"
EVENT_PEOPLE = "event-people"
EVENT_PLACES = "event-places"
GROUP_PEOPLE = "group-people"
GROUP_ACTIVITIES = "group-activities"
EVENT_BACKGROUND = "event-background"
EVENT_DEVELOPMENT = "event-development"
EVENT_RESULT = "event-result"
EVENT_FEATURES = "event-features"
EVENT_YEAR = "event-year"
INSTITUTION_FEATURES = "institution-features"

ORDERED_KINDS = frozenset({EVENT_DEVELOPMENT})


def normalize_prompt(prompt: str) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join(prompt.split())


def fingerprint(kind: str, prompt: str, options: List[str]) -> str:
    # JSON keeps option boundaries intact when facts contain separators
    return json.dumps([kind, normalize_prompt(prompt), sorted(options)], ensure_ascii=False)


def is_ordered(kind: str) -> bool:
    return kind in ORDERED_KINDS


@dataclass
class Question:
    """A generated question, consumed read-only by the presentation layer."""
    kind: str
    prompt: str
    options: List[str]
    answer: List[str]
    order_sensitive: bool = False
    unit_key: Optional[str] = None
    subject: Optional[str] = None

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.kind, self.prompt, self.options)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "prompt": self.prompt,
            "options": list(self.options),
            "answer": list(self.answer),
            "orderSensitive": self.order_sensitive,
            "unitKey": self.unit_key,
            "subject": self.subject,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            kind=data["kind"],
            prompt=data["prompt"],
            options=list(data["options"]),
            answer=list(data["answer"]),
            order_sensitive=data.get("orderSensitive", is_ordered(data["kind"])),
            unit_key=data.get("unitKey"),
            subject=data.get("subject"),
        )
