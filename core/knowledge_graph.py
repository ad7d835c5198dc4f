"""
Knowledge Graph - Typed view over units and their entity relations.

Features:
    - Units of people, events, places, groups and institutions
    - Person participation edges stored in a networkx DiGraph
    - Inverse lookups (who took part in an event, who belongs to a group)
    - Derived global pools of entities and facts for cross-unit distractors

Nodes are namespaced by unit: ``(unit_key, kind, name)``. The same name in
two units is two different nodes; only the displayed string is shared.
"""

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx
from loguru import logger

from .errors import InvalidUnit, UnknownUnit

ENTITY_KINDS = ("people", "events", "places", "groups", "institutions")

# Person -> target edges kept per person in ``Unit.connections``
CONNECTION_KINDS = ("events", "places", "groups", "institutions")

# Free-text fact lists per entity kind
FACT_CATEGORIES = {
    "events": ("background", "development", "result", "features", "years"),
    "groups": ("activities",),
    "institutions": ("features",),
}

# camelCase names used by the stored JSON shape
DETAIL_KEYS = {
    "events": "eventDetails",
    "groups": "groupDetails",
    "institutions": "institutionDetails",
}

# Names of the derived global fact indices, e.g. allEventItems.backgrounds
_POOL_NAMES = {
    ("events", "background"): ("allEventItems", "backgrounds"),
    ("events", "development"): ("allEventItems", "developments"),
    ("events", "result"): ("allEventItems", "results"),
    ("events", "features"): ("allEventItems", "features"),
    ("events", "years"): ("allEventItems", "years"),
    ("groups", "activities"): ("allGroupItems", "activities"),
    ("institutions", "features"): ("allInstitutionItems", "features"),
}


def unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def empty_connection() -> Dict[str, List[str]]:
    return {kind: [] for kind in CONNECTION_KINDS}


@dataclass
class Unit:
    """A named topical collection of entities and their relations."""
    key: str
    title: str = ""
    people: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    places: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    institutions: List[str] = field(default_factory=list)
    connections: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    event_details: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    group_details: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    institution_details: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)

    def entities(self, kind: str) -> List[str]:
        """Entity ids of one kind, in insertion order."""
        if kind not in ENTITY_KINDS:
            raise ValueError(f"Unknown entity kind: {kind}")
        return getattr(self, kind)

    def details(self, kind: str) -> Dict[str, Dict[str, List[str]]]:
        """Detail records (entity id -> category -> facts) for a kind."""
        if kind == "events":
            return self.event_details
        if kind == "groups":
            return self.group_details
        if kind == "institutions":
            return self.institution_details
        raise ValueError(f"{kind} have no detail records")

    def connection(self, person: str) -> Dict[str, List[str]]:
        """A person's participation edges, empty lists if absent."""
        conn = self.connections.get(person) or {}
        return {kind: list(conn.get(kind, [])) for kind in CONNECTION_KINDS}

    def copy(self) -> "Unit":
        return copy.deepcopy(self)

    # ==================== Validation ====================

    def problems(self) -> List[str]:
        """
        List every violation of the unit invariants.

        Checks:
            - key and title are present
            - ids are unique within their kind
            - every id referenced by connections and detail records is listed
        """
        problems = []
        if not self.key or not self.key.strip():
            problems.append("unit key is required")
        if not self.title or not self.title.strip():
            problems.append("unit title is required")

        for kind in ENTITY_KINDS:
            ids = self.entities(kind)
            if len(set(ids)) != len(ids):
                problems.append(f"duplicate {kind}")

        people = set(self.people)
        for person, conn in self.connections.items():
            if person not in people:
                problems.append(f"connection for unknown person '{person}'")
            for kind in CONNECTION_KINDS:
                listed = set(self.entities(kind))
                for target in (conn or {}).get(kind, []):
                    if target not in listed:
                        problems.append(f"'{person}' linked to unknown {kind} '{target}'")

        for kind in DETAIL_KEYS:
            listed = set(self.entities(kind))
            for entity in self.details(kind):
                if entity not in listed:
                    problems.append(f"details for unknown {kind} '{entity}'")

        return problems

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        """Serialize to the stored camelCase shape."""
        data = {"key": self.key, "title": self.title}
        for kind in ENTITY_KINDS:
            data[kind] = list(self.entities(kind))
        data["connections"] = {p: self.connection(p) for p in self.connections}
        for kind, name in DETAIL_KEYS.items():
            data[name] = {
                entity: {cat: list(record.get(cat, [])) for cat in FACT_CATEGORIES[kind]}
                for entity, record in self.details(kind).items()
            }
        return data

    @classmethod
    def from_dict(cls, data: dict, key: Optional[str] = None) -> "Unit":
        """
        Deserialize from the stored shape.

        Missing categories default to empty lists; ``key`` overrides the
        key stored in the data (units are usually keyed by their map key).
        """
        unit = cls(key=key if key is not None else data.get("key", ""),
                   title=data.get("title", ""))
        for kind in ENTITY_KINDS:
            setattr(unit, kind, list(data.get(kind) or []))

        for person, conn in (data.get("connections") or {}).items():
            conn = conn or {}
            unit.connections[person] = {
                kind: unique(conn.get(kind) or []) for kind in CONNECTION_KINDS
            }

        for kind, name in DETAIL_KEYS.items():
            records = unit.details(kind)
            for entity, record in (data.get(name) or {}).items():
                record = record or {}
                records[entity] = {cat: list(record.get(cat) or []) for cat in FACT_CATEGORIES[kind]}

        return unit


class KnowledgeBase:
    """
    All units of one user plus the derived cross-unit indices.

    Graph structure:
        (unit, "people", person) ──► (unit, "events", event)
                                 ──► (unit, "places", place)
                                 ──► (unit, "groups", group)
                                 ──► (unit, "institutions", institution)

    Global pools are fully recomputed whenever a unit is added, edited
    or deleted.
    """

    def __init__(self, units: Optional[Iterable[Unit]] = None):
        self.units: Dict[str, Unit] = {}
        self.graph = nx.DiGraph()
        self.all_entities: Dict[str, List[str]] = {}
        self.all_facts: Dict[Tuple[str, str], List[str]] = {}

        for unit in units or []:
            self._validate(unit)
            self.units[unit.key] = unit.copy()

        self._rebuild()

    # ==================== Loading ====================

    @classmethod
    def from_dict(cls, data: dict) -> "KnowledgeBase":
        """Build from ``{"units": {key: unit_data}}``; stored pools are ignored."""
        units = [Unit.from_dict(u, key=k) for k, u in (data.get("units") or {}).items()]
        return cls(units)

    @classmethod
    def from_file(cls, path) -> "KnowledgeBase":
        with open(Path(path), "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def sample(cls) -> "KnowledgeBase":
        """The seed knowledge base shipped with the package."""
        return cls.from_file(Path(__file__).parent / "data" / "sample_units.json")

    def to_dict(self) -> dict:
        """Serialize units along with the derived global indices."""
        data = {"units": {k: u.to_dict() for k, u in self.units.items()}}
        data.update(self.global_indices())
        return data

    # ==================== Mutation (store-facing) ====================

    def put_unit(self, unit: Unit):
        """Add or replace a unit, then recompute all derived pools."""
        self._validate(unit)
        self.units[unit.key] = unit.copy()
        self._rebuild()
        logger.info(f"Saved unit '{unit.key}' ({len(self.units)} units)")

    def delete_unit(self, unit_key: str):
        if unit_key not in self.units:
            raise UnknownUnit(unit_key)
        del self.units[unit_key]
        self._rebuild()
        logger.info(f"Deleted unit '{unit_key}' ({len(self.units)} units)")

    def _validate(self, unit: Unit):
        problems = unit.problems()
        if problems:
            logger.warning(f"Rejected unit '{unit.key}': {'; '.join(problems)}")
            raise InvalidUnit("; ".join(problems))

    def _rebuild(self):
        """Rebuild the relation graph and every global pool from scratch."""
        self.graph = nx.DiGraph()

        for key, unit in self.units.items():
            for kind in ENTITY_KINDS:
                for entity in unit.entities(kind):
                    self.graph.add_node((key, kind, entity), unit=key, kind=kind, name=entity)

            for person in unit.people:
                conn = unit.connection(person)
                for kind in CONNECTION_KINDS:
                    for target in conn[kind]:
                        self.graph.add_edge((key, "people", person), (key, kind, target),
                                            relation=kind)

        self.all_entities = {
            kind: unique(e for u in self.units.values() for e in u.entities(kind))
            for kind in ENTITY_KINDS
        }
        self.all_facts = {
            (kind, cat): unique(
                fact
                for u in self.units.values()
                for record in u.details(kind).values()
                for fact in record.get(cat, [])
            )
            for kind, cats in FACT_CATEGORIES.items()
            for cat in cats
        }

    # ==================== Query Methods ====================

    def get_unit(self, unit_key: str) -> Unit:
        unit = self.units.get(unit_key)
        if unit is None:
            raise UnknownUnit(unit_key)
        return unit

    def unit_keys(self) -> List[str]:
        return list(self.units.keys())

    def _linked(self, unit_key: str, person: str, kind: str) -> List[str]:
        node = (unit_key, "people", person)
        if node not in self.graph:
            return []
        return [target[2] for target in self.graph.successors(node) if target[1] == kind]

    def events_of(self, unit_key: str, person: str) -> List[str]:
        return self._linked(unit_key, person, "events")

    def places_of(self, unit_key: str, person: str) -> List[str]:
        return self._linked(unit_key, person, "places")

    def groups_of(self, unit_key: str, person: str) -> List[str]:
        return self._linked(unit_key, person, "groups")

    def institutions_of(self, unit_key: str, person: str) -> List[str]:
        return self._linked(unit_key, person, "institutions")

    def _people_linked_to(self, unit_key: str, kind: str, entity: str) -> List[str]:
        """Inverse lookup, ordered like ``unit.people``."""
        node = (unit_key, kind, entity)
        if node not in self.graph:
            return []
        linked = {source[2] for source in self.graph.predecessors(node)}
        return [p for p in self.get_unit(unit_key).people if p in linked]

    def people_with_event(self, unit_key: str, event: str) -> List[str]:
        return self._people_linked_to(unit_key, "events", event)

    def people_with_group(self, unit_key: str, group: str) -> List[str]:
        return self._people_linked_to(unit_key, "groups", group)

    def places_reachable_from_event(self, unit_key: str, event: str) -> List[str]:
        """Places where the participants of an event operated."""
        return unique(
            place
            for person in self.people_with_event(unit_key, event)
            for place in self.places_of(unit_key, person)
        )

    def facts_of(self, unit_key: str, kind: str, entity: str, category: str) -> List[str]:
        """The named fact list of an entity's detail record, or empty."""
        record = self.get_unit(unit_key).details(kind).get(entity) or {}
        return list(record.get(category, []))

    # ==================== Distractor Pools ====================

    def unit_pool(self, unit_key: str, kind: str) -> List[str]:
        """Entities of a kind listed in one unit."""
        return list(self.get_unit(unit_key).entities(kind))

    def unit_fact_pool(self, unit_key: str, kind: str, category: str) -> List[str]:
        """Every fact of a category across all entities of a unit."""
        unit = self.get_unit(unit_key)
        return unique(
            fact
            for entity in unit.entities(kind)
            for fact in (unit.details(kind).get(entity) or {}).get(category, [])
        )

    def cross_unit_pool(self, unit_key: str, kind: str) -> List[str]:
        """Entity names from other units that the unit itself does not list."""
        own = set(self.unit_pool(unit_key, kind))
        return [e for e in self.all_entities.get(kind, []) if e not in own]

    def cross_unit_fact_pool(self, unit_key: str, kind: str, category: str) -> List[str]:
        """Global facts of a category that never appear in the unit."""
        own = set(self.unit_fact_pool(unit_key, kind, category))
        return [f for f in self.all_facts.get((kind, category), []) if f not in own]

    # ==================== Statistics ====================

    def global_indices(self) -> dict:
        """Derived pools in the stored shape (allPeople, allEventItems, ...)."""
        indices = {
            "allPeople": list(self.all_entities["people"]),
            "allEvents": list(self.all_entities["events"]),
            "allPlaces": list(self.all_entities["places"]),
            "allGroups": list(self.all_entities["groups"]),
            "allInstitutions": list(self.all_entities["institutions"]),
        }
        for (kind, cat), (index, name) in _POOL_NAMES.items():
            indices.setdefault(index, {})[name] = list(self.all_facts[(kind, cat)])
        return indices

    def get_stats(self) -> dict:
        """Get knowledge base statistics."""
        return {
            "total_units": len(self.units),
            "total_edges": self.graph.number_of_edges(),
            "units": {
                key: {kind: len(unit.entities(kind)) for kind in ENTITY_KINDS}
                for key, unit in self.units.items()
            },
        }
