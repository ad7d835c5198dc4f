"""
Unit Editor - Editing operations on a single unit.

Every removal cascades so the unit never references an entity it does
not list:
    - removing a person drops their connection record
    - removing an event/place/group/institution drops it from every
      person's connections (and deletes its detail record)
"""

from typing import List

from .knowledge_graph import (
    CONNECTION_KINDS,
    DETAIL_KEYS,
    FACT_CATEGORIES,
    Unit,
    empty_connection,
)


class UnitEditor:
    """
    Edits a working copy of a unit.

    The unit passed in is never mutated; call ``build()`` to get the
    edited copy and hand it to ``KnowledgeBase.put_unit``.
    """

    def __init__(self, unit: Unit):
        self.unit = unit.copy()

    def build(self) -> Unit:
        return self.unit.copy()

    def set_title(self, title: str):
        self.unit.title = title.strip()

    # ==================== Entities ====================

    def add_entity(self, kind: str, name: str) -> bool:
        """
        Append an entity. Blank and duplicate names are ignored.

        Returns:
            True if the entity was added
        """
        name = (name or "").strip()
        entities = self.unit.entities(kind)
        if not name or name in entities:
            return False

        entities.append(name)
        if kind == "people":
            self.unit.connections[name] = empty_connection()
        elif kind in DETAIL_KEYS:
            self.unit.details(kind)[name] = {cat: [] for cat in FACT_CATEGORIES[kind]}
        return True

    def remove_entity(self, kind: str, name: str) -> bool:
        """Remove an entity and every reference to it."""
        entities = self.unit.entities(kind)
        if name not in entities:
            return False

        entities.remove(name)
        if kind == "people":
            self.unit.connections.pop(name, None)
        else:
            for conn in self.unit.connections.values():
                if kind in conn:
                    conn[kind] = [t for t in conn[kind] if t != name]
            if kind in DETAIL_KEYS:
                self.unit.details(kind).pop(name, None)
        return True

    def add_person(self, name: str) -> bool:
        return self.add_entity("people", name)

    def remove_person(self, name: str) -> bool:
        return self.remove_entity("people", name)

    def add_event(self, name: str) -> bool:
        return self.add_entity("events", name)

    def remove_event(self, name: str) -> bool:
        return self.remove_entity("events", name)

    def add_place(self, name: str) -> bool:
        return self.add_entity("places", name)

    def remove_place(self, name: str) -> bool:
        return self.remove_entity("places", name)

    def add_group(self, name: str) -> bool:
        return self.add_entity("groups", name)

    def remove_group(self, name: str) -> bool:
        return self.remove_entity("groups", name)

    def add_institution(self, name: str) -> bool:
        return self.add_entity("institutions", name)

    def remove_institution(self, name: str) -> bool:
        return self.remove_entity("institutions", name)

    # ==================== Connections ====================

    def toggle_connection(self, person: str, kind: str, target: str) -> bool:
        """
        Link or unlink a person and a target entity.

        Returns:
            True if the link now exists, False if it was removed
        """
        if kind not in CONNECTION_KINDS:
            raise ValueError(f"People cannot be connected to {kind}")
        if person not in self.unit.people:
            raise ValueError(f"Unknown person '{person}'")
        if target not in self.unit.entities(kind):
            raise ValueError(f"Unknown {kind} '{target}'")

        conn = self.unit.connections.setdefault(person, empty_connection())
        linked = conn.setdefault(kind, [])
        if target in linked:
            linked.remove(target)
            return False
        linked.append(target)
        return True

    # ==================== Facts ====================

    def _record(self, kind: str, entity: str) -> dict:
        if kind not in DETAIL_KEYS:
            raise ValueError(f"{kind} have no detail records")
        if entity not in self.unit.entities(kind):
            raise ValueError(f"Unknown {kind} '{entity}'")
        record = self.unit.details(kind).setdefault(entity, {})
        for cat in FACT_CATEGORIES[kind]:
            record.setdefault(cat, [])
        return record

    def add_fact(self, kind: str, entity: str, category: str, text: str) -> bool:
        """Append a fact to an entity's detail record; blank text is ignored."""
        record = self._record(kind, entity)
        if category not in FACT_CATEGORIES[kind]:
            raise ValueError(f"Unknown {kind} category '{category}'")
        text = (text or "").strip()
        if not text:
            return False
        record[category].append(text)
        return True

    def remove_fact(self, kind: str, entity: str, category: str, index: int) -> str:
        """Remove a fact by position and return it."""
        record = self._record(kind, entity)
        facts: List[str] = record.get(category, [])
        if not 0 <= index < len(facts):
            raise IndexError(f"No {category} #{index} for '{entity}'")
        return facts.pop(index)

