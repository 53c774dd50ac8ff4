"""
Entity repositories - the persistence collaborator contract.

Every repository stores whole entity instances and enforces optimistic
locking: a write carries the version it was read at, and is rejected with
OptimisticLockConflict when the stored version has moved on. Stored and
returned instances are deep copies, so callers never share state with the
store.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from metacrud.core.errors import OptimisticLockConflict, PreconditionError
from metacrud.core.ir import Entity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


# =============================================================================
# Contract
# =============================================================================


@runtime_checkable
class EntityRepository(Protocol[T]):
    """Synchronous persistence collaborator for one entity type."""

    entity_type: str

    def save(self, instance: T) -> T:
        """Insert or update; returns the stored copy with its new version."""
        ...

    def delete(self, instance: T) -> None: ...

    def find_by_id(self, entity_id: int) -> T | None: ...

    def find_by_field(self, field_name: str, value: Any) -> list[T]:
        """Instances whose attribute equals ``value``; [] for None, never raises."""
        ...

    def list_all(self) -> list[T]: ...


def field_matches(actual: Any, expected: Any) -> bool:
    """
    Compare an attribute value with a query value.

    Entities compare by identity, collections match when they contain
    the expected value.
    """
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(field_matches(item, expected) for item in actual)
    if isinstance(actual, Entity) or isinstance(expected, Entity):
        actual_id = actual.id if isinstance(actual, Entity) else actual
        expected_id = expected.id if isinstance(expected, Entity) else expected
        return actual_id is not None and actual_id == expected_id
    return bool(actual == expected)


# =============================================================================
# In-memory implementation
# =============================================================================


class InMemoryRepository(Generic[T]):
    """
    Dict-backed repository.

    Identities are assigned from a per-repository counter starting at 1.
    A new instance is stored with version 1.
    """

    def __init__(self, model_class: type[T], entity_type: str | None = None) -> None:
        self.model_class = model_class
        self.entity_type = entity_type or model_class.__name__
        self._rows: dict[int, T] = {}
        self._next_id = 1

    def _check_type(self, instance: Any) -> None:
        if not isinstance(instance, self.model_class):
            raise TypeError(
                f"{self.entity_type} repository cannot store {type(instance).__name__}"
            )

    def save(self, instance: T) -> T:
        self._check_type(instance)
        if instance.id is None:
            entity_id = self._next_id
            self._next_id += 1
            stored = instance.model_copy(deep=True, update={"id": entity_id, "version": 1})
            logger.debug("Inserted %s #%s", self.entity_type, entity_id)
        else:
            current = self._rows.get(instance.id)
            if current is None:
                raise OptimisticLockConflict(self.entity_type, instance.id, instance.version, None)
            if current.version != instance.version:
                raise OptimisticLockConflict(
                    self.entity_type, instance.id, instance.version, current.version
                )
            stored = instance.model_copy(deep=True, update={"version": instance.version + 1})
            logger.debug("Updated %s #%s to version %s", self.entity_type, stored.id, stored.version)

        assert stored.id is not None
        self._rows[stored.id] = stored
        return stored.model_copy(deep=True)

    def delete(self, instance: T) -> None:
        self._check_type(instance)
        if instance.id is None:
            raise PreconditionError(f"Cannot delete an unsaved {self.entity_type}")
        current = self._rows.get(instance.id)
        if current is None or current.version != instance.version:
            raise OptimisticLockConflict(
                self.entity_type,
                instance.id,
                instance.version,
                current.version if current else None,
            )
        del self._rows[instance.id]
        logger.debug("Deleted %s #%s", self.entity_type, instance.id)

    def find_by_id(self, entity_id: int) -> T | None:
        row = self._rows.get(entity_id)
        return row.model_copy(deep=True) if row is not None else None

    def find_by_field(self, field_name: str, value: Any) -> list[T]:
        if value is None:
            return []
        if field_name not in self.model_class.model_fields:
            logger.warning("find_by_field on unknown field %s.%s", self.entity_type, field_name)
            return []
        return [
            row.model_copy(deep=True)
            for row in self._rows.values()
            if field_matches(getattr(row, field_name), value)
        ]

    def list_all(self) -> list[T]:
        return [row.model_copy(deep=True) for row in self._rows.values()]

    def count(self) -> int:
        return len(self._rows)
