"""Query operations for the backing store.

Each operation is a plain immutable value naming a collection, equality
predicates and (for selects) a cardinality flag. Backends interpret these
values; nothing here talks to storage.

Example:
    >>> Select(Collection.USERS, where=eq(email="john@email.com"), single=True)
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

Predicates = Tuple[Tuple[str, Any], ...]


class Collection(str, Enum):
    """Collections (tables) exposed by the backend."""
    USERS = "users"
    APPOINTMENTS = "appointments"
    DOCTOR_SCHEDULES = "doctor_schedules"


def eq(**fields) -> Predicates:
    """Build equality predicates from keyword arguments, in argument order."""
    return tuple(fields.items())


@dataclass(frozen=True)
class Select:
    """select * from <collection> where f1 = v1 and ... [single]."""
    collection: Collection
    where: Predicates = ()
    single: bool = False
    order_by: Optional[str] = None
    descending: bool = False


@dataclass(frozen=True)
class Insert:
    """insert <record> into <collection>, returning the stored row."""
    collection: Collection
    record: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Update:
    """update <collection> set <patch> where ..., returning the first updated row."""
    collection: Collection
    patch: Dict[str, Any] = field(default_factory=dict)
    where: Predicates = ()


@dataclass(frozen=True)
class Delete:
    """delete from <collection> where ..."""
    collection: Collection
    where: Predicates = ()


Operation = Union[Select, Insert, Update, Delete]


def matches(record: Dict[str, Any], where: Predicates) -> bool:
    """True when every predicate holds by exact equality."""
    return all(record.get(name) == value for name, value in where)
