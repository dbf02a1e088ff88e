"""In-memory table store used when no hosted backend is configured.

Simulates the filtered-query surface of the real backend for the three
collections (users, appointments, doctor_schedules) so the rest of the
service does not care which one it talks to.

Every operation is synchronous and total: absence is None or an empty list,
never an exception. Rejections (a second active booking for the same slot, a
duplicate email or doctor-date schedule) are reported as None from insert,
the way a unique constraint would refuse the row.

Important: delete is a stub. Appointments are cancelled by a status change,
never removed.
"""
import copy
import threading
import uuid
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from medichannel import config
from medichannel.credentials import hash_password
from medichannel.logging_config import get_logger
from medichannel.query import (
    Collection,
    Delete,
    Insert,
    Operation,
    Select,
    Update,
    matches,
)

logger = get_logger(__name__)

Record = Dict[str, Any]

INACTIVE_STATUSES = ("cancelled",)


def utc_now() -> str:
    """Current UTC timestamp, ISO formatted."""
    return datetime.now(UTC).isoformat()


def demo_users(password_hash: str) -> List[Record]:
    """Seed accounts for demo mode. Every account shares the demo password."""
    created_at = utc_now()
    return [
        {
            "id": "11111111-1111-1111-1111-111111111111",
            "name": "Dr. Samantha Perera",
            "email": "dr.perera@hospital.lk",
            "password_hash": password_hash,
            "role": "doctor",
            "specialization": "Cardiology",
            "hospital": "National Hospital of Sri Lanka",
            "consultation_fee": 2500,
            "experience": 15,
            "rating": 4.8,
            "created_at": created_at,
        },
        {
            "id": "22222222-2222-2222-2222-222222222222",
            "name": "Dr. Rohith Fernando",
            "email": "dr.fernando@hospital.lk",
            "password_hash": password_hash,
            "role": "doctor",
            "specialization": "Neurology",
            "hospital": "Colombo General Hospital",
            "consultation_fee": 3000,
            "experience": 20,
            "rating": 4.9,
            "created_at": created_at,
        },
        {
            "id": "55555555-5555-5555-5555-555555555555",
            "name": "John Silva",
            "email": "john@email.com",
            "password_hash": password_hash,
            "role": "patient",
            "phone": "+94771234567",
            "date_of_birth": "1990-05-15",
            "address": "Colombo 03, Sri Lanka",
            "created_at": created_at,
        },
        {
            "id": "77777777-7777-7777-7777-777777777777",
            "name": "Admin User",
            "email": "admin@hospital.lk",
            "password_hash": password_hash,
            "role": "admin",
            "hospital": "National Hospital of Sri Lanka",
            "created_at": created_at,
        },
    ]


class MockStore:
    """
    Thread-safe in-memory store for the three collections.

    Pattern: explicit object injected into the data-access layer, with
    construction and reset() as the only lifecycle operations. No module-level
    instance exists.
    """

    def __init__(self, seed: bool = True):
        """
        Initialize store.

        Args:
            seed: Load the demo accounts (password: config.DEMO_PASSWORD)
        """
        self._seed = seed
        self._lock = threading.RLock()
        self._tables: Dict[Collection, List[Record]] = {}
        self.reset()

    def reset(self):
        """Drop all records and reload the seed data (if enabled)."""
        with self._lock:
            self._tables = {collection: [] for collection in Collection}
            if self._seed:
                seed_hash = hash_password(config.DEMO_PASSWORD)
                self._tables[Collection.USERS] = demo_users(seed_hash)
        logger.info("mock_store_reset", seeded=self._seed)

    # Query surface

    def select_all(self, collection: Collection) -> List[Record]:
        """
        Return every record of a collection in insertion order.

        Appointments come back with ``patient`` and ``doctor`` populated by a
        join-by-id against users (password hashes stripped).
        """
        collection = Collection(collection)
        with self._lock:
            rows = copy.deepcopy(self._tables[collection])
            if collection == Collection.APPOINTMENTS:
                for row in rows:
                    row["patient"] = self._join_user(row.get("patient_id"))
                    row["doctor"] = self._join_user(row.get("doctor_id"))
        return rows

    def select_by_field(
        self,
        collection: Collection,
        field: str,
        value: Any,
        single: bool = False
    ):
        """
        Filter select_all() by exact equality on one field.

        Returns:
            First match or None when ``single``; otherwise the list of matches
        """
        return self.execute(Select(Collection(collection), where=((field, value),), single=single))

    def insert(self, collection: Collection, record: Record) -> Optional[Record]:
        """
        Store a new record with a generated id and creation timestamp.

        Returns:
            The stored record, or None when it would break a uniqueness rule
        """
        return self.execute(Insert(Collection(collection), dict(record)))

    def update(
        self,
        collection: Collection,
        patch: Record,
        field: str,
        value: Any
    ) -> Optional[Record]:
        """Shallow-merge ``patch`` into the first record where field == value."""
        return self.execute(Update(Collection(collection), dict(patch), ((field, value),)))

    def delete(self, collection: Collection, field: str, value: Any) -> bool:
        """Stub: reports success, removes nothing."""
        return self.execute(Delete(Collection(collection), ((field, value),)))

    # Interpreter

    def execute(self, operation: Operation):
        """
        Run a query operation against the in-memory tables.

        Ordering hints on Select are ignored: the mock returns insertion order.
        """
        if isinstance(operation, Select):
            return self._run_select(operation)
        if isinstance(operation, Insert):
            return self._run_insert(operation)
        if isinstance(operation, Update):
            return self._run_update(operation)
        if isinstance(operation, Delete):
            logger.debug("mock_delete_ignored", collection=operation.collection.value)
            return True
        raise TypeError(f"Unsupported operation: {operation!r}")

    def _run_select(self, operation: Select):
        rows = [row for row in self.select_all(operation.collection)
                if matches(row, operation.where)]
        if operation.single:
            return rows[0] if rows else None
        return rows

    def _run_insert(self, operation: Insert) -> Optional[Record]:
        record = dict(operation.record)
        with self._lock:
            table = self._tables[operation.collection]

            if operation.collection == Collection.APPOINTMENTS and self._slot_taken(record):
                logger.warning(
                    "mock_insert_rejected",
                    reason="slot_taken",
                    doctor_id=record.get("doctor_id"),
                    date=record.get("appointment_date"),
                    time=record.get("appointment_time"),
                )
                return None

            if operation.collection == Collection.USERS and any(
                row.get("email") == record.get("email") for row in table
            ):
                logger.warning("mock_insert_rejected", reason="duplicate_email")
                return None

            if operation.collection == Collection.DOCTOR_SCHEDULES and any(
                (row.get("doctor_id"), row.get("schedule_date"))
                == (record.get("doctor_id"), record.get("schedule_date"))
                for row in table
            ):
                logger.warning(
                    "mock_insert_rejected",
                    reason="duplicate_schedule",
                    doctor_id=record.get("doctor_id"),
                    date=record.get("schedule_date"),
                )
                return None

            record["id"] = str(uuid.uuid4())
            record["created_at"] = utc_now()
            table.append(record)
            stored = copy.deepcopy(record)

        if operation.collection == Collection.APPOINTMENTS:
            stored["patient"] = self._join_user(stored.get("patient_id"))
            stored["doctor"] = self._join_user(stored.get("doctor_id"))
        return stored

    def _run_update(self, operation: Update) -> Optional[Record]:
        with self._lock:
            table = self._tables[operation.collection]
            target = next((row for row in table if matches(row, operation.where)), None)
            if target is None:
                return None
            target.update(copy.deepcopy(operation.patch))
            target["updated_at"] = utc_now()
            return copy.deepcopy(target)

    def _slot_taken(self, record: Record) -> bool:
        """True if an active appointment already holds the record's slot."""
        if record.get("status") in INACTIVE_STATUSES:
            return False
        key = (record.get("doctor_id"), record.get("appointment_date"), record.get("appointment_time"))
        return any(
            (row.get("doctor_id"), row.get("appointment_date"), row.get("appointment_time")) == key
            and row.get("status") not in INACTIVE_STATUSES
            for row in self._tables[Collection.APPOINTMENTS]
        )

    def _join_user(self, user_id: Optional[str]) -> Optional[Record]:
        with self._lock:
            user = next(
                (row for row in self._tables[Collection.USERS] if row.get("id") == user_id),
                None
            )
            if user is None:
                return None
            joined = copy.deepcopy(user)
        joined.pop("password_hash", None)
        return joined
