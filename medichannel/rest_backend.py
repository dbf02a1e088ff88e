"""Hosted backend interpreter (PostgREST / Supabase REST dialect).

Translates query operations into REST calls:

    Select  -> GET    /rest/v1/<table>?field=eq.value[&order=col.desc]
    Insert  -> POST   /rest/v1/<table>            (Prefer: return=representation)
    Update  -> PATCH  /rest/v1/<table>?field=eq.value
    Delete  -> DELETE /rest/v1/<table>?field=eq.value

Single-row selects ask for ``application/vnd.pgrst.object+json``; the server
answers 406 when no row matches, which is mapped to None. A 406 for more than
one matching row raises PersistenceError. A 409 on insert is a
unique-constraint rejection and is mapped to None, mirroring the mock store.
Any other failure raises PersistenceError.

Expected unique constraints: ``users(email)`` and
``doctor_schedules(doctor_id, schedule_date)``.
"""
import re
from typing import Any, Dict, Optional

import requests

from medichannel import config
from medichannel.circuit_breaker import CircuitBreaker
from medichannel.errors import PersistenceError
from medichannel.http_client import create_http_session
from medichannel.logging_config import get_logger
from medichannel.query import (
    Collection,
    Delete,
    Insert,
    Operation,
    Predicates,
    Select,
    Update,
)

logger = get_logger(__name__)

SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"
ROW_COUNT_PATTERN = re.compile(r"contains (\d+) rows")

# Embedded joins for appointment reads (foreign keys on patient_id/doctor_id)
APPOINTMENT_SELECT = (
    "*,"
    "patient:users!appointments_patient_id_fkey(*),"
    "doctor:users!appointments_doctor_id_fkey(*)"
)


def encode_value(value: Any) -> str:
    """Render a predicate value in PostgREST filter syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if hasattr(value, "value"):  # str enums
        value = value.value
    return f"eq.{value}"


class RestBackend:
    """
    Backend client for a hosted PostgREST endpoint.

    Pattern: one pooled session with retries, guarded by a circuit breaker.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        breaker: Optional[CircuitBreaker] = None
    ):
        """
        Initialize backend client.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            api_key: Anonymous API key
            session: Pre-built HTTP session (default: create_http_session())
            breaker: Circuit breaker (default: tracks requests exceptions)
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or create_http_session()
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=config.CIRCUIT_FAILURE_THRESHOLD,
            timeout=config.CIRCUIT_TIMEOUT_SECONDS,
            tracked_exceptions=(requests.exceptions.RequestException,),
            name="rest_backend",
        )
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def execute(self, operation: Operation):
        """
        Run a query operation against the hosted backend.

        Raises:
            PersistenceError: On transport failures or unexpected responses
            BackendUnavailableError: If the circuit breaker is open
        """
        if isinstance(operation, Select):
            return self._select(operation)
        if isinstance(operation, Insert):
            return self._insert(operation)
        if isinstance(operation, Update):
            return self._update(operation)
        if isinstance(operation, Delete):
            return self._delete(operation)
        raise TypeError(f"Unsupported operation: {operation!r}")

    def _select(self, operation: Select):
        params = self._filters(operation.where)
        params["select"] = (
            APPOINTMENT_SELECT
            if operation.collection == Collection.APPOINTMENTS
            else "*"
        )
        if operation.order_by:
            direction = "desc" if operation.descending else "asc"
            params["order"] = f"{operation.order_by}.{direction}"

        headers = dict(self.headers)
        if operation.single:
            headers["Accept"] = SINGLE_OBJECT_MEDIA_TYPE

        response = self._send("get", operation.collection, params=params, headers=headers)

        if operation.single and response.status_code == 406 and not self._several_rows(response):
            # PGRST116 with zero rows; several rows fall through as an error
            return None
        self._raise_for_error(response, operation)
        return response.json()

    def _insert(self, operation: Insert):
        headers = dict(self.headers, Prefer="return=representation")
        response = self._send(
            "post", operation.collection, json=[operation.record], headers=headers
        )
        if response.status_code == 409:
            logger.warning("backend_insert_rejected", collection=operation.collection.value)
            return None
        self._raise_for_error(response, operation)
        rows = response.json()
        return rows[0] if rows else None

    def _update(self, operation: Update):
        headers = dict(self.headers, Prefer="return=representation")
        response = self._send(
            "patch",
            operation.collection,
            params=self._filters(operation.where),
            json=operation.patch,
            headers=headers,
        )
        self._raise_for_error(response, operation)
        rows = response.json()
        return rows[0] if rows else None

    def _delete(self, operation: Delete) -> bool:
        response = self._send(
            "delete",
            operation.collection,
            params=self._filters(operation.where),
            headers=self.headers,
        )
        self._raise_for_error(response, operation)
        return True

    @staticmethod
    def _filters(where: Predicates) -> Dict[str, str]:
        return {field: encode_value(value) for field, value in where}

    def _send(self, method: str, collection: Collection, **kwargs) -> requests.Response:
        url = f"{self.base_url}/rest/v1/{collection.value}"
        send = getattr(self.session, method)
        try:
            return self.breaker.call(send, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(
                "backend_request_failed",
                method=method.upper(),
                collection=collection.value,
                error=str(e),
            )
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise PersistenceError(f"Backend request failed: {e}", status_code=status) from e

    @staticmethod
    def _several_rows(response: requests.Response) -> bool:
        """True when a single-object request matched more than one row."""
        try:
            body = response.json()
        except ValueError:
            return False
        details = body.get("details") if isinstance(body, dict) else None
        match = ROW_COUNT_PATTERN.search(details) if isinstance(details, str) else None
        return bool(match) and int(match.group(1)) > 1

    @staticmethod
    def _raise_for_error(response: requests.Response, operation: Operation):
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("message", response.text) if isinstance(body, dict) else response.text
            logger.error(
                "backend_error_response",
                collection=operation.collection.value,
                status=response.status_code,
                detail=detail,
            )
            raise PersistenceError(
                f"Backend returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )
