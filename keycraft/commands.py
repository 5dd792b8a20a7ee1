"""
Command surface consumed by a presentation layer.

Translates JSON-compatible request payloads into engine calls and engine
results back into plain dicts. Holds no business logic of its own.
"""

import logging
from typing import Any, Dict, List, Optional

from .engine import CredentialStore
from .errors import (
    KeycraftError,
    NotFound,
    PersistenceError,
    Unavailable,
    ValidationError,
)
from .models import NewEntryFields

logger = logging.getLogger(__name__)


class BadRequest(KeycraftError):
    """The request envelope itself was malformed."""


class CommandSurface:
    """The list/add/update/delete/reveal boundary over a CredentialStore."""

    def __init__(self, store: CredentialStore):
        self.store = store
        self._handlers = {
            "list": self._handle_list,
            "get_all_keys": self._handle_list,
            "add": self._handle_add,
            "add_key": self._handle_add,
            "update": self._handle_update,
            "update_key": self._handle_update,
            "delete": self._handle_delete,
            "delete_key": self._handle_delete,
            "reveal": self._handle_reveal,
        }

    def list_keys(self) -> List[Dict[str, Any]]:
        return [view.to_dict() for view in self.store.list()]

    def add_key(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.store.add(NewEntryFields.from_dict(payload)).to_dict()

    def update_key(self, entry_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.store.update(entry_id, NewEntryFields.from_dict(payload)).to_dict()

    def delete_key(self, entry_id: str) -> None:
        self.store.delete(entry_id)

    def reveal_key(self, entry_id: str) -> str:
        """Raw secret for an explicit copy action. Never part of a listing."""
        return self.store.reveal(entry_id)

    def dispatch(self, request: Any) -> Dict[str, Any]:
        """
        Handle one request envelope and return a response envelope.

        Request: {"command": str, "id": str?, "payload": dict?}
        Response: {"ok": true, "result": ...} or {"ok": false, "error": {...}}
        """
        try:
            if not isinstance(request, dict):
                raise BadRequest("request must be an object")
            command = request.get("command")
            handler = self._handlers.get(command) if isinstance(command, str) else None
            if handler is None:
                raise BadRequest(f"unknown command: {command!r}")
            return {"ok": True, "result": handler(request)}
        except KeycraftError as e:
            return {"ok": False, "error": error_to_dict(e)}

    def _handle_list(self, request: Dict[str, Any]):
        return self.list_keys()

    def _handle_add(self, request: Dict[str, Any]):
        return self.add_key(_payload(request))

    def _handle_update(self, request: Dict[str, Any]):
        payload = _payload(request)
        return self.update_key(_entry_id(request, payload), payload)

    def _handle_delete(self, request: Dict[str, Any]):
        self.delete_key(_entry_id(request))
        return None

    def _handle_reveal(self, request: Dict[str, Any]):
        return self.reveal_key(_entry_id(request))


def _payload(request: Dict[str, Any]) -> Dict[str, Any]:
    payload = request.get("payload")
    if not isinstance(payload, dict):
        raise BadRequest("'payload' must be an object")
    return payload


def _entry_id(request: Dict[str, Any], payload: Optional[Dict[str, Any]] = None) -> str:
    entry_id = request.get("id")
    if entry_id is None and payload is not None:
        entry_id = payload.get("id")
    if not isinstance(entry_id, str) or not entry_id:
        raise BadRequest("'id' must be a non-empty string")
    return entry_id


def error_to_dict(error: KeycraftError) -> Dict[str, Any]:
    """Serializable description of an engine error."""
    if isinstance(error, ValidationError):
        return {"kind": "validation", "field": error.field, "message": error.message}
    if isinstance(error, NotFound):
        return {"kind": "not_found", "id": error.id, "message": str(error)}
    if isinstance(error, PersistenceError):
        logger.debug(f"Reporting persistence failure: {error.cause!r}")
        return {"kind": "persistence", "message": str(error)}
    if isinstance(error, Unavailable):
        return {"kind": "unavailable", "message": str(error)}
    if isinstance(error, BadRequest):
        return {"kind": "bad_request", "message": str(error)}
    return {"kind": "error", "message": str(error)}
