"""
Data model for vault entries.
"""

import datetime
from dataclasses import dataclass, asdict, fields
from typing import Dict, Optional, Any

from .errors import ValidationError

# Fields a UI may echo back from a listed entry; they are never writable.
READ_ONLY_FIELDS = ("id", "masked_value", "created_at", "updated_at")


def _parse_timestamp(value: str) -> datetime.datetime:
    stamp = datetime.datetime.fromisoformat(value)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=datetime.timezone.utc)
    return stamp


@dataclass(frozen=True)
class NewEntryFields:
    """User-supplied fields for creating or updating an entry."""
    name: str = ""
    vendor: str = ""
    secret_value: str = ""
    base_url: Optional[str] = None
    doc_url: Optional[str] = None
    code_snippets: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NewEntryFields':
        """
        Build request fields from a decoded payload.

        Unknown keys and read-only keys are ignored. Missing required keys
        become empty strings and are rejected later by validation.
        """
        if not isinstance(data, dict):
            raise ValidationError("payload", "payload must be an object")
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data or data[f.name] is None:
                continue
            value = data[f.name]
            if not isinstance(value, str):
                raise ValidationError(f.name, f"'{f.name}' must be a string")
            values[f.name] = value
        return cls(**values)


@dataclass(frozen=True)
class CredentialEntry:
    """A single stored API key, including its raw secret."""
    id: str
    name: str
    vendor: str
    secret_value: str
    created_at: datetime.datetime
    updated_at: datetime.datetime
    base_url: Optional[str] = None
    doc_url: Optional[str] = None
    code_snippets: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CredentialEntry':
        """Create from dictionary. Raises KeyError/TypeError/ValueError on bad input."""
        values = dict(data)
        values["created_at"] = _parse_timestamp(values["created_at"])
        values["updated_at"] = _parse_timestamp(values["updated_at"])
        return cls(**values)


@dataclass(frozen=True)
class MaskedView:
    """Display-safe projection of an entry. Carries no raw secret."""
    id: str
    name: str
    vendor: str
    masked_value: str
    created_at: datetime.datetime
    updated_at: datetime.datetime
    base_url: Optional[str] = None
    doc_url: Optional[str] = None
    code_snippets: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: CredentialEntry, masked_value: str) -> 'MaskedView':
        return cls(
            id=entry.id,
            name=entry.name,
            vendor=entry.vendor,
            masked_value=masked_value,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            base_url=entry.base_url,
            doc_url=entry.doc_url,
            code_snippets=entry.code_snippets,
            tags=entry.tags,
            notes=entry.notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data
