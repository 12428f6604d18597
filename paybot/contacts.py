"""Contact directory: validated, uniquely named chain addresses."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from paybot.errors import (
    ContactDuplicateError,
    InvalidAddressFormatError,
    InvalidContactError,
)
from paybot.store.db import Contact, Database
from paybot.store.repository import ContactRepository
from paybot.utils.addresses import is_valid_address
from paybot.utils.logging import get_logger

logger = get_logger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class ContactRecord:
    """Detached copy of a stored contact."""

    id: int
    name: str
    address: str

    @classmethod
    def from_row(cls, row: Contact) -> "ContactRecord":
        return cls(id=row.id, name=row.name, address=row.address)

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "address": self.address}


def normalize_stored_name(name: str) -> str:
    """Key applied when writing: lowercase and trimmed."""
    return (name or "").strip().lower()


def normalize_lookup_name(text: str) -> str:
    """Key applied when reading: punctuation removed, lowercase, trimmed."""
    return _NON_WORD.sub("", (text or "").lower()).strip()


def validate_address(address: str) -> str:
    candidate = (address or "").strip()
    if not is_valid_address(candidate):
        raise InvalidAddressFormatError(address)
    return candidate


class ContactDirectory:
    """Name -> address book backed by :class:`ContactRepository`.

    Writes lowercase and trim the name; lookups additionally strip punctuation
    so "Alice!" typed in a command still finds `alice`. A stored name that keeps
    punctuation, such as `o'brien`, is therefore never found by name.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def add(self, name: str, address: str) -> ContactRecord:
        key = normalize_stored_name(name)
        if not key:
            raise InvalidContactError("Name and address are required")
        checked = validate_address(address)

        async with self.db.session() as session:
            repo = ContactRepository(session)
            if await repo.find_by_name(key) is not None:
                raise ContactDuplicateError(key)
            row = await repo.create(key, checked)
            record = ContactRecord.from_row(row)

        logger.info("contact_created", contact_id=record.id, name=record.name)
        return record

    async def find_by_name(self, text: str) -> Optional[ContactRecord]:
        key = normalize_lookup_name(text)
        if not key:
            return None

        async with self.db.session() as session:
            repo = ContactRepository(session)
            row = await repo.find_by_name(key)
            if row is None:
                row = await repo.find_by_name_insensitive(key)
            record = ContactRecord.from_row(row) if row else None

        logger.debug("contact_lookup", query=text, key=key, found=record is not None)
        return record

    async def get(self, contact_id: int) -> Optional[ContactRecord]:
        async with self.db.session() as session:
            row = await ContactRepository(session).get(contact_id)
            return ContactRecord.from_row(row) if row else None

    async def list_all(self) -> List[ContactRecord]:
        async with self.db.session() as session:
            rows = await ContactRepository(session).find_all()
            return [ContactRecord.from_row(row) for row in rows]

    async def update(
        self,
        contact_id: int,
        name: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Optional[ContactRecord]:
        """Change a contact's name and/or address; returns None if it does not exist."""
        fields: Dict[str, str] = {}
        if name is not None:
            key = normalize_stored_name(name)
            if not key:
                raise InvalidContactError("Contact name cannot be empty")
            fields["name"] = key
        if address is not None:
            fields["address"] = validate_address(address)

        async with self.db.session() as session:
            repo = ContactRepository(session)
            if "name" in fields:
                clash = await repo.find_by_name(fields["name"])
                if clash is not None and clash.id != contact_id:
                    raise ContactDuplicateError(fields["name"])
            row = await repo.update(contact_id, fields)
            record = ContactRecord.from_row(row) if row else None

        if record:
            logger.info("contact_updated", contact_id=contact_id, fields=list(fields))
        return record

    async def remove(self, contact_id: int) -> bool:
        async with self.db.session() as session:
            deleted = await ContactRepository(session).delete(contact_id)
        if deleted:
            logger.info("contact_deleted", contact_id=contact_id)
        return deleted


__all__ = [
    "ContactDirectory",
    "ContactRecord",
    "normalize_lookup_name",
    "normalize_stored_name",
    "validate_address",
]
