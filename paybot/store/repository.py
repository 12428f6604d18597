"""High-level database operations."""

from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from paybot.errors import ContactDuplicateError

from .db import Contact


class ContactRepository:
    """CRUD utilities for contacts wrapping SQLModel sessions.

    Names are stored exactly as given; normalization is the caller's job.
    """

    def __init__(self, session) -> None:
        self.session = session

    async def create(self, name: str, address: str) -> Contact:
        contact = Contact(name=name, address=address)
        self.session.add(contact)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ContactDuplicateError(name) from exc
        await self.session.refresh(contact)
        return contact

    async def get(self, contact_id: int) -> Optional[Contact]:
        result = await self.session.execute(
            select(Contact).where(Contact.id == contact_id)
        )
        return result.scalar_one_or_none()

    async def find_by_name(self, name: str) -> Optional[Contact]:
        result = await self.session.execute(select(Contact).where(Contact.name == name))
        return result.scalar_one_or_none()

    async def find_by_name_insensitive(self, name: str) -> Optional[Contact]:
        """Whole-string, case-insensitive match (not a substring search)."""
        result = await self.session.execute(
            select(Contact)
            .where(func.lower(Contact.name) == name.lower())
            .order_by(Contact.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_all(self) -> List[Contact]:
        result = await self.session.execute(select(Contact).order_by(Contact.name))
        return list(result.scalars().all())

    async def update(self, contact_id: int, fields: Dict[str, str]) -> Optional[Contact]:
        contact = await self.get(contact_id)
        if contact is None:
            return None

        for key, value in fields.items():
            setattr(contact, key, value)
        name = contact.name

        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ContactDuplicateError(name) from exc
        await self.session.refresh(contact)
        return contact

    async def delete(self, contact_id: int) -> bool:
        result = await self.session.execute(
            Contact.__table__.delete().where(Contact.id == contact_id)
        )
        await self.session.commit()
        return result.rowcount > 0


__all__ = ["ContactRepository"]
