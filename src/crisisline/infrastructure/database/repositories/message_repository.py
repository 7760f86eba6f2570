"""
SQL Message Repository

Message persistence backed by PostgreSQL. Each call runs in its own
session; callers serialize updates per message with KeyedLock.
"""

from typing import Optional, Sequence

from sqlalchemy import select

from crisisline.domain.models.message import Message
from crisisline.infrastructure.database.connection import DatabaseManager
from crisisline.infrastructure.database.models.message_model import MessageModel
from crisisline.infrastructure.storage.base import MessageRepository


class SqlMessageRepository(MessageRepository):
    """
    MessageRepository over the messages table.

    Usage:
        repo = SqlMessageRepository(db)
        await repo.add(message)
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def add(self, message: Message) -> Message:
        async with self._db.session() as session:
            session.add(MessageModel.from_domain(message))
        return message

    async def save(self, message: Message) -> Message:
        async with self._db.session() as session:
            await session.merge(MessageModel.from_domain(message))
        return message

    async def get(self, message_id: str) -> Optional[Message]:
        async with self._db.session() as session:
            row = await session.get(MessageModel, message_id)
            return row.to_domain() if row else None

    async def get_by_external_id(self, external_message_id: str) -> Optional[Message]:
        async with self._db.session() as session:
            result = await session.execute(
                select(MessageModel).where(
                    MessageModel.external_message_id == external_message_id
                )
            )
            row = result.scalar_one_or_none()
            return row.to_domain() if row else None

    async def list_by_address(self, address: str) -> Sequence[Message]:
        async with self._db.session() as session:
            result = await session.execute(
                select(MessageModel)
                .where(MessageModel.counterparty_address == address)
                .order_by(MessageModel.created_at)
            )
            return [row.to_domain() for row in result.scalars().all()]
