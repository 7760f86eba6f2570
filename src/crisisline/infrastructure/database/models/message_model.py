"""
Message Database Model

SQLAlchemy ORM model for SMS message persistence.

PRIVACY: The body column holds crisis disclosures. Access must be
restricted to the messaging service role.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crisisline.domain.enums import MessageDirection, MessageStatus
from crisisline.domain.models.message import Message
from crisisline.infrastructure.database.connection import Base


class MessageModel(Base):
    """
    Messages table ORM model.

    Table: messages
    """

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    counterparty_address: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    local_address: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    crisis_flag: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    external_message_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, unique=True, index=True,
        doc="Carrier-assigned id used by status callbacks",
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    escalation_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @classmethod
    def from_domain(cls, message: Message) -> "MessageModel":
        return cls(
            id=message.id,
            direction=message.direction.value,
            counterparty_address=message.counterparty_address,
            local_address=message.local_address,
            body=message.body,
            crisis_flag=message.crisis_flag,
            status=message.status.value,
            external_message_id=message.external_message_id,
            failure_reason=message.failure_reason,
            escalation_id=message.escalation_id,
            created_at=message.created_at,
            updated_at=message.updated_at,
            delivered_at=message.delivered_at,
        )

    def to_domain(self) -> Message:
        return Message(
            id=self.id,
            direction=MessageDirection(self.direction),
            counterparty_address=self.counterparty_address,
            local_address=self.local_address,
            body=self.body,
            crisis_flag=self.crisis_flag,
            status=MessageStatus(self.status),
            external_message_id=self.external_message_id,
            failure_reason=self.failure_reason,
            escalation_id=self.escalation_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            delivered_at=self.delivered_at,
        )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, status={self.status})>"
