"""
Email thread, participant and message models.

Participants live in their own table so "thread shares a participant with
these emails" is an indexed IN sub-select on SQLite and Postgres alike.
lead_id / client_id are attach-once: once set they are authoritative.
"""
import uuid

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lead_engine.database import Base


class Thread(Base):
    __tablename__ = 'threads'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    subject = Column(Text, nullable=True)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=True)
    client_id = Column(Text, ForeignKey('clients.id'), nullable=True)
    message_count = Column(Integer, default=0)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    participants = relationship(
        'ThreadParticipant', cascade='all, delete-orphan', lazy='selectin',
        order_by='ThreadParticipant.id',
    )

    __table_args__ = (
        Index('ix_threads_lead_id', 'lead_id'),
        Index('ix_threads_last_message_at', 'last_message_at'),
    )

    @property
    def participant_emails(self):
        return [p.email for p in self.participants]

    @participant_emails.setter
    def participant_emails(self, emails):
        seen = []
        for email in emails or []:
            norm = (email or '').strip().lower()
            if norm and norm not in seen:
                seen.append(norm)
        self.participants = [ThreadParticipant(email=e) for e in seen]


class ThreadParticipant(Base):
    __tablename__ = 'thread_participants'

    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(Text, ForeignKey('threads.id'), nullable=False)
    email = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint('thread_id', 'email', name='uq_thread_participant'),
        Index('ix_thread_participants_email', 'email'),
    )


class Message(Base):
    __tablename__ = 'messages'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    thread_id = Column(Text, ForeignKey('threads.id'), nullable=False)
    from_email = Column(Text, nullable=False)
    from_name = Column(Text, nullable=True)
    subject = Column(Text, nullable=True)
    snippet = Column(Text, nullable=True)
    body_text = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=False)
    is_inbound = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_messages_thread_sent', 'thread_id', 'sent_at'),
    )
