"""
Suggestion model: an AI-proposed action awaiting human review.

action_type is the discriminator for suggested_content. Link suggestions
(LINK_EMAIL_THREAD, LINK_TRANSCRIPT) carry a dedup_key of
"lead_id|action_type|target_id"; the unique constraint enforces at most one
live link suggestion per target. Soft delete clears dedup_key.
"""
import uuid

from sqlalchemy import Column, Float, Text, DateTime, JSON, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func

from lead_engine.database import Base


LINK_EMAIL_THREAD = 'LINK_EMAIL_THREAD'
LINK_TRANSCRIPT = 'LINK_TRANSCRIPT'
LINK_ACTION_TYPES = (LINK_EMAIL_THREAD, LINK_TRANSCRIPT)


def make_dedup_key(lead_id, action_type, target_id):
    return f'{lead_id}|{action_type}|{target_id}'


class Suggestion(Base):
    __tablename__ = 'suggestions'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=True)
    thread_id = Column(Text, ForeignKey('threads.id'), nullable=True)
    meeting_id = Column(Text, ForeignKey('meetings.id'), nullable=True)
    type = Column(Text, nullable=False)                  # TASK / REPLY
    status = Column(Text, nullable=False, default='PENDING')
    confidence = Column(Float, nullable=True)
    reasoning = Column(Text, nullable=True)
    action_type = Column(Text, nullable=True)
    suggested_content = Column(JSON, default=dict)
    dedup_key = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('dedup_key', name='uq_suggestion_dedup_key'),
        Index('ix_suggestions_lead_id', 'lead_id'),
    )

