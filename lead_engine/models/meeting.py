"""
Meeting and attendee models. transcript_text holds transcript or notes content.
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lead_engine.database import Base


class Meeting(Base):
    __tablename__ = 'meetings'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(Text, nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, default='SCHEDULED')
    transcript_text = Column(Text, nullable=True)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    attendees = relationship(
        'MeetingAttendee', cascade='all, delete-orphan', lazy='selectin',
        order_by='MeetingAttendee.id',
    )

    __table_args__ = (
        Index('ix_meetings_lead_id', 'lead_id'),
    )

    @property
    def attendee_emails(self):
        return [a.email for a in self.attendees]

    @attendee_emails.setter
    def attendee_emails(self, emails):
        seen = []
        for email in emails or []:
            norm = (email or '').strip().lower()
            if norm and norm not in seen:
                seen.append(norm)
        self.attendees = [MeetingAttendee(email=e) for e in seen]


class MeetingAttendee(Base):
    __tablename__ = 'meeting_attendees'

    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_id = Column(Text, ForeignKey('meetings.id'), nullable=False)
    email = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint('meeting_id', 'email', name='uq_meeting_attendee'),
        Index('ix_meeting_attendees_email', 'email'),
    )
