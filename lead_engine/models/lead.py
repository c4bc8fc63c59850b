"""
Lead model: a prospective client and its AI intelligence fields.

Scoring fields (overall_score, priority_tier, signals, predicted_close_probability,
last_scored_at) are written by the scoring service; last_suggested_at by the
suggestion generator. Rows are soft-deleted via deleted_at.
"""
import uuid

from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime, JSON, Index
from sqlalchemy.sql import func

from lead_engine.database import Base


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    contact_name = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=True)
    company_name = Column(Text, nullable=True)
    company_website = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='NEW')
    source_type = Column(Text, nullable=True)
    source_detail = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    estimated_value = Column(Integer, nullable=True)

    # ── Intelligence ─────────────────────────────────────────────────────
    overall_score = Column(Integer, nullable=True)       # 0-100
    priority_tier = Column(Text, nullable=True)          # hot / warm / cold
    signals = Column(JSON, default=list)                 # [{type, weight, detail}]
    predicted_close_probability = Column(Float, nullable=True)
    last_scored_at = Column(DateTime(timezone=True), nullable=True)
    last_suggested_at = Column(DateTime(timezone=True), nullable=True)
    last_contact_at = Column(DateTime(timezone=True), nullable=True)
    awaiting_reply = Column(Boolean, default=False)

    # ── Conversion ───────────────────────────────────────────────────────
    converted_at = Column(DateTime(timezone=True), nullable=True)
    converted_to_client_id = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_leads_contact_email', 'contact_email'),
    )
