"""
Client, Project and Proposal models (the slice the context assembler reads).
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from lead_engine.database import Base


class Client(Base):
    __tablename__ = 'clients'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class Project(Base):
    __tablename__ = 'projects'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(Text, ForeignKey('clients.id'), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(Text, default='ACTIVE')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_projects_client_id', 'client_id'),
    )


class Proposal(Base):
    __tablename__ = 'proposals'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=False)
    title = Column(Text, nullable=False)
    status = Column(Text, default='DRAFT')
    total_amount = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_proposals_lead_id', 'lead_id'),
    )
