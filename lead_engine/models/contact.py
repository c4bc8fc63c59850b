"""
Contact model plus its many-to-many links to leads and clients.
"""
import uuid

from sqlalchemy import Column, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from lead_engine.database import Base


class Contact(Base):
    __tablename__ = 'contacts'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(Text, default='')
    email = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_contacts_email', 'email'),
    )


class ContactLead(Base):
    __tablename__ = 'contact_leads'

    contact_id = Column(Text, ForeignKey('contacts.id'), primary_key=True)
    lead_id = Column(Text, ForeignKey('leads.id'), primary_key=True)


class ContactClient(Base):
    __tablename__ = 'contact_clients'

    contact_id = Column(Text, ForeignKey('contacts.id'), primary_key=True)
    client_id = Column(Text, ForeignKey('clients.id'), primary_key=True)
