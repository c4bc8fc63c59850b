"""
SQLAlchemy implementation of the LeadStore contract.

Bound to one session; the caller owns commit/rollback/close. Write methods
flush but never commit, so a service can group several writes into one
transaction.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import aliased

from lead_engine.engine.store import (
    ClientContactRecord, ClientRecord, ContactLinkRecord, LeadRecord, LeadStore, MeetingRecord,
    MessageRecord, NewSuggestion, ProjectRecord, ProposalRecord,
    SuggestionRecord, ThreadRecord,
)
from lead_engine.errors import NotFoundError, PersistenceFailure
from lead_engine.models.client import Client, Project, Proposal
from lead_engine.models.contact import Contact, ContactClient, ContactLead
from lead_engine.models.lead import Lead
from lead_engine.models.meeting import Meeting, MeetingAttendee
from lead_engine.models.suggestion import Suggestion
from lead_engine.models.thread import Message, Thread, ThreadParticipant

logger = logging.getLogger('services.sql_store')


# ── Row → record converters ──────────────────────────────────────────────────

def _lead_record(row: Lead) -> LeadRecord:
    return LeadRecord(
        id=row.id,
        contact_name=row.contact_name,
        contact_email=row.contact_email,
        company_name=row.company_name,
        company_website=row.company_website,
        status=row.status,
        source_type=row.source_type,
        source_detail=row.source_detail,
        notes=row.notes,
        estimated_value=row.estimated_value,
        overall_score=row.overall_score,
        priority_tier=row.priority_tier,
        signals=list(row.signals or []),
        predicted_close_probability=row.predicted_close_probability,
        last_scored_at=row.last_scored_at,
        last_suggested_at=row.last_suggested_at,
        last_contact_at=row.last_contact_at,
        awaiting_reply=bool(row.awaiting_reply),
        created_at=row.created_at,
    )


def _thread_record(row: Thread) -> ThreadRecord:
    return ThreadRecord(
        id=row.id,
        subject=row.subject,
        message_count=row.message_count or 0,
        last_message_at=row.last_message_at,
        lead_id=row.lead_id,
        client_id=row.client_id,
        participant_emails=row.participant_emails,
    )


def _meeting_record(row: Meeting) -> MeetingRecord:
    return MeetingRecord(
        id=row.id,
        title=row.title,
        starts_at=row.starts_at,
        status=row.status,
        transcript_text=row.transcript_text,
        lead_id=row.lead_id,
        attendee_emails=row.attendee_emails,
    )


def _suggestion_record(row: Suggestion) -> SuggestionRecord:
    return SuggestionRecord(
        id=row.id,
        lead_id=row.lead_id,
        type=row.type,
        status=row.status,
        action_type=row.action_type,
        thread_id=row.thread_id,
        meeting_id=row.meeting_id,
        confidence=row.confidence,
        reasoning=row.reasoning,
        suggested_content=dict(row.suggested_content or {}),
        reviewed_at=row.reviewed_at,
        created_at=row.created_at,
    )


def _domain_filter(column, domains):
    """Coarse LIKE prefilter; callers re-check the exact first-'@' domain."""
    return or_(*[func.lower(column).like(f'%@{d}') for d in domains])


class SqlLeadStore(LeadStore):
    """LeadStore backed by a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def _flush(self, what):
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to write %s", what, exc_info=True)
            raise PersistenceFailure(f"Failed to write {what}: {e}") from e

    def _live_lead(self, lead_id) -> Lead:
        lead = self.session.get(Lead, lead_id)
        if lead is None or lead.deleted_at is not None:
            raise NotFoundError('Lead', lead_id)
        return lead

    # ── Identity matching ────────────────────────────────────────────────

    def find_leads_by_emails(self, emails):
        if not emails:
            return []
        rows = self.session.scalars(
            select(Lead).where(
                func.lower(Lead.contact_email).in_(emails),
                Lead.deleted_at.is_(None),
            )
        ).all()
        return [_lead_record(r) for r in rows]

    def _contact_links(self, *criteria):
        rows = self.session.execute(
            select(ContactLead.lead_id, Contact.id, Contact.name, Contact.email)
            .join(Contact, Contact.id == ContactLead.contact_id)
            .join(Lead, Lead.id == ContactLead.lead_id)
            .where(
                Contact.deleted_at.is_(None),
                Lead.deleted_at.is_(None),
                Contact.email.isnot(None),
                *criteria,
            )
            .order_by(Contact.created_at)
        ).all()
        return [
            ContactLinkRecord(lead_id=lead_id, contact_id=cid, contact_name=name or '', email=email)
            for lead_id, cid, name, email in rows
        ]

    def find_contact_links_by_emails(self, emails):
        if not emails:
            return []
        return self._contact_links(func.lower(Contact.email).in_(emails))

    def find_contact_links_by_domains(self, domains):
        if not domains:
            return []
        return self._contact_links(_domain_filter(Contact.email, domains))

    def find_leads_by_domains(self, domains):
        if not domains:
            return []
        rows = self.session.scalars(
            select(Lead).where(
                Lead.deleted_at.is_(None),
                Lead.contact_email.isnot(None),
                _domain_filter(Lead.contact_email, domains),
            ).order_by(Lead.created_at)
        ).all()
        return [_lead_record(r) for r in rows]

    def _client_contacts(self, *criteria):
        rows = self.session.execute(
            select(ContactClient.client_id, Client.name, Contact.id, Contact.email)
            .join(Contact, Contact.id == ContactClient.contact_id)
            .join(Client, Client.id == ContactClient.client_id)
            .where(
                Contact.deleted_at.is_(None),
                Client.deleted_at.is_(None),
                Contact.email.isnot(None),
                *criteria,
            )
            .order_by(Contact.created_at)
        ).all()
        return [
            ClientContactRecord(client_id=client_id, client_name=name, contact_id=cid, email=email)
            for client_id, name, cid, email in rows
        ]

    def find_client_contacts_by_emails(self, emails):
        if not emails:
            return []
        return self._client_contacts(func.lower(Contact.email).in_(emails))

    def find_client_contacts_by_domains(self, domains):
        if not domains:
            return []
        return self._client_contacts(_domain_filter(Contact.email, domains))

    # ── Context assembly ─────────────────────────────────────────────────

    def get_lead(self, lead_id):
        row = self.session.get(Lead, lead_id)
        if row is None or row.deleted_at is not None:
            return None
        return _lead_record(row)

    def find_lead_contacts(self, lead_id):
        return self._contact_links(ContactLead.lead_id == lead_id)

    def find_lead_threads(self, lead_id, emails, limit):
        match = Thread.lead_id == lead_id
        if emails:
            match = or_(
                match,
                Thread.id.in_(
                    select(ThreadParticipant.thread_id).where(ThreadParticipant.email.in_(emails))
                ),
            )
        rows = self.session.scalars(
            select(Thread)
            .where(Thread.deleted_at.is_(None), match)
            .order_by(Thread.last_message_at.desc().nulls_last(), Thread.id)
            .limit(limit)
        ).all()
        return [_thread_record(r) for r in rows]

    def recent_thread_messages(self, thread_ids, per_thread):
        if not thread_ids:
            return {}
        ranked = (
            select(
                Message,
                func.row_number().over(
                    partition_by=Message.thread_id,
                    order_by=Message.sent_at.desc(),
                ).label('rn'),
            )
            .where(Message.thread_id.in_(thread_ids), Message.deleted_at.is_(None))
            .subquery()
        )
        msg = aliased(Message, ranked)
        rows = self.session.scalars(
            select(msg)
            .where(ranked.c.rn <= per_thread)
            .order_by(ranked.c.thread_id, ranked.c.sent_at.desc())
        ).all()

        grouped: Dict[str, List[MessageRecord]] = {}
        for m in rows:
            grouped.setdefault(m.thread_id, []).append(MessageRecord(
                id=m.id,
                thread_id=m.thread_id,
                from_email=m.from_email,
                from_name=m.from_name,
                subject=m.subject,
                sent_at=m.sent_at,
                is_inbound=True if m.is_inbound is None else bool(m.is_inbound),
                snippet=m.snippet,
                body_text=m.body_text,
            ))
        return grouped

    def find_lead_meetings(self, lead_id, emails, limit):
        match = Meeting.lead_id == lead_id
        if emails:
            match = or_(
                match,
                Meeting.id.in_(
                    select(MeetingAttendee.meeting_id).where(MeetingAttendee.email.in_(emails))
                ),
            )
        rows = self.session.scalars(
            select(Meeting)
            .where(
                Meeting.deleted_at.is_(None),
                Meeting.transcript_text.isnot(None),
                Meeting.transcript_text != '',
                match,
            )
            .order_by(Meeting.starts_at.desc(), Meeting.id)
            .limit(limit)
        ).all()
        return [_meeting_record(r) for r in rows]

    def find_related_clients(self, lead_id):
        rows = self.session.execute(
            select(Client.id, Client.name, Client.slug)
            .join(ContactClient, ContactClient.client_id == Client.id)
            .join(Contact, Contact.id == ContactClient.contact_id)
            .join(ContactLead, ContactLead.contact_id == Contact.id)
            .where(
                ContactLead.lead_id == lead_id,
                Contact.deleted_at.is_(None),
                Client.deleted_at.is_(None),
            )
            .distinct()
            .order_by(Client.name)
        ).all()
        return [ClientRecord(id=cid, name=name, slug=slug) for cid, name, slug in rows]

    def find_lead_proposals(self, lead_id, limit):
        rows = self.session.scalars(
            select(Proposal)
            .where(Proposal.lead_id == lead_id, Proposal.deleted_at.is_(None))
            .order_by(Proposal.created_at.desc(), Proposal.id)
            .limit(limit)
        ).all()
        return [ProposalRecord(id=p.id, title=p.title, status=p.status, created_at=p.created_at) for p in rows]

    def find_client_projects(self, client_ids, limit):
        if not client_ids:
            return []
        rows = self.session.execute(
            select(Project, Client.name)
            .join(Client, Client.id == Project.client_id)
            .where(Project.client_id.in_(client_ids), Project.deleted_at.is_(None))
            .order_by(Project.created_at.desc(), Project.id)
            .limit(limit)
        ).all()
        return [
            ProjectRecord(id=p.id, name=p.name, client_id=p.client_id, client_name=client_name, status=p.status)
            for p, client_name in rows
        ]

    # ── Suggestions ──────────────────────────────────────────────────────

    def list_lead_suggestions(self, lead_id, action_types=None):
        stmt = select(Suggestion).where(Suggestion.lead_id == lead_id, Suggestion.deleted_at.is_(None))
        if action_types:
            stmt = stmt.where(Suggestion.action_type.in_(list(action_types)))
        rows = self.session.scalars(stmt.order_by(Suggestion.created_at.desc(), Suggestion.id)).all()
        return [_suggestion_record(r) for r in rows]

    def create_suggestion(self, suggestion: NewSuggestion) -> Optional[str]:
        row = Suggestion(
            lead_id=suggestion.lead_id,
            thread_id=suggestion.thread_id,
            meeting_id=suggestion.meeting_id,
            type=suggestion.type,
            status=suggestion.status,
            confidence=suggestion.confidence,
            reasoning=suggestion.reasoning,
            action_type=suggestion.action_type,
            suggested_content=suggestion.suggested_content,
            dedup_key=suggestion.dedup_key,
        )
        try:
            with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError as e:
            # Same dedup_key written by a concurrent run
            if suggestion.dedup_key and self._dedup_key_taken(suggestion.dedup_key):
                logger.info("Suggestion %s already exists, skipping", suggestion.dedup_key)
                return None
            logger.error("Failed to create suggestion for lead %s", suggestion.lead_id, exc_info=True)
            raise PersistenceFailure(f"Failed to create suggestion: {e}") from e
        except SQLAlchemyError as e:
            logger.error("Failed to create suggestion for lead %s", suggestion.lead_id, exc_info=True)
            raise PersistenceFailure(f"Failed to create suggestion: {e}") from e
        return row.id

    def _dedup_key_taken(self, dedup_key) -> bool:
        return self.session.scalar(
            select(Suggestion.id).where(Suggestion.dedup_key == dedup_key)
        ) is not None

    def _live_suggestion(self, suggestion_id) -> Suggestion:
        row = self.session.get(Suggestion, suggestion_id)
        if row is None or row.deleted_at is not None:
            raise NotFoundError('Suggestion', suggestion_id)
        return row

    def get_suggestion(self, suggestion_id):
        row = self.session.get(Suggestion, suggestion_id)
        if row is None or row.deleted_at is not None:
            return None
        return _suggestion_record(row)

    def update_suggestion_status(self, suggestion_id, status, reviewed_at, suggested_content=None):
        row = self._live_suggestion(suggestion_id)
        row.status = status
        row.reviewed_at = reviewed_at
        if suggested_content is not None:
            row.suggested_content = suggested_content
        self._flush(f'suggestion {suggestion_id}')

    def soft_delete_suggestion(self, suggestion_id, deleted_at):
        row = self._live_suggestion(suggestion_id)
        row.deleted_at = deleted_at
        row.dedup_key = None
        self._flush(f'suggestion {suggestion_id}')

    # ── Lead intelligence writes ─────────────────────────────────────────

    def update_lead_scoring(self, lead_id, scoring: Dict[str, Any], scored_at: datetime):
        lead = self._live_lead(lead_id)
        lead.overall_score = scoring['overall_score']
        lead.priority_tier = scoring['priority_tier']
        lead.signals = scoring.get('signals') or []
        lead.predicted_close_probability = scoring.get('predicted_close_probability')
        lead.last_scored_at = scored_at
        self._flush(f'lead {lead_id} scoring')

    def mark_suggested(self, lead_id, suggested_at):
        lead = self._live_lead(lead_id)
        lead.last_suggested_at = suggested_at
        self._flush(f'lead {lead_id} suggestion timestamp')

    def list_active_lead_ids(self, statuses: Optional[Iterable[str]] = None):
        stmt = select(Lead.id).where(Lead.deleted_at.is_(None))
        if statuses:
            stmt = stmt.where(Lead.status.in_(list(statuses)))
        return list(self.session.scalars(stmt.order_by(Lead.created_at.desc(), Lead.id)).all())

    # ── Communication routing ────────────────────────────────────────────

    def get_thread(self, thread_id):
        row = self.session.get(Thread, thread_id)
        if row is None or row.deleted_at is not None:
            return None
        return _thread_record(row)

    def get_meeting(self, meeting_id):
        row = self.session.get(Meeting, meeting_id)
        if row is None or row.deleted_at is not None:
            return None
        return _meeting_record(row)

    def link_thread_to_lead(self, thread_id, lead_id):
        thread = self.session.get(Thread, thread_id)
        if thread is None or thread.deleted_at is not None:
            raise NotFoundError('Thread', thread_id)
        if thread.lead_id or thread.client_id:
            return False
        self._live_lead(lead_id)
        thread.lead_id = lead_id
        self._flush(f'thread {thread_id} link')
        return True

    def link_thread_to_client(self, thread_id, client_id):
        thread = self.session.get(Thread, thread_id)
        if thread is None or thread.deleted_at is not None:
            raise NotFoundError('Thread', thread_id)
        if thread.lead_id or thread.client_id:
            return False
        client = self.session.get(Client, client_id)
        if client is None or client.deleted_at is not None:
            raise NotFoundError('Client', client_id)
        thread.client_id = client_id
        self._flush(f'thread {thread_id} client link')
        return True

    def link_meeting_to_lead(self, meeting_id, lead_id):
        meeting = self.session.get(Meeting, meeting_id)
        if meeting is None or meeting.deleted_at is not None:
            raise NotFoundError('Meeting', meeting_id)
        if meeting.lead_id:
            return False
        self._live_lead(lead_id)
        meeting.lead_id = lead_id
        self._flush(f'meeting {meeting_id} link')
        return True
