"""
Context assembler: gather a bounded bundle of lead communication history.

The bundle feeds both the scoring and the action prompts. Every collection is
capped (threads, messages per thread, body preview length, meetings,
proposals, projects) so prompt size stays fixed no matter how much history a
lead has accumulated.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from lead_engine.engine.matching import normalize_emails
from lead_engine.engine.store import (
    ClientRecord, LeadRecord, LeadStore, MeetingRecord, MessageRecord,
    ProjectRecord, ProposalRecord, ThreadRecord,
)
from lead_engine.errors import NotFoundError

logger = logging.getLogger('engine.context')


DEFAULT_LIMITS = {
    'max_threads': 10,
    'max_messages_per_thread': 5,
    'body_preview_chars': 1000,
    'max_meetings': 5,
    'max_proposals': 5,
    'max_projects': 10,
}


@dataclass
class ContextMessage:
    id: str
    thread_id: str
    from_email: str
    from_name: Optional[str]
    subject: Optional[str]
    sent_at: datetime
    is_inbound: bool
    snippet: Optional[str]
    body_preview: Optional[str]


@dataclass
class ContextThread:
    id: str
    subject: Optional[str]
    message_count: int
    last_message_at: Optional[datetime]
    messages: List[ContextMessage] = field(default_factory=list)


@dataclass
class LeadContext:
    lead: LeadRecord
    contact_emails: List[str]
    threads: List[ContextThread] = field(default_factory=list)
    meetings: List[MeetingRecord] = field(default_factory=list)
    existing_clients: List[ClientRecord] = field(default_factory=list)
    prior_proposals: List[ProposalRecord] = field(default_factory=list)
    converted_projects: List[ProjectRecord] = field(default_factory=list)

    def to_dict(self):
        def _iso(value):
            return value.isoformat() if hasattr(value, 'isoformat') else value

        return {
            'lead': {
                'id': self.lead.id,
                'contact_name': self.lead.contact_name,
                'contact_email': self.lead.contact_email,
                'company_name': self.lead.company_name,
                'company_website': self.lead.company_website,
                'status': self.lead.status,
                'notes': self.lead.notes,
            },
            'contact_emails': list(self.contact_emails),
            'threads': [
                {
                    'id': t.id,
                    'subject': t.subject,
                    'message_count': t.message_count,
                    'last_message_at': _iso(t.last_message_at),
                    'messages': [
                        {
                            'id': m.id,
                            'from_email': m.from_email,
                            'from_name': m.from_name,
                            'sent_at': _iso(m.sent_at),
                            'is_inbound': m.is_inbound,
                            'snippet': m.snippet,
                            'body_preview': m.body_preview,
                        }
                        for m in t.messages
                    ],
                }
                for t in self.threads
            ],
            'meetings': [
                {
                    'id': m.id,
                    'title': m.title,
                    'starts_at': _iso(m.starts_at),
                    'status': m.status,
                    'transcript_text': m.transcript_text,
                }
                for m in self.meetings
            ],
            'related_entities': {
                'existing_clients': [{'id': c.id, 'name': c.name, 'slug': c.slug} for c in self.existing_clients],
                'prior_proposals': [
                    {'id': p.id, 'title': p.title, 'status': p.status, 'created_at': _iso(p.created_at)}
                    for p in self.prior_proposals
                ],
                'converted_projects': [
                    {'id': p.id, 'name': p.name, 'client_id': p.client_id,
                     'client_name': p.client_name, 'status': p.status}
                    for p in self.converted_projects
                ],
            },
        }


def lead_identity_emails(lead: LeadRecord, store: LeadStore) -> List[str]:
    """Lead's own email plus every live linked contact's email, normalized and deduped."""
    contacts = store.find_lead_contacts(lead.id)
    return normalize_emails([lead.contact_email] + [c.email for c in contacts])


def _to_context_message(msg: MessageRecord, preview_chars: int) -> ContextMessage:
    return ContextMessage(
        id=msg.id,
        thread_id=msg.thread_id,
        from_email=msg.from_email,
        from_name=msg.from_name,
        subject=msg.subject,
        sent_at=msg.sent_at,
        is_inbound=msg.is_inbound,
        snippet=msg.snippet,
        body_preview=msg.body_text[:preview_chars] if msg.body_text else None,
    )


def assemble_lead_context(lead_id: str, store: LeadStore, limits: Optional[Dict[str, int]] = None) -> LeadContext:
    """
    Build the LeadContext for lead_id.

    Raises:
        NotFoundError: lead is missing or soft-deleted.
    """
    caps = dict(DEFAULT_LIMITS)
    caps.update(limits or {})

    lead = store.get_lead(lead_id)
    if lead is None:
        raise NotFoundError('Lead', lead_id)

    emails = lead_identity_emails(lead, store)

    thread_rows: List[ThreadRecord] = store.find_lead_threads(lead_id, emails, caps['max_threads'])
    thread_rows = thread_rows[:caps['max_threads']]

    per_thread = caps['max_messages_per_thread']
    messages_by_thread = store.recent_thread_messages([t.id for t in thread_rows], per_thread) if thread_rows else {}

    threads = [
        ContextThread(
            id=t.id,
            subject=t.subject,
            message_count=t.message_count or 0,
            last_message_at=t.last_message_at,
            messages=[
                _to_context_message(m, caps['body_preview_chars'])
                for m in messages_by_thread.get(t.id, [])[:per_thread]
            ],
        )
        for t in thread_rows
    ]

    meetings = [
        m for m in store.find_lead_meetings(lead_id, emails, caps['max_meetings'])
        if m.transcript_text
    ][:caps['max_meetings']]

    clients = store.find_related_clients(lead_id)
    proposals = store.find_lead_proposals(lead_id, caps['max_proposals'])[:caps['max_proposals']]
    projects = []
    if clients:
        projects = store.find_client_projects([c.id for c in clients], caps['max_projects'])[:caps['max_projects']]

    logger.debug(
        "Context for lead %s: %d email(s), %d thread(s), %d meeting(s), %d client(s)",
        lead_id, len(emails), len(threads), len(meetings), len(clients),
    )

    return LeadContext(
        lead=lead,
        contact_emails=emails,
        threads=threads,
        meetings=meetings,
        existing_clients=clients,
        prior_proposals=proposals,
        converted_projects=projects,
    )
