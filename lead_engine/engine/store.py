"""
Persistence contract for the lead engine.

Engine modules (matching, context, materializer) only see LeadStore and the
plain record types below. lead_engine.services.sql_store.SqlLeadStore is the
SQLAlchemy implementation; tests substitute MagicMock(spec=LeadStore) or the
SQL store bound to an in-memory SQLite session.

Every read excludes soft-deleted rows. Email comparisons are case-insensitive;
callers pass normalized (trimmed, lowercase) emails and domains.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional


# ── Records ───────────────────────────────────────────────────────────────────

@dataclass
class LeadRecord:
    id: str
    contact_name: str
    contact_email: Optional[str] = None
    company_name: Optional[str] = None
    company_website: Optional[str] = None
    status: str = 'NEW'
    source_type: Optional[str] = None
    source_detail: Optional[str] = None
    notes: Optional[str] = None
    estimated_value: Optional[int] = None
    overall_score: Optional[int] = None
    priority_tier: Optional[str] = None
    signals: List[Dict[str, Any]] = field(default_factory=list)
    predicted_close_probability: Optional[float] = None
    last_scored_at: Optional[datetime] = None
    last_suggested_at: Optional[datetime] = None
    last_contact_at: Optional[datetime] = None
    awaiting_reply: bool = False
    created_at: Optional[datetime] = None


@dataclass
class ContactLinkRecord:
    """A contact linked to a lead through contact_leads."""
    lead_id: str
    contact_id: str
    contact_name: str
    email: Optional[str]


@dataclass
class ClientContactRecord:
    """A contact linked to a client through contact_clients."""
    client_id: str
    client_name: str
    contact_id: str
    email: Optional[str]


@dataclass
class ThreadRecord:
    id: str
    subject: Optional[str] = None
    message_count: int = 0
    last_message_at: Optional[datetime] = None
    lead_id: Optional[str] = None
    client_id: Optional[str] = None
    participant_emails: List[str] = field(default_factory=list)


@dataclass
class MessageRecord:
    id: str
    thread_id: str
    from_email: str
    sent_at: datetime
    from_name: Optional[str] = None
    subject: Optional[str] = None
    is_inbound: bool = True
    snippet: Optional[str] = None
    body_text: Optional[str] = None


@dataclass
class MeetingRecord:
    id: str
    title: str
    starts_at: datetime
    status: str = 'SCHEDULED'
    transcript_text: Optional[str] = None
    lead_id: Optional[str] = None
    attendee_emails: List[str] = field(default_factory=list)


@dataclass
class ClientRecord:
    id: str
    name: str
    slug: Optional[str] = None


@dataclass
class ProjectRecord:
    id: str
    name: str
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    status: Optional[str] = None


@dataclass
class ProposalRecord:
    id: str
    title: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class SuggestionRecord:
    id: str
    lead_id: Optional[str]
    type: str
    status: str
    action_type: Optional[str] = None
    thread_id: Optional[str] = None
    meeting_id: Optional[str] = None
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    suggested_content: Dict[str, Any] = field(default_factory=dict)
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class NewSuggestion:
    """Insert payload for LeadStore.create_suggestion()."""
    lead_id: str
    type: str
    action_type: str
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    suggested_content: Dict[str, Any] = field(default_factory=dict)
    status: str = 'PENDING'
    thread_id: Optional[str] = None
    meeting_id: Optional[str] = None
    dedup_key: Optional[str] = None


# ── Contract ──────────────────────────────────────────────────────────────────

class LeadStore(ABC):
    """Read/write operations the engine needs from the relational store."""

    # Identity matching

    @abstractmethod
    def find_leads_by_emails(self, emails: List[str]) -> List[LeadRecord]:
        """Leads whose contact_email equals one of emails."""

    @abstractmethod
    def find_contact_links_by_emails(self, emails: List[str]) -> List[ContactLinkRecord]:
        """Contacts (with their linked, live lead) whose email equals one of emails."""

    @abstractmethod
    def find_contact_links_by_domains(self, domains: List[str]) -> List[ContactLinkRecord]:
        """Linked contacts whose email domain (text after the first '@') is in domains."""

    @abstractmethod
    def find_leads_by_domains(self, domains: List[str]) -> List[LeadRecord]:
        """Leads whose own contact_email domain is in domains."""

    @abstractmethod
    def find_client_contacts_by_emails(self, emails: List[str]) -> List[ClientContactRecord]:
        """Contacts (with their linked, live client) whose email equals one of emails."""

    @abstractmethod
    def find_client_contacts_by_domains(self, domains: List[str]) -> List[ClientContactRecord]:
        ...

    # Context assembly

    @abstractmethod
    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        ...

    @abstractmethod
    def find_lead_contacts(self, lead_id: str) -> List[ContactLinkRecord]:
        ...

    @abstractmethod
    def find_lead_threads(self, lead_id: str, emails: List[str], limit: int) -> List[ThreadRecord]:
        """Threads with lead_id == lead_id OR a participant in emails, most recent first."""

    @abstractmethod
    def recent_thread_messages(self, thread_ids: List[str], per_thread: int) -> Dict[str, List[MessageRecord]]:
        """Up to per_thread most recent messages for each thread, newest first."""

    @abstractmethod
    def find_lead_meetings(self, lead_id: str, emails: List[str], limit: int) -> List[MeetingRecord]:
        """Meetings with a transcript, matched by lead_id OR attendee, most recent first."""

    @abstractmethod
    def find_related_clients(self, lead_id: str) -> List[ClientRecord]:
        """Clients reachable through the lead's contacts (contact_clients)."""

    @abstractmethod
    def find_lead_proposals(self, lead_id: str, limit: int) -> List[ProposalRecord]:
        ...

    @abstractmethod
    def find_client_projects(self, client_ids: List[str], limit: int) -> List[ProjectRecord]:
        ...

    # Suggestions

    @abstractmethod
    def list_lead_suggestions(self, lead_id: str, action_types: Optional[Iterable[str]] = None) -> List[SuggestionRecord]:
        """Live suggestions for a lead, optionally restricted to action_types."""

    @abstractmethod
    def create_suggestion(self, suggestion: NewSuggestion) -> Optional[str]:
        """
        Insert a suggestion and return its id, or None if dedup_key already exists.

        Any other failed insert raises PersistenceFailure.
        """

    @abstractmethod
    def get_suggestion(self, suggestion_id: str) -> Optional[SuggestionRecord]:
        ...

    @abstractmethod
    def update_suggestion_status(
        self, suggestion_id: str, status: str, reviewed_at: datetime,
        suggested_content: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Set review status; replaces suggested_content when one is given."""

    @abstractmethod
    def soft_delete_suggestion(self, suggestion_id: str, deleted_at: datetime) -> None:
        ...

    # Lead intelligence writes

    @abstractmethod
    def update_lead_scoring(self, lead_id: str, scoring: Dict[str, Any], scored_at: datetime) -> None:
        ...

    @abstractmethod
    def mark_suggested(self, lead_id: str, suggested_at: datetime) -> None:
        ...

    @abstractmethod
    def list_active_lead_ids(self, statuses: Optional[Iterable[str]] = None) -> List[str]:
        ...

    # Communication routing

    @abstractmethod
    def get_thread(self, thread_id: str) -> Optional[ThreadRecord]:
        ...

    @abstractmethod
    def get_meeting(self, meeting_id: str) -> Optional[MeetingRecord]:
        ...

    @abstractmethod
    def link_thread_to_lead(self, thread_id: str, lead_id: str) -> bool:
        """Set thread.lead_id if still unset. Returns False when already attached."""

    @abstractmethod
    def link_thread_to_client(self, thread_id: str, client_id: str) -> bool:
        """Set thread.client_id if the thread is unattached. Returns False when already attached."""

    @abstractmethod
    def link_meeting_to_lead(self, meeting_id: str, lead_id: str) -> bool:
        """Set meeting.lead_id if still unset. Returns False when already attached."""
