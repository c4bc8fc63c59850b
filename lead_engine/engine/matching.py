"""
Identity matcher: resolve participant emails to candidate leads.

Tiers run in a fixed order and every tier contributes candidates:

  1. DIRECT_EMAIL  (HIGH)   lead.contact_email equals a participant
  2. CONTACT_EMAIL (HIGH)   a contact linked to the lead equals a participant
  3. DOMAIN        (MEDIUM) a participant's domain equals the domain of a
                            linked contact or of the lead's own email,
                            free-email providers excluded

Each lead appears at most once. When several tiers hit the same lead the
winner is chosen by MatchCandidate.rank, not by query order. Matching is
read-only and never links anything.

match_emails_to_clients applies the CONTACT_EMAIL and DOMAIN tiers to
contacts linked to clients, for routing threads that belong to an existing
client rather than a lead.
"""
import logging
from dataclasses import dataclass
from operator import attrgetter
from typing import Iterable, List, Optional

from lead_engine.engine.store import LeadStore

logger = logging.getLogger('engine.matching')

HIGH = 'HIGH'
MEDIUM = 'MEDIUM'

DIRECT_EMAIL = 'DIRECT_EMAIL'
CONTACT_EMAIL = 'CONTACT_EMAIL'
DOMAIN = 'DOMAIN'

_CONFIDENCE_RANK = {HIGH: 0, MEDIUM: 1}
_SOURCE_RANK = {DIRECT_EMAIL: 0, CONTACT_EMAIL: 1, DOMAIN: 2}


@dataclass
class MatchCandidate:
    lead_id: str
    contact_name: str
    matched_email: str
    confidence: str
    match_source: str

    @property
    def rank(self):
        """Lower is better: confidence first, then source specificity."""
        return (_CONFIDENCE_RANK[self.confidence], _SOURCE_RANK[self.match_source])

    def to_dict(self):
        return {
            'lead_id': self.lead_id,
            'contact_name': self.contact_name,
            'matched_email': self.matched_email,
            'confidence': self.confidence,
            'match_source': self.match_source,
        }


@dataclass
class ClientMatchCandidate:
    client_id: str
    client_name: str
    matched_email: str
    confidence: str
    match_source: str

    @property
    def rank(self):
        return (_CONFIDENCE_RANK[self.confidence], _SOURCE_RANK[self.match_source])

    def to_dict(self):
        return {
            'client_id': self.client_id,
            'client_name': self.client_name,
            'matched_email': self.matched_email,
            'confidence': self.confidence,
            'match_source': self.match_source,
        }


def normalize_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()


def extract_domain(email: str) -> str:
    """Text after the first '@', or '' when there is none."""
    idx = email.find('@')
    return email[idx + 1:] if idx >= 0 else ''


def normalize_emails(emails: Iterable[Optional[str]]) -> List[str]:
    """Trim, lowercase, drop blanks, dedupe (first occurrence wins)."""
    seen = []
    for email in emails or []:
        norm = normalize_email(email)
        if norm and norm not in seen:
            seen.append(norm)
    return seen


def _free_domains(free_email_domains):
    if free_email_domains is None:
        from lead_engine.engine.settings import free_email_domains as configured
        free_email_domains = configured()
    return {d.lower() for d in free_email_domains}


def _matchable_domains(normalized, free) -> List[str]:
    domains = []
    for email in normalized:
        domain = extract_domain(email)
        if domain and domain not in free and domain not in domains:
            domains.append(domain)
    return domains


def merge_candidates(tiers: Iterable[List], key=attrgetter('lead_id')) -> List:
    """
    Merge per-tier candidate lists into one candidate per lead (or per key(candidate)).

    The best-ranked candidate wins regardless of which list it came from;
    ties keep the earlier one. Output is sorted by rank, then by the order
    in which each lead was first seen.
    """
    best = {}
    first_seen = {}
    for candidates in tiers:
        for cand in candidates:
            k = key(cand)
            if k not in first_seen:
                first_seen[k] = len(first_seen)
            current = best.get(k)
            if current is None or cand.rank < current.rank:
                best[k] = cand
    return sorted(best.values(), key=lambda c: (c.rank, first_seen[key(c)]))


def match_emails_to_leads(participant_emails, store: LeadStore, free_email_domains=None) -> List[MatchCandidate]:
    """
    Match participant emails against all live leads.

    Args:
        participant_emails: Raw email strings from a message, thread or meeting.
        store:              LeadStore used for lookups.
        free_email_domains: Domains excluded from DOMAIN matching. Defaults to
                            the configured list in engine_config.yaml.

    Returns:
        Candidates ordered by confidence, then source specificity. Empty when
        no usable email was supplied (the store is not touched in that case).
    """
    normalized = normalize_emails(participant_emails)
    if not normalized:
        return []

    free = _free_domains(free_email_domains)

    direct = []
    for lead in store.find_leads_by_emails(normalized):
        email = normalize_email(lead.contact_email)
        if not email or email not in normalized:
            continue
        direct.append(MatchCandidate(lead.id, lead.contact_name, email, HIGH, DIRECT_EMAIL))

    via_contact = []
    for link in store.find_contact_links_by_emails(normalized):
        email = normalize_email(link.email)
        if not email or email not in normalized:
            continue
        via_contact.append(MatchCandidate(link.lead_id, link.contact_name, email, HIGH, CONTACT_EMAIL))

    domains = _matchable_domains(normalized, free)
    via_domain = []
    if domains:
        for link in store.find_contact_links_by_domains(domains):
            email = normalize_email(link.email)
            if extract_domain(email) in domains:
                via_domain.append(MatchCandidate(link.lead_id, link.contact_name, email, MEDIUM, DOMAIN))
        for lead in store.find_leads_by_domains(domains):
            email = normalize_email(lead.contact_email)
            if email and extract_domain(email) in domains:
                via_domain.append(MatchCandidate(lead.id, lead.contact_name, email, MEDIUM, DOMAIN))

    candidates = merge_candidates([direct, via_contact, via_domain])
    logger.debug(
        "Matched %d email(s) to %d lead(s) (direct=%d contact=%d domain=%d)",
        len(normalized), len(candidates), len(direct), len(via_contact), len(via_domain),
    )
    return candidates


def match_meeting_to_leads(attendee_emails, store: LeadStore, free_email_domains=None) -> List[MatchCandidate]:
    """Match meeting attendees to leads. Same rules as match_emails_to_leads."""
    return match_emails_to_leads(attendee_emails, store, free_email_domains=free_email_domains)


def match_emails_to_clients(participant_emails, store: LeadStore, free_email_domains=None) -> List[ClientMatchCandidate]:
    """
    Match participant emails against contacts linked to clients.

    An exact contact email is HIGH/CONTACT_EMAIL; a shared non-free domain is
    MEDIUM/DOMAIN. One candidate per client, ordered like the lead matcher.
    """
    normalized = normalize_emails(participant_emails)
    if not normalized:
        return []
    free = _free_domains(free_email_domains)

    exact = []
    for link in store.find_client_contacts_by_emails(normalized):
        email = normalize_email(link.email)
        if email and email in normalized:
            exact.append(ClientMatchCandidate(link.client_id, link.client_name, email, HIGH, CONTACT_EMAIL))

    domains = _matchable_domains(normalized, free)
    via_domain = []
    if domains:
        for link in store.find_client_contacts_by_domains(domains):
            email = normalize_email(link.email)
            if extract_domain(email) in domains:
                via_domain.append(ClientMatchCandidate(link.client_id, link.client_name, email, MEDIUM, DOMAIN))

    candidates = merge_candidates([exact, via_domain], key=attrgetter('client_id'))
    logger.debug(
        "Matched %d email(s) to %d client(s) (contact=%d domain=%d)",
        len(normalized), len(candidates), len(exact), len(via_domain),
    )
    return candidates
