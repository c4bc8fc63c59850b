"""
Communication routing: attach incoming threads and meetings to leads or clients.

Threads and meetings are attach-once. An existing lead_id (or client_id on a
thread) is authoritative and is never overwritten here. A thread is routed to a
lead or to a client, never both. A link is written only when matching
produced exactly one HIGH-confidence candidate; every other outcome returns
the candidates for human review and writes nothing.
"""
import logging
from typing import List

from lead_engine.database import get_session
from lead_engine.engine.matching import (
    HIGH, match_emails_to_clients, match_emails_to_leads, match_meeting_to_leads,
)
from lead_engine.engine.settings import free_email_domains
from lead_engine.errors import NotFoundError
from lead_engine.services.sql_store import SqlLeadStore

logger = logging.getLogger('services.routing')


def _auto_link_target(candidates: List):
    high = [c for c in candidates if c.confidence == HIGH]
    return high[0] if len(high) == 1 else None


def match_emails(emails) -> List[dict]:
    """Candidates for an arbitrary set of emails (no writes)."""
    session = get_session()
    try:
        candidates = match_emails_to_leads(emails, SqlLeadStore(session), free_email_domains())
        return [c.to_dict() for c in candidates]
    finally:
        session.close()


def route_thread(thread_id: str) -> dict:
    """Match a thread's participants to leads and link it when unambiguous."""
    session = get_session()
    try:
        store = SqlLeadStore(session)
        thread = store.get_thread(thread_id)
        if thread is None:
            raise NotFoundError('Thread', thread_id)

        if thread.lead_id or thread.client_id:
            logger.info("Thread %s already attached, not re-routing", thread_id)
            return {
                'thread_id': thread_id,
                'linked': False,
                'already_attached': True,
                'lead_id': thread.lead_id,
                'client_id': thread.client_id,
                'candidates': [],
            }

        candidates = match_emails_to_leads(thread.participant_emails, store, free_email_domains())
        target = _auto_link_target(candidates)
        linked = False
        if target is not None:
            linked = store.link_thread_to_lead(thread_id, target.lead_id)
            session.commit()
            if linked:
                logger.info("Thread %s linked to lead %s via %s", thread_id, target.lead_id, target.match_source)

        return {
            'thread_id': thread_id,
            'linked': linked,
            'already_attached': False,
            'lead_id': target.lead_id if linked else None,
            'client_id': None,
            'candidates': [c.to_dict() for c in candidates],
        }
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def route_thread_to_client(thread_id: str) -> dict:
    """
    Match a thread's participants to client contacts and link it to a client
    when exactly one client matched with HIGH confidence.
    """
    session = get_session()
    try:
        store = SqlLeadStore(session)
        thread = store.get_thread(thread_id)
        if thread is None:
            raise NotFoundError('Thread', thread_id)

        if thread.lead_id or thread.client_id:
            logger.info("Thread %s already attached, not re-routing", thread_id)
            return {
                'thread_id': thread_id,
                'linked': False,
                'already_attached': True,
                'lead_id': thread.lead_id,
                'client_id': thread.client_id,
                'candidates': [],
            }

        candidates = match_emails_to_clients(thread.participant_emails, store, free_email_domains())
        target = _auto_link_target(candidates)
        linked = False
        if target is not None:
            linked = store.link_thread_to_client(thread_id, target.client_id)
            session.commit()
            if linked:
                logger.info("Thread %s linked to client %s via %s", thread_id, target.client_id, target.match_source)

        return {
            'thread_id': thread_id,
            'linked': linked,
            'already_attached': False,
            'lead_id': None,
            'client_id': target.client_id if linked else None,
            'candidates': [c.to_dict() for c in candidates],
        }
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def route_meeting(meeting_id: str) -> dict:
    """Match a meeting's attendees to leads and link it when unambiguous."""
    session = get_session()
    try:
        store = SqlLeadStore(session)
        meeting = store.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError('Meeting', meeting_id)

        if meeting.lead_id:
            logger.info("Meeting %s already attached, not re-routing", meeting_id)
            return {
                'meeting_id': meeting_id,
                'linked': False,
                'already_attached': True,
                'lead_id': meeting.lead_id,
                'candidates': [],
            }

        candidates = match_meeting_to_leads(meeting.attendee_emails, store, free_email_domains())
        target = _auto_link_target(candidates)
        linked = False
        if target is not None:
            linked = store.link_meeting_to_lead(meeting_id, target.lead_id)
            session.commit()
            if linked:
                logger.info("Meeting %s linked to lead %s via %s", meeting_id, target.lead_id, target.match_source)

        return {
            'meeting_id': meeting_id,
            'linked': linked,
            'already_attached': False,
            'lead_id': target.lead_id if linked else None,
            'candidates': [c.to_dict() for c in candidates],
        }
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
