"""
Suggestion review: grouped listing, approve, reject, soft delete.

Review is only allowed while a suggestion is open (PENDING, DRAFT or
MODIFIED); anything else raises InvalidTransition. Approving a link
suggestion only flips its status; consumers read APPROVED LINK_* rows to
decide which threads and transcripts feed the scoring context.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from lead_engine.database import get_session
from lead_engine.errors import InvalidTransition, NotFoundError
from lead_engine.models.suggestion import LINK_ACTION_TYPES
from lead_engine.services.sql_store import SqlLeadStore

logger = logging.getLogger('services.suggestions')

STATUS_BUCKETS = {
    'PENDING': 'pending',
    'DRAFT': 'pending',
    'APPROVED': 'approved',
    'MODIFIED': 'approved',
    'REJECTED': 'rejected',
}

OPEN_STATUSES = ('PENDING', 'DRAFT', 'MODIFIED')

# Fields a reviewer may edit before approving an action suggestion
EDITABLE_FIELDS = ('title', 'body', 'suggested_status', 'suggested_due_date', 'priority')


def bucket_for_status(status: str) -> Optional[str]:
    return STATUS_BUCKETS.get(status)


def group_suggestions(suggestions: Iterable) -> Dict[str, List]:
    """Split suggestions into pending / approved / rejected buckets, order preserved."""
    grouped = {'pending': [], 'approved': [], 'rejected': []}
    for s in suggestions:
        bucket = bucket_for_status(s.status)
        if bucket is None:
            logger.warning("Suggestion %s has unknown status '%s'", s.id, s.status)
            continue
        grouped[bucket].append(s)
    return grouped


def _suggestion_dict(s) -> dict:
    return {
        'id': s.id,
        'lead_id': s.lead_id,
        'thread_id': s.thread_id,
        'meeting_id': s.meeting_id,
        'type': s.type,
        'status': s.status,
        'action_type': s.action_type,
        'confidence': s.confidence,
        'reasoning': s.reasoning,
        'suggested_content': s.suggested_content,
        'reviewed_at': s.reviewed_at.isoformat() if s.reviewed_at else None,
        'created_at': s.created_at.isoformat() if s.created_at else None,
    }


def list_lead_suggestions(lead_id: str) -> dict:
    """Live suggestions for a lead grouped by review bucket, with counts."""
    session = get_session()
    try:
        store = SqlLeadStore(session)
        if store.get_lead(lead_id) is None:
            raise NotFoundError('Lead', lead_id)
        grouped = group_suggestions(store.list_lead_suggestions(lead_id))
    finally:
        session.close()

    return {
        'lead_id': lead_id,
        'counts': {bucket: len(items) for bucket, items in grouped.items()},
        'suggestions': {bucket: [_suggestion_dict(s) for s in items] for bucket, items in grouped.items()},
    }


def _open_suggestion(store, suggestion_id):
    suggestion = store.get_suggestion(suggestion_id)
    if suggestion is None:
        raise NotFoundError('Suggestion', suggestion_id)
    if suggestion.status not in OPEN_STATUSES:
        raise InvalidTransition(f"Suggestion '{suggestion_id}' already processed ({suggestion.status})")
    return suggestion


def approve_suggestion(suggestion_id: str, modifications: Optional[dict] = None, now: datetime = None) -> dict:
    """
    Approve an open suggestion.

    Link suggestions are approved as-is. For action suggestions, edits to
    EDITABLE_FIELDS that change the content mark the suggestion MODIFIED
    instead of APPROVED.
    """
    now = now or datetime.now(timezone.utc)
    session = get_session()
    try:
        store = SqlLeadStore(session)
        suggestion = _open_suggestion(store, suggestion_id)

        status = 'APPROVED'
        content = None
        if suggestion.action_type not in LINK_ACTION_TYPES and modifications:
            edits = {k: v for k, v in modifications.items() if k in EDITABLE_FIELDS}
            if any(suggestion.suggested_content.get(k) != v for k, v in edits.items()):
                content = dict(suggestion.suggested_content, **edits)
                status = 'MODIFIED'

        store.update_suggestion_status(suggestion_id, status, now, suggested_content=content)
        session.commit()
        logger.info("Suggestion %s %s (%s)", suggestion_id, status.lower(), suggestion.action_type)
        return {'ok': True, 'id': suggestion_id, 'status': status}
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reject_suggestion(suggestion_id: str, reason: Optional[str] = None, now: datetime = None) -> dict:
    """Reject an open suggestion."""
    now = now or datetime.now(timezone.utc)
    session = get_session()
    try:
        store = SqlLeadStore(session)
        suggestion = _open_suggestion(store, suggestion_id)
        store.update_suggestion_status(suggestion_id, 'REJECTED', now)
        session.commit()
        logger.info("Suggestion %s rejected (%s)%s", suggestion_id, suggestion.action_type,
                    f": {reason}" if reason else '')
        return {'ok': True, 'id': suggestion_id, 'status': 'REJECTED'}
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def delete_suggestion(suggestion_id: str, now: datetime = None) -> dict:
    """Soft-delete a suggestion. A later run may suggest the same link again."""
    now = now or datetime.now(timezone.utc)
    session = get_session()
    try:
        store = SqlLeadStore(session)
        store.soft_delete_suggestion(suggestion_id, now)
        session.commit()
        logger.info("Suggestion %s deleted", suggestion_id)
        return {'ok': True, 'id': suggestion_id}
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
