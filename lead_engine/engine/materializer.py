"""
Suggestion materializer.

Writes AI actions as PENDING suggestions, then proposes linking each
associated email thread and meeting transcript to the lead. Link suggestions
are idempotent per (lead, target): the set of already-suggested targets is
read once before any insert, and the store's dedup_key constraint covers
concurrent runs. AI actions themselves are not deduplicated.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from lead_engine.engine.store import LeadStore, NewSuggestion
from lead_engine.models.suggestion import LINK_EMAIL_THREAD, LINK_TRANSCRIPT, make_dedup_key

logger = logging.getLogger('engine.materializer')

DEFAULT_LINK_CONFIDENCE = 0.8
DEFAULT_THREAD_REASONING = 'Associated thread, approve to include in scoring context.'
DEFAULT_TRANSCRIPT_REASONING = 'Associated transcript, approve to include in scoring context.'


@dataclass
class MaterializationResult:
    actions_created: int = 0
    thread_links_created: int = 0
    transcript_links_created: int = 0
    links_skipped: int = 0

    @property
    def created_count(self):
        return self.actions_created + self.thread_links_created + self.transcript_links_created

    def to_dict(self):
        return {
            'created': self.created_count,
            'actions_created': self.actions_created,
            'thread_links_created': self.thread_links_created,
            'transcript_links_created': self.transcript_links_created,
            'links_skipped': self.links_skipped,
        }


def _action_payload(lead_id, action) -> NewSuggestion:
    content = action.suggested_content
    suggested_content = {
        'action_type': action.action_type,
        'title': action.title,
        'priority': action.priority,
        'reasoning': action.reasoning,
        'body': content.body if content else None,
        'suggested_status': content.suggested_status if content else None,
        'suggested_due_date': content.due_date if content else None,
    }
    return NewSuggestion(
        lead_id=lead_id,
        type='REPLY' if action.action_type == 'REPLY' else 'TASK',
        action_type=action.action_type,
        confidence=action.confidence,
        reasoning=action.reasoning,
        suggested_content=suggested_content,
    )


def materialize_suggestions(
    lead_id: str,
    ai_actions: Iterable,
    linked_threads: Iterable,
    linked_meetings: Iterable,
    store: LeadStore,
    link_confidence: float = DEFAULT_LINK_CONFIDENCE,
    thread_reasoning: Optional[str] = None,
    transcript_reasoning: Optional[str] = None,
) -> MaterializationResult:
    """
    Persist suggestions for one lead and return what was created.

    Args:
        ai_actions:      LeadAction objects from suggest_actions().
        linked_threads:  Threads associated with the lead (anything with .id and .subject).
        linked_meetings: Meetings associated with the lead; only those with a
                         transcript produce LINK_TRANSCRIPT suggestions.
    """
    result = MaterializationResult()

    existing = store.list_lead_suggestions(lead_id, action_types=(LINK_EMAIL_THREAD, LINK_TRANSCRIPT))
    suggested_threads = {s.thread_id for s in existing if s.action_type == LINK_EMAIL_THREAD and s.thread_id}
    suggested_meetings = {s.meeting_id for s in existing if s.action_type == LINK_TRANSCRIPT and s.meeting_id}

    for action in ai_actions or []:
        if store.create_suggestion(_action_payload(lead_id, action)):
            result.actions_created += 1

    for thread in linked_threads or []:
        if thread.id in suggested_threads:
            result.links_skipped += 1
            continue
        created = store.create_suggestion(NewSuggestion(
            lead_id=lead_id,
            type='TASK',
            action_type=LINK_EMAIL_THREAD,
            confidence=link_confidence,
            reasoning=thread_reasoning or DEFAULT_THREAD_REASONING,
            suggested_content={
                'action_type': LINK_EMAIL_THREAD,
                'thread_id': thread.id,
                'thread_subject': getattr(thread, 'subject', None),
            },
            thread_id=thread.id,
            dedup_key=make_dedup_key(lead_id, LINK_EMAIL_THREAD, thread.id),
        ))
        suggested_threads.add(thread.id)
        if created:
            result.thread_links_created += 1
        else:
            result.links_skipped += 1

    for meeting in linked_meetings or []:
        if not getattr(meeting, 'transcript_text', None):
            continue
        if meeting.id in suggested_meetings:
            result.links_skipped += 1
            continue
        created = store.create_suggestion(NewSuggestion(
            lead_id=lead_id,
            type='TASK',
            action_type=LINK_TRANSCRIPT,
            confidence=link_confidence,
            reasoning=transcript_reasoning or DEFAULT_TRANSCRIPT_REASONING,
            suggested_content={
                'action_type': LINK_TRANSCRIPT,
                'meeting_id': meeting.id,
                'meeting_title': getattr(meeting, 'title', None),
            },
            meeting_id=meeting.id,
            dedup_key=make_dedup_key(lead_id, LINK_TRANSCRIPT, meeting.id),
        ))
        suggested_meetings.add(meeting.id)
        if created:
            result.transcript_links_created += 1
        else:
            result.links_skipped += 1

    logger.info(
        "Lead %s: %d suggestion(s) created (actions=%d threads=%d transcripts=%d, %d link(s) already suggested)",
        lead_id, result.created_count, result.actions_created,
        result.thread_links_created, result.transcript_links_created, result.links_skipped,
    )
    return result
