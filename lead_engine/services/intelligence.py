"""
Lead intelligence services: AI scoring and next-action suggestion for one lead.

Both entry points are gated by the staleness checks unless force=True, run
inside a single DB session, and commit only after every step succeeded.
Engine errors (NotFoundError, ValidationFailure, ExternalCallFailure,
PersistenceFailure) propagate to the caller.
"""
import logging
from datetime import datetime, timezone

from lead_engine.database import get_session
from lead_engine.engine.context import assemble_lead_context
from lead_engine.engine.materializer import materialize_suggestions
from lead_engine.engine.scoring import score_lead, suggest_actions, tier_for_score
from lead_engine.engine.settings import load_engine_config
from lead_engine.engine.staleness import should_rescore, should_suggest_actions
from lead_engine.errors import NotFoundError
from lead_engine.services.sql_store import SqlLeadStore

logger = logging.getLogger('services.intelligence')


def perform_lead_scoring(lead_id: str, force: bool = False, now: datetime = None, generate=None) -> dict:
    """
    Score a lead with AI and persist the result.

    Returns:
        {'success': True, 'scored': False, ...} when the existing score is
        still fresh, otherwise the new score, tier and close probability.
    """
    cfg = load_engine_config()
    now = now or datetime.now(timezone.utc)

    session = get_session()
    try:
        store = SqlLeadStore(session)
        lead = store.get_lead(lead_id)
        if lead is None:
            raise NotFoundError('Lead', lead_id)

        if not force and not should_rescore(
            lead.last_scored_at, lead.last_contact_at,
            threshold_days=cfg['staleness']['rescore_threshold_days'], now=now,
        ):
            logger.info("Lead %s score is fresh, skipping", lead_id)
            return {
                'success': True,
                'scored': False,
                'overall_score': lead.overall_score,
                'priority_tier': lead.priority_tier,
            }

        context = assemble_lead_context(lead_id, store, limits=cfg['context'])
        result = score_lead(context, generate=generate, max_emails=cfg['prompts']['scoring_max_emails'])

        expected_tier = tier_for_score(result.overall_score, cfg['tiers']['hot'], cfg['tiers']['warm'])
        if expected_tier != result.priority_tier:
            logger.warning(
                "Lead %s: model returned tier '%s' for score %d (band says '%s'), storing as returned",
                lead_id, result.priority_tier, result.overall_score, expected_tier,
            )

        store.update_lead_scoring(lead_id, {
            'overall_score': result.overall_score,
            'priority_tier': result.priority_tier,
            'signals': [s.model_dump() for s in result.signals],
            'predicted_close_probability': result.predicted_close_probability,
        }, scored_at=now)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    return {
        'success': True,
        'scored': True,
        'overall_score': result.overall_score,
        'priority_tier': result.priority_tier,
        'predicted_close_probability': result.predicted_close_probability,
        'signals': [s.model_dump() for s in result.signals],
        'reasoning': result.reasoning,
        'suggested_next_action': result.suggested_next_action,
    }


def generate_lead_suggestions(lead_id: str, force: bool = False, now: datetime = None, generate=None) -> dict:
    """
    Ask the AI for next actions and materialize them as suggestions.

    Also proposes linking every associated email thread and meeting
    transcript that has not been suggested before.
    """
    cfg = load_engine_config()
    now = now or datetime.now(timezone.utc)

    session = get_session()
    try:
        store = SqlLeadStore(session)
        lead = store.get_lead(lead_id)
        if lead is None:
            raise NotFoundError('Lead', lead_id)

        if not force and not should_suggest_actions(
            lead.last_suggested_at, lead.last_contact_at,
            threshold_hours=cfg['staleness']['suggest_threshold_hours'], now=now,
        ):
            logger.info("Lead %s suggestions are fresh, skipping", lead_id)
            return {'success': True, 'generated': False, 'suggestions_created': 0}

        context = assemble_lead_context(lead_id, store, limits=cfg['context'])
        actions = suggest_actions(
            context,
            generate=generate,
            now=now,
            message_chars=cfg['prompts']['message_preview_chars'],
            transcript_chars=cfg['prompts']['transcript_chars'],
        )

        mat = cfg['materializer']
        outcome = materialize_suggestions(
            lead_id,
            actions.actions,
            context.threads,
            context.meetings,
            store,
            link_confidence=mat['link_confidence'],
            thread_reasoning=mat['link_thread_reasoning'],
            transcript_reasoning=mat['link_transcript_reasoning'],
        )
        store.mark_suggested(lead_id, now)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    return {
        'success': True,
        'generated': True,
        'suggestions_created': outcome.created_count,
        'materialized': outcome.to_dict(),
        'summary': actions.summary,
        'should_follow_up': actions.should_follow_up,
    }


def get_lead_context(lead_id: str) -> dict:
    """Assembled context bundle for a lead, as a JSON-ready dict."""
    cfg = load_engine_config()
    session = get_session()
    try:
        return assemble_lead_context(lead_id, SqlLeadStore(session), limits=cfg['context']).to_dict()
    finally:
        session.close()
