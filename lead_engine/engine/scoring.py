"""
Scoring / action orchestrator.

Turns a LeadContext into a prompt, asks the generator for a schema-constrained
object and hands it back unchanged. No retries and no partial acceptance:
ValidationFailure and ExternalCallFailure propagate to the caller.

`generate` is any callable with the signature
generate(system_prompt, user_prompt, schema) -> schema instance. It defaults
to the OpenAI-backed lead_engine.services.openai_client.generate_structured.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from lead_engine.engine.context import LeadContext
from lead_engine.engine.prompts import (
    LEAD_ACTIONS_SYSTEM_PROMPT,
    LEAD_SCORING_SYSTEM_PROMPT,
    build_lead_actions_prompt,
    build_lead_scoring_prompt,
)
from lead_engine.engine.schemas import LeadActionsResult, LeadScoringResult

logger = logging.getLogger('engine.scoring')

HOT_THRESHOLD = 70
WARM_THRESHOLD = 40


def _default_generate():
    from lead_engine.services.openai_client import generate_structured
    return generate_structured


def tier_for_score(score: Optional[int], hot: int = HOT_THRESHOLD, warm: int = WARM_THRESHOLD) -> Optional[str]:
    """hot >= 70, warm 40-69, cold < 40. None when there is no score."""
    if score is None:
        return None
    if score >= hot:
        return 'hot'
    if score >= warm:
        return 'warm'
    return 'cold'


def score_lead(context: LeadContext, generate: Callable = None, max_emails: int = 20) -> LeadScoringResult:
    """Score a lead from its assembled context."""
    generate = generate or _default_generate()
    prompt = build_lead_scoring_prompt(context, max_emails=max_emails)
    result = generate(LEAD_SCORING_SYSTEM_PROMPT, prompt, LeadScoringResult)
    logger.info(
        "Lead %s scored %d (%s), %d signal(s)",
        context.lead.id, result.overall_score, result.priority_tier, len(result.signals),
    )
    return result


def suggest_actions(
    context: LeadContext,
    generate: Callable = None,
    now: Optional[datetime] = None,
    message_chars: int = 500,
    transcript_chars: int = 3000,
) -> LeadActionsResult:
    """Propose up to five next actions for a lead."""
    generate = generate or _default_generate()
    prompt = build_lead_actions_prompt(
        context, now=now, message_chars=message_chars, transcript_chars=transcript_chars,
    )
    result = generate(LEAD_ACTIONS_SYSTEM_PROMPT, prompt, LeadActionsResult)
    logger.info("Lead %s: %d action(s) suggested", context.lead.id, len(result.actions))
    return result
