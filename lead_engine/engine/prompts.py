"""
Prompt builders for lead scoring and next-action suggestion.

Builders are deterministic: the same LeadContext and `now` always render the
same text. Long message bodies and transcripts are truncated here, on top of
the caps the context assembler already applies.
"""
from datetime import datetime, timezone
from typing import List, Optional

from lead_engine.engine.context import LeadContext


LEAD_SCORING_SYSTEM_PROMPT = """You are an expert sales intelligence analyst. Your job is to score leads based on their likelihood to convert to paying clients.

## Scoring Dimensions (100 points total)

1. **Engagement (0-25 points)**: response time and frequency, back-and-forth communication, questions about services or pricing, meeting or follow-up requests.
2. **Fit (0-25 points)**: company size and industry relevance, budget signals, technical requirements match, clear use case.
3. **Intent (0-25 points)**: urgency and timeline pressure, specificity of requirements, decision-maker involvement, competitive evaluation.
4. **Momentum (0-25 points)**: recency of contact (decays over time), stage velocity, consistency of engagement, forward movement versus stalling.

## Signal Types to Detect

- fast_response: Lead replied within 24 hours
- multiple_stakeholders: Multiple contacts or team members involved
- budget_mentioned: Budget, pricing, or investment discussed
- urgency_detected: Timeline pressure or urgent needs
- competitor_mentioned: Evaluating alternatives or competitors
- decision_maker: C-level, VP, or clear decision authority involved
- going_cold: No response for 7+ days, declining engagement
- technical_fit: Requirements align well with capabilities
- clear_requirements: Specific, well-defined project scope
- follow_up_requested: Lead asked for more info or next steps

## Priority Tiers

- **hot (70-100)**: High probability of conversion, prioritize immediate action
- **warm (40-69)**: Good potential, needs nurturing and consistent follow-up
- **cold (<40)**: Low probability, may need qualification or longer-term nurturing

The priority_tier you return MUST match the band of overall_score.

## Close Probability

Estimate the probability (0.0 to 1.0) that this lead becomes a paying client. This is a calibrated probability, not the score divided by 100: a lead scoring 70 can sit at 0.45 when there are known risk factors.

Be analytical and objective. Base your scoring on concrete signals, not assumptions."""


LEAD_ACTIONS_SYSTEM_PROMPT = """You are an expert sales assistant that recommends next actions for leads in a CRM pipeline.

Analyze the lead's current state, email history, meeting transcripts, and signals to suggest the most impactful next actions. Meeting transcripts carry the richest context about needs, concerns, and timeline.

## Action Types

- **FOLLOW_UP**: no response for 3+ days on an active lead, after outreach, after a proposal, or to check on a decision timeline
- **REPLY**: the lead sent an email that is unanswered or has open questions
- **SCHEDULE_CALL**: the lead is qualified and engaged, requirements are complex, or decision-makers are involved
- **SEND_PROPOSAL**: requirements are defined, budget was discussed, and the lead has expressed buying intent
- **ADVANCE_STATUS**: current status does not match activity, the lead has gone cold (14+ days), or the deal is won, lost or unqualified

## Priority Levels

- **high**: act within 24 hours
- **medium**: can wait 2-3 days
- **low**: when time permits

## Guidelines

1. Be specific and actionable.
2. Do not suggest redundant or conflicting actions.
3. Prefer 1-3 high-impact actions; never more than 5.
4. If the lead is cold or unqualified, suggest minimal actions.
5. If a meeting mentioned next steps or action items, prioritize those."""


def _iso(value) -> str:
    if value is None:
        return 'Never'
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def _days_between(earlier: datetime, now: datetime) -> int:
    return (_as_utc(now) - _as_utc(earlier)).days


def _relative_days(value: Optional[datetime], now: datetime) -> str:
    if value is None:
        return 'Never contacted'
    days = _days_between(value, now)
    if days <= 0:
        return 'Today'
    if days == 1:
        return 'Yesterday'
    return f'{days} days ago'


def _truncate(text: str, limit: int, marker: str = '...') -> str:
    return text if len(text) <= limit else text[:limit] + marker


def _signal_lines(signals) -> List[str]:
    lines = []
    for s in signals or []:
        if not isinstance(s, dict) or not s.get('type'):
            continue
        line = f"- {s['type']} (weight: {s.get('weight', 0)})"
        if s.get('detail'):
            line += f": {s['detail']}"
        lines.append(line)
    return lines


def build_lead_scoring_prompt(context: LeadContext, max_emails: int = 20) -> str:
    """Render the scoring prompt: lead facts, recent emails, previously detected signals."""
    lead = context.lead
    source = lead.source_type or 'Unknown'
    if lead.source_detail:
        source += f' ({lead.source_detail})'

    sections = [
        '\n'.join([
            '## Lead Information',
            '',
            f'- **Contact Name**: {lead.contact_name}',
            f"- **Contact Email**: {lead.contact_email or 'Not provided'}",
            f"- **Company**: {lead.company_name or 'Not provided'}",
            f"- **Website**: {lead.company_website or 'Not provided'}",
            f'- **Current Status**: {lead.status}',
            f'- **Source**: {source}',
            f'- **Created**: {_iso(lead.created_at)}',
            f'- **Last Contact**: {_iso(lead.last_contact_at)}',
            f"- **Awaiting Reply**: {'Yes' if lead.awaiting_reply else 'No'}",
            f"- **Estimated Value**: {f'${lead.estimated_value:,}' if lead.estimated_value else 'Not set'}",
            '',
            '### Notes',
            lead.notes or 'No notes available.',
        ])
    ]

    emails = [m for t in context.threads for m in t.messages]
    emails.sort(key=lambda m: _as_utc(m.sent_at), reverse=True)
    emails = emails[:max_emails]
    if emails:
        blocks = [f'## Email History ({len(emails)} messages)']
        for i, m in enumerate(emails, start=1):
            blocks.append('\n'.join([
                f"**Email {i}** ({'Inbound' if m.is_inbound else 'Outbound'}) - {_iso(m.sent_at)}",
                f'From: {m.from_email}',
                f"Subject: {m.subject or '(No subject)'}",
                m.snippet or m.body_preview or '',
            ]))
        sections.append('\n\n'.join(blocks))

    signal_lines = _signal_lines(lead.signals)
    if signal_lines:
        sections.append('## Previously Detected Signals\n' + '\n'.join(signal_lines))

    sections.append(
        '---\n\nAnalyze this lead and provide a comprehensive score based on the available '
        'information. Consider all dimensions and detect relevant signals.'
    )
    return '\n\n'.join(sections)


def build_lead_actions_prompt(
    context: LeadContext,
    now: Optional[datetime] = None,
    message_chars: int = 500,
    transcript_chars: int = 3000,
) -> str:
    """Render the next-action prompt: lead state, threads with messages, meeting transcripts, signals."""
    now = now or datetime.now(timezone.utc)
    lead = context.lead

    info = [
        '## Lead Information',
        '',
        f'- **Contact Name**: {lead.contact_name}',
        f"- **Email**: {lead.contact_email or 'Not provided'}",
        f"- **Company**: {lead.company_name or 'Not provided'}",
        f'- **Current Status**: {lead.status}',
        f"- **Source**: {lead.source_type or 'Unknown'}",
        f'- **Days Since Created**: {_days_between(lead.created_at, now) if lead.created_at else 0}',
        f'- **Last Contact**: {_relative_days(lead.last_contact_at, now)}',
        f"- **Awaiting Reply**: {'Yes - lead has not responded' if lead.awaiting_reply else 'No'}",
    ]
    if lead.overall_score is not None:
        info.append(f'- **Score**: {lead.overall_score}/100')
    if lead.priority_tier:
        info.append(f'- **Priority Tier**: {lead.priority_tier}')
    info += ['', '### Notes', lead.notes or 'No notes available.']
    sections = ['\n'.join(info)]

    if context.threads:
        details = []
        for t in context.threads:
            detail = '\n'.join([
                f"### Thread: \"{t.subject or '(No subject)'}\"",
                f'- Messages: {t.message_count}',
                f'- Last activity: {_iso(t.last_message_at)}',
            ])
            if t.messages:
                rendered = []
                for m in t.messages:
                    sender = f'{m.from_name or m.from_email} (lead)' if m.is_inbound else 'You (sent)'
                    content = _truncate(m.body_preview or m.snippet or '(empty)', message_chars)
                    rendered.append(f'**{sender}** ({_iso(m.sent_at)}):\n{content}')
                detail += '\n\n#### Recent Messages:\n' + '\n\n'.join(rendered)
            details.append(detail)
        plural = 's' if len(context.threads) > 1 else ''
        sections.append(
            f'## Email Conversation History ({len(context.threads)} thread{plural})\n\n'
            + '\n\n---\n\n'.join(details)
        )

    if context.meetings:
        details = []
        for m in context.meetings:
            detail = '\n'.join([
                f'### Meeting: "{m.title}"',
                f"- Date: {_as_utc(m.starts_at).strftime('%a, %b %d, %Y')}",
                f'- Status: {m.status}',
            ])
            if m.transcript_text:
                transcript = _truncate(m.transcript_text, transcript_chars, '\n\n... (transcript truncated)')
                detail += f'\n\n#### Transcript/Notes:\n{transcript}'
            details.append(detail)
        plural = 's' if len(context.meetings) > 1 else ''
        sections.append(
            f'## Meeting History ({len(context.meetings)} meeting{plural})\n\n'
            + '\n\n---\n\n'.join(details)
        )

    signal_lines = _signal_lines(lead.signals)
    if signal_lines:
        sections.append('## Detected Signals\n' + '\n'.join(signal_lines))

    sections.append(
        "---\n\nBased on the lead's current state, suggest the most impactful next actions. "
        'Focus on high-value actions that will move this lead forward.'
    )
    return '\n\n'.join(sections)
