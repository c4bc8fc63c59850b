"""
Pydantic schemas for structured AI outputs.

The JSON schema of each model (field descriptions included) is sent to the
model with the prompt, and the raw completion is validated against it. Output
that does not validate is rejected as a whole.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Lead scoring
# =============================================================================

class LeadSignal(BaseModel):
    """A buying signal detected in the lead's history."""
    type: str = Field(
        description="Signal identifier, e.g. fast_response, budget_mentioned, going_cold"
    )
    weight: float = Field(
        ge=0.0, le=1.0,
        description="Contribution of this signal to the overall score (0-1)"
    )
    detail: Optional[str] = Field(
        default=None,
        description="Short evidence for the signal, quoting the source where possible"
    )


class LeadScoringResult(BaseModel):
    """Structured output for lead scoring."""
    overall_score: int = Field(
        ge=0, le=100,
        description="Overall conversion likelihood score, 0-100"
    )
    priority_tier: Literal['hot', 'warm', 'cold'] = Field(
        description="hot for 70-100, warm for 40-69, cold below 40"
    )
    signals: List[LeadSignal] = Field(
        default_factory=list,
        description="Signals detected, most important first"
    )
    reasoning: str = Field(
        max_length=500,
        description="Brief explanation of the scoring rationale (max 500 characters)"
    )
    predicted_close_probability: float = Field(
        ge=0.0, le=1.0,
        description="Calibrated probability (0-1) that the lead becomes a paying client"
    )
    suggested_next_action: Optional[str] = Field(
        default=None,
        description="The single most useful next step"
    )


# =============================================================================
# Lead actions
# =============================================================================

class ActionContent(BaseModel):
    """Optional payload for an action (draft text, target status, due date)."""
    body: Optional[str] = Field(
        default=None,
        description="Draft reply or task description"
    )
    suggested_status: Optional[str] = Field(
        default=None,
        description="Target lead status for ADVANCE_STATUS actions"
    )
    due_date: Optional[str] = Field(
        default=None,
        description="Suggested due date, ISO 8601 (YYYY-MM-DD)"
    )


class LeadAction(BaseModel):
    """A single recommended next action."""
    action_type: Literal['FOLLOW_UP', 'REPLY', 'SCHEDULE_CALL', 'SEND_PROPOSAL', 'ADVANCE_STATUS'] = Field(
        description="Kind of action"
    )
    title: str = Field(
        description="Short imperative title, e.g. 'Follow up on pricing question'"
    )
    reasoning: str = Field(
        description="Why this action, referencing specific emails, meetings or signals"
    )
    confidence: float = Field(
        ge=0.0, le=1.0,
        description="Confidence that this action is right (0-1)"
    )
    priority: Literal['high', 'medium', 'low'] = Field(
        default='medium',
        description="high: within 24 hours, medium: 2-3 days, low: when time permits"
    )
    suggested_content: Optional[ActionContent] = Field(
        default=None,
        description="Draft content for the action, if any"
    )


class LeadActionsResult(BaseModel):
    """Structured output for next-action suggestion."""
    actions: List[LeadAction] = Field(
        default_factory=list,
        max_length=5,
        description="Up to 5 recommended actions, highest impact first"
    )
    summary: str = Field(
        description="One or two sentences on where the lead stands"
    )
    should_follow_up: bool = Field(
        description="Whether the lead needs outreach now"
    )
