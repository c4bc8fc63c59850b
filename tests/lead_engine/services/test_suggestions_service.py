"""Tests for lead_engine.services.suggestions: grouping and review transitions."""
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from lead_engine.errors import InvalidTransition, NotFoundError
from lead_engine.models.suggestion import Suggestion
from lead_engine.services.suggestions import (
    approve_suggestion, delete_suggestion, group_suggestions, list_lead_suggestions, reject_suggestion,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_suggestion(db_session):
    def _make(lead_id, **overrides):
        fields = dict(
            lead_id=lead_id, type='TASK', status='PENDING', action_type='FOLLOW_UP', confidence=0.7,
            suggested_content={'title': 'Follow up', 'body': 'Checking in', 'priority': 'medium'},
        )
        fields.update(overrides)
        row = Suggestion(**fields)
        db_session.add(row)
        db_session.commit()
        return row
    return _make


class TestGroupSuggestions:

    def test_buckets(self):
        items = [SimpleNamespace(id=str(i), status=s) for i, s in enumerate(
            ['PENDING', 'DRAFT', 'APPROVED', 'MODIFIED', 'REJECTED', 'WEIRD'],
        )]
        grouped = group_suggestions(items)
        assert [s.status for s in grouped['pending']] == ['PENDING', 'DRAFT']
        assert [s.status for s in grouped['approved']] == ['APPROVED', 'MODIFIED']
        assert [s.status for s in grouped['rejected']] == ['REJECTED']


class TestListLeadSuggestions:

    def test_counts_and_buckets(self, make_lead, make_suggestion):
        lead = make_lead()
        make_suggestion(lead.id)
        make_suggestion(lead.id, status='APPROVED')
        make_suggestion(lead.id, status='REJECTED', deleted_at=NOW)

        result = list_lead_suggestions(lead.id)

        assert result['counts'] == {'pending': 1, 'approved': 1, 'rejected': 0}
        assert result['suggestions']['pending'][0]['action_type'] == 'FOLLOW_UP'

    def test_missing_lead(self):
        with pytest.raises(NotFoundError):
            list_lead_suggestions('missing')


class TestReview:

    def test_approve_unchanged(self, make_lead, make_suggestion, db_session):
        s = make_suggestion(make_lead().id)
        result = approve_suggestion(s.id, now=NOW)
        assert result['status'] == 'APPROVED'
        row = db_session.get(Suggestion, s.id)
        assert row.status == 'APPROVED'
        assert row.reviewed_at is not None

    def test_approve_with_edits_is_modified(self, make_lead, make_suggestion, db_session):
        s = make_suggestion(make_lead().id)
        result = approve_suggestion(s.id, modifications={'body': 'New draft', 'bogus': 1}, now=NOW)
        assert result['status'] == 'MODIFIED'
        content = db_session.get(Suggestion, s.id).suggested_content
        assert content['body'] == 'New draft'
        assert 'bogus' not in content

    def test_approve_with_identical_edits_is_approved(self, make_lead, make_suggestion):
        s = make_suggestion(make_lead().id)
        assert approve_suggestion(s.id, modifications={'body': 'Checking in'}, now=NOW)['status'] == 'APPROVED'

    def test_link_suggestion_ignores_edits(self, make_lead, make_suggestion):
        s = make_suggestion(make_lead().id, action_type='LINK_EMAIL_THREAD', suggested_content={})
        assert approve_suggestion(s.id, modifications={'body': 'x'}, now=NOW)['status'] == 'APPROVED'

    def test_reject(self, make_lead, make_suggestion, db_session):
        s = make_suggestion(make_lead().id)
        assert reject_suggestion(s.id, reason='Not relevant', now=NOW)['status'] == 'REJECTED'
        assert db_session.get(Suggestion, s.id).status == 'REJECTED'

    @pytest.mark.parametrize('status', ['APPROVED', 'REJECTED'])
    def test_processed_suggestion_cannot_be_reviewed_again(self, make_lead, make_suggestion, status):
        s = make_suggestion(make_lead().id, status=status)
        with pytest.raises(InvalidTransition):
            approve_suggestion(s.id, now=NOW)
        with pytest.raises(InvalidTransition):
            reject_suggestion(s.id, now=NOW)

    def test_missing_suggestion(self):
        with pytest.raises(NotFoundError):
            approve_suggestion('missing', now=NOW)

    def test_delete(self, make_lead, make_suggestion, db_session):
        s = make_suggestion(make_lead().id, dedup_key='k')
        delete_suggestion(s.id, now=NOW)
        row = db_session.get(Suggestion, s.id)
        assert row.deleted_at is not None
        assert row.dedup_key is None
        with pytest.raises(NotFoundError):
            delete_suggestion(s.id, now=NOW)
