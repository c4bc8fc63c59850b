"""Tests for lead_engine.engine.materializer: suggestion writes and link idempotency."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from lead_engine.engine.materializer import materialize_suggestions
from lead_engine.engine.schemas import ActionContent, LeadAction
from lead_engine.engine.store import LeadStore, MeetingRecord, SuggestionRecord, ThreadRecord
from lead_engine.errors import PersistenceFailure
from lead_engine.models.suggestion import LINK_EMAIL_THREAD, LINK_TRANSCRIPT, Suggestion
from lead_engine.services.sql_store import SqlLeadStore

STARTS = datetime(2026, 2, 3, 15, 0, tzinfo=timezone.utc)


def _action(action_type='FOLLOW_UP', **overrides):
    fields = dict(action_type=action_type, title='Follow up', reasoning='Quiet for 4 days', confidence=0.7)
    fields.update(overrides)
    return LeadAction(**fields)


@pytest.fixture
def store():
    s = MagicMock(spec=LeadStore)
    s.list_lead_suggestions.return_value = []
    s.create_suggestion.side_effect = lambda payload: f'S-{s.create_suggestion.call_count}'
    return s


class TestMaterializeWithMockStore:

    def test_actions_become_pending_suggestions(self, store):
        result = materialize_suggestions('L1', [
            _action('REPLY', suggested_content=ActionContent(body='Hi Sarah')),
            _action('ADVANCE_STATUS', priority='high',
                    suggested_content=ActionContent(suggested_status='QUALIFIED', due_date='2026-03-12')),
        ], [], [], store)

        assert result.actions_created == 2
        reply, advance = [c[0][0] for c in store.create_suggestion.call_args_list]
        assert reply.type == 'REPLY'
        assert reply.status == 'PENDING'
        assert reply.suggested_content['body'] == 'Hi Sarah'
        assert reply.dedup_key is None
        assert advance.type == 'TASK'
        assert advance.action_type == 'ADVANCE_STATUS'
        assert advance.suggested_content['suggested_status'] == 'QUALIFIED'
        assert advance.suggested_content['suggested_due_date'] == '2026-03-12'
        assert advance.suggested_content['priority'] == 'high'

    def test_existing_links_read_once(self, store):
        materialize_suggestions('L1', [_action()], [ThreadRecord(id='T1'), ThreadRecord(id='T2')], [], store)
        store.list_lead_suggestions.assert_called_once_with(
            'L1', action_types=(LINK_EMAIL_THREAD, LINK_TRANSCRIPT),
        )

    def test_already_suggested_targets_skipped(self, store):
        store.list_lead_suggestions.return_value = [
            SuggestionRecord(id='S0', lead_id='L1', type='TASK', status='REJECTED',
                             action_type=LINK_EMAIL_THREAD, thread_id='T1'),
            SuggestionRecord(id='S9', lead_id='L1', type='TASK', status='PENDING',
                             action_type=LINK_TRANSCRIPT, meeting_id='MT1'),
        ]
        result = materialize_suggestions(
            'L1', [],
            [ThreadRecord(id='T1'), ThreadRecord(id='T2')],
            [MeetingRecord(id='MT1', title='Call', starts_at=STARTS, transcript_text='notes')],
            store,
        )
        assert result.thread_links_created == 1
        assert result.transcript_links_created == 0
        assert result.links_skipped == 2
        created = store.create_suggestion.call_args[0][0]
        assert created.thread_id == 'T2'
        assert created.dedup_key == 'L1|LINK_EMAIL_THREAD|T2'
        assert created.confidence == 0.8

    def test_link_reasoning_text(self, store):
        materialize_suggestions('L1', [], [ThreadRecord(id='T1')], [
            MeetingRecord(id='MT1', title='Call', starts_at=STARTS, transcript_text='notes'),
        ], store)
        thread_link, transcript_link = [c[0][0] for c in store.create_suggestion.call_args_list]
        assert thread_link.reasoning == 'Associated thread, approve to include in scoring context.'
        assert transcript_link.reasoning == 'Associated transcript, approve to include in scoring context.'

    def test_duplicate_target_within_one_run(self, store):
        result = materialize_suggestions('L1', [], [ThreadRecord(id='T1'), ThreadRecord(id='T1')], [], store)
        assert result.thread_links_created == 1
        assert result.links_skipped == 1

    def test_meeting_without_transcript_ignored(self, store):
        result = materialize_suggestions('L1', [], [], [
            MeetingRecord(id='MT1', title='No notes', starts_at=STARTS),
        ], store)
        assert result.created_count == 0
        assert result.links_skipped == 0
        store.create_suggestion.assert_not_called()

    def test_failed_action_write_propagates(self, store):
        store.create_suggestion.side_effect = PersistenceFailure('Failed to create suggestion: FOREIGN KEY constraint failed')
        with pytest.raises(PersistenceFailure):
            materialize_suggestions('L1', [_action()], [ThreadRecord(id='T1')], [], store)
        assert store.create_suggestion.call_count == 1

    def test_constraint_conflict_counts_as_skipped(self, store):
        store.create_suggestion.side_effect = None
        store.create_suggestion.return_value = None
        result = materialize_suggestions('L1', [], [ThreadRecord(id='T1')], [], store)
        assert result.thread_links_created == 0
        assert result.links_skipped == 1


class TestMaterializeAgainstDatabase:

    def _links(self, db_session, lead_id):
        return db_session.query(Suggestion).filter(
            Suggestion.lead_id == lead_id,
            Suggestion.action_type.in_([LINK_EMAIL_THREAD, LINK_TRANSCRIPT]),
        ).all()

    def test_second_run_creates_no_duplicate_links(self, db_session, make_lead, make_thread, make_meeting):
        lead = make_lead()
        thread = make_thread(participants=['sarah@techstart.io'])
        meeting = make_meeting(attendees=['sarah@techstart.io'])
        store = SqlLeadStore(db_session)

        first = materialize_suggestions(lead.id, [_action()], [thread], [meeting], store)
        db_session.commit()
        second = materialize_suggestions(lead.id, [_action()], [thread], [meeting], store)
        db_session.commit()

        assert first.thread_links_created == 1
        assert first.transcript_links_created == 1
        assert second.thread_links_created == 0
        assert second.transcript_links_created == 0
        assert second.links_skipped == 2
        assert second.actions_created == 1
        assert len(self._links(db_session, lead.id)) == 2

    def test_rejected_link_is_not_resuggested(self, db_session, make_lead, make_thread):
        lead = make_lead()
        thread = make_thread(participants=['sarah@techstart.io'])
        store = SqlLeadStore(db_session)

        materialize_suggestions(lead.id, [], [thread], [], store)
        link = self._links(db_session, lead.id)[0]
        link.status = 'REJECTED'
        db_session.commit()

        again = materialize_suggestions(lead.id, [], [thread], [], store)
        assert again.thread_links_created == 0
        assert len(self._links(db_session, lead.id)) == 1

    def test_dedup_constraint_guards_stale_snapshot(self, db_session, make_lead, make_thread):
        """A concurrent run inserted the link after this run read the existing set."""
        lead = make_lead()
        thread = make_thread(participants=['sarah@techstart.io'])
        store = SqlLeadStore(db_session)
        materialize_suggestions(lead.id, [], [thread], [], store)
        db_session.commit()

        stale = MagicMock(wraps=store)
        stale.list_lead_suggestions.return_value = []
        result = materialize_suggestions(lead.id, [], [thread], [], stale)

        assert result.thread_links_created == 0
        assert result.links_skipped == 1
        assert len(self._links(db_session, lead.id)) == 1
