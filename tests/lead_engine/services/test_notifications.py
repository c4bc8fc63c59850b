"""Tests for lead_engine.services.notifications: Slack batch summaries."""
import pytest
import requests
from unittest.mock import patch, MagicMock

from lead_engine.services.batch import BatchSummary
from lead_engine.services.circuit_breaker import CircuitBreaker, CircuitOpenError
from lead_engine.services.notifications import notify_batch_complete

WEBHOOK = 'https://hooks.slack.example/services/T000/B000/XXX'


@pytest.fixture(autouse=True)
def _breaker(fake_redis):
    cb = CircuitBreaker('slack', fake_redis, failure_threshold=3, reset_timeout=300)
    with patch('lead_engine.services.notifications.get_breaker', return_value=cb):
        yield cb


def _summary(**overrides):
    fields = dict(processed=4, succeeded=2, skipped=1, failed=1,
                  errors=[{'lead_id': 'lead-1234567890', 'error': 'openai: timeout'}],
                  duration_seconds=12.4)
    fields.update(overrides)
    return BatchSummary(**fields)


class TestNotifyBatchComplete:

    @patch('lead_engine.services.notifications.SLACK_WEBHOOK_URL', None)
    @patch('lead_engine.services.notifications.requests.post')
    def test_noop_without_webhook(self, mock_post):
        notify_batch_complete(_summary())
        mock_post.assert_not_called()

    @patch('lead_engine.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('lead_engine.services.notifications.requests.post')
    def test_posts_counts_and_errors(self, mock_post):
        notify_batch_complete(_summary())

        args, kwargs = mock_post.call_args
        assert args[0] == WEBHOOK
        blocks = kwargs['json']['blocks']
        assert blocks[0]['text']['text'] == 'Lead Scoring Batch Completed With Failures'
        fields = [f['text'] for f in blocks[1]['fields']]
        assert '*Processed:* 4' in fields
        assert '*Failed:* 1' in fields
        assert 'lead-123: openai: timeout' in blocks[2]['text']['text']
        assert kwargs['timeout'] == 10

    @patch('lead_engine.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('lead_engine.services.notifications.requests.post')
    def test_clean_run_headline(self, mock_post):
        notify_batch_complete(_summary(failed=0, errors=[]))
        blocks = mock_post.call_args[1]['json']['blocks']
        assert blocks[0]['text']['text'] == 'Lead Scoring Batch Completed'
        assert all(b['type'] != 'section' or 'fields' in b for b in blocks)

    @patch('lead_engine.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('lead_engine.services.notifications.requests.post')
    def test_http_error_is_logged_not_raised(self, mock_post, _breaker, caplog):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError('500')
        mock_post.return_value = response

        notify_batch_complete(_summary())

        assert 'Failed to send batch completion notification' in caplog.text

    @patch('lead_engine.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('lead_engine.services.notifications.requests.post')
    def test_open_circuit_is_swallowed(self, mock_post, _breaker):
        with patch.object(_breaker, 'call', side_effect=CircuitOpenError('slack')):
            notify_batch_complete(_summary())
        mock_post.assert_not_called()

    @patch('lead_engine.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('lead_engine.services.notifications.requests.post')
    def test_connection_error_counts_against_breaker(self, mock_post, _breaker):
        mock_post.side_effect = requests.ConnectionError('refused')
        notify_batch_complete(_summary())
        assert _breaker.failure_count == 1
