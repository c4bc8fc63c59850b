"""Tests for lead_engine.engine.matching: tiered email-to-lead and email-to-client matching."""
import pytest
from unittest.mock import MagicMock

from lead_engine.engine.matching import (
    CONTACT_EMAIL, DIRECT_EMAIL, DOMAIN, HIGH, MEDIUM,
    MatchCandidate, extract_domain, match_emails_to_clients, match_emails_to_leads,
    match_meeting_to_leads, merge_candidates, normalize_emails,
)
from lead_engine.engine.store import ClientContactRecord, ContactLinkRecord, LeadRecord, LeadStore

FREE = frozenset({'gmail.com', 'yahoo.com', 'outlook.com'})


@pytest.fixture
def store():
    """LeadStore mock that returns nothing from every lookup."""
    s = MagicMock(spec=LeadStore)
    s.find_leads_by_emails.return_value = []
    s.find_contact_links_by_emails.return_value = []
    s.find_contact_links_by_domains.return_value = []
    s.find_leads_by_domains.return_value = []
    return s


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestNormalization:

    def test_normalize_trims_lowercases_and_dedupes(self):
        assert normalize_emails([' Sarah@TechStart.io ', 'sarah@techstart.io', '', None, 'bob@acme.com']) == [
            'sarah@techstart.io', 'bob@acme.com',
        ]

    def test_extract_domain_uses_first_at(self):
        assert extract_domain('weird@name@acme.com') == 'name@acme.com'

    def test_extract_domain_without_at(self):
        assert extract_domain('not-an-email') == ''


class TestMergeCandidates:

    def test_best_rank_wins_regardless_of_list_order(self):
        domain = MatchCandidate('L1', 'Sarah', 'x@acme.com', MEDIUM, DOMAIN)
        direct = MatchCandidate('L1', 'Sarah', 'sarah@acme.com', HIGH, DIRECT_EMAIL)
        merged = merge_candidates([[domain], [direct]])
        assert len(merged) == 1
        assert merged[0].match_source == DIRECT_EMAIL

    def test_direct_beats_contact_email(self):
        contact = MatchCandidate('L1', 'Bob', 'bob@acme.com', HIGH, CONTACT_EMAIL)
        direct = MatchCandidate('L1', 'Sarah', 'sarah@acme.com', HIGH, DIRECT_EMAIL)
        merged = merge_candidates([[contact, direct]])
        assert merged[0].match_source == DIRECT_EMAIL

    def test_sorted_by_confidence_then_first_seen(self):
        merged = merge_candidates([
            [MatchCandidate('L2', 'B', 'b@acme.com', MEDIUM, DOMAIN)],
            [MatchCandidate('L1', 'A', 'a@x.com', HIGH, CONTACT_EMAIL)],
            [MatchCandidate('L3', 'C', 'c@acme.com', MEDIUM, DOMAIN)],
        ])
        assert [c.lead_id for c in merged] == ['L1', 'L2', 'L3']


# ---------------------------------------------------------------------------
# match_emails_to_leads
# ---------------------------------------------------------------------------

class TestMatchEmailsToLeads:

    def test_empty_input_touches_nothing(self, store):
        assert match_emails_to_leads([], store, FREE) == []
        assert match_emails_to_leads(['  ', None], store, FREE) == []
        assert store.method_calls == []

    def test_direct_email_match_is_high(self, store):
        store.find_leads_by_emails.return_value = [
            LeadRecord(id='L1', contact_name='Sarah Chen', contact_email='Sarah@TechStart.io'),
        ]
        result = match_emails_to_leads(['sarah@techstart.io'], store, FREE)
        assert len(result) == 1
        assert result[0].lead_id == 'L1'
        assert result[0].confidence == HIGH
        assert result[0].match_source == DIRECT_EMAIL
        assert result[0].matched_email == 'sarah@techstart.io'

    def test_input_is_normalized_before_lookup(self, store):
        match_emails_to_leads(['  SARAH@TechStart.IO '], store, FREE)
        store.find_leads_by_emails.assert_called_once_with(['sarah@techstart.io'])

    def test_contact_email_match_is_high(self, store):
        store.find_contact_links_by_emails.return_value = [
            ContactLinkRecord(lead_id='L1', contact_id='C1', contact_name='Bob', email='bob@acme.com'),
        ]
        result = match_emails_to_leads(['bob@acme.com'], store, FREE)
        assert result[0].match_source == CONTACT_EMAIL
        assert result[0].confidence == HIGH
        assert result[0].contact_name == 'Bob'

    def test_domain_match_is_medium(self, store):
        store.find_contact_links_by_domains.return_value = [
            ContactLinkRecord(lead_id='L9', contact_id='C9', contact_name='Alice', email='alice@acme.com'),
        ]
        result = match_emails_to_leads(['newperson@acme.com'], store, FREE)
        assert len(result) == 1
        assert result[0].confidence == MEDIUM
        assert result[0].match_source == DOMAIN
        assert result[0].matched_email == 'alice@acme.com'
        store.find_contact_links_by_domains.assert_called_once_with(['acme.com'])

    def test_lead_own_email_domain_match(self, store):
        store.find_leads_by_domains.return_value = [
            LeadRecord(id='L4', contact_name='Dana', contact_email='dana@acme.com'),
        ]
        result = match_emails_to_leads(['ceo@acme.com'], store, FREE)
        assert [(c.lead_id, c.match_source) for c in result] == [('L4', DOMAIN)]

    def test_free_domains_never_domain_matched(self, store):
        result = match_emails_to_leads(['someone@gmail.com'], store, FREE)
        assert result == []
        store.find_contact_links_by_domains.assert_not_called()
        store.find_leads_by_domains.assert_not_called()

    def test_free_domain_still_direct_matches(self, store):
        store.find_leads_by_emails.return_value = [
            LeadRecord(id='L1', contact_name='Jo', contact_email='jo@gmail.com'),
        ]
        result = match_emails_to_leads(['jo@gmail.com'], store, FREE)
        assert result[0].match_source == DIRECT_EMAIL

    def test_domain_lookup_rechecks_exact_domain(self, store):
        # LIKE prefilter can return sub-domain lookalikes
        store.find_contact_links_by_domains.return_value = [
            ContactLinkRecord(lead_id='L5', contact_id='C5', contact_name='Eve', email='eve@mail.notacme.com'),
        ]
        assert match_emails_to_leads(['x@acme.com'], store, FREE) == []

    def test_direct_wins_over_domain_for_same_lead(self, store):
        store.find_leads_by_emails.return_value = [
            LeadRecord(id='L1', contact_name='Sarah', contact_email='sarah@acme.com'),
        ]
        store.find_contact_links_by_domains.return_value = [
            ContactLinkRecord(lead_id='L1', contact_id='C1', contact_name='Bob', email='bob@acme.com'),
        ]
        store.find_leads_by_domains.return_value = [
            LeadRecord(id='L1', contact_name='Sarah', contact_email='sarah@acme.com'),
        ]
        result = match_emails_to_leads(['sarah@acme.com'], store, FREE)
        assert len(result) == 1
        assert result[0].match_source == DIRECT_EMAIL

    def test_multiple_leads_ordered_high_first(self, store):
        store.find_contact_links_by_domains.return_value = [
            ContactLinkRecord(lead_id='L2', contact_id='C2', contact_name='Al', email='al@acme.com'),
        ]
        store.find_leads_by_emails.return_value = [
            LeadRecord(id='L1', contact_name='Sarah', contact_email='sarah@techstart.io'),
        ]
        result = match_emails_to_leads(['sarah@techstart.io', 'zed@acme.com'], store, FREE)
        assert [c.lead_id for c in result] == ['L1', 'L2']
        assert [c.confidence for c in result] == [HIGH, MEDIUM]

    def test_defaults_to_configured_free_domains(self, store):
        result = match_emails_to_leads(['someone@gmail.com'], store)
        assert result == []
        store.find_contact_links_by_domains.assert_not_called()

    def test_meeting_matching_uses_same_rules(self, store):
        store.find_leads_by_emails.return_value = [
            LeadRecord(id='L1', contact_name='Sarah', contact_email='sarah@techstart.io'),
        ]
        result = match_meeting_to_leads(['sarah@techstart.io', 'me@gmail.com'], store, FREE)
        assert [c.lead_id for c in result] == ['L1']


class TestMatchingAgainstDatabase:
    """Same rules through SqlLeadStore on SQLite."""

    def test_soft_deleted_lead_is_not_matched(self, db_session, make_lead):
        from datetime import datetime, timezone
        from lead_engine.services.sql_store import SqlLeadStore

        make_lead(contact_email='gone@techstart.io', deleted_at=datetime(2026, 1, 2, tzinfo=timezone.utc))
        assert match_emails_to_leads(['gone@techstart.io'], SqlLeadStore(db_session), FREE) == []

    def test_domain_match_through_linked_contact(self, db_session, make_lead, make_contact):
        from lead_engine.services.sql_store import SqlLeadStore

        lead = make_lead(contact_email='sarah@gmail.com')
        make_contact('cto@acme.com', name='Raj', lead_ids=[lead.id])
        result = match_emails_to_leads(['intern@acme.com'], SqlLeadStore(db_session), FREE)
        assert [(c.lead_id, c.match_source, c.matched_email) for c in result] == [
            (lead.id, DOMAIN, 'cto@acme.com'),
        ]

    def test_case_insensitive_direct_match(self, db_session, make_lead):
        from lead_engine.services.sql_store import SqlLeadStore

        lead = make_lead(contact_email='Sarah@TechStart.io')
        result = match_emails_to_leads(['SARAH@techstart.io'], SqlLeadStore(db_session), FREE)
        assert result[0].lead_id == lead.id
        assert result[0].match_source == DIRECT_EMAIL


class TestMatchEmailsToClients:

    @pytest.fixture
    def client_store(self):
        s = MagicMock(spec=LeadStore)
        s.find_client_contacts_by_emails.return_value = []
        s.find_client_contacts_by_domains.return_value = []
        return s

    def test_empty_input_touches_nothing(self, client_store):
        assert match_emails_to_clients(['', None], client_store, FREE) == []
        client_store.find_client_contacts_by_emails.assert_not_called()
        client_store.find_client_contacts_by_domains.assert_not_called()

    def test_exact_contact_email_is_high(self, client_store):
        client_store.find_client_contacts_by_emails.return_value = [
            ClientContactRecord('C1', 'Acme Corp', 'K1', 'Bob@Acme.com'),
        ]
        client_store.find_client_contacts_by_domains.return_value = [
            ClientContactRecord('C1', 'Acme Corp', 'K1', 'bob@acme.com'),
        ]
        [cand] = match_emails_to_clients(['bob@acme.com'], client_store, FREE)
        assert (cand.client_id, cand.confidence, cand.match_source) == ('C1', HIGH, CONTACT_EMAIL)
        assert cand.to_dict()['client_name'] == 'Acme Corp'

    def test_domain_match_is_medium(self, client_store):
        client_store.find_client_contacts_by_domains.return_value = [
            ClientContactRecord('C1', 'Acme Corp', 'K1', 'bob@acme.com'),
        ]
        [cand] = match_emails_to_clients(['alice@acme.com'], client_store, FREE)
        assert (cand.confidence, cand.match_source, cand.matched_email) == (MEDIUM, DOMAIN, 'bob@acme.com')
        client_store.find_client_contacts_by_domains.assert_called_once_with(['acme.com'])

    def test_free_domain_not_domain_matched(self, client_store):
        assert match_emails_to_clients(['x@gmail.com'], client_store, FREE) == []
        client_store.find_client_contacts_by_domains.assert_not_called()

    def test_one_candidate_per_client(self, client_store):
        client_store.find_client_contacts_by_emails.return_value = [
            ClientContactRecord('C1', 'Acme Corp', 'K1', 'bob@acme.com'),
        ]
        client_store.find_client_contacts_by_domains.return_value = [
            ClientContactRecord('C1', 'Acme Corp', 'K2', 'eve@acme.com'),
            ClientContactRecord('C2', 'Acme Labs', 'K3', 'ann@acme.com'),
        ]
        result = match_emails_to_clients(['bob@acme.com'], client_store, FREE)
        assert [(c.client_id, c.confidence) for c in result] == [('C1', HIGH), ('C2', MEDIUM)]
