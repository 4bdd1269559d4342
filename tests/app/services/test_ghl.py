"""Tests for app.services.ghl — contact upsert, opportunity creation, webhook."""
import pytest
import requests
from unittest.mock import patch, MagicMock

from app.services.ghl import (
    BUCKET_TAGS,
    CrmSyncResult,
    build_contact_payload,
    build_opportunity_payload,
    send_to_ghl,
    send_to_ghl_webhook,
)


def _response(status_code=200, json_data=None):
    resp = MagicMock(status_code=status_code, ok=200 <= status_code < 300)
    resp.json.return_value = json_data if json_data is not None else {}
    return resp


@pytest.fixture
def ghl_configured():
    with patch('app.services.ghl.GHL_API_KEY', 'ghl-key'), \
            patch('app.services.ghl.GHL_LOCATION_ID', 'loc-123'):
        yield


@pytest.fixture
def mock_request():
    with patch('app.services.ghl.requests.request') as req:
        yield req


class TestBuildContactPayload:

    def test_fields(self, ghl_configured, lead_form, diagnostic_result):
        payload = build_contact_payload(lead_form, diagnostic_result)
        assert payload['locationId'] == 'loc-123'
        assert payload['firstName'] == 'Dana'
        assert payload['email'] == 'dana@example.com'
        assert payload['website'] == 'https://rangereadygear.com'
        assert payload['source'] == 'Diagnostic Tool'

    def test_tags(self, lead_form, diagnostic_result):
        tags = build_contact_payload(lead_form, diagnostic_result)['tags']
        assert 'diagnostic-lead' in tags
        assert BUCKET_TAGS['solid'] in tags
        assert 'revenue-50k-150k' in tags

    def test_no_revenue_tag_without_range(self, form_payload, diagnostic_result):
        from app.validation import LeadForm
        del form_payload['monthlyRevenueRange']
        form = LeadForm.model_validate(form_payload)
        tags = build_contact_payload(form, diagnostic_result)['tags']
        assert not any(tag.startswith('revenue-') for tag in tags)

    def test_custom_fields_are_strings(self, lead_form, diagnostic_result):
        fields = {
            f['key']: f['field_value']
            for f in build_contact_payload(lead_form, diagnostic_result)['customFields']
        }
        assert fields['leak_score'] == '80'
        assert fields['leak_bucket'] == 'solid'
        assert fields['top_leak_1'] == 'Cart Recovery Opportunity'
        assert fields['top_leak_2'] == 'Room for Conversion Improvement'
        assert fields['sessions_30d'] == '15000'

    def test_missing_leaks_are_none_strings(self, lead_form, make_metrics):
        from app.diagnostic.engine import run_diagnostic
        result = run_diagnostic(make_metrics(conversion_rate=3.0, aov=200, abandoned_carts_30d=0))
        fields = {f['key']: f['field_value'] for f in build_contact_payload(lead_form, result)['customFields']}
        assert fields['top_leak_1'] == 'None'
        assert fields['top_leak_2'] == 'None'


class TestBuildOpportunityPayload:

    def test_solid_bucket_value(self, lead_form, diagnostic_result):
        payload = build_opportunity_payload('c-1', lead_form, diagnostic_result)
        # 50025 × 0.05 = 2501.25
        assert payload['monetaryValue'] == 2501
        assert payload['contactId'] == 'c-1'
        assert payload['status'] == 'open'
        assert payload['name'] == 'Dana - Diagnostic Lead (rangereadygear.com)'

    def test_meaningful_bucket_value(self, lead_form, make_metrics):
        from app.diagnostic.engine import run_diagnostic
        result = run_diagnostic(make_metrics(
            sessions_30d=10000, orders_30d=100, conversion_rate=1.2, aov=70, abandoned_carts_30d=300,
        ))
        assert result.leak_bucket == 'meaningful'
        # 8400 × 0.15
        assert build_opportunity_payload('c-1', lead_form, result)['monetaryValue'] == 1260


class TestSendToGhl:

    def test_not_configured(self, lead_form, diagnostic_result, mock_request):
        with patch('app.services.ghl.GHL_API_KEY', None):
            result = send_to_ghl(lead_form, diagnostic_result)
        assert result == CrmSyncResult(False, error='GHL not configured')
        mock_request.assert_not_called()

    def test_contact_and_opportunity(self, ghl_configured, mock_request, lead_form, diagnostic_result):
        mock_request.side_effect = [
            _response(200, {'contact': {'id': 'c-1'}}),
            _response(201, {'opportunity': {'id': 'o-1'}}),
        ]
        result = send_to_ghl(lead_form, diagnostic_result)
        assert result == CrmSyncResult(True, contact_id='c-1', opportunity_id='o-1')

        first, second = mock_request.call_args_list
        assert first.args == ('POST', 'https://services.leadconnectorhq.com/contacts/upsert')
        assert first.kwargs['headers']['Version'] == '2021-07-28'
        assert first.kwargs['headers']['Authorization'] == 'Bearer ghl-key'
        assert second.args[1].endswith('/opportunities/')
        assert second.kwargs['json']['contactId'] == 'c-1'

    def test_contact_failure(self, ghl_configured, mock_request, lead_form, diagnostic_result):
        mock_request.return_value = _response(422, {'message': 'Invalid email'})
        result = send_to_ghl(lead_form, diagnostic_result)
        assert result.success is False
        assert result.error == 'Invalid email'
        assert mock_request.call_count == 1

    def test_contact_without_id_is_failure(self, ghl_configured, mock_request, lead_form, diagnostic_result):
        mock_request.return_value = _response(200, {})
        result = send_to_ghl(lead_form, diagnostic_result)
        assert result.success is False
        assert 'no contact id' in result.error

    def test_opportunity_failure_is_partial_success(self, ghl_configured, mock_request, lead_form,
                                                    diagnostic_result):
        mock_request.side_effect = [
            _response(200, {'contact': {'id': 'c-1'}}),
            _response(400, {'message': 'Bad pipeline'}),
        ]
        result = send_to_ghl(lead_form, diagnostic_result)
        assert result.success is True
        assert result.contact_id == 'c-1'
        assert result.opportunity_id is None
        assert result.error == 'Contact created but opportunity failed: Bad pipeline'

    def test_non_json_error_body(self, ghl_configured, mock_request, lead_form, diagnostic_result):
        resp = _response(502)
        resp.json.side_effect = ValueError('no json')
        mock_request.return_value = resp
        result = send_to_ghl(lead_form, diagnostic_result)
        assert result.success is False
        assert result.error == 'HTTP 502'

    def test_network_error(self, ghl_configured, mock_request, lead_form, diagnostic_result):
        mock_request.side_effect = requests.ConnectionError('refused')
        result = send_to_ghl(lead_form, diagnostic_result)
        assert result.success is False
        assert 'refused' in result.error


class TestSendToGhlWebhook:

    def test_not_configured(self, lead_form, diagnostic_result):
        with patch('app.services.ghl.GHL_WEBHOOK_URL', None):
            assert send_to_ghl_webhook(lead_form, diagnostic_result).success is False

    def test_posts_flat_payload(self, lead_form, diagnostic_result):
        with patch('app.services.ghl.GHL_WEBHOOK_URL', 'https://hooks.example.com/x'), \
                patch('app.services.ghl.requests.post') as post:
            post.return_value = MagicMock(status_code=200)
            result = send_to_ghl_webhook(lead_form, diagnostic_result)
        assert result.success is True
        payload = post.call_args.kwargs['json']
        assert payload['email'] == 'dana@example.com'
        assert payload['leak_score'] == 80
        assert payload['source'] == 'diagnostic_tool'
        assert 'submitted_at' in payload

    def test_failure(self, lead_form, diagnostic_result):
        with patch('app.services.ghl.GHL_WEBHOOK_URL', 'https://hooks.example.com/x'), \
                patch('app.services.ghl.requests.post', side_effect=requests.Timeout('slow')):
            result = send_to_ghl_webhook(lead_form, diagnostic_result)
        assert result.success is False
        assert 'slow' in result.error
