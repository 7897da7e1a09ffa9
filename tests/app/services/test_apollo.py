"""Tests for app.services.apollo — Apollo client error mapping and payload handling."""
import pytest
import requests
from unittest.mock import patch, MagicMock

from app.services.apollo import (
    ApolloClient, ApolloNotConfiguredError, ApolloTransientError, QuotaExhaustedError,
)


def _response(status_code=200, payload=None, text='', json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.text = text
    if json_error:
        resp.json.side_effect = ValueError('No JSON')
    else:
        resp.json.return_value = payload
    return resp


def _client(**kwargs):
    kwargs.setdefault('throttle_seconds', 0)
    return ApolloClient('test-key', base_url='https://apollo.test/v1', **kwargs)


# ── Person match ─────────────────────────────────────────────────────────────

class TestMatchPersonByEmail:

    @patch('app.services.apollo.requests.request')
    def test_returns_person(self, mock_request):
        mock_request.return_value = _response(payload={'person': {'id': 'p-1', 'title': 'CTO'}})
        person = _client().match_person_by_email('jane@acme.com')
        assert person == {'id': 'p-1', 'title': 'CTO'}

    @patch('app.services.apollo.requests.request')
    def test_request_shape(self, mock_request):
        mock_request.return_value = _response(payload={'person': None})
        _client(timeout=12).match_person_by_email('jane@acme.com')
        args, kwargs = mock_request.call_args
        assert args == ('POST', 'https://apollo.test/v1/people/match')
        assert kwargs['json'] == {'email': 'jane@acme.com'}
        assert kwargs['headers']['x-api-key'] == 'test-key'
        assert kwargs['timeout'] == 12

    @patch('app.services.apollo.requests.request')
    def test_null_person_is_not_found(self, mock_request):
        mock_request.return_value = _response(payload={'person': None})
        assert _client().match_person_by_email('ghost@acme.com') is None

    @patch('app.services.apollo.requests.request')
    def test_404_is_not_found(self, mock_request):
        mock_request.return_value = _response(404)
        assert _client().match_person_by_email('ghost@acme.com') is None


# ── Organization enrich ──────────────────────────────────────────────────────

class TestEnrichOrganizationByDomain:

    @patch('app.services.apollo.requests.request')
    def test_returns_organization(self, mock_request):
        mock_request.return_value = _response(payload={'organization': {'id': 'o-1', 'name': 'Acme'}})
        org = _client().enrich_organization_by_domain('acme.com')
        assert org['name'] == 'Acme'
        args, kwargs = mock_request.call_args
        assert args == ('GET', 'https://apollo.test/v1/organizations/enrich')
        assert kwargs['params'] == {'domain': 'acme.com'}

    @patch('app.services.apollo.requests.request')
    def test_empty_payload_is_not_found(self, mock_request):
        mock_request.return_value = _response(payload={})
        assert _client().enrich_organization_by_domain('acme.com') is None


# ── Error mapping ────────────────────────────────────────────────────────────

class TestErrorMapping:

    @patch('app.services.apollo.requests.request')
    def test_402_is_quota(self, mock_request):
        mock_request.return_value = _response(402, payload={'error': 'Payment required'})
        with pytest.raises(QuotaExhaustedError) as exc:
            _client().match_person_by_email('jane@acme.com')
        assert exc.value.status_code == 402

    @pytest.mark.parametrize('status,body', [
        (403, {'error': 'Insufficient credits for this request'}),
        (422, {'message': 'You have reached your monthly credit limit'}),
        (429, {'error': 'Daily quota exceeded'}),
    ])
    @patch('app.services.apollo.requests.request')
    def test_credit_messages_are_quota(self, mock_request, status, body):
        mock_request.return_value = _response(status, payload=body)
        with pytest.raises(QuotaExhaustedError):
            _client().match_person_by_email('jane@acme.com')

    @patch('app.services.apollo.requests.request')
    def test_plain_rate_limit_is_transient(self, mock_request):
        mock_request.return_value = _response(429, payload={'error': 'Too many requests'})
        with pytest.raises(ApolloTransientError) as exc:
            _client().match_person_by_email('jane@acme.com')
        assert exc.value.status_code == 429

    @pytest.mark.parametrize('body', [
        {'error': 'Rate limit reached, retry in 60 seconds'},
        {'error': 'The maximum number of api calls allowed for api/v1/people/match is '
                  '50 times per minute. Please upgrade your plan from '
                  'https://app.apollo.io/#/settings/plans/upgrade.'},
    ])
    @patch('app.services.apollo.requests.request')
    def test_per_minute_rate_limit_is_transient(self, mock_request, body):
        mock_request.return_value = _response(429, payload=body)
        with pytest.raises(ApolloTransientError) as exc:
            _client().match_person_by_email('jane@acme.com')
        assert not isinstance(exc.value, QuotaExhaustedError)
        assert exc.value.status_code == 429

    @pytest.mark.parametrize('status', [403, 422])
    @patch('app.services.apollo.requests.request')
    def test_plan_limit_outside_rate_limit_is_quota(self, mock_request, status):
        mock_request.return_value = _response(status, payload={'error': 'Plan limit reached'})
        with pytest.raises(QuotaExhaustedError):
            _client().match_person_by_email('jane@acme.com')

    @patch('app.services.apollo.requests.request')
    def test_plain_forbidden_is_transient(self, mock_request):
        mock_request.return_value = _response(403, text='Forbidden', json_error=True)
        with pytest.raises(ApolloTransientError):
            _client().match_person_by_email('jane@acme.com')

    @patch('app.services.apollo.requests.request')
    def test_server_error_is_transient(self, mock_request):
        mock_request.return_value = _response(503)
        with pytest.raises(ApolloTransientError):
            _client().enrich_organization_by_domain('acme.com')

    @patch('app.services.apollo.requests.request')
    def test_timeout_is_transient(self, mock_request):
        mock_request.side_effect = requests.Timeout('read timed out')
        with pytest.raises(ApolloTransientError):
            _client().match_person_by_email('jane@acme.com')

    @patch('app.services.apollo.requests.request')
    def test_malformed_json_is_transient(self, mock_request):
        mock_request.return_value = _response(200, json_error=True)
        with pytest.raises(ApolloTransientError):
            _client().match_person_by_email('jane@acme.com')

    @patch('app.services.apollo.requests.request')
    def test_non_object_payload_is_transient(self, mock_request):
        mock_request.return_value = _response(200, payload=['unexpected'])
        with pytest.raises(ApolloTransientError):
            _client().match_person_by_email('jane@acme.com')


# ── Throttle + config ────────────────────────────────────────────────────────

class TestThrottle:

    @patch('app.services.apollo.requests.request')
    def test_first_call_not_delayed(self, mock_request):
        mock_request.return_value = _response(payload={})
        sleep = MagicMock()
        _client(throttle_seconds=5, sleep=sleep).match_person_by_email('a@acme.com')
        sleep.assert_not_called()

    @patch('app.services.apollo.requests.request')
    def test_back_to_back_calls_are_spaced(self, mock_request):
        mock_request.return_value = _response(payload={})
        sleep = MagicMock()
        client = _client(throttle_seconds=5, sleep=sleep)
        client.match_person_by_email('a@acme.com')
        client.match_person_by_email('b@acme.com')
        sleep.assert_called_once()
        assert 0 < sleep.call_args[0][0] <= 5
        assert client.calls == 2


class TestConfig:

    def test_missing_key_raises(self):
        with patch('app.services.apollo.APOLLO_API_KEY', None):
            with pytest.raises(ApolloNotConfiguredError):
                ApolloClient.from_config()

    def test_from_config_uses_key(self):
        with patch('app.services.apollo.APOLLO_API_KEY', 'live-key'):
            client = ApolloClient.from_config(throttle_seconds=0)
        assert client.api_key == 'live-key'
        assert client.throttle_seconds == 0


class TestHelpers:

    @pytest.mark.parametrize('person,expected', [
        ({'id': 'p-1', 'title': 'CTO'}, True),
        ({'id': 'p-1', 'photo_url': 'https://img'}, True),
        ({'id': 'p-1', 'name': 'Jane'}, False),
        ({'title': 'CTO'}, False),
        (None, False),
    ])
    def test_has_real_person_data(self, person, expected):
        assert ApolloClient.has_real_person_data(person) is expected

    @pytest.mark.parametrize('name,expected', [
        ('Sh***K', True),
        ('Jane Doe', False),
        ('A*B', False),
        ('', False),
    ])
    def test_is_obfuscated_name(self, name, expected):
        assert ApolloClient.is_obfuscated_name(name) is expected
