from datetime import date

import pytest
import requests

from cake_sync.cake_client import CakeClient
from cake_sync.exceptions import RemoteError, SchemaError, TransportError
from cake_sync.utils.windows import DateWindow

from conftest import FakeResponse, FakeSession, cake_payload

WINDOW = DateWindow(date(2025, 12, 1), date(2025, 12, 28))


def make_client(handler, timeout=None):
    session = FakeSession(handler)
    client = CakeClient("secret-api-key", "https://cake.example.com/affiliates/api/", timeout=timeout, session=session)
    return client, session


def test_request_carries_window_and_affiliate():
    client, session = make_client(lambda params: cake_payload([{'sub_id': "SPK-AB12-CD34"}]))

    rows = client.fetch_sub_affiliate_summary("208330", WINDOW)

    assert rows == [{'sub_id': "SPK-AB12-CD34"}]
    call = session.calls[0]
    assert call['url'] == "https://cake.example.com/affiliates/api/Reports/SubAffiliateSummary"
    assert call['params'] == {
        'api_key': "secret-api-key",
        'affiliate_id': "208330",
        'start_date': "2025-12-01",
        'end_date': "2025-12-28",
        'format': "json",
    }
    assert call['timeout'] is None
    assert session.headers["Accept"] == "application/json"


def test_missing_data_is_an_empty_report():
    client, _ = make_client(lambda params: FakeResponse(200, {'row_count': 0}))

    assert client.fetch_sub_affiliate_summary("208330", WINDOW) == []


def test_non_success_status_raises_remote_error_with_body():
    client, _ = make_client(lambda params: FakeResponse(503, text="Service Unavailable"))

    with pytest.raises(RemoteError) as excinfo:
        client.fetch_sub_affiliate_summary("208330", WINDOW)

    assert excinfo.value.status_code == 503
    assert excinfo.value.body == "Service Unavailable"


def test_network_failure_raises_transport_error_without_api_key():
    def handler(params):
        raise requests.ConnectionError(f"Max retries exceeded with url: /?api_key={params['api_key']}")

    client, _ = make_client(handler)

    with pytest.raises(TransportError) as excinfo:
        client.fetch_sub_affiliate_summary("208330", WINDOW)

    assert "secret-api-key" not in str(excinfo.value)


@pytest.mark.parametrize("response", [
    FakeResponse(200, text="<html>maintenance</html>"),
    FakeResponse(200, [{'sub_id': "SPK-AB12-CD34"}]),
    FakeResponse(200, {'data': "not rows"}),
    FakeResponse(200, {'data': [{'sub_id': "SPK-AB12-CD34"}, "oops"]}),
])
def test_malformed_payload_raises_schema_error(response):
    client, _ = make_client(lambda params: response)

    with pytest.raises(SchemaError):
        client.fetch_sub_affiliate_summary("208330", WINDOW)


def test_from_settings_uses_configured_timeout(make_settings):
    settings = make_settings(CAKE_REQUEST_TIMEOUT=30)
    session = FakeSession(lambda params: cake_payload([]))

    client = CakeClient.from_settings(settings, session=session)
    client.fetch_sub_affiliate_summary(settings.CAKE_AFFILIATE_ID, WINDOW)

    assert client.base_url == "https://login.affluentco.com/affiliates/api"
    assert session.calls[0]['timeout'] == 30
