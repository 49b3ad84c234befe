import copy

import httpx
import pytest

from conftest import GRAPHQL_ORDER, REST_ORDER, FakeShopify
from app.config import get_settings
from app.graph import run_track_pipeline


def _track(fake, order_number, phone):
    return run_track_pipeline(order_number, phone, fake.client(), session_id="test")


@pytest.fixture
def debug_diagnostics(monkeypatch):
    monkeypatch.setenv("DEBUG_DIAGNOSTICS", "1")
    get_settings.cache_clear()


def test_scenario_a_bare_input_with_country_code(shopify):
    result = _track(shopify, "1001", "+91 98765 43210")
    assert result.ok
    assert result.order.name == "#1001"
    assert result.order.tracking.number == "EZ123456789IN"
    assert result.order.tracking.url


def test_scenario_a_synthesizes_url_when_missing():
    order = copy.deepcopy(REST_ORDER)
    order["fulfillments"] = [{"tracking_number": "ZX9"}]
    result = _track(FakeShopify({"#1001": [order]}), "1001", "9876543210")
    assert result.ok
    assert result.order.tracking.url.endswith("ZX9")


def test_scenario_b_wrong_phone(shopify):
    result = _track(shopify, "#1001", "0000000000")
    assert not result.ok
    assert result.error == "PHONE_MISMATCH"
    assert "3210" in result.hint
    assert result.order is None


def test_scenario_c_not_found_after_both_forms():
    fake = FakeShopify({})
    result = _track(fake, "9999", "9876543210")
    assert result.error == "NOT_FOUND"
    assert fake.name_filters == ["#9999", "9999"]


def test_scenario_d_upstream_500(shopify):
    shopify.search_status = 500
    result = _track(shopify, "1001", "9876543210")
    assert result.ok is False
    assert result.error == "ADMIN_API_ERROR"
    assert result.status == 500


def test_timeout_is_unavailability():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    fake = FakeShopify()
    fake.handler = handler
    result = _track(fake, "1001", "9876543210")
    assert result.error == "UPSTREAM_UNAVAILABLE"


def test_missing_params_make_no_upstream_call(shopify):
    for order_number, phone in [("", "9876543210"), ("1001", ""), ("  ", " "), (None, None), ("#", "9876543210")]:
        result = _track(shopify, order_number, phone)
        assert result.error == "MISSING_PARAMS"
    assert shopify.requests == []


def test_graphql_shaped_upstream_gives_same_order():
    rest = _track(FakeShopify({"#1001": [REST_ORDER]}), "1001", "9876543210")
    gql = _track(FakeShopify({"#1001": [GRAPHQL_ORDER]}), "1001", "9876543210")
    assert rest.order == gql.order


def test_same_input_same_output(shopify):
    first = _track(shopify, "1001", "9876543210")
    second = _track(shopify, "1001", "9876543210")
    assert first == second


def test_failed_diagnostics_do_not_change_outcome(debug_diagnostics):
    fake = FakeShopify({})
    fake.probe_error = httpx.ConnectError("probe down")
    result = _track(fake, "9999", "9876543210")
    assert result.error == "NOT_FOUND"
    assert result.diagnostics == {"recent_orders": "unknown", "access_scopes": "unknown"}


def test_diagnostics_collected_on_mismatch(debug_diagnostics, shopify):
    result = _track(shopify, "1001", "0000000000")
    assert result.diagnostics["recent_orders"] == ["#1001"]
    assert "read_orders" in result.diagnostics["access_scopes"]


def test_unexpected_error_becomes_internal_error(monkeypatch, shopify):
    def boom(*args, **kwargs):
        raise RuntimeError("normalizer exploded")

    monkeypatch.setattr("app.graph.normalize_order", boom)
    result = _track(shopify, "1001", "9876543210")
    assert result.error == "INTERNAL_ERROR"
    assert "exploded" not in result.message


def test_lookup_is_logged(fake_db, shopify):
    _track(shopify, "1001", "9876543210")
    events = [row["event_type"] for row in fake_db.collection("action_logs").added]
    assert "track_order" in events


def test_logging_failure_does_not_change_result(monkeypatch, shopify):
    def broken():
        raise RuntimeError("firestore down")

    monkeypatch.setattr("tools.logs.get_firestore_client", broken)
    result = _track(shopify, "1001", "9876543210")
    assert result.ok


def test_phone_without_digits_is_rejected_before_search(shopify):
    result = _track(shopify, "1001", "abc")
    assert result.error == "MISSING_PARAMS"
    assert result.hint is None
    assert shopify.requests == []


def test_no_diagnostic_requests_when_disabled():
    fake = FakeShopify({})
    result = _track(fake, "9999", "9876543210")
    assert result.error == "NOT_FOUND"
    assert result.diagnostics is None
    # only the two searches; no recent-orders or scope lookups
    assert len(fake.requests) == 2
    assert fake.name_filters == ["#9999", "9999"]


def test_custom_action_logger_receives_events(shopify):
    events = []
    run_track_pipeline(
        "1001",
        "9876543210",
        shopify.client(),
        session_id="test",
        log=lambda sid, event_type, payload: events.append(event_type),
    )
    assert events == ["tool_call", "track_order"]
