# backend/tests/unit/test_utils.py
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from helpdesk_bot.config.settings import settings
from helpdesk_bot.utils.alerting import AlertingService
from helpdesk_bot.utils.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState
from helpdesk_bot.utils.rate_limiter import get_client_ip


# --- AlertingService ---

def make_alerting(cooldown=300):
    service = AlertingService("https://alerts.test/hook", cooldown_seconds=cooldown)
    service.client = MagicMock()
    service.client.post = AsyncMock(return_value=httpx.Response(
        200, request=httpx.Request("POST", "https://alerts.test/hook")
    ))
    return service


@pytest.mark.asyncio
async def test_alert_is_posted_with_context():
    service = make_alerting()

    assert await service.send_critical_alert("Dialog step failed", {"flow": "SearchKB", "conversation": "c1"})

    url, = service.client.post.await_args.args
    payload = service.client.post.await_args.kwargs["json"]
    assert url == "https://alerts.test/hook"
    assert payload["title"] == "Dialog step failed"
    assert payload["context"]["flow"] == "SearchKB"


@pytest.mark.asyncio
async def test_repeated_alerts_for_same_flow_are_suppressed():
    service = make_alerting()

    await service.send_critical_alert("Dialog step failed", {"flow": "SearchKB", "conversation": "c1"})
    await service.send_critical_alert("Dialog step failed", {"flow": "SearchKB", "conversation": "c2"})
    await service.send_critical_alert("Dialog step failed", {"flow": "DetailsOf", "conversation": "c3"})

    assert service.client.post.await_count == 2


@pytest.mark.asyncio
async def test_alert_delivery_failure_is_logged_not_raised():
    service = make_alerting(cooldown=0)
    service.client.post.side_effect = httpx.ConnectError("down")

    assert await service.send_critical_alert("Dialog step failed", {"flow": "Help"}) is False


@pytest.mark.asyncio
async def test_alerting_disabled_without_webhook():
    assert await AlertingService(None).send_critical_alert("x", {}) is False


# --- CircuitBreaker ---

@pytest.mark.asyncio
async def test_circuit_opens_after_threshold_and_blocks_calls():
    breaker = CircuitBreaker("search", failure_threshold=2, timeout=60)

    async def failing():
        raise httpx.ConnectError("down")

    for _ in range(2):
        with pytest.raises(httpx.ConnectError):
            await breaker.call(failing)

    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        await breaker.call(failing)


@pytest.mark.asyncio
async def test_circuit_success_resets_failures():
    breaker = CircuitBreaker("tickets", failure_threshold=2)

    async def failing():
        raise httpx.ConnectError("down")

    async def ok():
        return 1

    with pytest.raises(httpx.ConnectError):
        await breaker.call(failing)
    assert await breaker.call(ok) == 1
    assert breaker.failure_count == 0
    assert breaker.state == CircuitState.CLOSED


# --- Client address ---

def fake_request(headers=None, host="10.0.0.5"):
    request = MagicMock()
    request.headers = headers or {}
    request.client = MagicMock(host=host) if host else None
    return request


def test_client_ip_ignores_forwarded_header_by_default():
    request = fake_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    assert get_client_ip(request) == "10.0.0.5"


def test_client_ip_uses_first_forwarded_hop_when_trusted(mocker):
    mocker.patch.object(settings, "trust_forwarded_for", True)
    request = fake_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    assert get_client_ip(request) == "203.0.113.9"


def test_client_ip_fallback():
    assert get_client_ip(fake_request(host=None)) == "127.0.0.1"
