from __future__ import annotations

import json

import httpx
import pytest

from app.core.exceptions import NotificationSendError
from app.schemas.alert import AlertCandidate, AlertRecipient
from app.services.email_service import AlertEmailService


def candidate(name: str | None = "Alice", supplier: str | None = "Engie", price: float = 65.0) -> AlertCandidate:
    recipient = AlertRecipient(id="user-1", email="alice@example.com", name=name, threshold=80.0, supplier=supplier)
    return AlertCandidate(recipient=recipient, current_price=price, threshold=80.0)


def mailer(handler=None, api_key: str | None = "re_test") -> AlertEmailService:
    transport = httpx.MockTransport(handler or (lambda request: httpx.Response(200, json={"id": "email-1"})))
    return AlertEmailService(
        api_key=api_key,
        from_email="alerts@stroomslim.be",
        app_url="https://stroomslim.example",
        transport=transport,
    )


def test_render_contains_prices_saving_and_link() -> None:
    html = mailer().render(candidate())

    assert "Hi Alice!" in html
    assert "€65.0" in html
    assert "€80.0" in html
    assert "€15.0" in html
    assert "Supplier: Engie" in html
    assert 'href="https://stroomslim.example"' in html


def test_render_fallbacks_for_missing_name_and_supplier() -> None:
    html = mailer().render(candidate(name=None, supplier=None))

    assert "Hi there!" in html
    assert "Supplier: Not set" in html


def test_render_escapes_user_text() -> None:
    html = mailer().render(candidate(name="<b>Eve</b>"))

    assert "<b>Eve</b>" not in html
    assert "&lt;b&gt;Eve&lt;/b&gt;" in html


def test_subject_mentions_price_and_threshold() -> None:
    assert mailer().subject(candidate(price=64.6)) == "⚡ Price Alert: €65/MWh - below your €80.0 threshold"


@pytest.mark.asyncio
async def test_send_posts_to_resend_with_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "email-1"})

    await mailer(handler).send(candidate())

    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == "https://api.resend.com/emails"
    assert request.headers["Authorization"] == "Bearer re_test"
    body = json.loads(request.content)
    assert body["from"] == "alerts@stroomslim.be"
    assert body["to"] == ["alice@example.com"]
    assert body["subject"].startswith("⚡ Price Alert")
    assert "€15.0" in body["html"]


@pytest.mark.asyncio
async def test_provider_rejection_raises_send_error() -> None:
    with pytest.raises(NotificationSendError) as exc_info:
        await mailer(lambda request: httpx.Response(429, json={"message": "quota"})).send(candidate())

    assert exc_info.value.user_id == "user-1"
    assert exc_info.value.reason == "HTTP 429"


@pytest.mark.asyncio
async def test_network_error_raises_send_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(NotificationSendError):
        await mailer(handler).send(candidate())


@pytest.mark.asyncio
async def test_missing_api_key_raises_send_error() -> None:
    with pytest.raises(NotificationSendError):
        await mailer(api_key=None).send(candidate())
