# This project was developed with assistance from AI tools.
"""Tests for the GCNotify email client."""

import json

import httpx
import pytest

from sims_api.core.config import settings
from sims_api.services import gcnotify
from sims_api.services.gcnotify import GCNotifyService


def _recording_transport(status_code=201):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"id": "notification-1"})

    return httpx.MockTransport(handler), requests


@pytest.mark.asyncio
async def test_disabled_without_api_key():
    transport, requests = _recording_transport()
    service = GCNotifyService(api_key="", transport=transport)

    assert service.enabled is False
    assert await service.send_email("a@example.com", "tmpl", {}) is False
    assert requests == []


@pytest.mark.asyncio
async def test_send_email_posts_template_request():
    transport, requests = _recording_transport()
    service = GCNotifyService(
        api_key="secret", base_url="https://notify.example/v2/notifications/", transport=transport
    )

    assert await service.send_email("a@example.com", "tmpl-1", {"subject": "Hi"}) is True

    (request,) = requests
    assert request.method == "POST"
    assert str(request.url) == "https://notify.example/v2/notifications/email"
    assert request.headers["Authorization"] == "ApiKey-v1 secret"
    assert json.loads(request.content) == {
        "email_address": "a@example.com",
        "template_id": "tmpl-1",
        "personalisation": {"subject": "Hi"},
    }


@pytest.mark.asyncio
async def test_send_email_failure_returns_false():
    transport, _ = _recording_transport(status_code=500)
    service = GCNotifyService(api_key="secret", transport=transport)

    assert await service.send_email("a@example.com", "tmpl", {}) is False


@pytest.mark.asyncio
async def test_access_request_email_skipped_without_key(monkeypatch):
    monkeypatch.setattr(settings, "GCNOTIFY_API_KEY", None)

    assert await gcnotify.send_access_request_email() is False
