from __future__ import annotations

import pytest
import requests

import api_clients
import config


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text="", headers=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text or json_data is None else str(json_data)
        self.content = self.text.encode("utf-8")
        self.headers = headers or {}

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def unconfigured(monkeypatch):
    """Blank every downstream setting so nothing leaves the process."""
    for name in (
        "SHEET_WEBHOOK_URL", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN",
        "TWILIO_FROM_NUMBER", "OWNER_PHONE", "OWNER_EMAIL",
        "POSTMARK_SERVER_TOKEN", "POSTMARK_FROM_EMAIL", "VAPI_SMS_WEBHOOK_URL",
    ):
        monkeypatch.setattr(config, name, "")
    monkeypatch.setattr(config, "BASE_URL", "https://haul.test")


@pytest.fixture
def outbound(monkeypatch, unconfigured):
    """Capture sheet rows, SMS and emails instead of sending them."""
    sent = {"rows": [], "sms": [], "owner_sms": [], "emails": []}

    def fake_sheet(record):
        sent["rows"].append(record)
        return {"skipped": False, "status": 200, "data": {"ok": True}}

    def fake_sms(to_number, body):
        sent["sms"].append((to_number, body))
        return {"sid": "SM1", "success": True, "error": None}

    def fake_owner_sms(body):
        sent["owner_sms"].append(body)
        return {"sid": "SM2", "success": True, "error": None}

    def fake_email(subject, text_body, to_email=None, html_body=None):
        sent["emails"].append((subject, text_body))
        return {"message_id": "m1", "success": True, "error": None}

    monkeypatch.setattr(api_clients, "send_to_sheet", fake_sheet)
    monkeypatch.setattr(api_clients, "send_sms", fake_sms)
    monkeypatch.setattr(api_clients, "notify_owner_sms", fake_owner_sms)
    monkeypatch.setattr(api_clients, "send_email", fake_email)
    return sent


@pytest.fixture
def client(monkeypatch, outbound):
    from fastapi.testclient import TestClient

    import relay
    from state_store import CallJobCorrelator

    monkeypatch.setattr(relay, "correlator", CallJobCorrelator())
    with TestClient(relay.app) as test_client:
        yield test_client
