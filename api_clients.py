"""API client wrappers for external services.

Sheet upsert webhook, Twilio SMS, Postmark email, and the Vapi inbound SMS
endpoint. None of these retry. A missing config value means "skip", not an
error.
"""

import logging
import requests

import config

logger = logging.getLogger(__name__)


class SinkError(Exception):
    """The sheet webhook could not be reached or answered non-2xx."""

    def __init__(self, status, body):
        self.status = status
        self.body = body
        super().__init__(f"sheet webhook failed (status={status}): {str(body)[:300]}")


def _parse_body(resp):
    """JSON if possible, else wrap the text so callers always get a dict."""
    try:
        data = resp.json()
    except ValueError:
        return {"raw": resp.text}
    return data if isinstance(data, dict) else {"raw": data}


# ── Sheet upsert webhook ─────────────────────────────────────────────

def send_to_sheet(record):
    """POST one normalized row to the sheet webhook.

    Returns ``{"skipped": True}`` if no webhook is configured, otherwise
    ``{"skipped": False, "status": ..., "data": ...}``. Raises SinkError on
    a network failure or non-2xx answer.
    """
    if not config.SHEET_WEBHOOK_URL:
        logger.warning("SHEET_WEBHOOK_URL not configured, skipping sheet upsert")
        return {"skipped": True}

    job_id = record.get("Job ID")
    try:
        resp = requests.post(
            config.SHEET_WEBHOOK_URL,
            json=record,
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error(f"Sheet webhook error for {job_id}: {e}")
        raise SinkError(None, str(e)) from e

    if not resp.ok:
        logger.error(f"Sheet webhook returned {resp.status_code} for {job_id}")
        raise SinkError(resp.status_code, resp.text)

    logger.info(f"Sheet upserted job_id={job_id} status={resp.status_code}")
    return {"skipped": False, "status": resp.status_code, "data": _parse_body(resp)}


# ── Twilio SMS ───────────────────────────────────────────────────────

def send_sms(to_number, body):
    """Send an SMS via the Twilio Messages API.

    Returns dict with keys: sid, success, error.
    Returns None on missing config or recipient.
    """
    if not (config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN and config.TWILIO_FROM_NUMBER):
        logger.warning("Twilio not configured, skipping SMS send")
        return None
    if not to_number:
        logger.warning("No SMS recipient, skipping SMS send")
        return None

    url = f"{config.TWILIO_API_BASE}/Accounts/{config.TWILIO_ACCOUNT_SID}/Messages.json"
    data = {
        "From": config.TWILIO_FROM_NUMBER,
        "To": to_number,
        "Body": body,
    }

    try:
        resp = requests.post(
            url,
            data=data,
            auth=(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN),
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        payload = resp.json()
    except requests.RequestException as e:
        logger.error(f"Twilio SMS error to {to_number}: {e}")
        return {"sid": None, "success": False, "error": str(e)}
    except ValueError as e:
        logger.error(f"Twilio SMS returned non-JSON for {to_number}: {e}")
        return {"sid": None, "success": False, "error": "invalid response"}

    sid = payload.get("sid")
    logger.info(f"Twilio sent SMS to {to_number}, sid={sid}")
    return {"sid": sid, "success": True, "error": None}


def notify_owner_sms(body):
    if not config.OWNER_PHONE:
        logger.warning("OWNER_PHONE not configured, skipping owner SMS")
        return None
    return send_sms(config.OWNER_PHONE, body)


# ── Postmark Transactional Email ─────────────────────────────────────

def send_email(subject, text_body, to_email=None, html_body=None):
    """Send a transactional email via Postmark API.

    Defaults the recipient to OWNER_EMAIL.
    Returns dict with keys: message_id, success, error.
    Returns None on missing config.
    """
    to_email = to_email or config.OWNER_EMAIL
    if not config.POSTMARK_SERVER_TOKEN or not config.POSTMARK_FROM_EMAIL or not to_email:
        logger.warning("Postmark not configured, skipping email send")
        return None

    url = "https://api.postmarkapp.com/email"
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-Postmark-Server-Token": config.POSTMARK_SERVER_TOKEN,
    }
    payload = {
        "From": config.POSTMARK_FROM_EMAIL,
        "To": to_email,
        "Subject": subject,
        "TextBody": text_body,
    }
    if html_body:
        payload["HtmlBody"] = html_body

    try:
        resp = requests.post(url, json=payload, headers=headers,
                             timeout=config.HTTP_TIMEOUT_SECONDS)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as e:
        logger.error(f"Postmark send error to {to_email}: {e}")
        return {"message_id": None, "success": False, "error": str(e)}
    except ValueError as e:
        logger.error(f"Postmark returned non-JSON for {to_email}: {e}")
        return {"message_id": None, "success": False, "error": "invalid response"}

    message_id = data.get("MessageID")
    error_code = data.get("ErrorCode", 0)

    if error_code == 0:
        logger.info(f"Postmark sent to {to_email}, MessageID={message_id}")
        return {"message_id": message_id, "success": True, "error": None}
    else:
        error_msg = data.get("Message", "Unknown error")
        logger.error(f"Postmark error {error_code}: {error_msg}")
        return {"message_id": None, "success": False, "error": error_msg}


# ── Vapi inbound SMS forward ─────────────────────────────────────────

def forward_sms_to_voice_platform(form):
    """Replay a Twilio SMS webhook to Vapi.

    Returns ``(status, body_bytes, content_type)`` so the caller can hand the
    TwiML autoresponse back to Twilio untouched. Returns None if forwarding
    is not configured, the request failed, or Vapi answered non-2xx.
    """
    if not config.VAPI_SMS_WEBHOOK_URL:
        logger.warning("VAPI_SMS_WEBHOOK_URL not configured, skipping SMS forward")
        return None

    try:
        resp = requests.post(
            config.VAPI_SMS_WEBHOOK_URL,
            data=form,
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error(f"Vapi SMS forward error: {e}")
        return None

    if not resp.ok:
        logger.error(f"Vapi SMS forward returned {resp.status_code}: {resp.text[:300]}")
        return None
    content_type = resp.headers.get("Content-Type", "application/xml")
    return resp.status_code, resp.content, content_type
