#!/usr/bin/env python3
"""Haul intake relay: Vapi + Twilio webhooks -> intake sheet, SMS, email.

Every webhook route answers 200 no matter what happens downstream. Vapi and
Twilio both retry on non-2xx, and a duplicate tool call or SMS is worse than
a dropped sheet row. Failures are logged, and for tool calls they are also
reported back to the assistant in the tool result.
"""

import json
import logging
from functools import partial

import uvicorn
from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, Response

import api_clients
import config
from api_clients import SinkError
from extractors import (
    extract_call_id, extract_call_summary, extract_caller_number, extract_event_type, extract_media,
    extract_structured_data, extract_tool_calls,
)
from normalizer import normalize, photo_link_for, resolve_phone, summarize
from state_store import CallJobCorrelator, new_job_id

load_dotenv()
logging.basicConfig(level=logging.INFO, force=True)
logger = logging.getLogger(__name__)

config.validate()

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'
LOG_PREVIEW_CHARS = 2000

app = FastAPI(title="haul-intake-relay")
correlator = CallJobCorrelator(ttl_hours=config.CORRELATION_TTL_HOURS)


# ── Helpers ──────────────────────────────────────────────────────────

def _preview(payload):
    try:
        text = json.dumps(payload, default=str)
    except (TypeError, ValueError):
        text = repr(payload)
    return text[:LOG_PREVIEW_CHARS]


def _explicit_job_id(data):
    value = data.get("jobId") if isinstance(data, dict) else None
    return str(value).strip() if value else ""


def _resolve_job(call_id, data):
    """Return ``(job_id, created)``. An explicit jobId wins and is bound to the call."""
    explicit = _explicit_job_id(data)
    if explicit:
        correlator.bind(call_id, explicit)
        return explicit, False
    return correlator.resolve(call_id)


def _resolve_job_id(call_id, data):
    return _resolve_job(call_id, data)[0]



def _acknowledge(work, fallback, label):
    """Run ``work``; any exception is logged and replaced by ``fallback``."""
    try:
        return work()
    except Exception:
        logger.exception(f"{label} failed, acknowledging anyway")
        return fallback


async def _read_json(request):
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning(f"Non-JSON body on {request.url.path}: {raw[:200]!r}")
        return {}
    return data if isinstance(data, dict) else {}


async def _read_form(request):
    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Unreadable form on {request.url.path}: {e}")
        return {}
    return {k: v for k, v in form.items() if isinstance(v, str)}


async def _read_payload(request):
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        return await _read_form(request)
    return await _read_json(request)


def _write_record(record):
    """Background sheet write. Failures are logged and dropped."""
    try:
        api_clients.send_to_sheet(record)
    except SinkError as e:
        logger.error(f"Dropped sheet row for {record.get('Job ID')}: {e}")


def _notify_owner(record):
    text = summarize(record)
    api_clients.notify_owner_sms(text)
    lines = [f"{column}: {value}" for column, value in record.items()]
    api_clients.send_email(f"New intake {record.get('Job ID')}", "\n".join(lines))


# ── Vapi tools ───────────────────────────────────────────────────────

def create_intake(args, ctx):
    """Write the intake row now so the result can tell the assistant how it went."""
    call_id = ctx["call_id"]
    job_id = _resolve_job_id(call_id, args)

    data = dict(args)
    if ctx["caller_number"] and not data.get("from"):
        data["from"] = ctx["caller_number"]
    record = normalize(data, job_id, "vapi-tool-call", call_id=call_id)

    ctx["background_tasks"].add_task(_notify_owner, record)
    try:
        api_clients.send_to_sheet(record)
    except SinkError as e:
        return f"Intake recorded with job ID {job_id} but the sheet update failed: {e}"

    logger.info(f"create_intake: call_id={call_id} job_id={job_id}")
    return f"Intake saved. Job ID: {job_id}. Photo upload link: {record['Photo Link']}"


def send_photo_link(args, ctx):
    """Text the caller the photo upload link for their job."""
    job_id = _resolve_job_id(ctx["call_id"], args)
    link = photo_link_for(job_id)
    phone = resolve_phone(args) or ctx["caller_number"]

    sms = api_clients.send_sms(
        phone, f"Thanks for calling! Upload photos of your items here: {link}")
    logger.info(f"send_photo_link: job_id={job_id} phone={phone} sent={bool(sms and sms['success'])}")
    if sms is None:
        return f"Could not text the link (SMS unavailable). The link is {link}"
    if not sms["success"]:
        return f"Could not text the link: {sms['error']}. The link is {link}"
    return f"Photo upload link texted to {phone}. Job ID: {job_id}"


TOOLS = {
    "create_intake": create_intake,
    "send_photo_link": send_photo_link,
}


def run_tool_call(tool_call, ctx):
    handler = TOOLS.get(tool_call["name"])
    if not handler:
        logger.warning(f"Unknown tool: {tool_call['name']}")
        return f"Unknown tool: {tool_call['name']}"
    return _acknowledge(
        partial(handler, tool_call["arguments"], ctx),
        f"Tool {tool_call['name']} failed. Please take the caller's details manually.",
        f"tool {tool_call['name']}",
    )


# ── Vapi events ──────────────────────────────────────────────────────

def handle_end_of_call(event, call_id, caller_number, background_tasks):
    """Final write for a call, under the same job id as its tool calls."""
    data = extract_structured_data(event)
    job_id, new_job = _resolve_job(call_id, data)

    if caller_number and not data.get("from"):
        data["from"] = caller_number
    if not data.get("status"):
        data["status"] = "Call Completed"
    if not data.get("notes"):
        data["notes"] = extract_call_summary(event)

    record = normalize(data, job_id, "vapi-end-of-call", call_id=call_id)
    background_tasks.add_task(_write_record, record)
    if new_job:
        background_tasks.add_task(_notify_owner, record)
    background_tasks.add_task(correlator.cleanup_stale)

    logger.info(f"end-of-call-report: call_id={call_id or 'unknown'} job_id={job_id}")
    return job_id


def handle_vapi_event(event, background_tasks):
    call_id = extract_call_id(event)
    caller_number = extract_caller_number(event)

    tool_calls = extract_tool_calls(event)
    if tool_calls:
        ctx = {
            "call_id": call_id,
            "caller_number": caller_number,
            "background_tasks": background_tasks,
        }
        results = [
            {"toolCallId": tc["id"], "result": run_tool_call(tc, ctx)}
            for tc in tool_calls
        ]
        return {"toolCallResults": results}

    if extract_event_type(event) == "end-of-call-report":
        job_id = handle_end_of_call(event, call_id, caller_number, background_tasks)
        return {"ok": True, "jobId": job_id}

    return {"ok": True}


def handle_intake(payload, background_tasks):
    data = extract_structured_data(payload) or dict(payload)
    call_id = extract_call_id(payload)
    explicit = _explicit_job_id(data) or _explicit_job_id(payload)
    job_id = _resolve_job_id(call_id, {"jobId": explicit})

    record = normalize(data, job_id, "intake", call_id=call_id)
    background_tasks.add_task(_write_record, record)
    background_tasks.add_task(_notify_owner, record)

    logger.info(f"intake: call_id={call_id or 'none'} job_id={job_id}")
    return {"ok": True, "jobId": job_id, "photoLink": record["Photo Link"]}


# ── Twilio ───────────────────────────────────────────────────────────

def _notify_owner_of_sms(sender, body, media):
    lines = [f"SMS from {sender or 'unknown'}: {body or '(no text)'}"]
    lines += [f"Photo: {m['url']}" for m in media]
    api_clients.notify_owner_sms("\n".join(lines))
    api_clients.send_email(f"Inbound SMS from {sender or 'unknown'}", "\n".join(lines))


def handle_inbound_sms(form, background_tasks):
    sender = form.get("From", "")
    body = form.get("Body", "")
    media = extract_media(form)
    logger.info(f"Inbound SMS from={sender} to={form.get('To', '')} "
                f"media={len(media)} body={body[:200]!r}")

    background_tasks.add_task(_notify_owner_of_sms, sender, body, media)

    forwarded = api_clients.forward_sms_to_voice_platform(form)
    if forwarded is None:
        return None
    _, content, content_type = forwarded
    return Response(content=content, media_type=content_type, status_code=200)


# ── Routes ───────────────────────────────────────────────────────────

@app.get("/health")
def health():
    return PlainTextResponse("ok")


@app.post("/vapi/webhook")
async def vapi_webhook(request: Request, background_tasks: BackgroundTasks):
    event = await _read_json(request)
    logger.info(f"Vapi event: {_preview(event)}")
    result = await run_in_threadpool(
        _acknowledge, partial(handle_vapi_event, event, background_tasks),
        {"ok": True}, "vapi webhook",
    )
    return JSONResponse(result, status_code=200)


@app.post("/intake")
async def intake(request: Request, background_tasks: BackgroundTasks):
    payload = await _read_payload(request)
    logger.info(f"Intake: {_preview(payload)}")
    fallback_job_id = new_job_id()
    fallback = {"ok": False, "jobId": fallback_job_id, "photoLink": photo_link_for(fallback_job_id)}
    result = await run_in_threadpool(
        _acknowledge, partial(handle_intake, payload, background_tasks), fallback, "intake",
    )
    return JSONResponse(result, status_code=200)


@app.post("/webhooks/sms")
@app.post("/webhooks/inbound-sms")
async def inbound_sms(request: Request, background_tasks: BackgroundTasks):
    form = await _read_form(request)
    response = await run_in_threadpool(
        _acknowledge, partial(handle_inbound_sms, form, background_tasks),
        None, "inbound sms",
    )
    if response is None:
        return Response(content=EMPTY_TWIML, media_type="application/xml")
    return response


@app.post("/twilio/call-status")
async def call_status(request: Request):
    form = await _read_form(request)
    logger.info(f"Call status: sid={form.get('CallSid', '')} status={form.get('CallStatus', '')} "
                f"from={form.get('From', '')} to={form.get('To', '')}")
    return PlainTextResponse("ok")


if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT)
