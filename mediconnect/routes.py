import json
import logging
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import HTMLResponse

from mediconnect import schemas
from mediconnect.config import get_settings
from mediconnect.features.reminders import InvalidReminderError, ReminderScheduler, get_reminder_scheduler
from mediconnect.services import consult_service
from mediconnect.utils.json_logger import log_consult_interaction_pretty

logger = logging.getLogger("routes")
router = APIRouter(tags=["Core"])

CONSULT_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# ---------------------------------------------------------------------------
# Consult proxy
# ---------------------------------------------------------------------------
@router.api_route(
    "/api/consult",
    methods=CONSULT_METHODS,
    tags=["Consult"],
    responses={
        200: {"model": schemas.ConsultReply},
        400: {"model": schemas.ConsultError},
        405: {"model": schemas.ConsultError},
        500: {"model": schemas.ConsultError},
    },
)
@router.api_route("/.netlify/functions/consult", methods=CONSULT_METHODS, include_in_schema=False)
async def consult(request: Request):
    start = time.perf_counter()
    raw_body = await request.body()
    result = await consult_service.handle_consult_request(request.method, raw_body)

    if get_settings().consult_log_enabled and request.method == "POST":
        try:
            try:
                request_payload = json.loads(raw_body) if raw_body else {}
            except ValueError:
                request_payload = None
            log_consult_interaction_pretty(
                path=str(request.url.path),
                method=request.method,
                client_host=request.client.host if request.client else None,
                request_payload=request_payload,
                response_payload=result.payload,
                status_code=result.status_code,
                latency_ms=(time.perf_counter() - start) * 1000.0,
            )
        except Exception as e:
            # Do not interrupt the main flow if logging fails
            logger.warning("Failed to log consult interaction: %s", e)

    content = b"" if result.payload is None else json.dumps(result.payload).encode("utf-8")
    return Response(content=content, status_code=result.status_code, headers=result.headers)


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------
@router.get("/reminders", response_model=List[schemas.Reminder], tags=["Reminders"])
async def list_reminders(scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    return scheduler.store.reminders


@router.post("/reminders", response_model=schemas.ReminderCreated, status_code=201, tags=["Reminders"])
async def add_reminder(
    body: schemas.ReminderCreate,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    try:
        reminder = scheduler.add_reminder(body.medicine, body.time)
    except InvalidReminderError as e:
        raise HTTPException(status_code=400, detail=str(e))
    message = f"⏰ Reminder set for {reminder.medicine} at {reminder.time}."
    return {"reminder": reminder, "message": message}


@router.post("/reminders/{reminder_id}/taken", response_model=schemas.Reminder, tags=["Reminders"])
async def mark_reminder_taken(
    reminder_id: int,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    reminder = scheduler.mark_taken(reminder_id)
    if reminder is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@router.delete("/reminders/{reminder_id}", response_model=schemas.ReminderDeleted, tags=["Reminders"])
async def delete_reminder(
    reminder_id: int,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    deleted = scheduler.delete_reminder(reminder_id)
    return {"status": "ok", "deleted": deleted}


@router.get("/reminders/view", response_class=HTMLResponse, tags=["Reminders"])
async def view_reminders(scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    if scheduler.display is None:
        return HTMLResponse("")
    return HTMLResponse(scheduler.display.html)


@router.get("/reminders/prompts", response_model=schemas.PendingPrompts, tags=["Reminders"])
async def pending_prompts(scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    prompts = getattr(scheduler.alerts, "prompts", None)
    return {"prompts": prompts.drain() if prompts is not None else []}
