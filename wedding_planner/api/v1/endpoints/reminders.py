from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from wedding_planner.api.deps import get_recurrence_engine, get_reminder_service
from wedding_planner.core.enums import Recurrence, ReminderStatus, ReminderType
from wedding_planner.core.responses import success_response
from wedding_planner.repositories.reminder import ReminderFilters
from wedding_planner.schemas.common import PaginationMeta
from wedding_planner.schemas.reminder import ProcessResultRead, ReminderCreate, ReminderRead, ReminderUpdate
from wedding_planner.services.recurrence import ReminderRecurrenceEngine
from wedding_planner.services.reminders import ReminderService

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.get("")
async def list_reminders(
    request: Request,
    status_filter: ReminderStatus | None = Query(default=None, alias="status"),
    reminder_type: ReminderType | None = None,
    recurrence: Recurrence | None = None,
    task_id: str | None = None,
    vendor_id: str | None = None,
    from_dt: datetime | None = Query(default=None, alias="from"),
    to_dt: datetime | None = Query(default=None, alias="to"),
    limit: int | None = Query(default=100, ge=1, le=500),
    offset: int | None = Query(default=0, ge=0),
    service: ReminderService = Depends(get_reminder_service),
):
    filters = ReminderFilters(
        status=status_filter,
        reminder_type=reminder_type,
        recurrence=recurrence,
        task_id=task_id,
        vendor_id=vendor_id,
        from_dt=from_dt,
        to_dt=to_dt,
    )
    items, total = await service.list_reminders(filters, limit=limit, offset=offset)
    data = [ReminderRead.model_validate(item).model_dump() for item in items]
    pagination = None
    if limit is not None and offset is not None:
        pagination = PaginationMeta(limit=limit, offset=offset, total=total).model_dump()
    return success_response(data=data, request=request, pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_reminder(
    payload: ReminderCreate,
    request: Request,
    service: ReminderService = Depends(get_reminder_service),
):
    item = await service.create_reminder(payload)
    return success_response(data=ReminderRead.model_validate(item).model_dump(), request=request)


@router.get("/due")
async def list_due_reminders(
    request: Request,
    engine: ReminderRecurrenceEngine = Depends(get_recurrence_engine),
):
    items = await engine.get_due_reminders()
    data = [ReminderRead.model_validate(item).model_dump() for item in items]
    return success_response(data=data, request=request)


@router.get("/{reminder_id}")
async def get_reminder(
    reminder_id: UUID,
    request: Request,
    service: ReminderService = Depends(get_reminder_service),
):
    item = await service.get_reminder(reminder_id)
    return success_response(data=ReminderRead.model_validate(item).model_dump(), request=request)


@router.api_route("/{reminder_id}", methods=["PATCH", "PUT"])
async def update_reminder(
    reminder_id: UUID,
    payload: ReminderUpdate,
    request: Request,
    service: ReminderService = Depends(get_reminder_service),
):
    item = await service.update_reminder(reminder_id, payload)
    return success_response(data=ReminderRead.model_validate(item).model_dump(), request=request)


@router.delete("/{reminder_id}")
async def delete_reminder(
    reminder_id: UUID,
    request: Request,
    service: ReminderService = Depends(get_reminder_service),
):
    await service.delete_reminder(reminder_id)
    return success_response(data={"ok": True}, request=request)


@router.post("/{reminder_id}/process")
async def process_reminder(
    reminder_id: UUID,
    request: Request,
    email: str | None = Query(default=None, max_length=320),
    engine: ReminderRecurrenceEngine = Depends(get_recurrence_engine),
):
    result = await engine.process_reminder_by_id(reminder_id, notify_target=(email or "").strip() or None)
    data = ProcessResultRead(
        reminder=ReminderRead.model_validate(result.reminder),
        successor=ReminderRead.model_validate(result.successor) if result.successor is not None else None,
        notified_channels=result.notified_channels,
        failed_channels=result.failed_channels,
    )
    return success_response(data=data.model_dump(), request=request)
