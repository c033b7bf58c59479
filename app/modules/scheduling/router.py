"""Scheduling API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.security import require_admin
from app.modules.scheduling.models import AvailabilitySlot
from app.modules.scheduling.schemas import (
    RecurringPatternActiveUpdate,
    RecurringPatternCreate,
    RecurringPatternRead,
    RecurringPatternUpdate,
    SlotAvailabilityRead,
    SlotAvailabilityUpdate,
    SlotCreate,
    SlotDeletionRead,
    SlotDuplicateRequest,
    SlotRead,
    SlotUpdate,
    SweepSummaryRead,
)
from app.modules.scheduling.service import SchedulingService, available_capacity, get_scheduling_service
from app.shared.pagination import Page, PageRequest, page_request, paginate

router = APIRouter(prefix="/scheduling", tags=["scheduling"])


def _serialize_slot(slot: AvailabilitySlot, active_bookings: int) -> SlotAvailabilityRead:
    base = SlotRead.model_validate(slot).model_dump()
    return SlotAvailabilityRead(
        **base,
        active_bookings=active_bookings,
        remaining_capacity=available_capacity(slot, active_bookings),
    )


@router.post(
    "/slots",
    response_model=SlotRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_slot(
    payload: SlotCreate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotRead:
    """Create availability slot."""
    slot = await service.create_slot(payload)
    return SlotRead.model_validate(slot)


@router.get("/slots", response_model=Page[SlotAvailabilityRead])
async def list_slots(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    only_available: bool = Query(default=False),
    page: PageRequest = Depends(page_request),
    service: SchedulingService = Depends(get_scheduling_service),
) -> Page[SlotAvailabilityRead]:
    """List slots with remaining capacity."""
    items, total = await service.list_slots(
        date_from=date_from,
        date_to=date_to,
        only_available=only_available,
        limit=page.limit,
        offset=page.offset,
    )
    serialized = [_serialize_slot(slot, active) for slot, active in items]
    return paginate(serialized, total, page)


@router.patch("/slots/{slot_id}", response_model=SlotRead, dependencies=[Depends(require_admin)])
async def update_slot(
    slot_id: UUID,
    payload: SlotUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotRead:
    """Edit slot date, window or capacity."""
    return SlotRead.model_validate(await service.update_slot(slot_id, payload))


@router.delete("/slots/{slot_id}", response_model=SlotDeletionRead, dependencies=[Depends(require_admin)])
async def delete_slot(
    slot_id: UUID,
    force: bool = Query(default=False),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotDeletionRead:
    """Delete slot, cancelling its active bookings when forced."""
    deleted, cancelled = await service.delete_slot(slot_id, force=force)
    return SlotDeletionRead(slot_id=slot_id, deleted=deleted, cancelled_bookings=cancelled)


@router.post(
    "/slots/{slot_id}/duplicate",
    response_model=SlotRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def duplicate_slot(
    slot_id: UUID,
    payload: SlotDuplicateRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotRead:
    """Copy slot onto another date."""
    return SlotRead.model_validate(await service.duplicate_slot(slot_id, payload.target_date))


@router.post(
    "/slots/{slot_id}/availability",
    response_model=SlotRead,
    dependencies=[Depends(require_admin)],
)
async def set_slot_availability(
    slot_id: UUID,
    payload: SlotAvailabilityUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SlotRead:
    """Open or close slot for new bookings."""
    return SlotRead.model_validate(await service.set_availability(slot_id, payload.is_available))


@router.post(
    "/patterns",
    response_model=RecurringPatternRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_pattern(
    payload: RecurringPatternCreate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> RecurringPatternRead:
    """Create recurring pattern."""
    return RecurringPatternRead.model_validate(await service.create_pattern(payload))


@router.get("/patterns", response_model=list[RecurringPatternRead], dependencies=[Depends(require_admin)])
async def list_patterns(
    service: SchedulingService = Depends(get_scheduling_service),
) -> list[RecurringPatternRead]:
    """List recurring patterns."""
    return [RecurringPatternRead.model_validate(item) for item in await service.list_patterns()]


@router.post("/patterns/sweep", response_model=SweepSummaryRead, dependencies=[Depends(require_admin)])
async def run_sweep(
    service: SchedulingService = Depends(get_scheduling_service),
) -> SweepSummaryRead:
    """Generate missing slots for every active pattern."""
    summary = await service.run_sweep()
    return SweepSummaryRead(
        patterns_processed=summary.patterns_processed,
        slots_created=summary.slots_created,
        failed_patterns=[failure.pattern_id for failure in summary.failures],
    )


@router.patch(
    "/patterns/{pattern_id}",
    response_model=RecurringPatternRead,
    dependencies=[Depends(require_admin)],
)
async def update_pattern(
    pattern_id: UUID,
    payload: RecurringPatternUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> RecurringPatternRead:
    """Update recurring pattern."""
    return RecurringPatternRead.model_validate(await service.update_pattern(pattern_id, payload))


@router.delete(
    "/patterns/{pattern_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_pattern(
    pattern_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
) -> Response:
    """Delete recurring pattern; generated slots are kept."""
    await service.delete_pattern(pattern_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/patterns/{pattern_id}/active",
    response_model=RecurringPatternRead,
    dependencies=[Depends(require_admin)],
)
async def set_pattern_active(
    pattern_id: UUID,
    payload: RecurringPatternActiveUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
) -> RecurringPatternRead:
    """Pause or resume slot generation for a pattern."""
    return RecurringPatternRead.model_validate(await service.set_pattern_active(pattern_id, payload.is_active))
