"""Schedule router - FastAPI endpoints for schedule configuration and slot generation"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import ScheduleConfig
from ..slots.schemas import slot_response
from .schemas import (
    GenerateWeekRequest,
    ScheduleConfigCreate,
    ScheduleConfigResponse,
    ScheduleConfigUpdate,
    TimeSlotTemplateResponse,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["Schedule"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


def config_response(config: ScheduleConfig) -> ScheduleConfigResponse:
    return ScheduleConfigResponse(
        id=config.id,
        name=config.name,
        startDate=config.start_date,
        endDate=config.end_date,
        allowedWeekDays=config.allowed_week_days or [],
        timeSlots=[
            TimeSlotTemplateResponse(
                startTime=t.start_time,
                endTime=t.end_time,
                durationMinutes=t.duration_minutes,
                capacity=t.capacity,
            )
            for t in config.time_slots
        ],
        timeZone=config.time_zone,
        isActive=config.is_active,
        autoCreateSlots=config.auto_create_slots,
        weeksInAdvance=config.weeks_in_advance,
        created_at=config.created_at,
        updated_at=config.updated_at,
    )


# ============================================================================
# CONFIGURATIONS
# ============================================================================


@router.get("/configs", response_model=list[ScheduleConfigResponse])
async def list_configs(service: ScheduleService = Depends(get_schedule_service)):
    return [config_response(c) for c in service.list_configs()]


@router.get("/configs/active", response_model=ScheduleConfigResponse)
async def get_active_config(service: ScheduleService = Depends(get_schedule_service)):
    return config_response(service.get_active_config())


@router.get("/configs/{config_id}", response_model=ScheduleConfigResponse)
async def get_config(config_id: int, service: ScheduleService = Depends(get_schedule_service)):
    return config_response(service.get_config(config_id))


@router.post("/configs", response_model=ScheduleConfigResponse, status_code=201)
async def create_config(
    data: ScheduleConfigCreate,
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a schedule configuration (activating it deactivates the current one)"""
    return config_response(service.create_config(data))


@router.put("/configs/{config_id}", response_model=ScheduleConfigResponse)
async def update_config(
    config_id: int,
    data: ScheduleConfigUpdate,
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return config_response(service.update_config(config_id, data))


@router.post("/configs/{config_id}/activate", response_model=ScheduleConfigResponse)
async def activate_config(
    config_id: int,
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return config_response(service.activate_config(config_id))


@router.delete("/configs/{config_id}")
async def delete_config(
    config_id: int,
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Delete a configuration together with its slots"""
    service.delete_config(config_id)
    return {"success": True, "message": "Schedule configuration deleted"}


@router.post("/configs/{config_id}/generate")
async def generate_config_slots(
    config_id: int,
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Generate every missing slot of a configuration"""
    created = service.generate_slots(service.get_config(config_id))
    return {
        "success": True,
        "created": len(created),
        "data": [slot_response(s) for s in created],
    }


# ============================================================================
# GENERATION & SYSTEM
# ============================================================================


@router.post("/generate-week")
async def generate_week(
    data: GenerateWeekRequest,
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    created = service.generate_slots_for_week(data.startDate)
    return {
        "success": True,
        "created": len(created),
        "data": [slot_response(s) for s in created],
    }


@router.post("/initialize")
async def initialize(
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Bootstrap the default configuration and generate its slots"""
    result = service.initialize()
    return {
        "success": True,
        "config": config_response(result["config"]),
        "slots": {
            "created": result["created"],
            "total": result["total"],
            "available": result["available"],
            "full": result["full"],
        },
    }


@router.get("/status")
async def system_status(service: ScheduleService = Depends(get_schedule_service)):
    status = service.system_status()
    config = status["config"]
    return {
        "success": True,
        "initialized": status["initialized"],
        "config": config_response(config) if config else None,
        "slots": status["slots"],
        "lastUpdate": status.get("lastUpdate"),
    }


@router.delete("/slots/empty")
async def clear_empty_slots(
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    deleted = service.clear_empty_slots()
    return {"success": True, "deleted": deleted}


@router.post("/maintenance")
async def run_maintenance(
    _admin: str = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Remove old finished slots, fix orphan slots and extend an expired active config"""
    return {"success": True, **service.run_maintenance()}
