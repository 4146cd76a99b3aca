"""API routes for emergency service dispatch records."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.database import get_db
from crashdispatch.models.enums import ServiceStatus
from crashdispatch.schemas.dispatch import (
    EmergencyServiceOut,
    ResponderAssignment,
    ServiceNotesUpdate,
    ServiceStatusUpdate,
)
from crashdispatch.services.emergency_services import EmergencyServiceService

router = APIRouter(prefix="/emergency-services", tags=["emergency-services"])


@router.get("", response_model=list[EmergencyServiceOut])
async def list_services(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).list_services(limit=limit, offset=offset)
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/active", response_model=list[EmergencyServiceOut])
async def active_services(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    """Requested, dispatched, en route or on scene."""
    services = await EmergencyServiceService(db).active()
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/status/{service_status}", response_model=list[EmergencyServiceOut])
async def services_by_status(
    service_status: ServiceStatus,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).by_status(service_status)
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/responder/{responder_id}", response_model=list[EmergencyServiceOut])
async def services_by_responder(
    responder_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    services = await EmergencyServiceService(db).by_responder(responder_id)
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/accident/{accident_id}", response_model=list[EmergencyServiceOut])
async def services_by_accident(
    accident_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[EmergencyServiceOut]:
    """Dispatch records for an accident in priority order."""
    services = await EmergencyServiceService(db).by_accident(accident_id)
    return [EmergencyServiceOut.model_validate(s) for s in services]


@router.get("/{service_id}", response_model=EmergencyServiceOut)
async def get_service(
    service_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EmergencyServiceOut:
    return EmergencyServiceOut.model_validate(await EmergencyServiceService(db).get(service_id))


@router.patch("/{service_id}/status", response_model=EmergencyServiceOut)
async def update_service_status(
    service_id: str,
    data: ServiceStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EmergencyServiceOut:
    """
    Advance a dispatch record.

    Moving backwards, or out of completed/cancelled, returns 409. Sending
    the current status again is accepted and changes nothing.
    """
    service = await EmergencyServiceService(db).update_status(service_id, data.status)
    return EmergencyServiceOut.model_validate(service)


@router.patch("/{service_id}/responder", response_model=EmergencyServiceOut)
async def assign_responder(
    service_id: str,
    data: ResponderAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EmergencyServiceOut:
    service = await EmergencyServiceService(db).assign_responder(service_id, data.responder_id)
    return EmergencyServiceOut.model_validate(service)


@router.patch("/{service_id}/notes", response_model=EmergencyServiceOut)
async def update_service_notes(
    service_id: str,
    data: ServiceNotesUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EmergencyServiceOut:
    service = await EmergencyServiceService(db).update_notes(service_id, data.notes)
    return EmergencyServiceOut.model_validate(service)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    await EmergencyServiceService(db).delete(service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
