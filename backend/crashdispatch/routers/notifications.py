"""API routes for user notifications."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.database import get_db
from crashdispatch.schemas.notification import MarkAllReadResult, NotificationOut, UnreadCount
from crashdispatch.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/user/{user_id}", response_model=list[NotificationOut])
async def list_notifications(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
) -> list[NotificationOut]:
    notifications = await NotificationService(db).list_for_user(
        user_id, unread_only=unread_only, limit=limit
    )
    return [NotificationOut.model_validate(n) for n in notifications]


@router.get("/user/{user_id}/unread-count", response_model=UnreadCount)
async def unread_count(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UnreadCount:
    count = await NotificationService(db).unread_count(user_id)
    return UnreadCount(user_id=user_id, unread=count)


@router.patch("/user/{user_id}/read-all", response_model=MarkAllReadResult)
async def mark_all_read(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkAllReadResult:
    updated = await NotificationService(db).mark_all_read(user_id)
    return MarkAllReadResult(user_id=user_id, updated=updated)


@router.get("/{notification_id}", response_model=NotificationOut)
async def get_notification(
    notification_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationOut:
    return NotificationOut.model_validate(await NotificationService(db).get(notification_id))


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationOut:
    notification = await NotificationService(db).mark_read(notification_id)
    return NotificationOut.model_validate(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    await NotificationService(db).delete(notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
