import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

import httpx
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.config import settings
from edusocial.core.websocket.websocket_manager import manager
from edusocial.database import AsyncSessionLocal
from edusocial.exceptions import NotFoundError
from edusocial.models import DeviceToken, Notification
from edusocial.schemas.notifications import NotificationType, RelatedKind
from edusocial.schemas.websocket import WebSocketMessageType

# Configure logging
logger = logging.getLogger(__name__)

# Strong references to in-flight deliveries so they are not garbage collected
_pending_deliveries: Set[asyncio.Task] = set()


async def create_notification(
    db: AsyncSession,
    recipient_id: str,
    actor_id: str,
    type: NotificationType,
    message: str,
    related_id: Optional[str] = None,
    related_kind: Optional[RelatedKind] = None,
) -> Optional[Notification]:
    """
    Persist a notification for ``recipient_id``.

    Returns None without writing anything when the actor is the recipient
    (liking your own post, for example).
    """
    if str(recipient_id) == str(actor_id):
        return None

    notification = Notification(
        recipient_id=recipient_id,
        actor_id=actor_id,
        type=type,
        message=message,
        related_id=related_id,
        related_kind=related_kind,
        is_read=False,
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification


def dispatch_notification(
    recipient_id: str,
    actor_id: str,
    type: NotificationType,
    message: str,
    related_id: Optional[str] = None,
    related_kind: Optional[RelatedKind] = None,
) -> None:
    """
    Schedule a notification without waiting for it.

    Delivery is best-effort and at-most-once: the caller's request never
    fails or slows down because of it, and failures are only logged.
    """
    if str(recipient_id) == str(actor_id):
        return

    task = asyncio.create_task(_deliver(
        recipient_id=recipient_id,
        actor_id=actor_id,
        type=type,
        message=message,
        related_id=related_id,
        related_kind=related_kind,
    ))
    _pending_deliveries.add(task)
    task.add_done_callback(_pending_deliveries.discard)


async def drain_pending_notifications() -> None:
    """Wait for every scheduled delivery to finish. Used on shutdown."""
    if _pending_deliveries:
        await asyncio.gather(*list(_pending_deliveries), return_exceptions=True)


async def _deliver(**fields) -> None:
    try:
        async with AsyncSessionLocal() as db:
            notification = await create_notification(db, **fields)
            if notification is None:
                return

            payload = {
                "type": WebSocketMessageType.NOTIFICATION.value,
                "id": notification.id,
                "notification_type": notification.type.value,
                "actor_id": notification.actor_id,
                "related_id": notification.related_id,
                "related_kind": notification.related_kind.value if notification.related_kind else None,
                "message": notification.message,
                "created_at": notification.created_at.isoformat() if notification.created_at else None,
            }

            if manager.is_user_online(notification.recipient_id):
                await manager.send_notification(notification.recipient_id, payload)
                return

            stmt = select(DeviceToken).where(
                DeviceToken.is_active == True,
                DeviceToken.user_id == notification.recipient_id,
            )
            device_tokens = (await db.execute(stmt)).scalars().all()
            if not device_tokens:
                logger.info(f"No active device tokens found for user {notification.recipient_id}")
                return

            responses = await send_push_notifications(device_tokens, notification)
            logger.info(f"Push notifications sent: {len(responses)} responses")
    except Exception:
        logger.exception(f"Failed to deliver {fields.get('type')} notification to {fields.get('recipient_id')}")


async def send_push_notifications(device_tokens: List[DeviceToken], notification: Notification) -> List[Dict[str, Any]]:
    if settings.push_notification_url is None:
        logger.info("Push notification URL not configured, skipping push delivery")
        return []

    push_url = settings.push_notification_url.get_secret_value()
    push_responses = []

    async with httpx.AsyncClient(timeout=10.0) as client:
        for token_obj in device_tokens:
            payload = {
                "deviceToken": token_obj.token,
                "message": notification.message,
                "title": notification.type.value.replace("_", " ").title(),
                "badge": 1
            }
            try:
                response = await client.post(push_url, json=payload)
                push_responses.append({
                    "device_token": token_obj.token,
                    "status_code": response.status_code,
                })
            except httpx.HTTPError as e:
                logger.warning(f"Error sending push notification to device {token_obj.token[:10]}...: {e}")
                push_responses.append({
                    "device_token": token_obj.token,
                    "status_code": 500,
                    "error": str(e)
                })

    return push_responses


async def get_user_notifications(db: AsyncSession, user_id: str, page: int, limit: int) -> List[Notification]:
    """
    Retrieve a page of visible notifications for a user, newest first.
    """
    result = await db.execute(
        select(Notification)
        .where(Notification.recipient_id == user_id, Notification.is_hidden == False)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return result.scalars().all()


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == user_id,
            Notification.is_read == False,
            Notification.is_hidden == False,
        )
    )
    return result.scalar_one()


async def mark_notification_read(db: AsyncSession, user_id: str, notification_id: str) -> Notification:
    """
    Mark one notification as read.

    Raises:
        NotFoundError: If the notification does not exist or belongs to someone else
    """
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification not found or unauthorized")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, user_id: str) -> dict:
    stmt = (
        update(Notification)
        .where(Notification.recipient_id == user_id, Notification.is_read == False)
        .values(is_read=True)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(stmt)
    await db.commit()
    return {"success": True}
