from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edusocial.exceptions import NotFoundError
from edusocial.models import DeviceToken
from edusocial.schemas.device_token import DeviceTokenCreate


async def register_device_token(db: AsyncSession, user_id: str, data: DeviceTokenCreate) -> DeviceToken:
    # A physical device belongs to whoever registered it last
    result = await db.execute(select(DeviceToken).where(DeviceToken.token == data.token))
    token = result.scalar_one_or_none()
    if token:
        token.user_id = user_id
        token.platform = data.platform
        token.is_active = True
    else:
        token = DeviceToken(user_id=user_id, token=data.token, platform=data.platform, is_active=True)
        db.add(token)

    await db.commit()
    await db.refresh(token)
    return token


async def unregister_device_token(db: AsyncSession, user_id: str, token: str) -> dict:
    result = await db.execute(
        update(DeviceToken)
        .where(DeviceToken.user_id == user_id, DeviceToken.token == token)
        .values(is_active=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Device token not found.")
    await db.commit()
    return {"success": True}
