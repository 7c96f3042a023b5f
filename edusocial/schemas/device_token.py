from pydantic import BaseModel
from datetime import datetime

class DeviceTokenCreate(BaseModel):
    token: str
    platform: str = "ios"

class DeviceTokenResponse(DeviceTokenCreate):
    id: str
    user_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
