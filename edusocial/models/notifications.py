import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Enum
from ..database import Base
from ..schemas.notifications import NotificationType, RelatedKind
from ..utils.time_utils import utcnow

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    actor_id = Column(String, ForeignKey("users.id"), nullable=False)
    type = Column(Enum(NotificationType), nullable=False)
    related_id = Column(String, nullable=True)
    related_kind = Column(Enum(RelatedKind), nullable=True)
    message = Column(String, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
