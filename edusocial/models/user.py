from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Integer, Enum
from sqlalchemy.orm import relationship
import uuid

from edusocial.database import Base
from edusocial.schemas.users import UserType, AccountStatus, FriendRequestPolicy
from edusocial.utils.time_utils import utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_name = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    user_type = Column(Enum(UserType), default=UserType.STUDENT, nullable=False)
    account_status = Column(Enum(AccountStatus), default=AccountStatus.ACTIVE, nullable=False)
    institution_id = Column(String, ForeignKey("institutions.id"), nullable=True, index=True)
    department_id = Column(String, ForeignKey("departments.id"), nullable=True, index=True)
    # Set when the e-mail domain matched an institution; locks institution and department
    is_student_email = Column(Boolean, default=False, nullable=False)
    friend_request_policy = Column(Enum(FriendRequestPolicy), default=FriendRequestPolicy.EVERYONE, nullable=False)
    # Cached count of ACCEPTED friendships; recomputable from the friendships table
    connections_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    institution = relationship("Institution", foreign_keys=[institution_id])
    department = relationship("Department", foreign_keys=[department_id])
    device_tokens = relationship("DeviceToken", back_populates="user")
