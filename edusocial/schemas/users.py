from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum
from datetime import datetime


class UserType(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    BANNED = "BANNED"
    DELETED = "DELETED"


class FriendRequestPolicy(str, Enum):
    EVERYONE = "EVERYONE"
    NOBODY = "NOBODY"


class UserCreate(BaseModel):
    user_name: str = Field(min_length=3, max_length=40, pattern=r"^[a-zA-Z0-9_.]+$")
    full_name: str = Field(min_length=1, max_length=120)
    email: Optional[str] = None
    user_type: UserType = UserType.STUDENT
    institution_id: Optional[str] = None
    department_id: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    user_name: str
    full_name: str

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    email: Optional[str] = None
    user_type: UserType
    institution_id: Optional[str] = None
    department_id: Optional[str] = None
    is_student_email: bool = False
    friend_request_policy: FriendRequestPolicy
    connections_count: int
    created_at: datetime


class ProfileResponse(UserResponse):
    relationship: str
    friendship_id: Optional[str] = None


class PrivacyUpdate(BaseModel):
    friend_request_policy: FriendRequestPolicy


class AcademicProfileUpdate(BaseModel):
    institution_id: Optional[str] = None
    department_id: Optional[str] = None


class AccountUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    # Accepted only so a rename attempt can be refused explicitly
    user_name: Optional[str] = None


class EmailCheckResponse(BaseModel):
    email: str
    is_student_email: bool


class Pagination(BaseModel):
    page: int
    limit: int
    total_docs: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class SuggestionResponse(UserSummary):
    institution_id: Optional[str] = None
    department_id: Optional[str] = None
    mutual_friends: int = 0


class SuggestionsPage(BaseModel):
    data: List[SuggestionResponse]
    pagination: Pagination
