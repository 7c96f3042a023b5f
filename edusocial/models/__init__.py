from .academic import Institution, Department
from .user import User
from .device_token import DeviceToken
from .notifications import Notification
from .friendship import Friendship
from .follow import Follow
from .group import Group, GroupMembership
from .room import Room, RoomMembership
from .post import Post, Reaction
from .comment import Comment

__all__ = [
    "Institution", "Department", "User", "DeviceToken", "Notification", "Friendship",
    "Follow", "Group", "GroupMembership", "Room", "RoomMembership", "Post", "Reaction", "Comment",
]
