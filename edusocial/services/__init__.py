from .friends_service import (
    send_friend_request,
    accept_friend_request,
    cancel_or_reject_request,
    unfriend,
    block_user,
    unblock_user,
    get_relationship_label,
    recompute_connections_count,
)
from .visibility_service import can_view_post, ensure_post_visible
from .post_service import build_feed

__all__ = [
    "send_friend_request", "accept_friend_request", "cancel_or_reject_request", "unfriend",
    "block_user", "unblock_user", "get_relationship_label", "recompute_connections_count",
    "can_view_post", "ensure_post_visible", "build_feed",
]
