import logging

from .common import app
from .routers.users.endpoints import router as UsersEndpoints
from .routers.friendships.endpoints import router as FriendshipsEndpoints
from .routers.posts.endpoints import router as PostsEndpoints
from .routers.comments.endpoints import router as CommentsEndpoints
from .routers.groups.endpoints import router as GroupsEndpoints
from .routers.rooms.endpoints import router as RoomsEndpoints
from .routers.follows.endpoints import router as FollowsEndpoints
from .routers.follows.endpoints import institutions_router as InstitutionsEndpoints
from .routers.notifications.endpoints import router as NotificationsEndpoints
from .routers.device_tokens.endpoints import router as DeviceTokenEndpoints
from .routers.websocket.endpoints import router as WebSocketEndpoints

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Include routers
app.include_router(UsersEndpoints, prefix=API_PREFIX)
app.include_router(FriendshipsEndpoints, prefix=API_PREFIX)
app.include_router(PostsEndpoints, prefix=API_PREFIX)
app.include_router(CommentsEndpoints, prefix=API_PREFIX)
app.include_router(GroupsEndpoints, prefix=API_PREFIX)
app.include_router(RoomsEndpoints, prefix=API_PREFIX)
app.include_router(FollowsEndpoints, prefix=API_PREFIX)
app.include_router(InstitutionsEndpoints, prefix=API_PREFIX)
app.include_router(NotificationsEndpoints, prefix=API_PREFIX)
app.include_router(DeviceTokenEndpoints, prefix=API_PREFIX)
app.include_router(WebSocketEndpoints)

@app.get("/health")
async def health():
    return {"status": "ok"}
