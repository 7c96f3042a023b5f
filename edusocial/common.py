import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import initialize_app, delete_app, auth, credentials as fb_credentials
from edusocial.config import settings
from edusocial.services.notification_service import drain_pending_notifications

logger = logging.getLogger(__name__)

firebase_app = None


def _init_firebase():
    global firebase_app
    firebase_app = initialize_app(
        credential=fb_credentials.ApplicationDefault(),
        options={'projectId': settings.firebase_project_id},
    )
    logger.info(f"Firebase initialized for project {settings.firebase_project_id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    global firebase_app
    if settings.environment == "production":
        try:
            _init_firebase()
        except Exception:
            logger.exception("Error initializing Firebase")
            raise
    else:
        logger.info("Running in development mode - bearer tokens are taken as user ids")

    yield

    # Let in-flight notification deliveries finish before the loop goes away
    await drain_pending_notifications()
    if firebase_app:
        delete_app(firebase_app)
        firebase_app = None


app = FastAPI(title="EduSocial API", lifespan=lifespan)
security = HTTPBearer()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def resolve_token(token: str) -> dict:
    """
    Turn a bearer token into the caller's claims (at least ``uid``).

    Outside production the token itself is the uid, so local clients and
    tests can act as any user.

    Raises:
        HTTPException: 401 if Firebase rejects the token
    """
    if settings.environment != "production":
        return {"uid": token}

    try:
        return auth.verify_id_token(token)
    except Exception as e:
        logger.warning(f"Rejected Firebase ID token {token[:10]}...: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token."
        )


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    return resolve_token(credentials.credentials)
