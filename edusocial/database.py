from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from edusocial.config import settings
import logging

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.sqlalchemy_database_url

# Log the connection string (mask password for safety)
masked_url = SQLALCHEMY_DATABASE_URL.replace(
    settings.db_password.get_secret_value(), "*****"
)
logger.info(f"SQLAlchemy DB URL: {masked_url}")

engine_options = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    # aiosqlite connections are bound to the loop that opened them
    engine_options["poolclass"] = NullPool

engine = create_async_engine(SQLALCHEMY_DATABASE_URL, **engine_options)

AsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()
