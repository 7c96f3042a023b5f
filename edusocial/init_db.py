from .database import AsyncSessionLocal

async def get_db():
    """Request-scoped session; whatever a failed request left pending is rolled back."""
    db = AsyncSessionLocal()
    try:
        yield db
    except Exception:
        await db.rollback()
        raise
    finally:
        await db.close()
