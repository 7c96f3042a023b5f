from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time, used as the Python-side column default."""
    return datetime.now(timezone.utc)
