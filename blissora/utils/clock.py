from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, matching what the DateTime columns round-trip
    return datetime.now(timezone.utc).replace(tzinfo=None)
