from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the database.

    Wrapped so tests can patch it.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()
