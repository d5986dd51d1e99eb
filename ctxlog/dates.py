"""Date buckets for date-based rotation and archive naming."""

from datetime import datetime, timezone
from enum import Enum


class DateBucket(str, Enum):
    DAY = "YYYY-MM-DD"
    HOUR = "YYYY-MM-DD-HH"
    MONTH = "YYYY-MM"


_BUCKET_FORMATS = {
    DateBucket.DAY: "%Y-%m-%d",
    DateBucket.HOUR: "%Y-%m-%d-%H",
    DateBucket.MONTH: "%Y-%m",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_bucket(instant: datetime, bucket: DateBucket) -> str:
    """Render instant as the bucket key used for both rollover checks and file names."""
    return instant.strftime(_BUCKET_FORMATS[bucket])


def iso_timestamp(instant: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2025-01-15T12:00:00.123Z."""
    instant = instant.astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"
