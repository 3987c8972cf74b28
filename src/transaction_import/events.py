# src/transaction_import/events.py
import urllib.parse
from typing import List

from .errors import InvalidEventError
from .models import FileArrivalNotification


def parse_notifications(event: dict) -> List[FileArrivalNotification]:
    """Turn an S3 event's Records into notifications, URL-decoding object keys."""
    if not isinstance(event, dict) or not isinstance(event.get("Records"), list):
        raise InvalidEventError("event has no Records list")

    notifications = []
    for i, rec in enumerate(event["Records"]):
        s3 = rec.get("s3") if isinstance(rec, dict) else None
        bucket = ((s3 or {}).get("bucket") or {}).get("name")
        raw_key = ((s3 or {}).get("object") or {}).get("key")
        if not bucket or not raw_key:
            raise InvalidEventError(f"record {i} has no bucket name or object key")
        notifications.append(FileArrivalNotification(
            source_system=rec.get("eventSource", ""),
            event_time=rec.get("eventTime", ""),
            bucket=bucket,
            key=urllib.parse.unquote_plus(raw_key),
        ))
    return notifications
