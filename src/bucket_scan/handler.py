# src/bucket_scan/handler.py
from transaction_import.config import load_settings
from transaction_import.deadline import Deadline
from transaction_import.errors import ConfigError, ListingError
from transaction_import.log import get_logger, setup_logging
from transaction_import.models import FileArrivalNotification
from transaction_import.process import handle
from transaction_import.storage import StorageMover

setup_logging()
logger = get_logger("bucket_scan")


def scan_prefix(settings) -> str:
    # files are dropped under a per-company prefix
    return settings.scan_prefix or settings.tenant.company_id


def handler(event, context, storage=None, deliver=None):
    settings = load_settings()
    if not settings.scan_bucket:
        raise ConfigError("BUCKET environment variable is not set", setting="BUCKET")

    bucket = settings.scan_bucket
    prefix = scan_prefix(settings)
    storage = storage or StorageMover.from_settings(settings)

    try:
        notifications = [
            FileArrivalNotification(source_system="bucket-scan", event_time="", bucket=bucket, key=key)
            for key in storage.list_keys(bucket, prefix)
        ]
    except ListingError as e:
        logger.error("Listing failed", extra={"bucket": bucket, "prefix": prefix, "error": str(e)})
        raise
    logger.info("Listed bucket", extra={"bucket": bucket, "prefix": prefix, "count": len(notifications)})

    deadline = Deadline.from_context(context, settings.deadline_margin_ms)
    summary = handle(notifications, settings, storage=storage, deliver=deliver, deadline=deadline)
    return {**summary.to_dict(), "bucket": bucket, "prefix": prefix}
