# src/s3_trigger/handler.py
from transaction_import.config import load_settings
from transaction_import.deadline import Deadline
from transaction_import.events import parse_notifications
from transaction_import.log import get_logger, setup_logging
from transaction_import.process import handle
from transaction_import.storage import StorageMover

setup_logging()
logger = get_logger("s3_trigger")


def handler(event, context, storage=None, deliver=None):
    settings = load_settings()
    notifications = parse_notifications(event)

    storage = storage or StorageMover.from_settings(settings)
    wanted = []
    for n in notifications:
        # only handle the configured inbound bucket, never our own archive copies
        if storage.is_archive_bucket(n.bucket):
            logger.info("Ignoring archive bucket event", extra={"bucket": n.bucket, "key": n.key})
            continue
        if settings.source_bucket and n.bucket != settings.source_bucket:
            logger.info("Ignoring event for other bucket", extra={"bucket": n.bucket, "key": n.key})
            continue
        wanted.append(n)

    deadline = Deadline.from_context(context, settings.deadline_margin_ms)
    summary = handle(wanted, settings, storage=storage, deliver=deliver, deadline=deadline)
    return summary.to_dict()
