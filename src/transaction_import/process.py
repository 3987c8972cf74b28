# src/transaction_import/process.py
import os
from typing import Callable, Optional, Sequence

from .config import Settings
from .deadline import Deadline
from .delivery import PayloadDelivery
from .errors import ArchiveError, PipelineError
from .log import get_logger
from .models import FAILED, SUCCEEDED, FileArrivalNotification, FileRef, FileResult, InvocationSummary, Payload
from .storage import StorageMover
from .transform import HeaderPredicate, header_predicate, transform_file

logger = get_logger(__name__)

Deliver = Callable[[Payload, FileRef], None]


def _cleanup(ref: Optional[FileRef]) -> None:
    if not (ref and ref.local_path):
        return
    try:
        if os.path.exists(ref.local_path):
            os.remove(ref.local_path)
    except OSError as e:
        logger.warning(
            "Unable to remove local copy",
            extra={"bucket": ref.bucket, "key": ref.key, "path": ref.local_path, "error": str(e)},
        )


def process_one_object(
    bucket: str,
    key: str,
    settings: Settings,
    storage: StorageMover,
    deliver: Deliver,
    deadline: Deadline,
    is_header: Optional[HeaderPredicate] = None,
) -> FileResult:
    """Run one file through fetch, transform, deliver and archive. Never raises PipelineError."""
    result = FileResult(bucket=bucket, key=key, status=FAILED)
    ctx = {"bucket": bucket, "key": key}
    ref = None
    phase = "fetch"
    try:
        # 1) download to local storage
        ref = storage.fetch(bucket, key, deadline)

        # 2) map columns into the payload
        phase = "transform"
        deadline.check(phase, phase=phase, **ctx)
        out = transform_file(
            ref.local_path,
            settings.tenant,
            is_header=is_header,
            abort_on_malformed=settings.abort_on_malformed,
            deadline=deadline,
        )
        result.records = len(out.payload.records)
        result.skipped_lines = out.skipped_lines

        # 3) hand off downstream
        phase = "deliver"
        deadline.check(phase, phase=phase, **ctx)
        deliver(out.payload, ref)

        # 4) move the source out of the inbound bucket
        phase = "archive"
        result.archive = storage.archive(bucket, key, deadline)
    except PipelineError as e:
        result.phase = phase
        result.reason = f"{e.step}: {e}" if isinstance(e, ArchiveError) else str(e)
        logger.error(
            "File failed",
            extra={**ctx, "phase": phase, "error": result.reason, "error_type": type(e).__name__},
        )
        return result
    finally:
        _cleanup(ref)

    result.status = SUCCEEDED
    logger.info(
        "File processed",
        extra={**ctx, "records": result.records, "skipped": len(result.skipped_lines), "archive": result.archive},
    )
    return result


def handle(
    notifications: Sequence[FileArrivalNotification],
    settings: Settings,
    *,
    storage: Optional[StorageMover] = None,
    deliver: Optional[Deliver] = None,
    deadline: Optional[Deadline] = None,
) -> InvocationSummary:
    """
    Process every notification in order.

    A failing file is recorded and the next one is still attempted. Once the
    deadline has passed the remaining files are reported as failed without
    being touched.
    """
    storage = storage or StorageMover.from_settings(settings)
    if deliver is None:
        deliver = PayloadDelivery.from_settings(settings, s3_client=storage.client)
    deadline = deadline or Deadline.unlimited()
    is_header = header_predicate(settings.header_marker, settings.header_pattern)

    summary = InvocationSummary()
    for i, n in enumerate(notifications):
        if deadline.expired:
            for skipped in notifications[i:]:
                summary.results.append(FileResult(
                    bucket=skipped.bucket, key=skipped.key, status=FAILED,
                    phase="fetch", reason="deadline exceeded; not attempted",
                ))
            logger.error("Deadline exceeded", extra={"not_attempted": len(notifications) - i})
            break
        logger.info(
            "Processing file",
            extra={"bucket": n.bucket, "key": n.key, "source": n.source_system, "event_time": n.event_time},
        )
        summary.results.append(
            process_one_object(n.bucket, n.key, settings, storage, deliver, deadline, is_header)
        )

    logger.info("Processed event", extra={"processed": summary.processed, "failed": summary.failed})
    return summary
