# src/transaction_import/transform.py
import re
from typing import Callable, Iterator, Optional, Tuple

from .deadline import Deadline
from .errors import FileAccessError, MalformedLineError, ScanError
from .log import get_logger
from .mapper import map_line
from .models import Payload, PayloadHeader, TenantConfig, TransformResult

logger = get_logger(__name__)

HeaderPredicate = Callable[[str], bool]

DEADLINE_CHECK_EVERY = 1000


def header_predicate(marker: str = "transaction", pattern: Optional[str] = None) -> HeaderPredicate:
    """
    Build the test for header lines.

    A regex `pattern` wins over the plain `marker`; both match at the start of
    the line and ignore case.
    """
    if pattern:
        rx = re.compile(pattern, re.IGNORECASE)
        return lambda line: rx.match(line) is not None
    prefix = marker.lower()
    return lambda line: line.lower().startswith(prefix)


def _read_lines(path: str) -> Iterator[Tuple[int, str]]:
    try:
        fh = open(path, "r", encoding="utf-8-sig", newline="")
    except OSError as e:
        raise FileAccessError(f"Unable to open file {path}: {e}") from e
    with fh:
        try:
            for number, line in enumerate(fh, start=1):
                yield number, line.rstrip("\r\n")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanError(f"Error on scan of file {path}: {e}", details={"path": path}) from e


def transform_file(
    path: str,
    tenant: TenantConfig,
    *,
    is_header: Optional[HeaderPredicate] = None,
    abort_on_malformed: bool = False,
    deadline: Optional[Deadline] = None,
) -> TransformResult:
    is_header = is_header or header_predicate()
    payload = Payload(header=PayloadHeader(company_id=tenant.company_id))
    result = TransformResult(payload=payload)

    for number, line in _read_lines(path):
        result.lines_read = number
        if deadline is not None and number % DEADLINE_CHECK_EVERY == 0:
            deadline.check("transform")
        if not line or is_header(line):
            continue
        try:
            payload.records.append(map_line(line, tenant.columns))
        except MalformedLineError as e:
            e.line_number = number
            if abort_on_malformed:
                raise MalformedLineError(
                    f"{path} line {number}: {e}",
                    line_number=number,
                    field_count=e.field_count,
                ) from e
            result.skipped_lines.append(number)
            logger.warning("Skipping malformed line", extra={"path": path, "line": number, "error": str(e)})

    if result.skipped_lines:
        logger.warning(
            "Skipped malformed lines",
            extra={"path": path, "skipped": len(result.skipped_lines), "records": len(payload.records)},
        )
    return result
