# src/transaction_import/storage.py
import os
from typing import Iterator, Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from .config import REGION
from .deadline import Deadline
from .errors import ArchiveError, DownloadError, ListingError
from .log import get_logger
from .models import FileRef

logger = get_logger(__name__)

ARCHIVED = "archived"
ALREADY_ARCHIVED = "already_archived"

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def s3_client(region: str = REGION):
    return boto3.client("s3", region_name=region)


def _is_missing(e: ClientError) -> bool:
    return str(e.response.get("Error", {}).get("Code")) in _MISSING_CODES


class StorageMover:
    """Download objects for processing and move them to the archive bucket afterwards."""

    def __init__(
        self,
        client,
        *,
        archive_suffix: str = "-archive",
        download_dir: str = "/tmp",
        confirm_delay: int = 5,
        confirm_max_attempts: int = 20,
    ):
        self.client = client
        self.archive_suffix = archive_suffix
        self.download_dir = download_dir
        self.confirm_delay = confirm_delay
        self.confirm_max_attempts = confirm_max_attempts

    @classmethod
    def from_settings(cls, settings, client=None) -> "StorageMover":
        return cls(
            client or s3_client(settings.region),
            archive_suffix=settings.archive_suffix,
            download_dir=settings.download_dir,
            confirm_delay=settings.confirm_delay,
            confirm_max_attempts=settings.confirm_max_attempts,
        )

    def archive_bucket_for(self, bucket: str) -> str:
        return bucket + self.archive_suffix

    def is_archive_bucket(self, bucket: str) -> bool:
        return bucket.endswith(self.archive_suffix)

    def local_path_for(self, key: str) -> str:
        root = os.path.abspath(self.download_dir)
        path = os.path.abspath(os.path.join(root, key))
        if os.path.commonpath([root, path]) != root or path == root:
            raise DownloadError(f"Key {key!r} does not map to a file under {root}", key=key)
        return path

    # ── fetch ─────────────────────────────────────

    def fetch(self, bucket: str, key: str, deadline: Optional[Deadline] = None) -> FileRef:
        if deadline is not None:
            deadline.check("fetch", bucket=bucket, key=key, phase="fetch")
        local_path = self.local_path_for(key)
        try:
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
            # download_file replaces whatever is already at local_path
            self.client.download_file(bucket, key, local_path)
        except (ClientError, BotoCoreError, Boto3Error, OSError) as e:
            raise DownloadError(
                f"Unable to download s3://{bucket}/{key}: {e}", bucket=bucket, key=key
            ) from e

        size = os.path.getsize(local_path)
        logger.info("Downloaded object", extra={"bucket": bucket, "key": key, "path": local_path, "bytes": size})
        return FileRef(bucket=bucket, key=key, local_path=local_path)

    # ── archive ───────────────────────────────────

    def _exists(self, bucket: str, key: str) -> bool:
        try:
            self.client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise
        return True

    def _wait(self, waiter_name: str, bucket: str, key: str, deadline: Optional[Deadline]) -> None:
        attempts = self.confirm_max_attempts
        if deadline is not None:
            attempts = deadline.cap_attempts(self.confirm_delay, attempts)
        self.client.get_waiter(waiter_name).wait(
            Bucket=bucket,
            Key=key,
            WaiterConfig={"Delay": self.confirm_delay, "MaxAttempts": attempts},
        )

    def archive(self, bucket: str, key: str, deadline: Optional[Deadline] = None) -> str:
        """
        Copy bucket/key to the archive bucket, wait until the copy is visible,
        then delete the source and wait until it is gone.

        Returns ARCHIVED, or ALREADY_ARCHIVED when a previous attempt got as far
        as deleting the source. The source is never deleted before the copy
        has been confirmed.
        """
        dest_bucket = self.archive_bucket_for(bucket)
        source = f"{bucket}/{key}"
        ctx = {"bucket": bucket, "key": key}

        if deadline is not None:
            deadline.check("archive", phase="archive", **ctx)

        # 0) retry of a finished archive: source gone, copy present
        try:
            if not self._exists(bucket, key):
                if self._exists(dest_bucket, key):
                    logger.info("Object already archived", extra={**ctx, "archive_bucket": dest_bucket})
                    return ALREADY_ARCHIVED
                raise ArchiveError(
                    f"{source} is missing and was never archived to {dest_bucket}",
                    step=ArchiveError.COPY, **ctx,
                )
        except (ClientError, BotoCoreError) as e:
            raise ArchiveError(f"Unable to check {source}: {e}", step=ArchiveError.COPY, **ctx) from e

        # 1) copy
        try:
            self.client.copy_object(
                Bucket=dest_bucket,
                CopySource={"Bucket": bucket, "Key": key},
                Key=key,
            )
        except (ClientError, BotoCoreError) as e:
            raise ArchiveError(
                f"Unable to copy {source} to bucket {dest_bucket}: {e}", step=ArchiveError.COPY, **ctx
            ) from e

        # 2) confirm copy
        try:
            self._wait("object_exists", dest_bucket, key, deadline)
        except WaiterError as e:
            raise ArchiveError(
                f"Timed out waiting for {source} to appear in {dest_bucket}: {e}",
                step=ArchiveError.CONFIRM, **ctx,
            ) from e
        except (ClientError, BotoCoreError) as e:
            raise ArchiveError(
                f"Unable to confirm {source} in {dest_bucket}: {e}", step=ArchiveError.CONFIRM, **ctx
            ) from e
        logger.info("Copied object to archive", extra={**ctx, "archive_bucket": dest_bucket})

        # 3) delete source
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise ArchiveError(f"Unable to delete {source}: {e}", step=ArchiveError.DELETE, **ctx) from e

        # 4) confirm delete
        try:
            self._wait("object_not_exists", bucket, key, deadline)
        except WaiterError as e:
            raise ArchiveError(
                f"Timed out waiting for {source} to be deleted: {e}", step=ArchiveError.CONFIRM, **ctx
            ) from e
        except (ClientError, BotoCoreError) as e:
            raise ArchiveError(
                f"Unable to confirm {source} was deleted: {e}", step=ArchiveError.CONFIRM, **ctx
            ) from e

        logger.info("Archived object", extra={**ctx, "archive_bucket": dest_bucket})
        return ARCHIVED

    # ── listing ───────────────────────────────────

    def list_keys(self, bucket: str, prefix: str = "") -> Iterator[str]:
        token = None
        while True:
            kwargs = {"Bucket": bucket, "Prefix": prefix, "MaxKeys": 1000}
            if token:
                kwargs["ContinuationToken"] = token
            try:
                resp = self.client.list_objects_v2(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise ListingError(
                    f"Unable to list s3://{bucket}/{prefix}: {e}", bucket=bucket, prefix=prefix
                ) from e
            for obj in resp.get("Contents", []):
                key = obj["Key"]
                if key.endswith("/") or key.lower().endswith(".tmp"):
                    continue
                yield key
            if resp.get("IsTruncated"):
                token = resp.get("NextContinuationToken")
            else:
                break
