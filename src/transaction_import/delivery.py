# src/transaction_import/delivery.py
import hashlib
from typing import Optional

import httpx
from botocore.exceptions import BotoCoreError, ClientError

from .errors import DeliveryError
from .log import get_logger
from .models import FileRef, Payload

logger = get_logger(__name__)


def payload_id_for(bucket: str, key: str) -> str:
    # stable id for idempotency
    return hashlib.sha1(f"{bucket}/{key}".encode("utf-8")).hexdigest()


def payload_key_for(payload: Payload, bucket: str, key: str) -> str:
    return f"payloads/{payload.header.company_id}/{payload_id_for(bucket, key)}.json"


class PayloadDelivery:
    """
    Hands a finished payload to the downstream API.

    With no api_url configured the payload is only logged. With a
    payload_bucket configured a JSON copy is written there first.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: int = 30,
        payload_bucket: Optional[str] = None,
        s3_client=None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.payload_bucket = payload_bucket
        self.s3_client = s3_client
        self._http = http_client

    @classmethod
    def from_settings(cls, settings, s3_client=None, http_client=None) -> "PayloadDelivery":
        return cls(
            api_url=settings.delivery_api_url,
            api_key=settings.delivery_api_key,
            timeout=settings.delivery_timeout,
            payload_bucket=settings.payload_bucket,
            s3_client=s3_client,
            http_client=http_client,
        )

    def __call__(self, payload: Payload, ref: FileRef) -> None:
        body = payload.to_json()
        if self.payload_bucket:
            self._save_copy(payload, ref, body)
        if not self.api_url:
            logger.info("JSON payload", extra={"bucket": ref.bucket, "key": ref.key, "payload": body})
            return
        self._post(payload, ref, body)

    def _save_copy(self, payload: Payload, ref: FileRef, body: str) -> None:
        out_key = payload_key_for(payload, ref.bucket, ref.key)
        try:
            self.s3_client.put_object(
                Bucket=self.payload_bucket,
                Key=out_key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise DeliveryError(
                f"Unable to save payload to s3://{self.payload_bucket}/{out_key}: {e}",
                bucket=ref.bucket, key=ref.key,
            ) from e
        logger.info("Saved payload copy", extra={"bucket": self.payload_bucket, "key": out_key})

    def _post(self, payload: Payload, ref: FileRef, body: str) -> None:
        headers = {
            "Content-Type": "application/json",
            "Idempotency-Key": payload_id_for(ref.bucket, ref.key),
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key

        client = self._http or httpx.Client(timeout=self.timeout)
        try:
            resp = client.post(self.api_url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"Delivery to {self.api_url} failed: {e}", bucket=ref.bucket, key=ref.key
            ) from e
        finally:
            if self._http is None:
                client.close()

        if not resp.is_success:
            raise DeliveryError(
                f"Delivery to {self.api_url} returned HTTP {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code, bucket=ref.bucket, key=ref.key,
            )
        logger.info(
            "Delivered payload",
            extra={"bucket": ref.bucket, "key": ref.key, "records": len(payload.records), "status": resp.status_code},
        )
