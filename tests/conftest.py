"""
Pytest fixtures for the transaction import tests.

S3 is replaced by FakeS3, an in-memory stand-in for the handful of boto3
client calls the pipeline makes. It raises the same botocore exceptions a
real client would, so error handling is exercised for real.
"""
import json

import pytest
from botocore.exceptions import ClientError, WaiterError

from transaction_import.config import load_settings

ACME_FILE_DEF = {
    "companyID": "ACME",
    "columns": {"transactionID": 0, "transactionDate": 1, "firstName": 2, "lastName": 3},
}

ACME_CSV = (
    "TransactionID,TransactionDate,FirstName,LastName\n"
    "T1,2024-01-01,Jane,Doe\n"
    "T2,2024-01-02,John,Smith\n"
)


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeWaiter:
    def __init__(self, s3, name):
        self.s3 = s3
        self.name = name

    def wait(self, Bucket, Key, WaiterConfig=None):
        attempts = (WaiterConfig or {}).get("MaxAttempts", 20)
        self.s3.calls.append((self.name, Bucket, Key, attempts))
        self.s3._maybe_fail(self.name)
        for _ in range(attempts):
            visible = self.s3.visible(Bucket, Key)
            if visible == (self.name == "object_exists"):
                return
        raise WaiterError(name=self.name, reason="Max attempts exceeded", last_response={})


class FakeS3:
    def __init__(self, *buckets):
        self.buckets = {b: {} for b in buckets}
        self.calls = []
        self.fail = {}
        self.hidden_copies = False
        self.sticky_deletes = False
        self.page_size = 1000

    def put(self, bucket, key, body):
        self.buckets.setdefault(bucket, {})[key] = body.encode("utf-8") if isinstance(body, str) else body

    def get(self, bucket, key):
        return self.buckets.get(bucket, {}).get(key)

    def exists(self, bucket, key):
        return key in self.buckets.get(bucket, {})

    def visible(self, bucket, key):
        if self.hidden_copies and bucket.endswith("-archive"):
            return False
        if self.sticky_deletes and not bucket.endswith("-archive"):
            return True
        return self.exists(bucket, key)

    def _maybe_fail(self, op):
        if op in self.fail:
            raise self.fail[op]

    # boto3 surface

    def download_file(self, Bucket, Key, Filename):
        self.calls.append(("download_file", Bucket, Key))
        self._maybe_fail("download_file")
        if not self.exists(Bucket, Key):
            raise client_error("404", "HeadObject")
        with open(Filename, "wb") as fh:
            fh.write(self.buckets[Bucket][Key])

    def head_object(self, Bucket, Key):
        self.calls.append(("head_object", Bucket, Key))
        self._maybe_fail("head_object")
        if not self.visible(Bucket, Key):
            raise client_error("404", "HeadObject")
        return {"ContentLength": len(self.buckets[Bucket][Key])}

    def copy_object(self, Bucket, CopySource, Key):
        self.calls.append(("copy_object", Bucket, Key))
        self._maybe_fail("copy_object")
        if Bucket not in self.buckets:
            raise client_error("NoSuchBucket", "CopyObject")
        src = self.get(CopySource["Bucket"], CopySource["Key"])
        if src is None:
            raise client_error("NoSuchKey", "CopyObject")
        self.buckets[Bucket][Key] = src
        return {}

    def delete_object(self, Bucket, Key):
        self.calls.append(("delete_object", Bucket, Key))
        self._maybe_fail("delete_object")
        self.buckets.get(Bucket, {}).pop(Key, None)
        return {}

    def get_waiter(self, name):
        return FakeWaiter(self, name)

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.calls.append(("put_object", Bucket, Key))
        self._maybe_fail("put_object")
        self.put(Bucket, Key, Body)
        return {}

    def list_objects_v2(self, Bucket, Prefix="", MaxKeys=1000, ContinuationToken=None):
        self.calls.append(("list_objects_v2", Bucket, Prefix))
        self._maybe_fail("list_objects_v2")
        keys = sorted(k for k in self.buckets.get(Bucket, {}) if k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        page = keys[start:start + min(MaxKeys, self.page_size)]
        resp = {"Contents": [{"Key": k} for k in page], "IsTruncated": start + len(page) < len(keys)}
        if resp["IsTruncated"]:
            resp["NextContinuationToken"] = str(start + len(page))
        return resp

    def op_names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def s3():
    return FakeS3("in-bucket", "in-bucket-archive")


@pytest.fixture
def env(tmp_path):
    return {
        "FILE_DEF": json.dumps(ACME_FILE_DEF),
        "DOWNLOAD_DIR": str(tmp_path / "downloads"),
        "CONFIRM_DELAY": "1",
        "CONFIRM_MAX_ATTEMPTS": "3",
    }


@pytest.fixture
def settings(env):
    return load_settings(env)


@pytest.fixture
def write_file(tmp_path):
    def _write(content, name="input.csv"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write
