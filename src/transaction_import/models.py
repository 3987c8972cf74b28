# src/transaction_import/models.py
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class ColumnIndex(BaseModel):
    """Zero-based positions of each output field in a split line."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    transaction_id: StrictInt = Field(alias="transactionID", ge=0)
    transaction_date: StrictInt = Field(alias="transactionDate", ge=0)
    first_name: StrictInt = Field(alias="firstName", ge=0)
    last_name: StrictInt = Field(alias="lastName", ge=0)

    def max_index(self) -> int:
        return max(self.transaction_id, self.transaction_date, self.first_name, self.last_name)


class TenantConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    company_id: StrictStr = Field(alias="companyID", min_length=1)
    columns: ColumnIndex


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    transaction_id: str = Field(alias="transactionID")
    transaction_date: str = Field(alias="transactionDate")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")


class PayloadHeader(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    company_id: str = Field(alias="companyID")


class Payload(BaseModel):
    """The JSON document handed to the downstream API."""

    model_config = ConfigDict(populate_by_name=True)

    header: PayloadHeader
    records: List[Record] = Field(default_factory=list, alias="record")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class FileArrivalNotification:
    source_system: str
    event_time: str
    bucket: str
    key: str


@dataclass
class FileRef:
    bucket: str
    key: str
    local_path: Optional[str] = None

    @property
    def source(self) -> str:
        return f"{self.bucket}/{self.key}"


@dataclass
class TransformResult:
    payload: Payload
    lines_read: int = 0
    skipped_lines: List[int] = field(default_factory=list)


SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass
class FileResult:
    bucket: str
    key: str
    status: str
    phase: Optional[str] = None
    reason: Optional[str] = None
    records: int = 0
    skipped_lines: List[int] = field(default_factory=list)
    archive: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    def to_dict(self) -> dict:
        out = {
            "bucket": self.bucket,
            "key": self.key,
            "status": self.status,
            "records": self.records,
            "skipped": len(self.skipped_lines),
        }
        if self.archive:
            out["archive"] = self.archive
        if self.status == FAILED:
            out["phase"] = self.phase
            out["reason"] = self.reason
        return out


@dataclass
class InvocationSummary:
    results: List[FileResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "processed": self.processed,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }
