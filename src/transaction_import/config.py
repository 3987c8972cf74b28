# src/transaction_import/config.py
import json
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from pydantic import ValidationError

from .errors import ConfigError
from .models import TenantConfig

REGION = os.getenv("AWS_REGION", "us-east-1")

DEFAULT_HEADER_MARKER = "transaction"
DEFAULT_ARCHIVE_SUFFIX = "-archive"


def _get_bool(env: Mapping[str, str], name: str, default: str = "false") -> bool:
    return env.get(name, default).strip().lower() in {"1", "true", "yes", "y"}


def _get_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}", setting=name) from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}", setting=name)
    return value


def _get_str(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


def parse_tenant_config(file_def: Optional[str]) -> TenantConfig:
    if file_def is None or not file_def.strip():
        raise ConfigError("FILE_DEF environment variable is not set", setting="FILE_DEF")
    try:
        raw = json.loads(file_def)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Unable to parse FILE_DEF as JSON: {e}", setting="FILE_DEF") from e
    if not isinstance(raw, dict):
        raise ConfigError("FILE_DEF must be a JSON object", setting="FILE_DEF")
    try:
        return TenantConfig.model_validate(raw)
    except ValidationError as e:
        bad = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigError(f"Invalid FILE_DEF ({bad})", setting="FILE_DEF", details={"errors": bad}) from e


@dataclass(frozen=True)
class Settings:
    tenant: TenantConfig
    region: str = REGION
    header_marker: str = DEFAULT_HEADER_MARKER
    header_pattern: Optional[str] = None
    abort_on_malformed: bool = False
    archive_suffix: str = DEFAULT_ARCHIVE_SUFFIX
    download_dir: str = "/tmp"
    confirm_delay: int = 5
    confirm_max_attempts: int = 20
    deadline_margin_ms: int = 2000
    delivery_api_url: Optional[str] = None
    delivery_api_key: Optional[str] = None
    delivery_timeout: int = 30
    payload_bucket: Optional[str] = None
    source_bucket: Optional[str] = None
    scan_bucket: Optional[str] = None
    scan_prefix: Optional[str] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read and validate every setting. Raises ConfigError on the first bad one."""
    env = os.environ if environ is None else environ

    tenant = parse_tenant_config(env.get("FILE_DEF"))

    header_pattern = _get_str(env, "HEADER_PATTERN")
    if header_pattern:
        try:
            re.compile(header_pattern)
        except re.error as e:
            raise ConfigError(f"HEADER_PATTERN is not a valid regex: {e}", setting="HEADER_PATTERN") from e

    archive_suffix = env.get("ARCHIVE_SUFFIX", DEFAULT_ARCHIVE_SUFFIX)
    if not archive_suffix:
        raise ConfigError("ARCHIVE_SUFFIX must not be empty", setting="ARCHIVE_SUFFIX")

    return Settings(
        tenant=tenant,
        region=env.get("AWS_REGION", REGION),
        header_marker=env.get("HEADER_MARKER", DEFAULT_HEADER_MARKER),
        header_pattern=header_pattern,
        abort_on_malformed=_get_bool(env, "ABORT_ON_MALFORMED"),
        archive_suffix=archive_suffix,
        download_dir=env.get("DOWNLOAD_DIR", "/tmp"),
        confirm_delay=_get_int(env, "CONFIRM_DELAY", 5, minimum=1),
        confirm_max_attempts=_get_int(env, "CONFIRM_MAX_ATTEMPTS", 20, minimum=1),
        deadline_margin_ms=_get_int(env, "DEADLINE_MARGIN_MS", 2000),
        delivery_api_url=_get_str(env, "DELIVERY_API_URL"),
        delivery_api_key=_get_str(env, "DELIVERY_API_KEY"),
        delivery_timeout=_get_int(env, "DELIVERY_TIMEOUT", 30, minimum=1),
        payload_bucket=_get_str(env, "PAYLOAD_BUCKET"),
        source_bucket=_get_str(env, "SOURCE_BUCKET"),
        scan_bucket=_get_str(env, "BUCKET"),
        scan_prefix=_get_str(env, "SCAN_PREFIX") or _get_str(env, "COMPANY_ID"),
    )
