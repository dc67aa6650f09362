from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class OwnershipPolicy(str, Enum):
    REJECT_ON_MISMATCH = "reject_on_mismatch"
    ESCALATE_TO_AUTHORITY = "escalate_to_authority"


class CorrelationMode(str, Enum):
    # version == cid and data_key == tx.data_key; content is a single mention
    PER_CONTENT = "per_content"
    # version == tx.data_key; content is a cid -> mention mapping
    PER_SUBJECT = "per_subject"


class Settings(BaseSettings):
    environment: str = "dev"
    ipfs_multiaddr: str = "/ip4/127.0.0.1/tcp/5001"
    ipfs_timeout_seconds: int = 1
    ipfs_binary: str = "ipfs"
    authority_url: str = "http://127.0.0.1:4000"
    authority_timeout_seconds: float = 10.0
    authority_meta_contract_id: str = "0x01"
    system_contract_id: str = "0x01"
    ownership_policy: OwnershipPolicy = OwnershipPolicy.REJECT_ON_MISMATCH
    correlation_mode: CorrelationMode = CorrelationMode.PER_CONTENT
    require_owner: bool = True
    emit_bootstrap_records: bool = True
    otel_enabled: bool = True
    otel_service_name: str = "mention-contract"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="MENTIONS_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
