from __future__ import annotations

from collections.abc import Iterable

from mention_contract.core.config import CorrelationMode
from mention_contract.schemas.transactions import MetadataRecord


def correlation_key(mode: CorrelationMode, *, cid: str, data_key: str) -> str:
    if mode is CorrelationMode.PER_SUBJECT:
        return data_key
    return cid


def locate_existing(
    metadatas: Iterable[MetadataRecord],
    *,
    cid: str,
    data_key: str,
    mode: CorrelationMode,
) -> MetadataRecord | None:
    """Return the last record in snapshot order that correlates with the proposal."""
    found: MetadataRecord | None = None
    for record in metadatas:
        if mode is CorrelationMode.PER_SUBJECT:
            matches = record.version == data_key
        else:
            matches = record.version == cid and record.data_key == data_key
        if matches:
            found = record
    return found
