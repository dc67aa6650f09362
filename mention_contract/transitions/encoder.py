from __future__ import annotations

import json
from collections.abc import Sequence

from pydantic_core import PydanticSerializationError

from mention_contract.core.config import Settings
from mention_contract.core.errors import SERIALIZATION_ERROR_MESSAGE, SerializationError
from mention_contract.schemas.mentions import MENTION_MAP_ADAPTER, FinalMention, MentionMap, MetadataMutation
from mention_contract.schemas.transactions import MetadataRecord, Transaction

MENTIONS_ALIAS = "mentions"
TOKEN_ALIAS = "token"
LINEAGE_KEY_ALIAS = "lineage_key"


def serialize_content(content: FinalMention | MentionMap) -> str:
    try:
        if isinstance(content, FinalMention):
            return content.model_dump_json()
        return MENTION_MAP_ADAPTER.dump_json(content).decode("utf-8")
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise SerializationError(SERIALIZATION_ERROR_MESSAGE) from exc


def has_system_record(metadatas: Sequence[MetadataRecord], alias: str, system_contract_id: str) -> bool:
    return any(
        record.public_key == system_contract_id
        and record.alias == alias
        and record.meta_contract_id == system_contract_id
        for record in metadatas
    )


def bootstrap_mutations(
    transaction: Transaction,
    metadatas: Sequence[MetadataRecord],
    system_contract_id: str,
) -> list[MetadataMutation]:
    """Token and lineage records are filed once per subject under the system contract."""
    mutations: list[MetadataMutation] = []
    if not has_system_record(metadatas, TOKEN_ALIAS, system_contract_id):
        token = {
            "address": transaction.token_address,
            "chain": transaction.chain_id,
            "id": transaction.token_id,
        }
        mutations.append(
            MetadataMutation(
                public_key=system_contract_id,
                alias=TOKEN_ALIAS,
                content=json.dumps(token),
                version="",
                loose=0,
            )
        )
    if not has_system_record(metadatas, LINEAGE_KEY_ALIAS, system_contract_id):
        mutations.append(
            MetadataMutation(
                public_key=system_contract_id,
                alias=LINEAGE_KEY_ALIAS,
                content=transaction.data_key,
                version="",
                loose=0,
            )
        )
    return mutations


def encode_result(
    content: FinalMention | MentionMap,
    *,
    transaction: Transaction,
    metadatas: Sequence[MetadataRecord],
    version: str,
    settings: Settings,
) -> list[MetadataMutation]:
    serialized = serialize_content(content)

    mutations: list[MetadataMutation] = []
    if settings.emit_bootstrap_records:
        mutations.extend(bootstrap_mutations(transaction, metadatas, settings.system_contract_id))
    mutations.append(
        MetadataMutation(
            public_key=transaction.meta_contract_id,
            alias=MENTIONS_ALIAS,
            content=serialized,
            version=version,
            loose=0,
        )
    )
    return mutations
