from __future__ import annotations

import logging
from collections.abc import Sequence

from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from mention_contract.core.config import CorrelationMode, Settings, get_settings
from mention_contract.core.errors import (
    MINT_UNAVAILABLE_MESSAGE,
    NOT_OWNER_MESSAGE,
    UNDECODABLE_CONTENT_MESSAGE,
    MalformedBlock,
    NotOwner,
    TransitionError,
)
from mention_contract.core.telemetry import bind_transition, transition_scope
from mention_contract.schemas.mentions import (
    MENTION_MAP_ADAPTER,
    FinalMention,
    MentionMap,
    MetadataMutation,
    StoredBlock,
    TransitionResult,
)
from mention_contract.schemas.transactions import MetaContract, MetadataRecord, Transaction
from mention_contract.services.authority_client import AuthorityClient
from mention_contract.services.content_store import ContentStore, IpfsHttpStore, fetch_block
from mention_contract.transitions.decoder import decode_proposal
from mention_contract.transitions.encoder import encode_result
from mention_contract.transitions.locator import correlation_key, locate_existing
from mention_contract.transitions.merger import merge_mention, merge_mention_map
from mention_contract.transitions.ownership import OwnershipDecision, confirm_with_authority, resolve_ownership

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def on_execute(
    contract: MetaContract,
    metadatas: Sequence[MetadataRecord],
    transaction: Transaction,
    *,
    settings: Settings | None = None,
    store: ContentStore | None = None,
    authority: AuthorityClient | None = None,
    now_ms: int | None = None,
) -> TransitionResult:
    """Apply one mention transaction against a snapshot of committed metadata.

    Returns the mutations to commit, or a failed result with a readable reason.
    Nothing is persisted here; the caller commits ``mutations``.
    """
    settings = settings or get_settings()
    snapshot = tuple(metadatas)

    with (
        transition_scope(contract=contract.meta_contract_id, data_key=transaction.data_key),
        tracer.start_as_current_span("mentions.on_execute") as span,
    ):
        try:
            mutations = await _apply_transition(
                snapshot,
                transaction,
                settings=settings,
                store=store,
                authority=authority,
                now_ms=now_ms,
            )
        except TransitionError as exc:
            span.set_attribute("mention.outcome", "rejected")
            logger.info("mention transition rejected data_key=%s reason=%s", transaction.data_key, exc)
            return TransitionResult.failed(str(exc))

        span.set_attribute("mention.outcome", "encoded")
        return TransitionResult.ok(mutations)


def on_clone() -> bool:
    return False


def on_mint(contract: MetaContract, data_key: str, token_id: str, data: str) -> TransitionResult:
    return TransitionResult.failed(MINT_UNAVAILABLE_MESSAGE)


async def _apply_transition(
    metadatas: tuple[MetadataRecord, ...],
    transaction: Transaction,
    *,
    settings: Settings,
    store: ContentStore | None,
    authority: AuthorityClient | None,
    now_ms: int | None,
) -> list[MetadataMutation]:
    requester = transaction.public_key
    mode = settings.correlation_mode
    proposal = decode_proposal(transaction.data, requester=requester, require_owner=settings.require_owner)
    bind_transition(cid=proposal.cid)

    existing = locate_existing(metadatas, cid=proposal.cid, data_key=transaction.data_key, mode=mode)

    prior_map: MentionMap | None = None
    prior: FinalMention | None = None
    prior_owner: str | None = None
    # a correlated record without a block pointer counts as a first write
    if existing is not None and existing.cid:
        block = await fetch_block(store or IpfsHttpStore(settings), existing.cid)
        if mode is CorrelationMode.PER_SUBJECT:
            prior_map = _decode_mention_map(block)
            prior = prior_map.get(proposal.cid)
            prior_owner = prior.owner if prior is not None else None
        else:
            prior = _decode_mention(block)
            prior_owner = existing.public_key

    decision = resolve_ownership(prior_owner, requester, settings.ownership_policy)
    if decision is OwnershipDecision.REJECTED:
        raise NotOwner(NOT_OWNER_MESSAGE)

    authorized = decision is OwnershipDecision.AUTHORIZED
    if decision is OwnershipDecision.ESCALATE:
        client = authority or AuthorityClient(settings)
        authority_owner = await client.lookup_owner(
            {
                "data_key": transaction.data_key,
                "meta_contract_id": settings.authority_meta_contract_id,
            }
        )
        authorized = confirm_with_authority(authority_owner, requester)
        if not authorized:
            logger.info(
                "authority did not confirm requester=%s for data_key=%s; keeping prior mention",
                requester,
                transaction.data_key,
            )

    mention = merge_mention(authorized, proposal, prior, now_ms=now_ms)
    content: FinalMention | MentionMap = mention
    if mode is CorrelationMode.PER_SUBJECT:
        content = merge_mention_map(prior_map, proposal.cid, mention)

    return encode_result(
        content,
        transaction=transaction,
        metadatas=metadatas,
        version=correlation_key(mode, cid=proposal.cid, data_key=transaction.data_key),
        settings=settings,
    )


def _decode_mention(block: StoredBlock) -> FinalMention:
    try:
        return FinalMention.model_validate(block.content)
    except PydanticValidationError as exc:
        raise MalformedBlock(UNDECODABLE_CONTENT_MESSAGE) from exc


def _decode_mention_map(block: StoredBlock) -> MentionMap:
    try:
        return MENTION_MAP_ADAPTER.validate_python(block.content)
    except PydanticValidationError as exc:
        raise MalformedBlock(UNDECODABLE_CONTENT_MESSAGE) from exc
