from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from mention_contract.core.errors import (
    EMPTY_CID_MESSAGE,
    EMPTY_OWNER_MESSAGE,
    SCHEMA_ERROR_MESSAGE,
    SchemaError,
    ValidationError,
)
from mention_contract.schemas.transactions import MentionProposal


@dataclass(slots=True, frozen=True)
class DecodedProposal:
    cid: str
    mentionable: bool
    owner: str


def collapse_mentionable(value: bool | None) -> bool:
    # only an explicit false disables mentions
    return value is not False


def decode_proposal(data: str, *, requester: str, require_owner: bool = True) -> DecodedProposal:
    try:
        proposal = MentionProposal.model_validate_json(data)
    except PydanticValidationError as exc:
        raise SchemaError(SCHEMA_ERROR_MESSAGE) from exc

    if not proposal.cid:
        raise ValidationError(EMPTY_CID_MESSAGE)

    owner = proposal.owner
    if not owner:
        if require_owner:
            raise ValidationError(EMPTY_OWNER_MESSAGE)
        owner = requester

    return DecodedProposal(
        cid=proposal.cid,
        mentionable=collapse_mentionable(proposal.mentionable),
        owner=owner,
    )
