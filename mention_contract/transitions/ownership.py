from __future__ import annotations

from enum import Enum

from mention_contract.core.config import OwnershipPolicy


class OwnershipDecision(str, Enum):
    AUTHORIZED = "authorized"
    ESCALATE = "escalate"
    REJECTED = "rejected"


def resolve_ownership(prior_owner: str | None, requester: str, policy: OwnershipPolicy) -> OwnershipDecision:
    """Decide whether ``requester`` may overwrite a mention last written by ``prior_owner``.

    ``prior_owner`` is ``None`` when there is nothing to overwrite.
    """
    if prior_owner is None or requester == prior_owner:
        return OwnershipDecision.AUTHORIZED
    if policy is OwnershipPolicy.ESCALATE_TO_AUTHORITY:
        return OwnershipDecision.ESCALATE
    return OwnershipDecision.REJECTED


def confirm_with_authority(authority_owner: str | None, requester: str) -> bool:
    return authority_owner is not None and authority_owner == requester
