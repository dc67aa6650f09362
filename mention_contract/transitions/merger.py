from __future__ import annotations

from mention_contract.schemas.mentions import FinalMention, MentionMap
from mention_contract.transitions.decoder import DecodedProposal


def merge_mention(
    authorized: bool,
    proposal: DecodedProposal,
    prior: FinalMention | None,
    *,
    now_ms: int | None = None,
) -> FinalMention:
    if authorized or prior is None:
        return FinalMention.create(proposal.mentionable, proposal.owner, now_ms=now_ms)
    return prior


def merge_mention_map(prior: MentionMap | None, cid: str, mention: FinalMention) -> MentionMap:
    merged: MentionMap = dict(prior or {})
    merged[cid] = mention
    return merged
