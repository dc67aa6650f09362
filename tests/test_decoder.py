import pytest

from mention_contract.core.errors import (
    EMPTY_CID_MESSAGE,
    EMPTY_OWNER_MESSAGE,
    SCHEMA_ERROR_MESSAGE,
    SchemaError,
    ValidationError,
)
from mention_contract.transitions.decoder import collapse_mentionable, decode_proposal


def test_decode_proposal_keeps_explicit_false() -> None:
    proposal = decode_proposal(
        '{"cid": "bafy-target", "mentionable": false, "owner": "0xowner"}',
        requester="0xalice",
    )
    assert proposal.cid == "bafy-target"
    assert proposal.mentionable is False
    assert proposal.owner == "0xowner"


@pytest.mark.parametrize(
    "payload",
    [
        '{"cid": "bafy-target", "owner": "0xowner"}',
        '{"cid": "bafy-target", "mentionable": null, "owner": "0xowner"}',
        '{"cid": "bafy-target", "mentionable": true, "owner": "0xowner"}',
    ],
)
def test_decode_proposal_defaults_to_mentionable(payload: str) -> None:
    assert decode_proposal(payload, requester="0xalice").mentionable is True


def test_collapse_mentionable_only_disables_on_false() -> None:
    assert collapse_mentionable(None) is True
    assert collapse_mentionable(True) is True
    assert collapse_mentionable(False) is False


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        '{"mentionable": true, "owner": "0xowner"}',
        '{"cid": 42, "owner": "0xowner"}',
        '{"cid": "bafy-target", "mentionable": "false", "owner": "0xowner"}',
    ],
)
def test_decode_proposal_rejects_malformed_payload(payload: str) -> None:
    with pytest.raises(SchemaError) as excinfo:
        decode_proposal(payload, requester="0xalice")
    assert str(excinfo.value) == SCHEMA_ERROR_MESSAGE


def test_decode_proposal_rejects_empty_cid() -> None:
    with pytest.raises(ValidationError) as excinfo:
        decode_proposal('{"cid": "", "owner": "0xowner"}', requester="0xalice")
    assert str(excinfo.value) == EMPTY_CID_MESSAGE


def test_decode_proposal_rejects_missing_owner_when_required() -> None:
    with pytest.raises(ValidationError) as excinfo:
        decode_proposal('{"cid": "bafy-target", "owner": ""}', requester="0xalice")
    assert str(excinfo.value) == EMPTY_OWNER_MESSAGE


def test_decode_proposal_defaults_owner_to_requester_when_optional() -> None:
    proposal = decode_proposal('{"cid": "bafy-target"}', requester="0xalice", require_owner=False)
    assert proposal.owner == "0xalice"
