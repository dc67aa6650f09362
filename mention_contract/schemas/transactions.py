from pydantic import BaseModel, ConfigDict


class MetaContract(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str = ""
    token_key: str = ""
    meta_contract_id: str = ""
    public_key: str = ""
    cid: str = ""


class Transaction(BaseModel):
    """An authenticated request to change the mention filed under ``data_key``.

    ``public_key`` is trusted as the requester identity; signature checks happen
    before the transaction reaches this package.
    """

    model_config = ConfigDict(frozen=True)

    public_key: str
    data_key: str
    meta_contract_id: str
    data: str
    hash: str = ""
    method: str = ""
    token_key: str = ""
    alias: str = ""
    timestamp: int = 0
    chain_id: str = ""
    token_address: str = ""
    token_id: str = ""
    version: str = ""
    status: int = 0
    mcdata: str = ""


class MetadataRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    cid: str = ""
    version: str = ""
    data_key: str = ""
    meta_contract_id: str = ""
    public_key: str = ""
    hash: str = ""
    token_key: str = ""
    token_id: str = ""
    alias: str = ""
    loose: int = 0


class MentionProposal(BaseModel):
    """Payload carried in ``Transaction.data``.

    ``mentionable`` keeps the three input states (absent/null, true, false) so
    the decoder can apply the default explicitly.
    """

    model_config = ConfigDict(strict=True)

    cid: str
    mentionable: bool | None = None
    owner: str | None = None
