from typing import Literal

from pydantic import BaseModel, Field

from mention_contract.schemas.transactions import MetadataRecord


class FilterQuery(BaseModel):
    column: str
    op: str = "="
    query: str


class FilterOrdering(BaseModel):
    column: str
    sort: Literal["asc", "desc"] = "asc"


class JSONRPCFilter(BaseModel):
    # "from" is a keyword, so the window bounds are aliased on the wire
    query: list[FilterQuery] = Field(default_factory=list)
    ordering: list[FilterOrdering] = Field(default_factory=list)
    window_from: int = Field(default=0, alias="from")
    window_to: int = Field(default=0, alias="to")


class JSONRPCBody(BaseModel):
    jsonrpc: str = "2.0"
    method: str
    params: JSONRPCFilter
    id: str = "1"


class MetadatasResult(BaseModel):
    success: bool
    err_msg: str = ""
    metadatas: list[MetadataRecord] = Field(default_factory=list)


class JSONRPCResult(BaseModel):
    jsonrpc: str
    result: MetadatasResult
    method: str | None = None
    id: str | int | None = None
