from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter


def now_millis() -> int:
    return time.time_ns() // 1_000_000


class FinalMention(BaseModel):
    timestamp: int
    mentionable: bool
    owner: str

    @classmethod
    def create(cls, mentionable: bool, owner: str, *, now_ms: int | None = None) -> FinalMention:
        return cls(
            timestamp=now_ms if now_ms is not None else now_millis(),
            mentionable=mentionable,
            owner=owner,
        )


MentionMap = dict[str, FinalMention]
MENTION_MAP_ADAPTER: TypeAdapter[MentionMap] = TypeAdapter(MentionMap)


class StoredBlock(BaseModel):
    timestamp: int
    content: Any
    previous: Any = None
    transaction: Any = None


class MetadataMutation(BaseModel):
    public_key: str
    alias: str
    content: str
    version: str = ""
    loose: int = 0


class TransitionResult(BaseModel):
    success: bool
    mutations: list[MetadataMutation] = Field(default_factory=list)
    error: str = ""

    @classmethod
    def ok(cls, mutations: list[MetadataMutation]) -> TransitionResult:
        return cls(success=True, mutations=mutations, error="")

    @classmethod
    def failed(cls, reason: str) -> TransitionResult:
        return cls(success=False, mutations=[], error=reason)
