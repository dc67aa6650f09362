from __future__ import annotations

import logging

import httpx
from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from mention_contract.core.config import Settings
from mention_contract.core.errors import AuthorityMalformedResponse, AuthorityUnavailable
from mention_contract.schemas.rpc import FilterQuery, JSONRPCBody, JSONRPCFilter, JSONRPCResult
from mention_contract.services.content_store import MAX_TCP_PORT

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def make_search_metadatas_body(filters: dict[str, str]) -> str:
    params = JSONRPCFilter(
        query=[FilterQuery(column=column, op="=", query=value) for column, value in filters.items()],
    )
    body = JSONRPCBody(method="search_metadatas", params=params)
    return body.model_dump_json(by_alias=True)


class AuthorityClient:
    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        self.url = settings.authority_url
        self.timeout_seconds = settings.authority_timeout_seconds
        self._client = client

    async def lookup_owner(self, filters: dict[str, str]) -> str | None:
        """Return the identity of the first registry record matching ``filters``."""
        payload = make_search_metadatas_body(filters)
        with tracer.start_as_current_span("mentions.authority_lookup") as span:
            span.set_attribute("authority.url", self.url)
            response = await self._post(payload)

            try:
                envelope = JSONRPCResult.model_validate_json(response.content)
            except PydanticValidationError as exc:
                raise AuthorityMalformedResponse("authority returned an unexpected response") from exc

            if not envelope.result.success:
                raise AuthorityUnavailable(envelope.result.err_msg or "authority lookup failed")
            if not envelope.result.metadatas:
                span.set_attribute("authority.matched", False)
                return None

            span.set_attribute("authority.matched", True)
            return envelope.result.metadatas[0].public_key

    async def _post(self, payload: str) -> httpx.Response:
        headers = {"Content-type": "application/json"}
        try:
            port = httpx.URL(self.url).port
            if port is not None and port > MAX_TCP_PORT:
                raise httpx.InvalidURL(f"invalid port in authority url: {self.url!r}")
            if self._client is not None:
                response = await self._client.post(self.url, content=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.url, content=payload, headers=headers)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("authority lookup failed url=%s: %s", self.url, exc)
            raise AuthorityUnavailable(f"authority lookup failed: {exc}") from exc
        return response
