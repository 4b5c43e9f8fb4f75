"""HTTP client for the external record store.

Speaks the record store's REST format: records are created under
`/{store_id}/{table_id}` and change payloads are read page by page from
`/bases/{store_id}/webhooks/{subscription_id}/payloads`. Credentials come
from a caller-supplied token provider; refreshing them is not this module's
concern.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from formsync.logic.errors import ExternalApiError
from formsync.models.change_feed import ChangeBatch

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str]


def static_token(token: Optional[str]) -> TokenProvider:
    """Token provider returning a fixed credential."""

    def provide() -> str:
        if not token:
            raise ExternalApiError("record store access token is not configured")
        return token

    return provide


class RecordStoreClient:
    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token_provider()}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("record_store_transport_error method=%s url=%s error=%s", method, url, exc)
            raise ExternalApiError(f"record store unreachable: {exc}") from exc
        if resp.status_code >= 400:
            logger.error(
                "record_store_http_error method=%s url=%s status=%s body=%s",
                method,
                url,
                resp.status_code,
                resp.text[:500],
            )
            raise ExternalApiError(f"record store returned {resp.status_code}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ExternalApiError("record store returned a non-JSON body", status_code=resp.status_code) from exc

    async def create_record(self, store_id: str, table_id: str, fields: Dict[str, Any]) -> str:
        """Create one record and return its id."""
        data = await self._request("POST", f"/{store_id}/{table_id}", json={"fields": fields})
        record_id = None
        if isinstance(data, dict):
            record_id = data.get("id")
            records = data.get("records")
            if not record_id and isinstance(records, list) and records:
                record_id = (records[0] or {}).get("id")
        if not record_id:
            raise ExternalApiError("record store response did not include a record id")
        logger.info("record_store_record_created store_id=%s table_id=%s record_id=%s", store_id, table_id, record_id)
        return str(record_id)

    async def fetch_change_batch(self, store_id: str, subscription_id: str, cursor: Any | None) -> ChangeBatch:
        """Fetch the page of change payloads following `cursor` (first page when None)."""
        params = {"cursor": cursor} if cursor is not None else None
        data = await self._request(
            "GET",
            f"/bases/{store_id}/webhooks/{subscription_id}/payloads",
            params=params,
        )
        try:
            return ChangeBatch.model_validate(data)
        except PydanticValidationError as exc:
            raise ExternalApiError(f"malformed change batch: {exc.error_count()} errors") from exc


__all__ = ["RecordStoreClient", "TokenProvider", "static_token"]
