# Archivo: modules/pipeline/api_client.py
"""
HTTP client for the Board-facing API.

Implements the same contract as DealStore so a BoardStateController can run
against a remote deployment. Error envelopes are mapped back to the store
error taxonomy by status code.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from core.config import settings
from core.errors import (
    DealNotFound, StoreSchemaError, StoreUnavailable, StoreWriteError, error_from_status,
    write_error_from_validation,
)
from .schemas import Deal, DealCreate, DealUpdate

logger = logging.getLogger("PipelineApiClient")


class PipelineApiClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout or settings.SHEETS_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "PipelineApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, not_found=DealNotFound, **kwargs) -> Dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} falló: {e!r}")
            raise StoreUnavailable(f"Pipeline API unreachable: {e}") from e

        if resp.status_code >= 400:
            try:
                message = resp.json().get("error") or resp.text
            except ValueError:
                message = resp.text
            if resp.status_code == 404:
                raise not_found(message)
            raise error_from_status(resp.status_code, message)
        return resp.json()

    async def list_deals(self) -> List[Deal]:
        # Un 404 en el listado significa hoja/rango inexistente
        data = await self._request("GET", "/api/pipeline", not_found=StoreSchemaError)
        return [Deal.model_validate(d) for d in data.get("deals", [])]

    async def list_stages(self) -> dict:
        return await self._request("GET", "/api/pipeline/stages", not_found=StoreSchemaError)

    async def create_deal(self, fields: Dict[str, Any]) -> Deal:
        try:
            payload = DealCreate.model_validate(fields).model_dump(by_alias=True)
        except ValidationError as e:
            raise write_error_from_validation(e) from e
        data = await self._request("POST", "/api/pipeline", json=payload)
        return Deal.model_validate(data)

    async def update_deal(
        self,
        deal_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> None:
        """Full-record PUT; the API only acknowledges, it does not echo the row."""
        try:
            payload = DealUpdate.model_validate(
                {**fields, "id": deal_id, "version": expected_version}
            ).model_dump(by_alias=True)
        except ValidationError as e:
            raise write_error_from_validation(e) from e
        data = await self._request("PUT", "/api/pipeline", json=payload)
        if not data.get("success"):
            raise StoreWriteError(f"Update of deal {deal_id} was not acknowledged")

    async def delete_deal(self, deal_id: str) -> None:
        data = await self._request("DELETE", "/api/pipeline", params={"id": deal_id})
        if not data.get("success"):
            raise StoreWriteError(f"Delete of deal {deal_id} was not acknowledged")

    async def close(self) -> None:
        await self._client.aclose()
