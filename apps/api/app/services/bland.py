"""HTTP client for the Bland AI voice call API."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.config import Settings
from ..schemas.bland import CallDetails, CallParameters

logger = logging.getLogger(__name__)

PLACE_CALL_PATH = "/call"
CALL_DETAILS_PATH = "/v1/calls/{call_id}"
TRANSCRIPT_PATH = "/calls/{call_id}"
CALL_MEDIA_PATH = "/call/{call_id}"


class BlandAPIError(RuntimeError):
    """Raised when the provider cannot be reached or answers with an error."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class BlandClient:
    """Thin async wrapper around the Bland REST endpoints used for outreach."""

    def __init__(self, config: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=config.bland_base_url,
            timeout=config.bland_timeout_seconds,
            headers={
                "Authorization": f"Bearer {config.bland_api_key}",
                "X-Bland-Encrypted-Key": config.bland_encrypted_key,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "BlandClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def place_call(self, parameters: CallParameters) -> str:
        """Start an outbound call and return the provider call identifier."""

        data = await self._request("POST", PLACE_CALL_PATH, json=parameters.model_dump())
        call_id = data.get("call_id") if isinstance(data, dict) else None
        if not call_id:
            raise BlandAPIError("Call placement response did not include a call_id", body=data)
        return str(call_id)

    async def get_call(self, call_id: str) -> Any:
        """Return the raw call detail document."""

        return await self._request("GET", CALL_DETAILS_PATH.format(call_id=call_id))

    async def get_call_details(self, call_id: str) -> CallDetails:
        data = await self.get_call(call_id)
        if not isinstance(data, dict):
            raise BlandAPIError("Unexpected call detail payload", body=data)
        return CallDetails.model_validate(data)

    async def get_transcript(self, call_id: str) -> Any:
        data = await self._request("GET", TRANSCRIPT_PATH.format(call_id=call_id))
        return data.get("transcript") if isinstance(data, dict) else None

    async def get_call_media(self, call_id: str) -> Any:
        return await self._request("GET", CALL_MEDIA_PATH.format(call_id=call_id))

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise BlandAPIError(f"{method} {path} failed: {exc}") from exc

        body = _decode(response)
        if response.is_error:
            logger.error("Bland API %s %s returned %s: %s", method, path, response.status_code, body)
            raise BlandAPIError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return body


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None
