from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Collection, Mapping, Optional

import aiohttp

from bitcli.config.models import AppConfig
from bitcli.core.errors import ProviderError
from bitcli.core.models import Bitlink

logger = logging.getLogger(__name__)

_SHORTEN_OK = (200, 201)
_USER_OK = (200,)


@dataclass(frozen=True, slots=True)
class BitlyUser:
    is_active: bool
    default_group_guid: str


def _error_from_response(status: int, reason: Optional[str], payload: Any) -> ProviderError:
    if isinstance(payload, Mapping):
        return ProviderError(
            str(payload.get("message") or reason or "unknown error"),
            status=status,
            description=payload.get("description"),
            resource=payload.get("resource"),
            errors=payload.get("errors") or (),
        )
    return ProviderError(reason or "unknown error", status=status)


class BitlyClient:
    """
    Bitly v4 API client.

    Failures are raised as ProviderError carrying the HTTP status and the message
    from the error body. Requests are never retried here.
    """

    def __init__(self, *, config: AppConfig, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._config = config
        self._api_url = config.api_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._group_guid: Optional[str] = config.default_group_guid
        self._group_lock = asyncio.Lock()

    async def __aenter__(self) -> BitlyClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_user(self) -> BitlyUser:
        payload = await self._request("GET", "/v4/user", ok_statuses=_USER_OK)
        try:
            return BitlyUser(
                is_active=bool(payload["is_active"]),
                default_group_guid=str(payload["default_group_guid"]),
            )
        except KeyError as e:
            raise ProviderError(f"Unexpected user response, missing field {e}") from e

    async def resolve_group_guid(self, group_guid: Optional[str] = None) -> str:
        if group_guid:
            return group_guid
        async with self._group_lock:
            if self._group_guid is None:
                user = await self.fetch_user()
                if not user.is_active:
                    raise ProviderError("Cannot determine group GUID: user is inactive")
                self._group_guid = user.default_group_guid
                logger.info("Using the user's default group GUID. group_guid=%s", self._group_guid)
            return self._group_guid

    async def create_short_link(
        self,
        long_url: str,
        *,
        domain: Optional[str] = None,
        group_guid: Optional[str] = None,
    ) -> Bitlink:
        body: dict[str, Any] = {
            "long_url": long_url,
            "group_guid": await self.resolve_group_guid(group_guid),
        }
        if domain:
            body["domain"] = domain

        logger.debug("Sending shorten request. long_url=%s domain=%s", long_url, domain)
        payload = await self._request("POST", "/v4/shorten", ok_statuses=_SHORTEN_OK, json=body)
        try:
            return Bitlink(link=str(payload["link"]), id=str(payload["id"]))
        except KeyError as e:
            raise ProviderError(f"Unexpected shorten response, missing field {e}") from e

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.request_timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        ok_statuses: Collection[int],
        json: Optional[Mapping[str, Any]] = None,
    ) -> Mapping[str, Any]:
        session = self._get_session()
        url = f"{self._api_url}{path}"
        headers = {"Authorization": f"Bearer {self._config.api_token.get_secret_value()}"}
        try:
            async with session.request(method, url, json=json, headers=headers) as response:
                status = response.status
                reason = response.reason
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = None
        except asyncio.TimeoutError as e:
            raise ProviderError(f"Request timed out: {method} {path}") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

        if status not in ok_statuses:
            logger.warning("Bitly request failed. method=%s path=%s status=%s", method, path, status)
            raise _error_from_response(status, reason, payload)
        if not isinstance(payload, Mapping):
            raise ProviderError("Response body is not a JSON object", status=status)
        return payload
