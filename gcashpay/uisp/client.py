from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from gcashpay.config import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1.0"


class UispClient:
    """Thin async client for the UISP/UCRM REST API.

    One attempt per call: failed requests raise ``httpx.HTTPError`` and the
    caller decides what to report.
    """

    def __init__(
        self,
        base_url: str,
        app_key: str,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        base = base_url.rstrip("/")
        if base.endswith(API_PREFIX):
            base = base[: -len(API_PREFIX)]
        self.base_url = base
        self.app_key = app_key
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(10.0, timeout)),
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "accept": "application/json",
            "X-Auth-App-Key": self.app_key,
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{API_PREFIX}{path}"
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            logger.warning(
                "UISP %s %s returned %s",
                method,
                path,
                e.response.status_code,
                extra={"extra": {"body": e.response.text[:500]}},
            )
            raise
        except httpx.HTTPError as e:
            logger.warning("UISP transport error on %s %s: %s", method, path, e)
            raise

    async def list_clients(self) -> List[Dict[str, Any]]:
        resp = await self._request("GET", "/clients")
        return resp.json()

    async def list_payment_methods(self) -> List[Dict[str, Any]]:
        resp = await self._request("GET", "/payment-methods")
        return resp.json()

    async def create_payment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._request("POST", "/payments", json=payload)
        return resp.json()

    async def aclose(self) -> None:
        await self._client.aclose()


async def get_client() -> UispClient:
    return UispClient(
        settings.uisp_base_url,
        settings.uisp_app_key,
        timeout=settings.uisp_timeout_seconds,
    )
