import asyncio
from typing import Any, Dict, Optional

import requests

from copperx_bot.config.config import API_BASE_URL, API_TIMEOUT
from copperx_bot.errors import ApiError
from copperx_bot.utils.logger import logger


class ApiClient:
    """Thin wrapper around the Copperx REST API.

    One instance is shared by every service. The bearer token is passed per
    call so the client itself holds no user state. Requests are blocking
    `requests` calls pushed onto a worker thread.
    """

    def __init__(self, base_url: str = API_BASE_URL, timeout: int = API_TIMEOUT,
                 http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    async def request(self, method: str, endpoint: str, token: Optional[str] = None,
                      data: Optional[Dict] = None, params: Optional[Dict] = None) -> Any:
        """Make a request to the Copperx API, raising ApiError on any failure"""
        return await asyncio.to_thread(self._send, method, endpoint, token, data, params)

    async def get(self, endpoint: str, token: Optional[str] = None, params: Optional[Dict] = None) -> Any:
        return await self.request("GET", endpoint, token=token, params=params)

    async def post(self, endpoint: str, token: Optional[str] = None, data: Optional[Dict] = None) -> Any:
        return await self.request("POST", endpoint, token=token, data=data)

    async def put(self, endpoint: str, token: Optional[str] = None, data: Optional[Dict] = None) -> Any:
        return await self.request("PUT", endpoint, token=token, data=data)

    async def delete(self, endpoint: str, token: Optional[str] = None) -> Any:
        return await self.request("DELETE", endpoint, token=token)

    def _send(self, method, endpoint, token, data, params):
        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        try:
            response = self.http.request(
                method.upper(),
                url,
                headers=headers,
                json=data,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"API request timed out: {method.upper()} {endpoint}")
            raise ApiError(408, f"Request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"API request error: {method.upper()} {endpoint}: {e}")
            raise ApiError(0, str(e)) from e

        if not response.ok:
            payload = self._json_or_none(response)
            message = self._error_message(response, payload)
            logger.error(f"API request failed: {method.upper()} {endpoint} ({response.status_code}): {message}")
            raise ApiError(response.status_code, message, payload if isinstance(payload, dict) else None)

        if not response.content:
            return {}

        payload = self._json_or_none(response)
        if payload is None:
            raise ApiError(response.status_code, "Invalid JSON in API response")
        return payload

    @staticmethod
    def _json_or_none(response):
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(response, payload) -> str:
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error")
            if isinstance(message, list):
                return ", ".join(str(m) for m in message)
            if isinstance(message, dict):
                return str(message.get("message") or message)
            if message:
                return str(message)
        return response.reason or "Unknown error"
