from typing import Any, Awaitable, List, Optional

from copperx_bot.errors import ApiError, AuthExpiredError
from copperx_bot.services.api_service import ApiClient
from copperx_bot.utils.logger import logger


class BaseService:
    """Shared failure handling for the Copperx domain services.

    API failures are logged here and turned into None so handlers only
    need a truthiness check. A 401 means the token was revoked upstream
    and is raised as AuthExpiredError for the router to handle.
    """

    def __init__(self, api: ApiClient):
        self.api = api

    async def _safe(self, action: str, call: Awaitable[Any]) -> Optional[Any]:
        try:
            return await call
        except ApiError as e:
            if e.status_code == 401:
                logger.warning(f"Token rejected while trying to {action}")
                raise AuthExpiredError(e.message) from e
            logger.error(f"Failed to {action}: {e}")
            return None

    @staticmethod
    def _items(response) -> Optional[List]:
        """List payloads arrive either bare or wrapped in {"data": [...]}"""
        if response is None:
            return None
        if isinstance(response, list):
            return response
        return response.get("data") or []
