# vehicle_service/services/directory.py
import logging
from typing import Any, Dict, Optional

import httpx

from vehicle_service.config import Settings
from vehicle_service.errors import UpstreamFailure
from vehicle_service.services.http import json_or_empty, send

logger = logging.getLogger(__name__)


class DirectoryClient:
    """Reads user and tenant records from the sibling user and tenant services."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.user_base_url = (settings.USER_BASE_URL or "").rstrip("/")
        self.tenant_base_url = (settings.TENANT_SERVICE_URL or "").rstrip("/")
        self._client = httpx.AsyncClient(timeout=settings.DIRECTORY_TIMEOUT_SECONDS, transport=transport)

    @property
    def enabled(self) -> bool:
        return bool(self.user_base_url and self.tenant_base_url)

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._get("User lookup", f"{self.user_base_url}/users/{user_id}")

    async def get_tenant(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        return await self._get("Tenant lookup", f"{self.tenant_base_url}/tenants/{tenant_id}")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, action: str, url: str) -> Optional[Dict[str, Any]]:
        try:
            response = await send(self._client, action, "GET", url)
        except UpstreamFailure as exc:
            if exc.upstream_status == 404:
                logger.info("%s: %s not found", action, url)
                return None
            raise
        return json_or_empty(response) or None
