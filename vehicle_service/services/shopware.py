# vehicle_service/services/shopware.py
import logging
from typing import Any, Dict, List, Optional

import httpx

from vehicle_service.config import Settings
from vehicle_service.errors import UpstreamFailure
from vehicle_service.services.directory import DirectoryClient
from vehicle_service.services.http import json_or_empty, send

logger = logging.getLogger(__name__)


class ShopwareClient:
    """Partner adapter for the Shop-Ware vehicle API.

    Holds configuration only. Every call is a single request with the
    client's timeout; nothing is retried here.
    """

    def __init__(
        self,
        settings: Settings,
        directory: DirectoryClient,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.enabled = settings.shopware_configured
        self.tenant_id = settings.SHOPWARE_TENANT_ID
        self.directory = directory
        self._client = httpx.AsyncClient(
            base_url=settings.SHOPWARE_API_URL or "",
            timeout=settings.SHOPWARE_TIMEOUT_SECONDS,
            transport=transport,
            headers={
                "X-Api-Partner-Id": settings.SHOPWARE_X_API_PARTNER_ID or "",
                "X-Api-Secret": settings.SHOPWARE_X_API_SECRET or "",
                "Content-Type": "application/json",
            },
        )

    def _vehicles_path(self, vehicle_id: Optional[str] = None) -> str:
        path = f"/api/v1/tenants/{self.tenant_id}/vehicles"
        return f"{path}/{vehicle_id}" if vehicle_id else path

    async def _call(self, action: str, method: str, path: str, json_body: Optional[Dict[str, Any]] = None):
        if not self.enabled:
            raise UpstreamFailure(f"{action} failed: Shop-Ware integration is not configured")
        try:
            response = await send(self._client, action, method, path, json_body)
        except UpstreamFailure as exc:
            logger.error("Shop-Ware API error (%s %s): %s", method, path, exc.details)
            raise
        return json_or_empty(response)

    async def create_vehicle(
        self,
        vin: str,
        make: str,
        model: str,
        year: int,
        license_plate: Optional[str],
        customer_ids: List[str],
    ) -> str:
        payload = {
            "vin": vin,
            "make": make,
            "model": model,
            "year": year,
            "license_plate": license_plate,
            "customer_ids": customer_ids,
        }
        data = await self._call("Shop-Ware vehicle creation", "POST", self._vehicles_path(), payload)
        vehicle_id = data.get("vehicleId") or data.get("id")
        if not vehicle_id:
            raise UpstreamFailure("Shop-Ware vehicle creation failed: response carried no vehicle id")
        logger.info("Vehicle created in Shop-Ware: %s (VIN %s)", vehicle_id, vin)
        return str(vehicle_id)

    async def update_vehicle(self, partner_vehicle_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._call("Shop-Ware vehicle update", "PATCH", self._vehicles_path(partner_vehicle_id), fields)
        logger.info("Vehicle updated in Shop-Ware: %s", partner_vehicle_id)
        return data

    async def delete_vehicle(self, partner_vehicle_id: str) -> Dict[str, Any]:
        data = await self._call("Shop-Ware vehicle deletion", "DELETE", self._vehicles_path(partner_vehicle_id))
        logger.info("Vehicle deleted in Shop-Ware: %s", partner_vehicle_id)
        return data

    async def get_vehicle(self, partner_vehicle_id: str) -> Dict[str, Any]:
        return await self._call("Shop-Ware vehicle lookup", "GET", self._vehicles_path(partner_vehicle_id))

    async def list_vehicles(self) -> Dict[str, Any]:
        return await self._call("Shop-Ware vehicle listing", "GET", self._vehicles_path())

    async def resolve_partner_user_id(self, user_id: str) -> Optional[str]:
        """Shop-Ware customer id for a local user, or None when there is no mapping."""
        user = await self.directory.get_user(user_id)
        partner_user_id = (user or {}).get("shopwareUserId")
        return str(partner_user_id) if partner_user_id else None

    async def aclose(self) -> None:
        await self._client.aclose()
