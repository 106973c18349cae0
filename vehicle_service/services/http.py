# vehicle_service/services/http.py
from typing import Any, Dict, Optional

import httpx

from vehicle_service.errors import UpstreamFailure


def upstream_error(action: str, response: httpx.Response) -> UpstreamFailure:
    """Build an UpstreamFailure, keeping the upstream ``message`` when the body has one."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict) and payload.get("message"):
        upstream_message = str(payload["message"])
    else:
        upstream_message = response.text or f"HTTP {response.status_code}"

    return UpstreamFailure(
        f"{action} failed: {upstream_message}",
        details=upstream_message,
        upstream_status=response.status_code,
    )


async def send(
    client: httpx.AsyncClient,
    action: str,
    method: str,
    url: str,
    json_body: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    try:
        response = await client.request(method, url, json=json_body)
    except httpx.HTTPError as exc:
        raise UpstreamFailure(f"{action} failed: {exc}", details=str(exc)) from exc

    if response.status_code >= 400:
        raise upstream_error(action, response)
    return response


def json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {"data": payload}
