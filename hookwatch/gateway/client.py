"""Resource metadata lookups against the Radix Gateway API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from hookwatch.config import GatewayConfig
from hookwatch.utils.logging import get_logger

log = get_logger(__name__)

UNKNOWN_RESOURCE = "Unknown Resource"


@dataclass
class ResourceMetadata:
    name: str = UNKNOWN_RESOURCE
    icon_url: str | None = None

    @property
    def known(self) -> bool:
        return self.name != UNKNOWN_RESOURCE

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "iconUrl": self.icon_url}


def _metadata_value(value: Any) -> str | None:
    # Gateway returns typed values ({"typed": {"value": ...}}); older shapes are bare strings
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        typed = value.get("typed")
        if isinstance(typed, dict) and isinstance(typed.get("value"), str):
            return typed["value"]
        if isinstance(value.get("value"), str):
            return value["value"]
    return None


def _find_metadata(items: list[Any], keys: tuple[str, ...]) -> str | None:
    for item in items:
        if isinstance(item, dict) and item.get("key") in keys:
            found = _metadata_value(item.get("value"))
            if found:
                return found
    return None


def extract_resource_metadata(response: Any) -> ResourceMetadata:
    """Pull name/symbol and icon URL out of an entity-details response.

    Any shape other than the documented one yields the unknown-resource default.
    """
    entities = response.get("items") if isinstance(response, dict) else None
    if not isinstance(entities, list) or not entities:
        log.debug("gateway_no_items")
        return ResourceMetadata()

    item = entities[0]
    metadata = item.get("metadata") if isinstance(item, dict) else None
    items = metadata.get("items") if isinstance(metadata, dict) else None
    if not isinstance(items, list) or not items:
        log.debug("gateway_no_metadata", address=item.get("address") if isinstance(item, dict) else None)
        return ResourceMetadata()

    name = _find_metadata(items, ("name", "symbol")) or UNKNOWN_RESOURCE
    icon_url = _find_metadata(items, ("icon_url", "icon"))
    return ResourceMetadata(name=name, icon_url=icon_url)


class GatewayClient:
    def __init__(
        self, config: GatewayConfig, client: httpx.AsyncClient | None = None
    ) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.url, timeout=config.timeout
        )

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_resource_details(self, resource_address: str) -> Any:
        """POST /state/entity/details for one address. None on any failure."""
        log.debug("gateway_fetch", address=resource_address)
        try:
            resp = await self._client.post(
                "/state/entity/details",
                json={
                    "addresses": [resource_address],
                    "aggregation_level": "global",
                },
            )
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            log.warning(
                "gateway_http_error",
                address=resource_address,
                status=e.response.status_code,
            )
        except (httpx.HTTPError, ValueError) as e:
            log.warning("gateway_request_failed", address=resource_address, error=str(e))
        return None

    async def resource_metadata(self, resource_address: str) -> ResourceMetadata:
        if not self._config.enabled:
            return ResourceMetadata()
        details = await self.fetch_resource_details(resource_address)
        return extract_resource_metadata(details)
