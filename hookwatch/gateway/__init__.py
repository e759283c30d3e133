"""Radix Gateway API client."""

from hookwatch.gateway.client import GatewayClient, ResourceMetadata, extract_resource_metadata

__all__ = ["GatewayClient", "ResourceMetadata", "extract_resource_metadata"]
