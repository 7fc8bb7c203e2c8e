"""Temporal client configuration and connection management."""

from temporalio.client import Client as TemporalClient

from tenancy_watch.core.config import settings


class TemporalClientManager:
    """Manages Temporal client connection."""

    _client: TemporalClient | None = None

    async def get_client(self) -> TemporalClient:
        """Get or create Temporal client instance.

        Returns:
            TemporalClient: Connected Temporal client
        """
        if self._client is None:
            self._client = await TemporalClient.connect(
                settings.temporal_address,
                namespace=settings.temporal.namespace,
            )
        return self._client

    async def close(self) -> None:
        """Drop the cached client; the SDK closes its connection when collected."""
        self._client = None


# Global Temporal client manager instance
_temporal_manager = TemporalClientManager()


async def get_temporal_client() -> TemporalClient:
    """Get Temporal client instance.

    Returns:
        TemporalClient: Connected Temporal client
    """
    return await _temporal_manager.get_client()


async def close_temporal_client() -> None:
    """Close Temporal client connection."""
    await _temporal_manager.close()
