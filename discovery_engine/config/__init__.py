"""Runtime configuration helpers."""

from discovery_engine.config.settings import (
    DiscoverySettings,
    ProviderSnapshot,
    load_settings,
    resolve_provider_snapshot,
)

__all__ = [
    "DiscoverySettings",
    "ProviderSnapshot",
    "load_settings",
    "resolve_provider_snapshot",
]
