"""Provider adapters and the static provider catalog."""

from .catalog import PROVIDERS, build_catalog, provider_descriptors

__all__ = ["PROVIDERS", "build_catalog", "provider_descriptors"]
