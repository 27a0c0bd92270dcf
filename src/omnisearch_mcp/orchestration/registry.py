"""Provider registry: identity to adapter and descriptor lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.logger import get_logger
from .base import Capability, ProviderAdapter, ProviderDescriptor
from .credentials import EnabledProviderSet
from .errors import (
    NoProviderForCapabilityError,
    ProviderDisabledError,
    ProviderUnknownError,
)

logger = get_logger("orchestration.registry")


@dataclass(frozen=True)
class RegisteredProvider:
    """A registered provider: its descriptor and adapter."""

    descriptor: ProviderDescriptor
    adapter: ProviderAdapter

    @property
    def identity(self) -> str:
        return self.descriptor.identity


class ProviderRegistry:
    """Maps provider identities to adapters and static metadata.

    Every known provider is registered, including disabled ones, so that
    "known but not enabled" stays distinguishable from "unknown". The
    registry is populated once at startup and read-only afterwards.
    """

    def __init__(self, enabled: EnabledProviderSet) -> None:
        """Initialize the registry.

        Args:
            enabled: Enabled provider set computed by the credential probe
        """
        self._enabled = enabled
        self._providers: dict[str, RegisteredProvider] = {}
        self._order: list[str] = []

    def register(self, descriptor: ProviderDescriptor, adapter: ProviderAdapter) -> None:
        """Register a provider.

        Args:
            descriptor: Static provider metadata
            adapter: Adapter implementing the provider's capability

        Raises:
            ValueError: If the identity is already registered or the adapter
                does not match the descriptor
        """
        identity = descriptor.identity
        if identity in self._providers:
            raise ValueError(f"Provider already registered: {identity}")
        if adapter.capability is not descriptor.capability:
            raise ValueError(
                f"Adapter for {identity} implements {adapter.capability.value}, "
                f"descriptor declares {descriptor.capability.value}"
            )

        self._providers[identity] = RegisteredProvider(descriptor, adapter)
        self._order.append(identity)
        logger.debug(
            "Registered provider: %s (capability=%s, enabled=%s, priority=%d)",
            identity,
            descriptor.capability.value,
            identity in self._enabled,
            descriptor.priority,
        )

    @property
    def enabled(self) -> EnabledProviderSet:
        return self._enabled

    def is_known(self, identity: str) -> bool:
        return identity in self._providers

    def is_enabled(self, identity: str) -> bool:
        return identity in self._providers and identity in self._enabled

    def enabled_identities(self) -> list[str]:
        """Enabled identities that are registered, in registration order."""
        return [name for name in self._order if name in self._enabled]

    def descriptor(self, identity: str) -> ProviderDescriptor:
        """Get a descriptor by identity, enabled or not.

        Raises:
            ProviderUnknownError: If the identity is not registered
        """
        entry = self._providers.get(identity)
        if entry is None:
            raise ProviderUnknownError(identity)
        return entry.descriptor

    def resolve(self, identity: str) -> RegisteredProvider:
        """Resolve an enabled provider.

        Raises:
            ProviderUnknownError: If the identity is not registered
            ProviderDisabledError: If the provider is known but disabled
        """
        entry = self._providers.get(identity)
        if entry is None:
            raise ProviderUnknownError(identity)
        if identity not in self._enabled:
            missing = self._enabled.missing_for(identity) or entry.descriptor.required_credentials
            raise ProviderDisabledError(identity, missing)
        return entry

    def resolve_by_capability(self, capability: Capability) -> list[str]:
        """Enabled identities supporting a capability, by declared priority.

        Ties keep registration order, so the result is deterministic.
        """
        candidates = [
            (self._providers[name].descriptor.priority, index, name)
            for index, name in enumerate(self._order)
            if self._providers[name].descriptor.capability is capability
            and name in self._enabled
        ]
        return [name for _, _, name in sorted(candidates)]

    def resolve_first(self, capability: Capability) -> RegisteredProvider:
        """Resolve the highest-priority enabled provider for a capability.

        Raises:
            NoProviderForCapabilityError: If no enabled provider supports it
        """
        names = self.resolve_by_capability(capability)
        if not names:
            missing = {
                name: list(
                    self._enabled.missing_for(name) or entry.descriptor.required_credentials
                )
                for name, entry in self._providers.items()
                if entry.descriptor.capability is capability
            }
            raise NoProviderForCapabilityError(capability.value, missing)
        return self._providers[names[0]]

    def providers(self) -> list[RegisteredProvider]:
        """All registered providers in registration order."""
        return [self._providers[name] for name in self._order]

    def get_stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        by_capability: dict[str, dict[str, int]] = {}
        for entry in self.providers():
            bucket = by_capability.setdefault(
                entry.descriptor.capability.value, {"known": 0, "enabled": 0}
            )
            bucket["known"] += 1
            if entry.identity in self._enabled:
                bucket["enabled"] += 1
        return {
            "known_providers": len(self._providers),
            "enabled_providers": len(self.enabled_identities()),
            "capabilities": by_capability,
        }
