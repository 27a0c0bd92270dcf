"""Credential probe: decide which providers are usable at startup."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from ..core.logger import get_logger
from .base import ProviderDescriptor

logger = get_logger("orchestration.credentials")


class EnabledProviderSet:
    """Immutable set of provider identities whose credentials were all present.

    Besides membership, the set keeps the resolved credential values of
    enabled providers and the missing keys of disabled ones, so that callers
    can pass credentials to adapters and explain why a provider is disabled.
    """

    __slots__ = ("_identities", "_credentials", "_missing")

    def __init__(
        self,
        credentials: Mapping[str, Mapping[str, str]],
        missing: Mapping[str, tuple[str, ...]] | None = None,
    ) -> None:
        self._identities = frozenset(credentials)
        self._credentials = MappingProxyType(
            {name: MappingProxyType(dict(values)) for name, values in credentials.items()}
        )
        self._missing = MappingProxyType(dict(missing or {}))

    def __contains__(self, identity: object) -> bool:
        return identity in self._identities

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._identities))

    def __len__(self) -> int:
        return len(self._identities)

    def __repr__(self) -> str:
        return f"EnabledProviderSet({sorted(self._identities)!r})"

    @property
    def identities(self) -> frozenset[str]:
        return self._identities

    def credentials_for(self, identity: str) -> Mapping[str, str]:
        """Return the credential values resolved for an enabled provider."""
        return self._credentials[identity]

    def missing_for(self, identity: str) -> tuple[str, ...]:
        """Return the credential keys a disabled provider is missing."""
        return self._missing.get(identity, ())

    @property
    def disabled(self) -> Mapping[str, tuple[str, ...]]:
        return self._missing


def probe(
    descriptors: Iterable[ProviderDescriptor],
    config_source: Mapping[str, str],
) -> EnabledProviderSet:
    """Compute the enabled provider set from a configuration source.

    A provider is enabled iff every one of its required credential keys is
    present with a non-blank value. No network calls are made.

    Args:
        descriptors: All declared providers
        config_source: Read-only key/value configuration (e.g. the environment)

    Returns:
        EnabledProviderSet for the registry to adopt
    """
    enabled: dict[str, dict[str, str]] = {}
    missing: dict[str, tuple[str, ...]] = {}

    for descriptor in descriptors:
        values: dict[str, str] = {}
        absent: list[str] = []
        for key in descriptor.required_credentials:
            value = config_source.get(key)
            if value is None or not str(value).strip():
                absent.append(key)
            else:
                values[key] = str(value).strip()

        if absent:
            missing[descriptor.identity] = tuple(absent)
        else:
            enabled[descriptor.identity] = values

    result = EnabledProviderSet(enabled, missing)

    if enabled:
        logger.info("Enabled providers: %s", ", ".join(sorted(enabled)))
    else:
        logger.warning("No providers enabled. Check your API keys.")
    for identity, keys in sorted(missing.items()):
        logger.info("Provider %s disabled (missing %s)", identity, ", ".join(keys))

    return result
