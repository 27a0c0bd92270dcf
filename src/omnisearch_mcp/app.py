"""Application wiring: configuration and catalog to a ready dispatcher."""

from __future__ import annotations

from collections.abc import Mapping

from .core.config import OmnisearchConfig, load_credential_source
from .core.logger import get_logger
from .orchestration.dispatcher import Dispatcher, build_dispatcher
from .providers.catalog import build_catalog

logger = get_logger("app")


def create_dispatcher(
    config: OmnisearchConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> Dispatcher:
    """Create the dispatcher for the full provider catalog.

    Args:
        config: Application configuration (loaded from the environment when None)
        environ: Credential source (a snapshot of ``os.environ`` when None)

    Returns:
        Dispatcher with every known provider registered
    """
    config = config or OmnisearchConfig.load()
    credentials = load_credential_source(environ)
    dispatcher = build_dispatcher(config, build_catalog(), credentials)
    logger.info(
        "Omnisearch ready with %d of %d providers enabled",
        len(dispatcher.registry.enabled_identities()),
        len(dispatcher.registry.providers()),
    )
    return dispatcher
