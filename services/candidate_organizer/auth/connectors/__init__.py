"""SSO connector registry.

Holds the identity provider connector initialized at startup.
"""

import os

from candidate_organizer.auth.sso import SSOConnector
from candidate_organizer.config import settings
from candidate_organizer.logging_config import get_logger

logger = get_logger(__name__)

_connector: SSOConnector | None = None

# Environment variable override for the Google client secret, kept out of YAML.
_GOOGLE_SECRET_ENV = "CANDIDATE_ORGANIZER_GOOGLE_CLIENT_SECRET"


def init_connectors() -> None:
    """Initialize the Google connector from settings.

    Called during application startup (lifespan handler).
    """
    from candidate_organizer.auth.connectors.google import GoogleConnector

    global _connector  # noqa: PLW0603

    google_config = settings.auth.google.model_copy()
    env_secret = os.environ.get(_GOOGLE_SECRET_ENV, "")
    if env_secret and not google_config.client_secret:
        google_config.client_secret = env_secret
        logger.debug("Loaded client_secret from env", env_var=_GOOGLE_SECRET_ENV)

    if not google_config.client_id:
        logger.warning("Google client_id is not configured; logins will fail")

    _connector = GoogleConnector(google_config, workspace_domain=settings.auth.workspace_domain)
    logger.info(
        "Registered identity provider",
        provider=_connector.name,
        workspace_domain=settings.auth.workspace_domain or None,
    )


def set_connector(connector: SSOConnector | None) -> None:
    """Replace the active connector (tests and embedding applications)."""
    global _connector  # noqa: PLW0603
    _connector = connector


def get_connector() -> SSOConnector:
    """Return the active connector. Raises if not initialized."""
    if _connector is None:
        raise RuntimeError("Identity provider not initialized, call init_connectors() first")
    return _connector
