"""
Connector configuration read from the process environment.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from connectors.exceptions import ConfigurationException

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 30
DEFAULT_TIMEOUT = 30
DEFAULT_BACKOFF_MAX_RETRIES = 0
DEFAULT_BACKOFF_RETRY_AFTER = 60.0
DEFAULT_BACKOFF_MAX_WAIT = 3600.0

BACKEND_TOKEN_VARS = {
    "github": "GITHUB_TOKEN",
    "gitlab": "GITLAB_TOKEN",
}


def token_env_var(domain: str) -> str:
    """
    Name of the per-domain token variable, e.g. ``GITLAB_COM_API_TOKEN``.

    :param domain: Remote host.
    :return: Environment variable name.
    """
    return re.sub(r"[^A-Z0-9]", "_", domain.upper()) + "_API_TOKEN"


@dataclass(frozen=True)
class ConnectorConfig:
    """
    Token and tuning settings for one remote.

    :param token: API token sent with every request.
    :param per_page: Page size requested from list endpoints.
    :param timeout: HTTP timeout in seconds.
    :param backoff_max_retries: Retries allowed on throttling responses.
    :param backoff_retry_after: Base wait in seconds between retries.
    :param backoff_max_wait: Cap of the exponential wait.
    :param throttle: Default pause in seconds between page fetches.
    """

    token: str
    per_page: int = DEFAULT_PER_PAGE
    timeout: int = DEFAULT_TIMEOUT
    backoff_max_retries: int = DEFAULT_BACKOFF_MAX_RETRIES
    backoff_retry_after: float = DEFAULT_BACKOFF_RETRY_AFTER
    backoff_max_wait: float = DEFAULT_BACKOFF_MAX_WAIT
    throttle: Optional[float] = None

    @classmethod
    def from_env(
        cls,
        domain: str,
        backend: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ConnectorConfig":
        """
        Build the configuration for ``domain``.

        :param domain: Remote host.
        :param backend: ``github`` or ``gitlab``; enables the generic token
            variable of that backend as a fallback.
        :param env: Variables to read, ``os.environ`` by default.
        :return: Configuration.
        :raises ConfigurationException: If no token is set or a number is
            malformed.
        """
        env = os.environ if env is None else env
        domain_var = token_env_var(domain)
        token = env.get(domain_var, "").strip()
        if not token and backend in BACKEND_TOKEN_VARS:
            token = env.get(BACKEND_TOKEN_VARS[backend], "").strip()
        if not token:
            raise ConfigurationException(
                f"No API token found for {domain}. Set {domain_var}"
                + (f" or {BACKEND_TOKEN_VARS[backend]}" if backend in BACKEND_TOKEN_VARS else "")
            )

        throttle = _number(env, "FORGE_THROTTLE", None, float)
        config = cls(
            token=token,
            per_page=_number(env, "FORGE_PER_PAGE", DEFAULT_PER_PAGE, int),
            timeout=_number(env, "FORGE_TIMEOUT", DEFAULT_TIMEOUT, int),
            backoff_max_retries=_number(
                env, "FORGE_BACKOFF_MAX_RETRIES", DEFAULT_BACKOFF_MAX_RETRIES, int
            ),
            backoff_retry_after=_number(
                env, "FORGE_BACKOFF_RETRY_AFTER", DEFAULT_BACKOFF_RETRY_AFTER, float
            ),
            backoff_max_wait=_number(
                env, "FORGE_BACKOFF_MAX_WAIT", DEFAULT_BACKOFF_MAX_WAIT, float
            ),
            throttle=throttle,
        )
        if config.per_page < 1:
            raise ConfigurationException("FORGE_PER_PAGE must be >= 1")
        if config.backoff_max_retries < 0:
            raise ConfigurationException("FORGE_BACKOFF_MAX_RETRIES cannot be negative")
        if config.throttle is not None and config.throttle < 0:
            raise ConfigurationException("FORGE_THROTTLE cannot be negative")
        logger.debug(
            f"Loaded configuration for {domain}: per_page={config.per_page}, "
            f"timeout={config.timeout}, max_retries={config.backoff_max_retries}"
        )
        return config


def _number(env: Mapping[str, str], name: str, default, kind):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigurationException(f"Invalid value for {name}: {raw!r}") from e
