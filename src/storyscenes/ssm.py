from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

import boto3

logger = logging.getLogger(__name__)


class ParameterStore:
    """Reads decrypted SecureString parameters, caching each name once."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client
        self._cache: dict[str, str] = {}

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("ssm")
        return self._client

    def get(self, name: str) -> str:
        if not name:
            raise ValueError("Parameter name cannot be empty")
        if name not in self._cache:
            response = self.client.get_parameter(Name=name, WithDecryption=True)
            self._cache[name] = response["Parameter"]["Value"]
        return self._cache[name]


_default_store = ParameterStore()


def hydrate_env(
    env_name: str,
    parameter_name: Optional[str],
    store: ParameterStore | None = None,
) -> bool:
    """Copy an API key from SSM into ``env_name`` unless it is already set.

    Returns True when the environment variable was populated from SSM.
    """
    if not parameter_name or os.getenv(env_name):
        return False
    store = store or _default_store
    try:
        os.environ[env_name] = store.get(parameter_name)
    except Exception:
        logger.exception("Failed to load %s from SSM parameter %s", env_name, parameter_name)
        raise
    logger.info("Loaded %s from SSM parameter %s", env_name, parameter_name)
    return True


def hydrate_api_keys(parameters: Mapping[str, Optional[str]], store: ParameterStore | None = None) -> list[str]:
    """Hydrate every ``env var -> parameter`` pair and return the env vars filled."""
    return [env_name for env_name, parameter in parameters.items() if hydrate_env(env_name, parameter, store)]
