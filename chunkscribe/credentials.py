"""
chunkscribe.credentials - API credential resolution.

Secrets are looked up by a path-like name ("openai/api-key") and cached
for the lifetime of the source, so each credential is resolved once per
process no matter how many jobs run.
"""

from __future__ import annotations

import os
import re
import threading
from typing import Mapping, Protocol

from chunkscribe.exceptions import ConfigError
from chunkscribe.logging import logger


class SecretSource(Protocol):
    def get_secret(self, name: str) -> str: ...


def env_var_for(name: str) -> str:
    """Map a secret name to its environment variable.

    "openai/api-key" -> "OPENAI_API_KEY"
    """
    return re.sub(r"[^A-Za-z0-9]+", "_", name.strip("/")).upper()


class EnvSecretSource:
    """Resolves secrets from environment variables, caching each value."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_secret(self, name: str) -> str:
        with self._lock:
            if name in self._cache:
                return self._cache[name]
            var = env_var_for(name)
            value = self._environ.get(var)
            if not value:
                raise ConfigError(f"Secret '{name}' not found (set {var})")
            logger.debug("Resolved secret %s from %s", name, var)
            self._cache[name] = value
            return value
