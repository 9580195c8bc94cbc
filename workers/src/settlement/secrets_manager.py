"""
secrets_manager
================

Loads secrets for the settlement worker.  A value is read from the
environment, or from a file when the corresponding ``*_FILE`` variable
is set.  This lets operators mount venue credentials and the database
URL as files (Docker or Kubernetes secrets) instead of placing them in
the process environment.

Example usage::

    from settlement.secrets_manager import get_default_secrets_manager

    secrets = get_default_secrets_manager()
    api_key = secrets.get_secret("COINBASE_API_KEY")
    database_url = secrets.get_secret("DATABASE_URL")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class BaseSecretsManager:
    """Abstract base class for secrets managers."""

    def get_secret(self, name: str) -> Optional[str]:  # pragma: no cover - override
        """Return the secret value for ``name`` or ``None`` if unavailable."""
        raise NotImplementedError


class EnvFileSecretsManager(BaseSecretsManager):
    """
    Loads secrets from environment variables and optional ``*_FILE`` paths.

    If ``{name}_FILE`` is set, the secret is read from that file and takes
    precedence over ``{name}``.  Empty values are reported as ``None``.
    """

    def __init__(self, base_path: Optional[Path] = None) -> None:
        #: Optional base directory to resolve relative file paths.
        self.base_path = base_path
        self._cache: Dict[str, Optional[str]] = {}

    def get_secret(self, name: str) -> Optional[str]:
        if name in self._cache:
            return self._cache[name]

        file_path = os.getenv(f"{name}_FILE")
        if file_path:
            path = Path(file_path)
            if not path.is_absolute() and self.base_path is not None:
                path = self.base_path / path
            try:
                value: Optional[str] = path.read_text(encoding="utf-8").strip()
            except OSError as exc:
                logger.warning("Failed to read secret file for %s: %s", name, exc)
                value = None
        else:
            value = os.getenv(name)

        value = value or None
        self._cache[name] = value
        return value


def get_default_secrets_manager() -> BaseSecretsManager:
    """Return the secrets manager used by the settlement worker.

    Relative ``*_FILE`` paths resolve against ``SECRETS_BASE_PATH``
    (default: the current directory).
    """
    base = os.getenv("SECRETS_BASE_PATH")
    return EnvFileSecretsManager(base_path=Path(base) if base else None)


__all__ = [
    "BaseSecretsManager",
    "EnvFileSecretsManager",
    "get_default_secrets_manager",
]
