"""
Credential lookup for backends that need a secret.

Secrets are looked up by title. :class:`EnvironmentCredentialStore`
maps a title such as ``"ollama"`` to the ``AICOMMITS_OLLAMA_TOKEN``
environment variable.
"""

from __future__ import annotations

import os
import re
from typing import Mapping, Optional


class CredentialStore:
    """Store that never holds a secret."""

    def get(self, title: str) -> Optional[str]:
        return None


class EnvironmentCredentialStore(CredentialStore):
    """Read secrets from ``AICOMMITS_<TITLE>_TOKEN`` environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

    @staticmethod
    def variable_for(title: str) -> str:
        slug = re.sub(r"[^A-Za-z0-9]+", "_", title).strip("_").upper()
        return f"AICOMMITS_{slug}_TOKEN"

    def get(self, title: str) -> Optional[str]:
        value = self._environ.get(self.variable_for(title), "")
        return value or None
