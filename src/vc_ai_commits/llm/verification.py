"""
Configuration check for a model backend.

The probe sends a trivial prompt through the full pipeline (executable
lookup or HTTP request, execution, response parsing) without touching
any repository, and reduces the outcome to a status line.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import Optional

from vc_ai_commits.llm.backends import LlmBackend
from vc_ai_commits.llm.results import GenerationResult
from vc_ai_commits.service.cancellation import CancellationToken

PROBE_PROMPT = "Say 'OK' in exactly one word"
WRAP_WIDTH = 60


@dataclass(frozen=True)
class VerificationStatus:
    ok: bool
    text: str
    result: GenerationResult

    @property
    def symbol(self) -> str:
        return "✓" if self.ok else "✗"


def verify_configuration(backend: LlmBackend, token: Optional[CancellationToken] = None) -> VerificationStatus:
    """Run the probe prompt through ``backend``."""
    result = backend.generate(PROBE_PROMPT, token=token)
    if result.ok:
        return VerificationStatus(ok=True, text="Configuration is valid", result=result)
    detail = result.detail or "Unknown error"
    return VerificationStatus(ok=False, text=textwrap.fill(detail, WRAP_WIDTH), result=result)
