"""
Agents Package

The spending advisory built on Google Gemini.
"""

from khata.agents.advisory import (
    FALLBACK_MESSAGE,
    SYSTEM_INSTRUCTION,
    AdvisoryAgent,
    AdvisoryResult,
    AdvisoryService,
    build_prompt,
    unlock_progress,
)
from khata.agents.errors import (
    AdvisoryError,
    AdvisoryLockedError,
    AdvisoryUnavailableError,
)

__all__ = [
    "AdvisoryAgent",
    "AdvisoryResult",
    "AdvisoryService",
    "FALLBACK_MESSAGE",
    "SYSTEM_INSTRUCTION",
    "build_prompt",
    "unlock_progress",
    # Exceptions
    "AdvisoryError",
    "AdvisoryLockedError",
    "AdvisoryUnavailableError",
]
