"""BaseAgent ABC and AgentStatus constants for classverify.

Pipeline agents inherit from BaseAgent and implement the run() method.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from classverify.models.pipeline import VerificationContext


class AgentStatus:
    """Status codes used in agent results and the phase log."""

    OK = "OK"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    DENIED = "DENIED"


class BaseAgent(ABC):
    """Abstract base class for classverify pipeline agents.

    Agents hold no per-run data: everything a run needs or produces flows
    through VerificationContext, so one agent instance can serve concurrent
    verifications.
    """

    name: str = "BaseAgent"
    version: str = "1.0.0"

    @abstractmethod
    def run(self, context: "VerificationContext") -> Any:
        """Execute the agent and return a typed result.

        Args:
            context: Shared verification context with configuration and request.

        Returns:
            A typed agent result dataclass (subclass-specific).
        """
