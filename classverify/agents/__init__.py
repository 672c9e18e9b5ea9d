"""classverify agents package."""

from classverify.agents.base import AgentStatus, BaseAgent
from classverify.agents.photo_analysis_agent import PhotoAnalysisAgent, select_primary

__all__ = ["AgentStatus", "BaseAgent", "PhotoAnalysisAgent", "select_primary"]
