from .manager import SessionManager, Thread
from .tool_agent import AgentRuntime, build_agent

__all__ = ["AgentRuntime", "SessionManager", "Thread", "build_agent"]
