"""Bridge between MCP tool servers and a LangGraph conversational agent."""
__version__ = "0.1.0"
