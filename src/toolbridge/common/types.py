"""Core types shared across the bridge: error taxonomy and chat replies."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field


class BridgeError(Exception):
    """Base class for bridge errors."""
    pass


class ConfigurationError(BridgeError):
    """Raised when required settings are absent before initialization."""

    def __init__(self, message: str, missing: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.missing: List[str] = list(missing or [])


class DiscoveryError(BridgeError):
    """Raised when the tool catalogue cannot be built."""
    pass


class DuplicateToolError(DiscoveryError):
    """Raised when a discovery pass returns the same tool name twice."""

    def __init__(self, name: str):
        super().__init__(f"Duplicate tool name in catalogue: {name}")
        self.name = name


class OperationCancelled(BridgeError):
    """Raised when a cancel signal stops an in-flight operation."""
    pass


class ToolCallRecord(BaseModel):
    """One tool call made by the agent during a turn."""
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[str] = None


ReplyType = Literal["message", "api_error", "error", "cancelled"]


class ChatReply(BaseModel):
    """Outcome of one send on a thread.

    `type` tells a normal answer apart from upstream API errors, internal
    failures and cancellations, so callers never need to parse `content`.
    """
    type: ReplyType = "message"
    content: str
    thread_id: Optional[str] = None
    status_code: Optional[int] = None
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.type == "message"


class Turn(BaseModel):
    """A completed prompt/response exchange on a thread."""
    prompt: str
    response: str
    status: ReplyType = "message"
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
