"""Request and response models of the HTTP service."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..common.types import Turn
from ..tools.tool_types import ParameterDescriptor


class UserInput(BaseModel):
    """Basic user input for the agent."""
    message: str = Field(
        description="User input to the agent.",
        examples=["Get customer 12345"],
    )
    thread_id: Optional[str] = Field(
        description="Thread ID to continue a conversation. Defaults to the current thread.",
        default=None,
        examples=["orders"],
    )
    timeout: Optional[float] = Field(
        description="Seconds to wait for the turn before giving up.",
        default=None,
    )


class ThreadInput(BaseModel):
    thread_id: Optional[str] = Field(
        description="ID to register the thread under; anonymous when omitted.",
        default=None,
    )


class ThreadInfo(BaseModel):
    thread_id: Optional[str]
    turns: int
    current: bool = False
    created_at: datetime


class ThreadList(BaseModel):
    threads: List[ThreadInfo]
    current: Optional[str] = None


class ThreadHistory(BaseModel):
    thread_id: str
    turns: List[Turn]


class ToolInfo(BaseModel):
    name: str
    description: str
    parameters: Dict[str, ParameterDescriptor]


class ToolList(BaseModel):
    version: int
    discovered_at: datetime
    tools: List[ToolInfo]


class ToolCallInput(BaseModel):
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolCallOutput(BaseModel):
    tool: str
    output: str


class ServiceMetadata(BaseModel):
    agent_name: str
    model: str
    server: Optional[str]
    initialized: bool
    catalogue_version: Optional[int] = None
    tool_count: int = 0
