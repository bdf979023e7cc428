"""Type definitions for the tool system."""
import json
from typing import Any, Dict, List, Literal, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_TYPE = "unknown"


class StringDefault(BaseModel):
    """Default of a `string` parameter, kept as the plain string."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    value: str

    def render(self) -> Any:
        return self.value


class RawLiteralDefault(BaseModel):
    """Default of a non-string parameter, kept as its JSON literal text."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["raw"] = "raw"
    literal: str

    def value(self) -> Any:
        """Parse the literal back into a Python value."""
        return json.loads(self.literal)

    def render(self) -> Any:
        try:
            return self.value()
        except ValueError:
            return self.literal


DefaultValue = Union[StringDefault, RawLiteralDefault]


class ParameterDescriptor(BaseModel):
    """Normalized description of one declared tool parameter."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = UNKNOWN_TYPE
    description: str = ""
    default: Optional[DefaultValue] = Field(default=None, discriminator="kind")
    required: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Serializable form used in agent instructions."""
        return {
            "type": self.type,
            "description": self.description,
            "default": self.default.render() if self.default is not None else None,
            "required": self.required,
        }


class ToolDescriptor(BaseModel):
    """One discovered tool with its normalized parameters."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    parameters: Dict[str, ParameterDescriptor] = Field(default_factory=dict)
    input_schema: Dict[str, Any] = Field(default_factory=dict)

    @property
    def required_parameters(self) -> List[str]:
        return [name for name, param in self.parameters.items() if param.required]


class RawTool(BaseModel):
    """Tool definition as returned by the listing call."""
    name: str
    description: Optional[str] = None
    input_schema: Any = None


class ContentBlock(BaseModel):
    """One block of a tool result; only `text` blocks are consumed."""
    type: str
    text: Optional[str] = None
    data: Optional[Any] = None
    mime_type: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.type == "text" and self.text is not None


class ToolCallResult(BaseModel):
    """Result of one remote tool call."""
    content: List[ContentBlock] = Field(default_factory=list)
    is_error: bool = False


class ToolProvider(Protocol):
    """Protocol for the external tool process connection."""

    async def connect(self) -> None:
        """Open the connection."""
        ...

    async def list_tools(self) -> List[RawTool]:
        """Return the current tool catalogue."""
        ...

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> ToolCallResult:
        """Invoke one tool."""
        ...

    async def aclose(self) -> None:
        """Release the connection."""
        ...
