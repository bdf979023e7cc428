"""Tool schema normalization, invocation adapters and the tool catalogue."""
from .adapter import InvocationAdapter
from .binding import build_instructions, check_arguments, descriptor_table
from .catalogue import Catalogue, build_catalogue, discover
from .schema import normalize_parameters
from .tool_types import (
    ContentBlock,
    ParameterDescriptor,
    RawLiteralDefault,
    RawTool,
    StringDefault,
    ToolCallResult,
    ToolDescriptor,
    ToolProvider,
)

__all__ = [
    "Catalogue",
    "ContentBlock",
    "InvocationAdapter",
    "ParameterDescriptor",
    "RawLiteralDefault",
    "RawTool",
    "StringDefault",
    "ToolCallResult",
    "ToolDescriptor",
    "ToolProvider",
    "build_catalogue",
    "build_instructions",
    "check_arguments",
    "descriptor_table",
    "discover",
    "normalize_parameters",
]
