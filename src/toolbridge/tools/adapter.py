"""Invocation adapter turning one remote tool into a fail-soft callable."""
import asyncio
import json
import logging
import time
from typing import Any, Dict, Mapping, Optional, Union

from langchain_core.tools import StructuredTool

from ..core.metrics import metrics
from .binding import check_arguments
from .tool_types import ToolCallResult, ToolDescriptor, ToolProvider

logger = logging.getLogger(__name__)

RawArguments = Union[Mapping[str, Any], str, bytes, None]


def empty_result_message(tool_name: str) -> str:
    return f"Tool '{tool_name}' executed but returned no content."


def error_message(tool_name: str, error: Union[BaseException, str]) -> str:
    if isinstance(error, BaseException):
        error = str(error) or error.__class__.__name__
    return f"Error invoking tool {tool_name}: {error}"


def reduce_content(result: ToolCallResult) -> Optional[str]:
    """Join the text blocks of a result in order, None when there are none."""
    texts = [block.text for block in result.content if block.is_text]
    if not texts:
        return None
    return "\n".join(texts)


def parse_arguments(raw_arguments: RawArguments) -> Dict[str, Any]:
    """Deserialize agent arguments into a plain dict."""
    if raw_arguments is None:
        return {}
    if isinstance(raw_arguments, (str, bytes)):
        raw_arguments = json.loads(raw_arguments or "{}")
    if not isinstance(raw_arguments, Mapping):
        raise TypeError(
            f"Tool arguments must be a JSON object, got {type(raw_arguments).__name__}"
        )
    return dict(raw_arguments)


def tool_args_schema(input_schema: Any) -> Dict[str, Any]:
    """Object schema handed to the model, with `properties` always present."""
    schema = dict(input_schema) if isinstance(input_schema, Mapping) else {}
    schema["type"] = "object"
    if not isinstance(schema.get("properties"), Mapping):
        schema["properties"] = {}
    return schema


class InvocationAdapter:
    """Callable unit bound to one remote tool.

    The adapter holds a non-owning reference to the shared provider; the
    provider's lifetime belongs to whoever opened the connection. Each call
    makes at most one remote call and always returns text.
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        provider: ToolProvider,
        timeout: Optional[float] = None,
        strict: bool = False,
    ):
        self._descriptor = descriptor
        self._provider = provider
        self._timeout = timeout or None
        self._strict = strict

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def description(self) -> str:
        return self._descriptor.description

    @property
    def descriptor(self) -> ToolDescriptor:
        return self._descriptor

    async def invoke(self, raw_arguments: RawArguments = None) -> str:
        """Forward the arguments to the remote tool and flatten the result."""
        start_time = time.perf_counter()
        try:
            arguments = parse_arguments(raw_arguments)
            if self._strict:
                problems = check_arguments(self._descriptor, arguments)
                if problems:
                    logger.warning(f"Rejected call to {self.name}: {'; '.join(problems)}")
                    metrics.record_tool_call(self.name, time.perf_counter() - start_time, success=False)
                    return error_message(self.name, "; ".join(problems))

            logger.info(f"Invoking tool {self.name} with args: {arguments}")
            result = await asyncio.wait_for(
                self._provider.call_tool(self.name, arguments),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            # wait_for raises an empty TimeoutError, a remote one carries its own message
            reason = str(e) or f"timed out after {self._timeout} seconds"
            logger.error(f"Tool {self.name} timed out: {reason}")
            metrics.record_tool_call(self.name, time.perf_counter() - start_time, success=False)
            return error_message(self.name, reason)
        except Exception as e:
            logger.error(f"Tool {self.name} failed: {e}")
            metrics.record_tool_call(self.name, time.perf_counter() - start_time, success=False)
            return error_message(self.name, e)

        text = reduce_content(result)
        elapsed = time.perf_counter() - start_time
        if result.is_error:
            logger.warning(f"Tool {self.name} reported an error: {text}")
            metrics.record_tool_call(self.name, elapsed, success=False)
            return error_message(self.name, text or "remote tool reported an error")

        metrics.record_tool_call(self.name, elapsed, empty=text is None)
        if text is None:
            return empty_result_message(self.name)
        return text

    async def __call__(self, raw_arguments: RawArguments = None) -> str:
        return await self.invoke(raw_arguments)

    def as_tool(self) -> StructuredTool:
        """Expose the adapter to the agent runtime as a LangChain tool."""

        async def call_tool(**arguments: Any) -> str:
            return await self.invoke(arguments)

        return StructuredTool(
            name=self.name,
            description=self.description or self.name,
            args_schema=tool_args_schema(self._descriptor.input_schema),
            coroutine=call_tool,
        )

    def __repr__(self) -> str:
        return f"InvocationAdapter(name={self.name!r})"
