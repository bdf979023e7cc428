"""Shared fakes for the tool server and the chat model."""
import asyncio
from typing import Any, Dict, List, Mapping, Optional

import pytest
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult

from toolbridge.core.metrics import metrics
from toolbridge.core.settings import Settings
from toolbridge.tools.tool_types import ContentBlock, RawTool, ToolCallResult

CUSTOMER_SCHEMA = {
    "type": "object",
    "properties": {
        "customerId": {"type": "integer", "description": "The customer ID"},
        "includeOrders": {"type": "boolean", "description": "Include orders", "default": False},
    },
    "required": ["customerId"],
}


def text_result(*texts: str, is_error: bool = False) -> ToolCallResult:
    return ToolCallResult(
        content=[ContentBlock(type="text", text=text) for text in texts],
        is_error=is_error,
    )


class FakeProvider:
    """In-memory tool server recording every call."""

    def __init__(
        self,
        tools: Optional[List[RawTool]] = None,
        results: Optional[Dict[str, Any]] = None,
        list_error: Optional[Exception] = None,
        list_delay: float = 0.01,
    ):
        self.tools = tools if tools is not None else [
            RawTool(name="GetCustomer", description="Look up a customer", input_schema=CUSTOMER_SCHEMA)
        ]
        self.results = results or {}
        self.list_error = list_error
        self.list_delay = list_delay
        self.connect_calls = 0
        self.list_calls = 0
        self.close_calls = 0
        self.calls: List[tuple] = []

    async def connect(self) -> None:
        self.connect_calls += 1

    async def list_tools(self) -> List[RawTool]:
        self.list_calls += 1
        await asyncio.sleep(self.list_delay)
        if self.list_error is not None:
            raise self.list_error
        return list(self.tools)

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> ToolCallResult:
        self.calls.append((name, dict(arguments)))
        result = self.results.get(name, text_result("ok"))
        if isinstance(result, BaseException):
            raise result
        return result

    async def aclose(self) -> None:
        self.close_calls += 1


class ScriptedChatModel(BaseChatModel):
    """Chat model replaying a fixed list of responses.

    Entries may be AIMessages or exceptions to raise; the last entry repeats.
    """

    responses: List[Any]
    calls: int = 0
    seen: List[List[BaseMessage]] = []

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.seen.append(list(messages))
        response = self.responses[min(self.calls, len(self.responses) - 1)]
        self.calls += 1
        if isinstance(response, BaseException):
            raise response
        return ChatResult(generations=[ChatGeneration(message=response.model_copy(deep=True))])

    def bind_tools(self, tools, **kwargs):
        return self


def tool_call_message(name: str, args: Dict[str, Any], call_id: str = "call_1") -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id}])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        MCP_SERVER="server.py",
        LLM_API_KEY="test-key",
        TOOL_TIMEOUT=5,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()
