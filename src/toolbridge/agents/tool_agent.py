"""LangGraph agent that answers through the catalogue's tools."""
from dataclasses import dataclass
import logging
from typing import Any, List, Literal, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig, RunnableLambda, RunnableSerializable
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, MessagesState, StateGraph
from langgraph.graph.state import CompiledStateGraph
from langgraph.managed import RemainingSteps
from langgraph.prebuilt import ToolNode

from ..common.types import ToolCallRecord
from ..tools.binding import build_instructions
from ..tools.catalogue import Catalogue

logger = logging.getLogger(__name__)


class AgentState(MessagesState, total=False):
    """Conversation messages plus the step budget LangGraph fills in per run."""

    remaining_steps: RemainingSteps


@dataclass(frozen=True)
class AgentRuntime:
    """Compiled agent bound to one catalogue snapshot."""
    catalogue: Catalogue
    graph: CompiledStateGraph
    instructions: str
    agent_name: str


def wrap_model(
    model: BaseChatModel, tools: List[Any], instructions: str
) -> RunnableSerializable[AgentState, AIMessage]:
    if tools:
        logger.info(f"Binding tools to model: {[t.name for t in tools]}")
        model = model.bind_tools(tools)
    preprocessor = RunnableLambda(
        lambda state: [SystemMessage(content=instructions)] + state["messages"],
        name="ToolAgentPreprocessor",
    )
    return preprocessor | model


def build_agent(
    model: BaseChatModel,
    catalogue: Catalogue,
    checkpointer: Optional[BaseCheckpointSaver] = None,
    agent_name: str = "DatabaseRetrievalAgent",
) -> AgentRuntime:
    """Build the model/tools graph for a catalogue snapshot."""
    instructions = build_instructions(catalogue, agent_name)
    tools = catalogue.tools()
    model_runnable = wrap_model(model, tools, instructions)

    async def acall_model(state: AgentState, config: RunnableConfig) -> AgentState:
        response = await model_runnable.ainvoke(state, config)

        if state["remaining_steps"] < 2 and response.tool_calls:
            logger.info("Not enough steps remaining, terminating early")
            return {
                "messages": [AIMessage(
                    id=response.id,
                    content="Sorry, need more steps to process this request.",
                )]
            }
        return {"messages": [response]}

    agent = StateGraph(AgentState)
    agent.add_node("model", acall_model)
    agent.set_entry_point("model")

    if tools:
        agent.add_node("tools", ToolNode(tools))
        # Always run "model" after "tools"
        agent.add_edge("tools", "model")

        # After "model", if there are tool calls, run "tools". Otherwise END.
        def pending_tool_calls(state: AgentState) -> Literal["tools", "done"]:
            last_message = state["messages"][-1]
            if not isinstance(last_message, AIMessage):
                raise TypeError(f"Expected AIMessage, got {type(last_message)}")
            if last_message.tool_calls:
                return "tools"
            return "done"

        agent.add_conditional_edges("model", pending_tool_calls, {"tools": "tools", "done": END})
    else:
        agent.add_edge("model", END)

    graph = agent.compile(checkpointer=checkpointer)
    logger.info(f"Agent {agent_name} built for catalogue v{catalogue.version} with {len(tools)} tools")
    return AgentRuntime(
        catalogue=catalogue,
        graph=graph,
        instructions=instructions,
        agent_name=agent_name,
    )


def content_to_text(content: Any) -> str:
    """Flatten message content (plain or a list of parts) into text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def turn_messages(messages: List[BaseMessage]) -> List[BaseMessage]:
    """Messages produced after the last human message."""
    for index in range(len(messages) - 1, -1, -1):
        if isinstance(messages[index], HumanMessage):
            return messages[index + 1:]
    return list(messages)


def collect_tool_calls(messages: List[BaseMessage]) -> List[ToolCallRecord]:
    """Pair the tool calls of a turn with their outputs."""
    outputs = {
        message.tool_call_id: content_to_text(message.content)
        for message in messages
        if isinstance(message, ToolMessage)
    }
    records = []
    for message in messages:
        if not isinstance(message, AIMessage):
            continue
        for call in message.tool_calls:
            records.append(ToolCallRecord(
                name=call["name"],
                arguments=call.get("args") or {},
                output=outputs.get(call.get("id")),
            ))
    return records
