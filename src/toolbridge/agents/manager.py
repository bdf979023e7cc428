"""Session manager: lazy initialization, threads and turns."""
import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import openai
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver

from ..common.types import (
    ChatReply,
    ConfigurationError,
    DiscoveryError,
    OperationCancelled,
    Turn,
)
from ..core.concurrency import AsyncOnce, run_cancellable
from ..core.llm import get_model
from ..core.metrics import metrics
from ..core.settings import Settings
from ..tools.adapter import RawArguments
from ..tools.catalogue import Catalogue, discover
from ..tools.tool_types import ToolProvider
from .tool_agent import AgentRuntime, build_agent, collect_tool_calls, content_to_text, turn_messages

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings], ToolProvider]
ModelFactory = Callable[[Settings], BaseChatModel]


def default_provider_factory(settings: Settings) -> ToolProvider:
    from ..transport.mcp_provider import McpToolProvider
    return McpToolProvider.from_settings(settings)


class Thread:
    """One isolated conversation.

    The message history lives in the checkpointer under `key`; `turns` keeps
    the bridge-level record of each exchange. The lock keeps turns strictly
    sequential within the thread.
    """

    def __init__(self, thread_id: Optional[str] = None, runtime: Optional[AgentRuntime] = None):
        self.thread_id = thread_id
        self.key = str(uuid.uuid4())
        self.runtime = runtime
        self.turns: List[Turn] = []
        self.created_at = datetime.now()
        self._lock = asyncio.Lock()

    @property
    def is_anonymous(self) -> bool:
        return self.thread_id is None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def config(self, recursion_limit: int) -> RunnableConfig:
        return RunnableConfig(
            configurable={"thread_id": self.key},
            recursion_limit=recursion_limit,
        )

    def __repr__(self) -> str:
        return f"Thread(id={self.thread_id!r}, turns={len(self.turns)})"


class SessionManager:
    """Owns the tool connection, the agent runtime and the conversation threads."""

    def __init__(
        self,
        settings: Settings,
        provider_factory: ProviderFactory = default_provider_factory,
        model_factory: ModelFactory = get_model,
        checkpointer: Optional[BaseCheckpointSaver] = None,
    ):
        self.settings = settings
        self._provider_factory = provider_factory
        self._model_factory = model_factory
        self._checkpointer = checkpointer or MemorySaver()
        self._provider: Optional[ToolProvider] = None
        self._model: Optional[BaseChatModel] = None
        self._runtime = AsyncOnce(self._initialize)
        self._threads: Dict[str, Thread] = {}
        self._current: Optional[Thread] = None
        self._closed = False

    # ------------------------------------------------------------ lifecycle
    @property
    def is_initialized(self) -> bool:
        return self._runtime.is_set

    @property
    def runtime(self) -> Optional[AgentRuntime]:
        return self._runtime.peek()

    @property
    def catalogue(self) -> Optional[Catalogue]:
        runtime = self.runtime
        return runtime.catalogue if runtime else None

    async def initialize(self) -> AgentRuntime:
        """Connect, discover and build the agent, once."""
        if self._closed:
            raise RuntimeError("Session manager is closed")
        return await self._runtime.get()

    async def _initialize(self) -> AgentRuntime:
        self.settings.validate_required()

        provider = self._provider_factory(self.settings)
        try:
            await provider.connect()
            catalogue = await self._discover(provider)
            model = self._model_factory(self.settings)
            runtime = self._build_runtime(model, catalogue)
            # aclose may have run while we were connecting or discovering
            if self._closed:
                raise RuntimeError("Session manager closed during initialization")
        except BaseException:
            await self._close_quietly(provider)
            raise

        self._provider = provider
        self._model = model
        if self._current is None:
            self._current = Thread()
        logger.info(f"Initialized with {len(catalogue)} tools")
        return runtime

    async def _discover(self, provider: ToolProvider) -> Catalogue:
        return await discover(
            provider,
            duplicate_policy=self.settings.DUPLICATE_TOOLS,
            tool_timeout=self.settings.TOOL_TIMEOUT,
            strict=self.settings.STRICT_ARGUMENTS,
        )

    def _build_runtime(self, model: BaseChatModel, catalogue: Catalogue) -> AgentRuntime:
        return build_agent(
            model,
            catalogue,
            checkpointer=self._checkpointer,
            agent_name=self.settings.AGENT_NAME,
        )

    async def refresh_catalogue(self, migrate: bool = False) -> AgentRuntime:
        """Re-discover tools over the open connection and rebuild the agent.

        Threads keep their previous runtime unless `migrate` is set.
        """
        await self.initialize()
        catalogue = await self._discover(self._provider)
        runtime = self._build_runtime(self._model, catalogue)
        self._runtime.set(runtime)
        if migrate:
            for thread in self._all_threads():
                thread.runtime = runtime
        logger.info(f"Catalogue refreshed to v{catalogue.version}")
        return runtime

    def migrate_thread(self, thread: Thread) -> None:
        """Bind a thread to the current runtime."""
        thread.runtime = self.runtime

    async def aclose(self) -> None:
        """Release the connection and drop threads; a second call is a no-op."""
        if self._closed:
            return
        self._closed = True

        provider, self._provider = self._provider, None
        await self._close_quietly(provider)

        model, self._model = self._model, None
        client = getattr(model, "async_client", None) if model is not None else None
        close = getattr(getattr(client, "_client", None), "close", None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.warning(f"Failed to close chat client: {e}")

        for thread in self._all_threads():
            self._forget(thread)
        self._threads.clear()
        self._current = None
        self._runtime.clear()
        logger.info("Session manager closed")

    async def _close_quietly(self, provider: Optional[ToolProvider]) -> None:
        if provider is None:
            return
        try:
            await provider.aclose()
        except Exception as e:
            logger.warning(f"Failed to close tool provider: {e}")

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -------------------------------------------------------------- threads
    def _all_threads(self) -> List[Thread]:
        threads = list(self._threads.values())
        if self._current is not None and self._current not in threads:
            threads.append(self._current)
        return threads

    @property
    def current_thread(self) -> Optional[Thread]:
        return self._current

    def _forget(self, thread: Thread) -> None:
        """Drop the checkpointed history of a discarded thread."""
        try:
            self._checkpointer.delete_thread(thread.key)
        except NotImplementedError:
            logger.debug(f"Checkpointer cannot delete history of {thread!r}")

    def new_thread(self, thread_id: Optional[str] = None, make_current: bool = True) -> Thread:
        """Create a thread, by default making it current.

        With an id the thread is registered (replacing any thread under that
        id); without one it is anonymous and cannot be switched back to.
        """
        thread = Thread(thread_id, runtime=self.runtime)
        if thread_id is not None:
            replaced = self._threads.get(thread_id)
            if replaced is not None:
                self._forget(replaced)
                if self._current is replaced:
                    self._current = thread
            self._threads[thread_id] = thread
        if make_current:
            self._current = thread
        return thread

    def get_thread(self, thread_id: str) -> Optional[Thread]:
        return self._threads.get(thread_id)

    def list_threads(self) -> List[str]:
        return list(self._threads.keys())

    def switch_to(self, thread_id: str) -> bool:
        """Make a registered thread current; False if the id is unknown."""
        thread = self._threads.get(thread_id)
        if thread is None:
            return False
        self._current = thread
        return True

    def reset_current(self) -> Thread:
        """Replace the current thread with an empty one under the same id."""
        old = self._current
        if old is not None and old.is_anonymous:
            self._forget(old)
        return self.new_thread(old.thread_id if old else None)

    # ---------------------------------------------------------------- turns
    async def send(
        self,
        message: str,
        thread: Optional[Thread] = None,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> ChatReply:
        """Run one agent turn on a thread (the current one by default).

        Configuration and discovery errors propagate; every other failure is
        returned as a ChatReply whose `type` says what happened.
        """
        start_time = time.perf_counter()
        try:
            await run_cancellable(self.initialize(), cancel_event)
        except OperationCancelled:
            return self._finish(thread, message, self._cancelled_reply(thread), start_time, record=False)

        if thread is None:
            thread = self._current or self.new_thread()
        if thread.runtime is None:
            thread.runtime = self.runtime

        try:
            reply = await run_cancellable(self._run_turn(thread, message), cancel_event, timeout)
        except OperationCancelled:
            reply = self._cancelled_reply(thread)
        except asyncio.TimeoutError:
            logger.error(f"Turn timed out after {timeout}s")
            reply = ChatReply(
                type="error",
                content=f"Internal Error: timed out after {timeout} seconds",
                thread_id=thread.thread_id,
            )
        except (ConfigurationError, DiscoveryError):
            raise
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else None
            logger.error(f"Chat API error {e.status_code}: {body}")
            reply = ChatReply(
                type="api_error",
                content=f"API Error: {e.status_code} - {body or 'No details'}",
                status_code=e.status_code,
                thread_id=thread.thread_id,
            )
        except Exception as e:
            logger.error(f"Turn failed: {e}", exc_info=True)
            reply = ChatReply(
                type="error",
                content=f"Internal Error: {e}",
                thread_id=thread.thread_id,
            )
        return self._finish(thread, message, reply, start_time)

    async def _run_turn(self, thread: Thread, message: str) -> ChatReply:
        async with thread._lock:
            graph = thread.runtime.graph
            result = await graph.ainvoke(
                {"messages": [HumanMessage(content=message)]},
                config=thread.config(self.settings.RECURSION_LIMIT),
            )
        messages = turn_messages(result["messages"])
        content = content_to_text(messages[-1].content) if messages else ""
        return ChatReply(
            content=content,
            thread_id=thread.thread_id,
            tool_calls=collect_tool_calls(messages),
        )

    def _cancelled_reply(self, thread: Optional[Thread]) -> ChatReply:
        logger.info("Send cancelled")
        return ChatReply(
            type="cancelled",
            content="Operation cancelled.",
            thread_id=thread.thread_id if thread else None,
        )

    def _finish(
        self,
        thread: Optional[Thread],
        message: str,
        reply: ChatReply,
        start_time: float,
        record: bool = True,
    ) -> ChatReply:
        metrics.record_turn(reply.type, time.perf_counter() - start_time)
        if record and thread is not None:
            thread.turns.append(Turn(
                prompt=message,
                response=reply.content,
                status=reply.type,
                tool_calls=reply.tool_calls,
                finished_at=datetime.now(),
            ))
        return reply

    # ----------------------------------------------------------- tool calls
    async def call_tool(self, name: str, arguments: RawArguments = None) -> str:
        """Invoke one tool directly, bypassing the agent.

        Raises:
            KeyError: if the tool is not in the current catalogue.
        """
        runtime = await self.initialize()
        return await runtime.catalogue.adapter(name).invoke(arguments)
