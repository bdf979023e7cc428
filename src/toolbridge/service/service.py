"""HTTP service exposing the session manager."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..agents.manager import SessionManager, Thread
from ..common.types import ChatReply, ConfigurationError, DiscoveryError
from ..core.metrics import metrics
from ..core.settings import settings
from .schema import (
    ServiceMetadata,
    ThreadHistory,
    ThreadInfo,
    ThreadInput,
    ThreadList,
    ToolCallInput,
    ToolCallOutput,
    ToolInfo,
    ToolList,
    UserInput,
)

logger = logging.getLogger(__name__)


def verify_bearer(
    http_auth: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(HTTPBearer(description="Please provide AUTH_SECRET api key.", auto_error=False)),
    ],
) -> None:
    if not settings.AUTH_SECRET:
        return
    auth_secret = settings.AUTH_SECRET.get_secret_value()
    if not http_auth or http_auth.credentials != auth_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # A manager placed on app.state before startup is used as is
    manager = getattr(app.state, "manager", None)
    if manager is None:
        manager = SessionManager(settings)
        app.state.manager = manager
    try:
        yield
    finally:
        await manager.aclose()
        app.state.manager = None


app = FastAPI(lifespan=lifespan)
router = APIRouter(dependencies=[Depends(verify_bearer)])


def get_manager(request: Request) -> SessionManager:
    manager = getattr(request.app.state, "manager", None)
    if manager is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not ready")
    return manager


Manager = Annotated[SessionManager, Depends(get_manager)]


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"type": "configuration_error", "detail": str(exc), "missing": exc.missing},
    )


@app.exception_handler(DiscoveryError)
async def discovery_error_handler(request: Request, exc: DiscoveryError) -> JSONResponse:
    logger.error(f"Discovery error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"type": "discovery_error", "detail": str(exc)},
    )


def _thread_info(manager: SessionManager, thread: Thread) -> ThreadInfo:
    return ThreadInfo(
        thread_id=thread.thread_id,
        turns=len(thread.turns),
        current=thread is manager.current_thread,
        created_at=thread.created_at,
    )


@router.get("/info")
async def info(manager: Manager) -> ServiceMetadata:
    catalogue = manager.catalogue
    return ServiceMetadata(
        agent_name=manager.settings.AGENT_NAME,
        model=manager.settings.LLM_MODEL,
        server=manager.settings.MCP_SERVER,
        initialized=manager.is_initialized,
        catalogue_version=catalogue.version if catalogue else None,
        tool_count=len(catalogue) if catalogue else 0,
    )


@router.get("/tools")
async def tools(manager: Manager) -> ToolList:
    """List the discovered tools, initializing on first use."""
    runtime = await manager.initialize()
    catalogue = runtime.catalogue
    return ToolList(
        version=catalogue.version,
        discovered_at=catalogue.discovered_at,
        tools=[
            ToolInfo(name=tool.name, description=tool.description, parameters=tool.parameters)
            for tool in catalogue
        ],
    )


@router.post("/tools/refresh")
async def refresh_tools(manager: Manager, migrate: bool = False) -> ToolList:
    """Re-discover tools; threads move to the new catalogue only with `migrate`."""
    await manager.refresh_catalogue(migrate=migrate)
    return await tools(manager)


@router.post("/tools/{name}/call")
async def call_tool(name: str, tool_input: ToolCallInput, manager: Manager) -> ToolCallOutput:
    """Invoke one tool directly."""
    try:
        output = await manager.call_tool(name, tool_input.arguments)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Tool not found: {name}")
    return ToolCallOutput(tool=name, output=output)


@router.post("/invoke")
async def invoke(user_input: UserInput, manager: Manager) -> ChatReply:
    """Run one turn and return the final reply.

    Upstream and internal failures come back with status 200 and a `type`
    other than `message`.
    """
    thread = None
    if user_input.thread_id is not None:
        thread = manager.get_thread(user_input.thread_id) or manager.new_thread(
            user_input.thread_id, make_current=False
        )
    return await manager.send(user_input.message, thread=thread, timeout=user_input.timeout)


@router.get("/threads")
async def list_threads(manager: Manager) -> ThreadList:
    threads = [manager.get_thread(thread_id) for thread_id in manager.list_threads()]
    current = manager.current_thread
    return ThreadList(
        threads=[_thread_info(manager, thread) for thread in threads if thread is not None],
        current=current.thread_id if current else None,
    )


@router.post("/threads")
async def new_thread(thread_input: ThreadInput, manager: Manager) -> ThreadInfo:
    thread = manager.new_thread(thread_input.thread_id)
    return _thread_info(manager, thread)


@router.post("/threads/reset")
async def reset_thread(manager: Manager) -> ThreadInfo:
    thread = manager.reset_current()
    return _thread_info(manager, thread)


@router.post("/threads/{thread_id}/switch")
async def switch_thread(thread_id: str, manager: Manager) -> ThreadInfo:
    if not manager.switch_to(thread_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Thread not found: {thread_id}")
    return _thread_info(manager, manager.current_thread)


@router.get("/threads/{thread_id}/history")
async def history(thread_id: str, manager: Manager) -> ThreadHistory:
    thread = manager.get_thread(thread_id)
    if thread is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Thread not found: {thread_id}")
    return ThreadHistory(thread_id=thread_id, turns=thread.turns)


@router.get("/metrics")
async def get_metrics() -> Dict[str, Any]:
    return metrics.get_summary()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(router)


def main() -> None:
    import uvicorn

    from ..core.logging_config import setup_logging

    setup_logging(settings.LOG_LEVEL)
    uvicorn.run("toolbridge.service.service:app", host="0.0.0.0", port=8080)
