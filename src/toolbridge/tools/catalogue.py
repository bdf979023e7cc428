"""Tool catalogue: one discovery pass worth of descriptors and adapters."""
import itertools
import json
import logging
import time
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterator, List, Literal, Mapping, Optional

from langchain_core.tools import BaseTool

from ..common.types import DiscoveryError, DuplicateToolError
from ..core.metrics import metrics
from .adapter import InvocationAdapter
from .binding import DescriptorTable, descriptor_table
from .schema import normalize_parameters
from .tool_types import RawTool, ToolDescriptor, ToolProvider

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["last_wins", "reject"]

_versions = itertools.count(1)


class Catalogue:
    """Immutable snapshot of discovered tools and their adapters.

    Descriptors and adapters are built together and never replaced
    individually; a refresh produces a new Catalogue.
    """

    def __init__(
        self,
        descriptors: Mapping[str, ToolDescriptor],
        adapters: Mapping[str, InvocationAdapter],
        version: Optional[int] = None,
    ):
        if descriptors.keys() != adapters.keys():
            raise ValueError("Catalogue descriptors and adapters must cover the same tools")
        self._descriptors = MappingProxyType(dict(descriptors))
        self._adapters = MappingProxyType(dict(adapters))
        self.version = version if version is not None else next(_versions)
        self.discovered_at = datetime.now()

    @property
    def descriptors(self) -> Mapping[str, ToolDescriptor]:
        return self._descriptors

    @property
    def adapters(self) -> Mapping[str, InvocationAdapter]:
        return self._adapters

    def get(self, name: str) -> Optional[ToolDescriptor]:
        """Get a tool descriptor by name."""
        return self._descriptors.get(name)

    def adapter(self, name: str) -> InvocationAdapter:
        """Get the adapter of a tool."""
        if name not in self._adapters:
            raise KeyError(f"Tool not found: {name}")
        return self._adapters[name]

    def names(self) -> List[str]:
        return list(self._descriptors.keys())

    def tools(self) -> List[BaseTool]:
        """LangChain tools for binding to the agent runtime."""
        return [adapter.as_tool() for adapter in self._adapters.values()]

    def descriptor_table(self) -> DescriptorTable:
        return descriptor_table(self._descriptors)

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.descriptor_table(), indent=indent, ensure_ascii=False)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return f"Catalogue(version={self.version}, tools={self.names()})"


def build_descriptor(raw_tool: RawTool) -> ToolDescriptor:
    """Normalize one listed tool."""
    schema = raw_tool.input_schema if isinstance(raw_tool.input_schema, dict) else {}
    return ToolDescriptor(
        name=raw_tool.name,
        description=raw_tool.description or "",
        parameters=normalize_parameters(raw_tool.input_schema),
        input_schema=schema,
    )


def build_catalogue(
    raw_tools: List[RawTool],
    provider: ToolProvider,
    duplicate_policy: DuplicatePolicy = "last_wins",
    tool_timeout: Optional[float] = None,
    strict: bool = False,
) -> Catalogue:
    """Build descriptors and adapters for a listed set of tools."""
    descriptors: Dict[str, ToolDescriptor] = {}
    adapters: Dict[str, InvocationAdapter] = {}

    for raw_tool in raw_tools:
        descriptor = build_descriptor(raw_tool)
        if descriptor.name in descriptors:
            if duplicate_policy == "reject":
                raise DuplicateToolError(descriptor.name)
            logger.warning(f"Duplicate tool name {descriptor.name}, keeping the last definition")

        logger.info(f"Tool: [{descriptor.name}] - {descriptor.description}")
        descriptors[descriptor.name] = descriptor
        adapters[descriptor.name] = InvocationAdapter(
            descriptor, provider, timeout=tool_timeout, strict=strict
        )

    return Catalogue(descriptors, adapters)


async def discover(
    provider: ToolProvider,
    duplicate_policy: DuplicatePolicy = "last_wins",
    tool_timeout: Optional[float] = None,
    strict: bool = False,
) -> Catalogue:
    """List the provider's tools once and build a catalogue from them.

    Raises:
        DiscoveryError: if the listing call fails or, under the `reject`
            policy, two tools share a name. No partial catalogue is returned.
    """
    start_time = time.perf_counter()
    try:
        raw_tools = await provider.list_tools()
        catalogue = build_catalogue(
            list(raw_tools),
            provider,
            duplicate_policy=duplicate_policy,
            tool_timeout=tool_timeout,
            strict=strict,
        )
    except DiscoveryError:
        metrics.record_discovery(time.perf_counter() - start_time, 0, success=False)
        raise
    except Exception as e:
        metrics.record_discovery(time.perf_counter() - start_time, 0, success=False)
        logger.error(f"Tool discovery failed: {e}")
        raise DiscoveryError(f"Tool discovery failed: {e}") from e

    metrics.record_discovery(time.perf_counter() - start_time, len(catalogue))
    logger.info(f"Discovery complete: {len(catalogue)} tools available")
    return catalogue
