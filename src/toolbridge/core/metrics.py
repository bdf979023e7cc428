"""Metrics collection for tool invocations, discovery and turns."""
from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


@dataclass
class ToolMetrics:
    """Metrics for one tool's invocations."""
    tool_name: str
    call_count: int = 0
    failure_count: int = 0
    empty_count: int = 0
    total_time: float = 0.0
    last_called: Optional[datetime] = None

    def record(self, elapsed: float, success: bool = True, empty: bool = False) -> None:
        """Record one invocation."""
        self.call_count += 1
        self.total_time += elapsed
        self.last_called = datetime.now()
        if not success:
            self.failure_count += 1
        elif empty:
            self.empty_count += 1

    @property
    def average_time(self) -> float:
        return self.total_time / self.call_count if self.call_count else 0.0


@dataclass
class DiscoveryMetrics:
    """Metrics for catalogue discovery passes."""
    total_passes: int = 0
    failed_passes: int = 0
    last_tool_count: int = 0
    discovery_times: List[float] = field(default_factory=list)

    def add_pass(self, discovery_time: float, tool_count: int, success: bool = True) -> None:
        self.total_passes += 1
        self.discovery_times.append(discovery_time)
        if success:
            self.last_tool_count = tool_count
        else:
            self.failed_passes += 1

    @property
    def average_discovery_time(self) -> float:
        if not self.discovery_times:
            return 0.0
        return sum(self.discovery_times) / len(self.discovery_times)


@dataclass
class TurnMetrics:
    """Metrics for conversation turns, by outcome."""
    total_turns: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)
    turn_times: List[float] = field(default_factory=list)

    def add_turn(self, outcome: str, turn_time: float) -> None:
        self.total_turns += 1
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1
        self.turn_times.append(turn_time)

    @property
    def average_turn_time(self) -> float:
        return sum(self.turn_times) / len(self.turn_times) if self.turn_times else 0.0


class MetricsCollector:
    """Collect and aggregate metrics."""
    def __init__(self):
        self.tool_metrics: Dict[str, ToolMetrics] = {}
        self.discovery_metrics = DiscoveryMetrics()
        self.turn_metrics = TurnMetrics()
        self.start_time = datetime.now()

    def record_tool_call(
        self,
        tool_name: str,
        elapsed: float,
        success: bool = True,
        empty: bool = False
    ) -> None:
        """Record one tool invocation."""
        tool = self.tool_metrics.setdefault(tool_name, ToolMetrics(tool_name=tool_name))
        tool.record(elapsed, success=success, empty=empty)

    def record_discovery(self, discovery_time: float, tool_count: int, success: bool = True) -> None:
        self.discovery_metrics.add_pass(discovery_time, tool_count, success=success)

    def record_turn(self, outcome: str, turn_time: float) -> None:
        self.turn_metrics.add_turn(outcome, turn_time)

    def reset(self) -> None:
        """Drop everything collected so far."""
        self.__init__()

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary."""
        total_time = (datetime.now() - self.start_time).total_seconds()

        return {
            "uptime_seconds": total_time,
            "tools": {
                name: {
                    "call_count": tool.call_count,
                    "failure_count": tool.failure_count,
                    "empty_count": tool.empty_count,
                    "average_time": tool.average_time,
                }
                for name, tool in self.tool_metrics.items()
            },
            "discovery": {
                "total_passes": self.discovery_metrics.total_passes,
                "failed_passes": self.discovery_metrics.failed_passes,
                "last_tool_count": self.discovery_metrics.last_tool_count,
                "average_discovery_time": self.discovery_metrics.average_discovery_time,
            },
            "turns": {
                "total_turns": self.turn_metrics.total_turns,
                "outcomes": self.turn_metrics.outcomes,
                "average_turn_time": self.turn_metrics.average_turn_time,
            },
        }

# Global metrics collector instance
metrics = MetricsCollector()
