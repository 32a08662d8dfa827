"""
Telemetry recorder.

Collects, for a set of tracked nodes, the trust score and raw trust at every
tick plus the trust score at each job assignment, and the running
results-per-completed-job ratio. Nothing in the core reads these series back.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

Series = List[Tuple[int, float]]


@dataclass
class NodeSeries:
    """Time series collected for one tracked node."""
    node_id: int
    index: int  # 1-based position among tracked nodes, used for plot titles
    label: str = ""
    trust: Series = field(default_factory=list)
    trust_abs: Series = field(default_factory=list)
    jobs: Series = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "index": self.index,
            "label": self.label,
            "trust": self.trust,
            "trust_abs": self.trust_abs,
            "jobs": self.jobs,
        }


class TelemetryRecorder:
    """Sink for per-tick and per-assignment measurements."""

    def __init__(
        self,
        tracked_node_ids: Iterable[int] = (),
        labels: Optional[Dict[int, str]] = None,
    ):
        labels = labels or {}
        self.nodes: Dict[int, NodeSeries] = {}
        for index, node_id in enumerate(tracked_node_ids, start=1):
            self.nodes[node_id] = NodeSeries(
                node_id=node_id,
                index=index,
                label=labels.get(node_id, f"Node {index}"),
            )
        self.confirmations: Series = []

    def tracked_ids(self) -> List[int]:
        return list(self.nodes)

    def record_tick(self, tick: int, node_id: int, trust_score: float, raw_trust: float):
        series = self.nodes.get(node_id)
        if series is None:
            return
        series.trust.append((tick, trust_score))
        series.trust_abs.append((tick, raw_trust))

    def record_assignment(self, tick: int, node_id: int, trust_score: float):
        series = self.nodes.get(node_id)
        if series is None:
            return
        series.jobs.append((tick, trust_score))

    def record_confirmations(self, tick: int, ratio: float):
        """Results sent per completed job so far."""
        self.confirmations.append((tick, ratio))

    def series_for(self, node_id: int) -> NodeSeries:
        return self.nodes[node_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [series.to_dict() for series in self.nodes.values()],
            "confirmations": self.confirmations,
        }

    def save_json(self, path: str):
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
