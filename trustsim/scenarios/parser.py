"""
YAML scenario parser.

Every malformed input surfaces as a ValidationError naming the offending field.
"""

from typing import Any, Dict, List, Optional

import yaml

from ..errors import ValidationError
from ..simulation import STALL_TICKS
from .schema import (
    DEFAULT_ACTIVE_JOBS, DEFAULT_SEED,
    JobSpec, NodeGroupSpec, Scenario, ScenarioAssertion, ValueRange,
)


def parse_scenario(yaml_content: str) -> Scenario:
    """Parse a scenario from YAML content."""
    try:
        data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Scenario must be a mapping")
    return _parse_scenario_dict(data)


def load_scenario(file_path: str) -> Scenario:
    """Load a scenario from a YAML file."""
    with open(file_path, 'r') as f:
        return parse_scenario(f.read())


def _to_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name}: {value!r}. Expected an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {name}: {value!r}. Expected an integer") from e


def _to_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name}: {value!r}. Expected a number")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {name}: {value!r}. Expected a number") from e


def _require_mapping(value: Any, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


def _require_list(value: Any, name: str) -> List[Any]:
    if not isinstance(value, list):
        raise ValidationError(f"{name} must be a list, got {type(value).__name__}")
    return value


def _parse_scenario_dict(data: Dict[str, Any]) -> Scenario:
    """Parse a scenario from a dictionary."""
    required = ["name", "nodes", "jobs"]
    for field in required:
        if field not in data:
            raise ValidationError(f"Missing required field: {field}")

    groups = _require_list(data["nodes"], "nodes")
    nodes = [_parse_node_group(group, i) for i, group in enumerate(groups)]
    jobs = _parse_jobs(_require_mapping(data["jobs"], "jobs"))

    tracked = [
        _to_int(i, "tracked_nodes entry")
        for i in _require_list(data.get("tracked_nodes", []), "tracked_nodes")
    ]
    node_count = sum(group.count for group in nodes)
    for index in tracked:
        if not 0 <= index < node_count:
            raise ValidationError(
                f"Tracked node index {index} out of range for {node_count} nodes"
            )

    stall_ticks = _to_int(data.get("stall_ticks", STALL_TICKS), "stall_ticks")
    if stall_ticks <= 0:
        raise ValidationError(f"stall_ticks must be positive, got {stall_ticks}")

    max_ticks = data.get("max_ticks")

    return Scenario(
        name=str(data["name"]),
        description=data.get("description", ""),
        nodes=nodes,
        jobs=jobs,
        seed=_to_int(data.get("seed", DEFAULT_SEED), "seed"),
        stall_ticks=stall_ticks,
        max_ticks=_to_int(max_ticks, "max_ticks") if max_ticks is not None else None,
        tracked_nodes=tracked,
        assertions=_parse_assertions(data.get("assertions", [])),
    )


def _parse_range(
    value: Any,
    name: str,
    lo: Optional[float] = None,
    hi: Optional[float] = None,
) -> ValueRange:
    """Parse a number or a [lo, hi] pair into a range."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        bounds = (float(value), float(value))
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        bounds = (_to_float(value[0], name), _to_float(value[1], name))
    else:
        raise ValidationError(f"Invalid {name}: {value!r}. Expected a number or [lo, hi]")

    if bounds[0] > bounds[1]:
        raise ValidationError(f"Invalid {name}: lower bound above upper bound in {value!r}")
    if lo is not None and bounds[0] < lo:
        raise ValidationError(f"Invalid {name}: {value!r} is below {lo}")
    if hi is not None and bounds[1] > hi:
        raise ValidationError(f"Invalid {name}: {value!r} is above {hi}")
    return bounds


def _parse_node_group(data: Any, position: int) -> NodeGroupSpec:
    """Parse a node group specification."""
    data = _require_mapping(data, f"nodes[{position}]")

    count = _to_int(data.get("count", 1), "nodes.count")
    if count < 0:
        raise ValidationError(f"Node count must be non-negative, got {count}")

    trust = _to_float(data.get("trust", 0.0), "nodes.trust")
    if trust < 0:
        raise ValidationError(f"Node trust must be non-negative, got {trust}")

    return NodeGroupSpec(
        count=count,
        performance=_parse_range(data.get("performance", 0.0), "performance", 0.0, 1.0),
        false_ratio=_parse_range(data.get("false_ratio", 0.0), "false_ratio", 0.0, 1.0),
        trust=trust,
        last_action_time=_to_int(data.get("last_action_time", 0), "nodes.last_action_time"),
        label=str(data.get("label", "")),
    )


def _parse_jobs(data: Dict[str, Any]) -> JobSpec:
    """Parse the job backlog specification."""
    if "count" not in data:
        raise ValidationError("Missing required field: jobs.count")

    count = _to_int(data["count"], "jobs.count")
    if count < 0:
        raise ValidationError(f"Job count must be non-negative, got {count}")

    active = _to_int(data.get("active", min(count, DEFAULT_ACTIVE_JOBS)), "jobs.active")
    if not 0 <= active <= count:
        raise ValidationError(f"Active jobs must be between 0 and {count}, got {active}")

    return JobSpec(
        count=count,
        difficulty=_parse_range(data.get("difficulty", 1.0), "difficulty", 0.0),
        active=active,
    )


def _parse_assertions(data: Any) -> List[ScenarioAssertion]:
    """Parse assertion list."""
    assertions = []
    for i, assert_data in enumerate(_require_list(data, "assertions")):
        assert_data = _require_mapping(assert_data, f"assertions[{i}]")
        if "type" not in assert_data:
            raise ValidationError(f"Missing required field: assertions[{i}].type")

        assertion = ScenarioAssertion(
            type=assert_data["type"],
            description=assert_data.get("description", assert_data["type"]),
            params={k: v for k, v in assert_data.items() if k not in ["type", "description"]},
        )
        assertions.append(assertion)

    return assertions
