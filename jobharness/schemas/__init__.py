"""
jobharness.schemas - Data structures shared by the runner and executors.

Job -> (LinearTopology | GraphTopology) -> Step
ParameterSet -> launch -> ExecutionResult -> StepOutcome

- Job / topologies: what can be launched and how its steps are arranged
- ParameterSet: the identity key and input of one launch
- ExecutionResult: what a launch returns
"""

from .params import (
    ParameterType,
    JobParameter,
    ParameterSet,
    parse_parameter,
    parse_parameters,
)
from .topology import (
    TopologyKind,
    Step,
    State,
    StepState,
    DecisionState,
    EndState,
    LinearTopology,
    GraphTopology,
    JobTopology,
    Job,
)
from .execution import (
    BatchStatus,
    StepOutcome,
    ExecutionResult,
)

__all__ = [
    # Parameters
    "ParameterType",
    "JobParameter",
    "ParameterSet",
    "parse_parameter",
    "parse_parameters",
    # Topology
    "TopologyKind",
    "Step",
    "State",
    "StepState",
    "DecisionState",
    "EndState",
    "LinearTopology",
    "GraphTopology",
    "JobTopology",
    "Job",
    # Execution
    "BatchStatus",
    "StepOutcome",
    "ExecutionResult",
]
