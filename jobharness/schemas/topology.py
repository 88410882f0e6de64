"""
Job topology schemas - how the steps of a job are arranged.

A Job owns exactly one topology, fixed at construction:

- LinearTopology: an ordered sequence of steps (names unique)
- GraphTopology:  a mapping of state name -> State node. Only StepState
                  nodes carry an executable Step; decision and end nodes
                  are structural and never launched on their own.

Each topology variant declares its TopologyKind once as a class attribute.
Consumers dispatch on that tag instead of inspecting arbitrary types.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, ClassVar, Optional, Union

from .params import ParameterSet


class TopologyKind(str, Enum):
    """Tag identifying a topology variant."""
    LINEAR = "linear"
    GRAPH = "graph"


@dataclass(frozen=True)
class Step:
    """
    A named unit of executable work.

    Equality is by name only; the callable does not take part.

    Attributes:
        name: Unique name of the step within its job
        func: Optional callable receiving the launch ParameterSet
    """
    name: str
    func: Optional[Callable[[ParameterSet], Any]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Step name must be a non-empty string")

    def execute(self, params: ParameterSet) -> Any:
        """Run the step body. A step without a callable is a no-op."""
        if self.func is None:
            return None
        return self.func(params)


# =============================================================================
# FLOW NODES
# =============================================================================


class State:
    """Base class for nodes of a GraphTopology."""

    kind: ClassVar[str] = "state"


@dataclass(frozen=True)
class StepState(State):
    """A flow node that executes a Step."""
    kind: ClassVar[str] = "step"
    step: Step


@dataclass(frozen=True)
class DecisionState(State):
    """A routing node. Carries a label only; nothing evaluates it here."""
    kind: ClassVar[str] = "decision"
    label: str = ""


@dataclass(frozen=True)
class EndState(State):
    """A terminal node with the status a flow would end on."""
    kind: ClassVar[str] = "end"
    status: str = "COMPLETED"


# =============================================================================
# TOPOLOGIES
# =============================================================================


@dataclass(frozen=True)
class LinearTopology:
    """
    An ordered sequence of steps.

    iter_steps() is the single scan point used to index the steps by name.
    """
    kind: ClassVar[TopologyKind] = TopologyKind.LINEAR
    steps: tuple[Step, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def iter_steps(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


@dataclass(frozen=True)
class GraphTopology:
    """
    A named-state flow graph.

    States keep their declaration order. The mapping is read-only once the
    topology is built.
    """
    kind: ClassVar[TopologyKind] = TopologyKind.GRAPH
    states: Mapping[str, State] = field(default_factory=dict)

    def __post_init__(self):
        states = dict(self.states)
        for name, state in states.items():
            if not isinstance(state, State):
                raise TypeError(f"State '{name}' must be a State node, got {type(state).__name__}")
        object.__setattr__(self, "states", MappingProxyType(states))

    def get_state(self, name: str) -> Optional[State]:
        """Get a state by exact name."""
        return self.states.get(name)

    def iter_steps(self) -> Iterator[Step]:
        """Steps of the StepState nodes, in declaration order."""
        for state in self.states.values():
            if isinstance(state, StepState):
                yield state.step

    def __len__(self) -> int:
        return len(self.states)


JobTopology = Union[LinearTopology, GraphTopology]


@dataclass(frozen=True)
class Job:
    """
    A launchable batch job.

    Attributes:
        name: Job name; together with a ParameterSet it identifies an instance
        topology: The job's step arrangement, fixed for the job's lifetime
        restartable: Whether a failed instance may be launched again
        required_parameters: Keys every launch must supply
    """
    name: str
    topology: JobTopology
    restartable: bool = True
    required_parameters: tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Job name must be a non-empty string")
        object.__setattr__(self, "required_parameters", tuple(self.required_parameters))

    @classmethod
    def linear(cls, name: str, steps: Iterable[Step], **kwargs: Any) -> "Job":
        """Convenience constructor for a job over an ordered step list."""
        return cls(name=name, topology=LinearTopology(tuple(steps)), **kwargs)

    @classmethod
    def graph(cls, name: str, states: Mapping[str, State], **kwargs: Any) -> "Job":
        """Convenience constructor for a job over a flow graph."""
        return cls(name=name, topology=GraphTopology(states), **kwargs)

    def step_names(self) -> list[str]:
        """Names of the executable steps, in declaration order."""
        return [step.name for step in self.topology.iter_steps()]
