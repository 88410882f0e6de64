"""
StepResolver - map a step name to a Step within a job topology.

Resolution rules:
- GraphTopology: look the name up among the flow states. The node must be a
  StepState; any other node kind is an InvalidTopologyError.
- LinearTopology: steps are indexed by name on first use. The index is built
  by scanning the topology exactly once and is then reused for the lifetime
  of the resolver. Duplicate names fail the build.
- Anything else: UnsupportedTopologyError.

Lookups are case-sensitive exact matches. Nothing is trimmed or normalized.
"""

import threading
from collections import Counter
from types import MappingProxyType
from typing import Mapping, Optional

from jobharness.errors import (
    DuplicateStepNameError,
    InvalidTopologyError,
    StepNotFoundError,
    UnsupportedTopologyError,
)
from jobharness.schemas import GraphTopology, JobTopology, LinearTopology, Step, StepState, TopologyKind


StepIndex = Mapping[str, Step]


class StepResolver:
    """
    Resolves step names against one bound topology.

    The StepIndex for a LinearTopology is built lazily and published once:
    concurrent first callers either see the complete index or build it
    themselves under the lock, never a partial one.

    Usage:
        resolver = StepResolver(job.topology)
        step = resolver.resolve("validate")
    """

    def __init__(self, topology: JobTopology):
        self._topology = topology
        self._index: Optional[StepIndex] = None
        self._lock = threading.Lock()

    @property
    def topology(self) -> JobTopology:
        return self._topology

    @property
    def is_indexed(self) -> bool:
        """True once a linear step index has been published."""
        return self._index is not None

    def resolve(self, step_name: str) -> Step:
        """
        Resolve a step by exact name.

        Args:
            step_name: The step (or flow state) name

        Returns:
            The matching Step

        Raises:
            StepNotFoundError: If the name is absent
            InvalidTopologyError: If a graph node of that name is not a step
            DuplicateStepNameError: If the linear topology has duplicate names
            UnsupportedTopologyError: If the topology is of an unknown kind
        """
        kind = getattr(self._topology, "kind", None)
        if kind == TopologyKind.GRAPH:
            return self._resolve_graph(step_name)
        if kind == TopologyKind.LINEAR:
            return self._resolve_linear(step_name)
        raise UnsupportedTopologyError(self._topology)

    def build_index(self) -> StepIndex:
        """
        Force the one-time index build for a linear topology.

        Returns an empty index for graph topologies, which are queried
        directly.
        """
        kind = getattr(self._topology, "kind", None)
        if kind == TopologyKind.GRAPH:
            return MappingProxyType({})
        if kind != TopologyKind.LINEAR:
            raise UnsupportedTopologyError(self._topology)
        return self._get_index()

    def _resolve_graph(self, step_name: str) -> Step:
        topology: GraphTopology = self._topology  # type: ignore[assignment]
        state = topology.get_state(step_name)
        if state is None:
            raise StepNotFoundError(step_name)
        if not isinstance(state, StepState):
            raise InvalidTopologyError(step_name, getattr(state, "kind", type(state).__name__))
        return state.step

    def _resolve_linear(self, step_name: str) -> Step:
        index = self._get_index()
        step = index.get(step_name)
        if step is None:
            raise StepNotFoundError(step_name)
        return step

    def _get_index(self) -> StepIndex:
        index = self._index
        if index is not None:
            return index

        with self._lock:
            # Another caller may have published while we waited
            if self._index is None:
                self._index = self._build_index()
            return self._index

    def _build_index(self) -> StepIndex:
        topology: LinearTopology = self._topology  # type: ignore[assignment]
        steps = list(topology.iter_steps())

        counts = Counter(step.name for step in steps)
        duplicates = [name for name, n in counts.items() if n > 1]
        if duplicates:
            raise DuplicateStepNameError(duplicates)

        return MappingProxyType({step.name: step for step in steps})


def resolve_step(topology: JobTopology, step_name: str) -> Step:
    """
    Resolve a step without keeping a cache.

    Stateless form of StepResolver.resolve(); a linear topology is scanned on
    every call. Use a StepResolver when resolving repeatedly.
    """
    return StepResolver(topology).resolve(step_name)
