"""
JobTestRunner - launch a whole job, or one step of it, from a test.

The runner owns no execution logic. It:
1. Synthesizes a unique ParameterSet when the caller supplies none
2. Resolves a step name against the job's topology (StepResolver)
3. Delegates to the injected Executor and returns its ExecutionResult

Restartability:
    An executor treats equal parameter sets as the same job instance. A
    launch without explicit parameters gets {"timestamp": <epoch millis>}
    so every unparameterized launch is a fresh instance. Two launches in
    the same millisecond produce equal sets and therefore collide; the clock
    is injectable so tests can pin this down.

Usage:
    from jobharness import JobTestRunner, LocalExecutor

    runner = JobTestRunner(LocalExecutor(), job)
    result = runner.launch_job()
    assert result.success

    result = runner.launch_step("validate")
"""

import logging
import time
from typing import Callable, Optional

from jobharness.executor import Executor
from jobharness.resolver import StepResolver
from jobharness.schemas import (
    ExecutionResult,
    Job,
    JobParameter,
    JobTopology,
    ParameterSet,
    ParameterType,
    Step,
)

logger = logging.getLogger(__name__)

# Key of the single parameter added to unparameterized launches
UNIQUE_KEY = "timestamp"


def current_millis() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class JobTestRunner:
    """
    Test-facing launcher for a single job.

    Collaborators are injected at construction and never replaced. The only
    state the runner accumulates is its resolver's step index.

    Args:
        executor: Executor performing the launches
        job: The job under test
        clock: Millisecond clock used for unique parameters (default: wall clock)
        unique_key: Parameter key used for unique parameters
        eager_index: Build the step index now instead of on first step launch
    """

    def __init__(
        self,
        executor: Executor,
        job: Job,
        *,
        clock: Optional[Callable[[], int]] = None,
        unique_key: str = UNIQUE_KEY,
        eager_index: bool = False,
    ):
        if executor is None:
            raise ValueError("executor is required")
        if job is None:
            raise ValueError("job is required")

        self._executor = executor
        self._job = job
        self._clock = clock or current_millis
        self._unique_key = unique_key
        self._resolver = StepResolver(job.topology)

        if eager_index:
            self._resolver.build_index()

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def job(self) -> Job:
        return self._job

    @property
    def topology(self) -> JobTopology:
        return self._job.topology

    @property
    def resolver(self) -> StepResolver:
        return self._resolver

    def make_unique_parameters(self) -> ParameterSet:
        """
        Build a ParameterSet containing only the current timestamp.

        Returns:
            {unique_key: JobParameter(<epoch millis>, long)}
        """
        millis = int(self._clock())
        return ParameterSet({self._unique_key: JobParameter(millis, ParameterType.LONG)})

    def launch_job(self, params: Optional[ParameterSet] = None) -> ExecutionResult:
        """
        Launch the entire job, including all steps.

        Args:
            params: Launch parameters; a unique set is generated when omitted

        Returns:
            ExecutionResult, so the test can validate the exit status

        Raises:
            ExecutionError: Propagated unchanged from the executor
        """
        if params is None:
            params = self.make_unique_parameters()

        logger.info(f"Launching job {self._job.name} {params.to_properties()}")
        return self._executor.run_job(self._job, params)

    def get_step(self, step_name: str) -> Step:
        """
        Resolve a step of the job by exact name.

        Raises:
            StepNotFoundError, InvalidTopologyError, DuplicateStepNameError,
            UnsupportedTopologyError: See StepResolver.resolve()
        """
        return self._resolver.resolve(step_name)

    def launch_step(self, step_name: str, params: Optional[ParameterSet] = None) -> ExecutionResult:
        """
        Launch just the named step of the job.

        The step is resolved before anything else happens: a resolution error
        propagates unwrapped and the executor is never called.

        Args:
            step_name: Exact name of the step (or flow state) to launch
            params: Launch parameters; a unique set is generated when omitted

        Returns:
            ExecutionResult from the executor's single-step launch
        """
        step = self.get_step(step_name)

        if params is None:
            params = self.make_unique_parameters()

        logger.info(f"Launching step {step.name} of job {self._job.name} {params.to_properties()}")
        return self._executor.run_step(step, params)
