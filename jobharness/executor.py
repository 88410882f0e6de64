"""
Executor - the launch boundary the runner delegates to.

The runner never executes anything itself. It hands a Job (or a single Step)
and a ParameterSet to an Executor and returns whatever ExecutionResult comes
back. Executors signal refusal or infrastructure failure by raising
ExecutionError; a step that fails while running is reported in the result.

Implementations:
- NoOpExecutor: returns COMPLETED without running anything (dry-run mode)
- LocalExecutor: runs steps in-process, sequentially, fail-fast, and enforces
  job-instance identity for the lifetime of the executor:

    (job name, ParameterSet) -> last BatchStatus

    COMPLETED instance launched again          -> JobInstanceAlreadyCompleteError
    instance still running                     -> JobExecutionAlreadyRunningError
    FAILED instance of a non-restartable job   -> JobRestartError
    required parameter keys missing            -> JobParametersInvalidError
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from jobharness.errors import (
    ExecutionError,
    JobExecutionAlreadyRunningError,
    JobInstanceAlreadyCompleteError,
    JobParametersInvalidError,
    JobRestartError,
)
from jobharness.schemas import (
    BatchStatus,
    ExecutionResult,
    Job,
    ParameterSet,
    Step,
    StepOutcome,
    TopologyKind,
)

logger = logging.getLogger(__name__)

# Name prefix of the synthetic job wrapping a single-step launch
STEP_JOB_PREFIX = "step:"


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Executor(ABC):
    """
    Abstract base class for job/step executors.

    Both operations block until a terminal ExecutionResult is available.
    """

    @abstractmethod
    def run_job(self, job: Job, params: ParameterSet) -> ExecutionResult:
        """
        Launch every step of a job.

        Args:
            job: The job to launch
            params: Identity and input of this launch

        Returns:
            The terminal ExecutionResult

        Raises:
            ExecutionError: If the launch is refused or cannot be performed
        """
        pass

    @abstractmethod
    def run_step(self, step: Step, params: ParameterSet) -> ExecutionResult:
        """
        Launch a single step on its own.

        Args:
            step: The step to launch
            params: Identity and input of this launch

        Returns:
            The terminal ExecutionResult

        Raises:
            ExecutionError: If the launch is refused or cannot be performed
        """
        pass


class NoOpExecutor(Executor):
    """
    No-op executor for testing and dry-run mode.

    Returns COMPLETED results without executing anything.
    """

    def run_job(self, job: Job, params: ParameterSet) -> ExecutionResult:
        now = _utcnow()
        return ExecutionResult(
            job_name=job.name,
            status=BatchStatus.COMPLETED,
            parameters=params,
            started_at=now,
            completed_at=now,
            exit_description="noop",
        )

    def run_step(self, step: Step, params: ParameterSet) -> ExecutionResult:
        now = _utcnow()
        return ExecutionResult(
            job_name=f"{STEP_JOB_PREFIX}{step.name}",
            status=BatchStatus.COMPLETED,
            parameters=params,
            started_at=now,
            completed_at=now,
            exit_description="noop",
        )


class LocalExecutor(Executor):
    """
    In-process executor with job-instance identity tracking.

    Steps run sequentially in declaration order. For graph topologies only
    the StepState nodes run; decision and end nodes are not evaluated. The
    first failing step stops the launch and the result is FAILED.

    Instance bookkeeping lives in memory and is lost with the executor.

    Usage:
        executor = LocalExecutor()
        runner = JobTestRunner(executor, job)
        result = runner.launch_job()
    """

    def __init__(self) -> None:
        self._instances: dict[tuple[str, ParameterSet], BatchStatus] = {}
        self._running: set[tuple[str, ParameterSet]] = set()
        self._lock = threading.Lock()

    def run_job(self, job: Job, params: ParameterSet) -> ExecutionResult:
        kind = getattr(job.topology, "kind", None)
        if kind not in (TopologyKind.LINEAR, TopologyKind.GRAPH):
            raise ExecutionError(
                f"Cannot run job '{job.name}': unsupported topology "
                f"{type(job.topology).__name__}",
                job_name=job.name,
            )
        return self._launch(
            job.name,
            list(job.topology.iter_steps()),
            params,
            restartable=job.restartable,
            required=job.required_parameters,
        )

    def run_step(self, step: Step, params: ParameterSet) -> ExecutionResult:
        return self._launch(f"{STEP_JOB_PREFIX}{step.name}", [step], params)

    def get_last_status(self, job_name: str, params: ParameterSet) -> Optional[BatchStatus]:
        """Status of the last launch of an instance, None if never launched."""
        with self._lock:
            return self._instances.get((job_name, params))

    def clear(self) -> None:
        """Forget all job instances (for testing)."""
        with self._lock:
            self._instances.clear()
            self._running.clear()

    def _launch(
        self,
        job_name: str,
        steps: Sequence[Step],
        params: ParameterSet,
        restartable: bool = True,
        required: Sequence[str] = (),
    ) -> ExecutionResult:
        missing = [key for key in required if key not in params]
        if missing:
            raise JobParametersInvalidError(
                f"Job '{job_name}' is missing required parameters: {sorted(missing)}",
                job_name=job_name,
            )

        key = (job_name, params)
        with self._lock:
            if key in self._running:
                raise JobExecutionAlreadyRunningError(
                    f"A job execution for this job is already running: {job_name} "
                    f"{params.to_properties()}",
                    job_name=job_name,
                )
            last = self._instances.get(key)
            if last == BatchStatus.COMPLETED:
                raise JobInstanceAlreadyCompleteError(
                    f"A job instance already exists and is complete for "
                    f"parameters={params.to_properties()}. If you want to run this job "
                    f"again, change the parameters.",
                    job_name=job_name,
                )
            if last is not None and not restartable:
                raise JobRestartError(
                    f"JobInstance already exists and is not restartable: {job_name}",
                    job_name=job_name,
                )
            self._running.add(key)

        status = BatchStatus.UNKNOWN
        try:
            result = self._execute_steps(job_name, steps, params)
            status = result.status
            return result
        finally:
            with self._lock:
                self._running.discard(key)
                self._instances[key] = status

    def _execute_steps(
        self,
        job_name: str,
        steps: Sequence[Step],
        params: ParameterSet,
    ) -> ExecutionResult:
        started_at = _utcnow()
        outcomes: list[StepOutcome] = []
        status = BatchStatus.COMPLETED
        exit_description = ""

        logger.debug(f"Executing {job_name} with {len(steps)} step(s)")

        for step in steps:
            execute = getattr(step, "execute", None)
            if not callable(execute):
                raise ExecutionError(
                    f"Step '{step.name}' has no execute() method",
                    job_name=job_name,
                    step_name=step.name,
                )

            step_started = _utcnow()
            try:
                output: Any = execute(params)
            except Exception as e:
                error = {"type": type(e).__name__, "message": str(e)}
                outcomes.append(StepOutcome(
                    step_name=step.name,
                    status=BatchStatus.FAILED,
                    started_at=step_started,
                    completed_at=_utcnow(),
                    error=error,
                ))
                status = BatchStatus.FAILED
                exit_description = f"Step '{step.name}' failed: {error['type']}: {error['message']}"
                logger.warning(f"{job_name}: {exit_description}")
                break

            outcomes.append(StepOutcome(
                step_name=step.name,
                status=BatchStatus.COMPLETED,
                started_at=step_started,
                completed_at=_utcnow(),
                output=output,
            ))

        return ExecutionResult(
            job_name=job_name,
            status=status,
            parameters=params,
            step_outcomes=tuple(outcomes),
            started_at=started_at,
            completed_at=_utcnow(),
            exit_description=exit_description,
        )
