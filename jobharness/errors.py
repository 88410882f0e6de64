"""
Error classes for jobharness.

Two families of errors reach a caller:
- StepResolutionError: a step name could not be turned into a Step
  (missing, not executable, or the topology is inconsistent)
- ExecutionError: the executor refused or failed to launch

Error handling contract:
- Nothing here is retried or recovered internally
- Resolution errors are raised before the executor is ever called
- Executor errors are propagated to the caller unchanged
"""

from typing import Iterable, Optional


class JobHarnessError(Exception):
    """Base exception for jobharness."""
    pass


class StepResolutionError(JobHarnessError):
    """A step name could not be resolved against a job topology."""

    def __init__(self, step_name: str, message: str):
        self.step_name = step_name
        super().__init__(message)


class StepNotFoundError(StepResolutionError):
    """
    The named step is absent from the topology.

    Recoverable by the caller (e.g. report a test failure), never retried.
    """

    def __init__(self, step_name: str):
        super().__init__(step_name, f"No Step found with name: [{step_name}]")


class InvalidTopologyError(StepResolutionError):
    """
    The name exists in a flow graph but refers to a node that is not a step.

    Signals a caller or test misconfiguration, e.g. launching a decision node.
    """

    def __init__(self, step_name: str, node_kind: str):
        self.node_kind = node_kind
        super().__init__(
            step_name,
            f"State [{step_name}] exists but is not an executable step "
            f"(found {node_kind})",
        )


class DuplicateStepNameError(StepResolutionError):
    """
    Two or more steps in a linear topology share a name.

    Detected when the step index is built. Fatal for step launches against
    that topology until it is corrected.
    """

    def __init__(self, duplicates: Iterable[str]):
        self.duplicates = sorted(set(duplicates))
        super().__init__(
            self.duplicates[0] if self.duplicates else "",
            f"Duplicate step names in job: {self.duplicates}",
        )


class UnsupportedTopologyError(JobHarnessError):
    """The job topology is neither a linear nor a graph topology."""

    def __init__(self, topology: object):
        self.topology_type = type(topology).__name__
        super().__init__(
            f"Job topology is neither linear nor graph: {self.topology_type}"
        )


class ExecutionError(JobHarnessError):
    """
    Raised when the executor cannot launch a job or step.

    Wraps any underlying launch failure (already-running instance, parameter
    validation failure, infrastructure error). The harness never interprets
    it; it is surfaced to the caller as-is.
    """

    def __init__(
        self,
        message: str,
        job_name: Optional[str] = None,
        step_name: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        self.job_name = job_name
        self.step_name = step_name
        self.cause = cause
        super().__init__(message)


class JobInstanceAlreadyCompleteError(ExecutionError):
    """A job instance with these parameters already completed."""
    pass


class JobExecutionAlreadyRunningError(ExecutionError):
    """A job instance with these parameters is currently running."""
    pass


class JobRestartError(ExecutionError):
    """A failed instance of a non-restartable job was launched again."""
    pass


class JobParametersInvalidError(ExecutionError):
    """The parameter set is missing keys the job requires."""
    pass
