"""
jobharness - Test harness for launching batch jobs and single steps.

A JobTestRunner launches a Job, or one named step of it, through an injected
Executor. Launches without explicit parameters get a unique timestamp
parameter so each one is a fresh job instance.

Usage:
    from jobharness import Job, Step, JobTestRunner, LocalExecutor

    job = Job.linear("export", [Step("load", load), Step("validate", validate)])
    runner = JobTestRunner(LocalExecutor(), job)

    assert runner.launch_job().success
    assert runner.launch_step("validate").success
"""

__version__ = "0.1.0"

from jobharness.errors import (
    JobHarnessError,
    StepResolutionError,
    StepNotFoundError,
    InvalidTopologyError,
    DuplicateStepNameError,
    UnsupportedTopologyError,
    ExecutionError,
    JobInstanceAlreadyCompleteError,
    JobExecutionAlreadyRunningError,
    JobRestartError,
    JobParametersInvalidError,
)
from jobharness.schemas import (
    ParameterType,
    JobParameter,
    ParameterSet,
    parse_parameter,
    parse_parameters,
    TopologyKind,
    Step,
    State,
    StepState,
    DecisionState,
    EndState,
    LinearTopology,
    GraphTopology,
    Job,
    BatchStatus,
    StepOutcome,
    ExecutionResult,
)
from jobharness.resolver import StepResolver, resolve_step
from jobharness.executor import Executor, NoOpExecutor, LocalExecutor
from jobharness.runner import JobTestRunner

__all__ = [
    "__version__",
    # Errors
    "JobHarnessError",
    "StepResolutionError",
    "StepNotFoundError",
    "InvalidTopologyError",
    "DuplicateStepNameError",
    "UnsupportedTopologyError",
    "ExecutionError",
    "JobInstanceAlreadyCompleteError",
    "JobExecutionAlreadyRunningError",
    "JobRestartError",
    "JobParametersInvalidError",
    # Schemas
    "ParameterType",
    "JobParameter",
    "ParameterSet",
    "parse_parameter",
    "parse_parameters",
    "TopologyKind",
    "Step",
    "State",
    "StepState",
    "DecisionState",
    "EndState",
    "LinearTopology",
    "GraphTopology",
    "Job",
    "BatchStatus",
    "StepOutcome",
    "ExecutionResult",
    # Core
    "StepResolver",
    "resolve_step",
    "Executor",
    "NoOpExecutor",
    "LocalExecutor",
    "JobTestRunner",
]
