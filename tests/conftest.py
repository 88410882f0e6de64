import logging
import sys

import pytest

from jobharness.schemas import (
    DecisionState,
    EndState,
    Job,
    Step,
    StepState,
)


@pytest.fixture(autouse=True)
def reset_harness_logger():
    """Drop handlers installed by setup_logging() so tests don't leak them."""
    logger = logging.getLogger("jobharness")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    yield
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


# =============================================================================
# JOB FIXTURES
# =============================================================================


@pytest.fixture
def linear_job():
    """Three-step linear job: load -> validate -> publish."""
    return Job.linear("export", [Step("load"), Step("validate"), Step("publish")])


@pytest.fixture
def graph_job():
    """Flow job: s1 -> decision d1 -> end."""
    return Job.graph("flow", {
        "s1": StepState(Step("s1")),
        "d1": DecisionState("quality_gate"),
        "end": EndState(),
    })


# =============================================================================
# DEFINITION FIXTURES
# =============================================================================


STEPS_MODULE = '''
CALLS = []


def load(params):
    CALLS.append("load")
    return "loaded"


def validate(params):
    CALLS.append("validate")


def explode(params):
    CALLS.append("explode")
    raise RuntimeError("kaboom")


NOT_CALLABLE = 42
'''


@pytest.fixture
def steps_module(tmp_path, monkeypatch):
    """Importable module `harness_sample_steps` with step callables."""
    module_dir = tmp_path / "pymodules"
    module_dir.mkdir()
    (module_dir / "harness_sample_steps.py").write_text(STEPS_MODULE)
    monkeypatch.syspath_prepend(str(module_dir))
    monkeypatch.delitem(sys.modules, "harness_sample_steps", raising=False)
    yield "harness_sample_steps"
    sys.modules.pop("harness_sample_steps", None)
