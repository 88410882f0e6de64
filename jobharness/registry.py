"""
JobRegistry - Load and validate job definitions from storage.

The registry provides:
- Loading jobs from YAML or JSON files in a definitions directory
- Building a linear (steps:) or graph (flow:) topology from each file
- Importing step callables by "module:function" path
- Caching loaded jobs

Definition format:

    job_id: nightly_export
    restartable: true
    required_parameters: [run.date]
    steps:
      - name: load
        callable: mypkg.steps:load

or, for a flow graph:

    flow:
      - state: load
        step: {callable: mypkg.steps:load}
      - state: gate
        decision: quality_gate
      - state: end
        end: COMPLETED
"""

import importlib
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import yaml

from jobharness.errors import JobHarnessError
from jobharness.schemas import (
    DecisionState,
    EndState,
    Job,
    State,
    Step,
    StepState,
)

logger = logging.getLogger(__name__)

# Preference order when one job id has several files
DEFINITION_EXTENSIONS = (".yaml", ".yml", ".json")

_LOADERS = {".yaml": yaml.safe_load, ".yml": yaml.safe_load, ".json": json.load}

_KNOWN_KEYS = {"job_id", "restartable", "required_parameters", "steps", "flow", "description"}
_NODE_KEYS = ("step", "decision", "end")


class JobNotFoundError(JobHarnessError):
    """Raised when a job definition is not found."""
    pass


class JobValidationError(JobHarnessError):
    """Raised when a job definition fails validation."""
    pass


def load_callable(path: str) -> Callable[..., Any]:
    """Load a callable by dotted path string.

    Args:
        path: e.g. "mypkg.steps:load"

    Returns:
        The callable

    Raises:
        ValueError: If the path is malformed
        ImportError: If module not found
        AttributeError: If attribute not found in module
        TypeError: If attribute is not callable
    """
    if not isinstance(path, str) or ":" not in path:
        raise ValueError(f"Callable path must be 'module:function', got: {path!r}")

    module_path, func_name = path.rsplit(":", 1)
    if not module_path or not func_name:
        raise ValueError(f"Callable path must be 'module:function', got: {path!r}")

    module = importlib.import_module(module_path)
    func = getattr(module, func_name)
    if not callable(func):
        raise TypeError(f"'{path}' is not callable")
    return func


def _build_step(name: Any, callable_path: Optional[str]) -> Step:
    func = load_callable(callable_path) if callable_path is not None else None
    return Step(name=name, func=func)


def _build_state(entry: Any, index: int) -> tuple[str, State]:
    if not isinstance(entry, dict):
        raise JobValidationError(f"flow[{index}] must be a mapping")

    name = entry.get("state")
    if not isinstance(name, str) or not name:
        raise JobValidationError(f"flow[{index}] is missing a 'state' name")

    present = [key for key in _NODE_KEYS if key in entry]
    if len(present) != 1:
        raise JobValidationError(
            f"State '{name}' must declare exactly one of {list(_NODE_KEYS)}, got {present}"
        )

    node = present[0]
    if node == "step":
        body = entry["step"] or {}
        if not isinstance(body, dict):
            raise JobValidationError(f"State '{name}': 'step' must be a mapping")
        return name, StepState(_build_step(body.get("name", name), body.get("callable")))
    if node == "decision":
        return name, DecisionState(label=str(entry["decision"] or ""))
    return name, EndState(status=str(entry["end"] or "COMPLETED").upper())


def job_from_dict(data: dict[str, Any]) -> Job:
    """
    Build a Job from a parsed definition.

    Args:
        data: Definition dictionary (see module docstring)

    Returns:
        The Job

    Raises:
        JobValidationError: If the definition is malformed or a step
                            callable cannot be loaded
    """
    if not isinstance(data, dict):
        raise JobValidationError("Job definition must be a mapping")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise JobValidationError(f"Unknown job definition keys: {sorted(unknown)}")

    job_id = data.get("job_id")
    if not isinstance(job_id, str) or not job_id:
        raise JobValidationError("job_id is required")

    has_steps = "steps" in data
    has_flow = "flow" in data
    if has_steps == has_flow:
        raise JobValidationError(f"Job '{job_id}' must define exactly one of 'steps' or 'flow'")

    required = data.get("required_parameters") or []
    if not isinstance(required, list) or not all(isinstance(k, str) for k in required):
        raise JobValidationError(f"Job '{job_id}': required_parameters must be a list of strings")

    restartable = data.get("restartable", True)
    if not isinstance(restartable, bool):
        raise JobValidationError(
            f"Job '{job_id}': restartable must be true or false, got {restartable!r}"
        )

    options = {
        "restartable": restartable,
        "required_parameters": tuple(required),
    }

    try:
        if has_steps:
            entries = data["steps"] or []
            if not isinstance(entries, list):
                raise JobValidationError(f"Job '{job_id}': steps must be a list")
            steps = []
            for i, entry in enumerate(entries):
                if not isinstance(entry, dict) or "name" not in entry:
                    raise JobValidationError(f"Job '{job_id}': steps[{i}] must have a 'name'")
                steps.append(_build_step(entry["name"], entry.get("callable")))
            return Job.linear(job_id, steps, **options)

        entries = data["flow"] or []
        if not isinstance(entries, list):
            raise JobValidationError(f"Job '{job_id}': flow must be a list")
        states: dict[str, State] = {}
        for i, entry in enumerate(entries):
            name, state = _build_state(entry, i)
            if name in states:
                raise JobValidationError(f"Job '{job_id}': duplicate state '{name}'")
            states[name] = state
        return Job.graph(job_id, states, **options)
    except JobValidationError:
        raise
    except (ValueError, TypeError, ImportError, AttributeError) as e:
        raise JobValidationError(f"Job '{job_id}': {e}") from e


class JobRegistry:
    """
    Registry for loading and caching Jobs.

    Loads job definitions from YAML or JSON files organized in a directory
    tree. Supports both flat and nested directory structures.

    Example directory structure:
        jobs/
            exports/
                nightly_export.yaml
            smoke.json
    """

    def __init__(self, definitions_dir: Path | str):
        """
        Initialize the registry.

        Args:
            definitions_dir: Path to directory containing job definition files
        """
        self._definitions_dir = Path(definitions_dir)
        self._cache: dict[str, Job] = {}

    @property
    def definitions_dir(self) -> Path:
        """Get the definitions directory path."""
        return self._definitions_dir

    def load(self, job_id: str) -> Job:
        """
        Load a Job by ID.

        Searches for {job_id}.yaml, .yml or .json in the definitions directory
        tree. YAML files are preferred over JSON when both exist. Results are
        cached for subsequent calls.

        Raises:
            JobNotFoundError: If the job definition file doesn't exist
            JobValidationError: If the job definition is invalid
        """
        if job_id in self._cache:
            return self._cache[job_id]

        def_path = self._find_definition(job_id)
        if def_path is None:
            raise JobNotFoundError(f"Job definition not found: {job_id}")

        try:
            data = self._load_file(def_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise JobValidationError(f"Failed to load {def_path}: {e}") from e

        job = job_from_dict(data)

        if job.name != job_id:
            raise JobValidationError(
                f"Job ID mismatch: file is '{job_id}' but job_id is '{job.name}'"
            )

        logger.debug(f"Loaded job {job_id} from {def_path}")
        self._cache[job_id] = job
        return job

    def list_jobs(self) -> list[str]:
        """Sorted job ids of every definition file, _deprecated trees excluded."""
        return sorted({path.stem for path in self._iter_definitions()})

    def _iter_definitions(self) -> Iterator[Path]:
        if not self._definitions_dir.is_dir():
            return
        for path in self._definitions_dir.rglob("*"):
            relative = path.relative_to(self._definitions_dir)
            if (
                path.suffix.lower() in _LOADERS
                and "_deprecated" not in relative.parts
                and path.is_file()
            ):
                yield path

    def _find_definition(self, job_id: str) -> Optional[Path]:
        """
        Pick the definition file for a job id.

        YAML wins over JSON; for the same extension a shallower file wins,
        then the lexically first path.
        """
        candidates = [path for path in self._iter_definitions() if path.stem == job_id]
        if not candidates:
            return None

        def rank(path: Path) -> tuple[int, int, str]:
            depth = len(path.relative_to(self._definitions_dir).parts)
            return DEFINITION_EXTENSIONS.index(path.suffix.lower()), depth, str(path)

        return min(candidates, key=rank)

    @staticmethod
    def _load_file(path: Path) -> Any:
        loader = _LOADERS.get(path.suffix.lower())
        if loader is None:
            raise ValueError(f"Unsupported definition format: {path.suffix}")
        with open(path) as f:
            return loader(f)

    def clear_cache(self) -> None:
        """Clear the definition cache."""
        self._cache.clear()
