"""Tests for jobharness.registry module.

Tests JobRegistry loading, caching, discovery, and building linear and graph
jobs from definition files.
"""

import json
from pathlib import Path

import pytest
import yaml

from jobharness.registry import (
    JobNotFoundError,
    JobRegistry,
    JobValidationError,
    job_from_dict,
    load_callable,
)
from jobharness.schemas import (
    DecisionState,
    EndState,
    ParameterSet,
    StepState,
    TopologyKind,
)


@pytest.fixture
def tmp_defs(tmp_path):
    """Create a temporary definitions directory."""
    defs = tmp_path / "jobs"
    defs.mkdir()
    return defs


def _write_yaml(path: Path, data: dict):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(data, f)


def _write_json(path: Path, data: dict):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


# =============================================================================
# load_callable
# =============================================================================


class TestLoadCallable:
    """Tests for load_callable()."""

    def test_loads_function(self, steps_module):
        func = load_callable(f"{steps_module}:load")
        assert func(ParameterSet()) == "loaded"

    @pytest.mark.parametrize("path", ["no_colon", ":func", "module:", 5])
    def test_malformed(self, path):
        with pytest.raises(ValueError, match="module:function"):
            load_callable(path)

    def test_not_callable(self, steps_module):
        with pytest.raises(TypeError, match="not callable"):
            load_callable(f"{steps_module}:NOT_CALLABLE")

    def test_missing_module(self):
        with pytest.raises(ImportError):
            load_callable("no_such_module_xyz:func")

    def test_missing_attribute(self, steps_module):
        with pytest.raises(AttributeError):
            load_callable(f"{steps_module}:nope")


# =============================================================================
# job_from_dict
# =============================================================================


class TestJobFromDict:
    """Tests for building Jobs from definition dictionaries."""

    def test_linear(self, steps_module):
        job = job_from_dict({
            "job_id": "export",
            "steps": [
                {"name": "load", "callable": f"{steps_module}:load"},
                {"name": "publish"},
            ],
        })
        assert job.name == "export"
        assert job.topology.kind == TopologyKind.LINEAR
        assert job.step_names() == ["load", "publish"]
        assert job.restartable is True
        assert job.required_parameters == ()

    def test_options(self):
        job = job_from_dict({
            "job_id": "export",
            "restartable": False,
            "required_parameters": ["run.date"],
            "description": "Nightly export",
            "steps": [],
        })
        assert job.restartable is False
        assert job.required_parameters == ("run.date",)

    def test_graph(self, steps_module):
        job = job_from_dict({
            "job_id": "flow",
            "flow": [
                {"state": "s1", "step": {"callable": f"{steps_module}:load"}},
                {"state": "d1", "decision": "quality_gate"},
                {"state": "s2", "step": {"name": "publish_step"}},
                {"state": "end", "end": "completed"},
            ],
        })
        topology = job.topology
        assert topology.kind == TopologyKind.GRAPH
        assert list(topology.states) == ["s1", "d1", "s2", "end"]
        assert isinstance(topology.get_state("s1"), StepState)
        assert topology.get_state("s1").step.name == "s1"
        assert topology.get_state("s2").step.name == "publish_step"
        assert topology.get_state("d1") == DecisionState("quality_gate")
        assert topology.get_state("end") == EndState("COMPLETED")

    def test_steps_and_flow_mutually_exclusive(self):
        with pytest.raises(JobValidationError, match="exactly one of 'steps' or 'flow'"):
            job_from_dict({"job_id": "x", "steps": [], "flow": []})
        with pytest.raises(JobValidationError, match="exactly one of 'steps' or 'flow'"):
            job_from_dict({"job_id": "x"})

    def test_job_id_required(self):
        with pytest.raises(JobValidationError, match="job_id is required"):
            job_from_dict({"steps": []})

    def test_unknown_keys(self):
        with pytest.raises(JobValidationError, match="Unknown job definition keys"):
            job_from_dict({"job_id": "x", "steps": [], "schedule": "daily"})

    def test_not_a_mapping(self):
        with pytest.raises(JobValidationError):
            job_from_dict(["job_id", "x"])

    def test_step_without_name(self):
        with pytest.raises(JobValidationError, match=r"steps\[0\]"):
            job_from_dict({"job_id": "x", "steps": [{"callable": "a:b"}]})

    def test_bad_callable_wrapped(self, steps_module):
        with pytest.raises(JobValidationError, match="not callable"):
            job_from_dict({
                "job_id": "x",
                "steps": [{"name": "a", "callable": f"{steps_module}:NOT_CALLABLE"}],
            })

    def test_unimportable_callable_wrapped(self):
        with pytest.raises(JobValidationError, match="'x'"):
            job_from_dict({"job_id": "x", "steps": [{"name": "a", "callable": "no_such_mod_xyz:f"}]})

    def test_flow_state_needs_one_node_kind(self):
        with pytest.raises(JobValidationError, match="exactly one of"):
            job_from_dict({"job_id": "x", "flow": [{"state": "a", "decision": "d", "end": "FAILED"}]})
        with pytest.raises(JobValidationError, match="exactly one of"):
            job_from_dict({"job_id": "x", "flow": [{"state": "a"}]})

    def test_flow_state_name_required(self):
        with pytest.raises(JobValidationError, match="missing a 'state' name"):
            job_from_dict({"job_id": "x", "flow": [{"end": "COMPLETED"}]})

    def test_duplicate_flow_state(self):
        with pytest.raises(JobValidationError, match="duplicate state 'a'"):
            job_from_dict({"job_id": "x", "flow": [
                {"state": "a", "end": "COMPLETED"},
                {"state": "a", "end": "FAILED"},
            ]})

    def test_duplicate_linear_steps_allowed_at_load(self):
        job = job_from_dict({"job_id": "x", "steps": [{"name": "a"}, {"name": "a"}]})
        assert job.step_names() == ["a", "a"]

    def test_bad_required_parameters(self):
        with pytest.raises(JobValidationError, match="required_parameters"):
            job_from_dict({"job_id": "x", "steps": [], "required_parameters": "run.date"})

    @pytest.mark.parametrize("value", ["false", "no", 0, None])
    def test_restartable_must_be_bool(self, value):
        with pytest.raises(JobValidationError, match="restartable must be true or false"):
            job_from_dict({"job_id": "x", "restartable": value, "steps": [{"name": "a"}]})

    def test_restartable_false_from_yaml(self, tmp_defs):
        _write_yaml(tmp_defs / "export.yaml", {"job_id": "export", "restartable": False, "steps": []})
        assert JobRegistry(tmp_defs).load("export").restartable is False


# =============================================================================
# JobRegistry
# =============================================================================


class TestJobRegistry:
    """Tests for JobRegistry loading and discovery."""

    def test_load_yaml(self, tmp_defs):
        _write_yaml(tmp_defs / "export.yaml", {"job_id": "export", "steps": [{"name": "load"}]})
        job = JobRegistry(tmp_defs).load("export")
        assert job.step_names() == ["load"]

    def test_load_json(self, tmp_defs):
        _write_json(tmp_defs / "export.json", {"job_id": "export", "steps": [{"name": "load"}]})
        assert JobRegistry(tmp_defs).load("export").name == "export"

    def test_yaml_preferred_over_json(self, tmp_defs):
        _write_yaml(tmp_defs / "export.yaml", {"job_id": "export", "steps": [{"name": "from_yaml"}]})
        _write_json(tmp_defs / "export.json", {"job_id": "export", "steps": [{"name": "from_json"}]})
        assert JobRegistry(tmp_defs).load("export").step_names() == ["from_yaml"]

    def test_load_nested(self, tmp_defs):
        _write_yaml(tmp_defs / "exports" / "daily" / "export.yaml", {"job_id": "export", "steps": []})
        assert JobRegistry(tmp_defs).load("export").name == "export"

    def test_not_found(self, tmp_defs):
        with pytest.raises(JobNotFoundError, match="missing"):
            JobRegistry(tmp_defs).load("missing")

    def test_job_id_mismatch(self, tmp_defs):
        _write_yaml(tmp_defs / "export.yaml", {"job_id": "other", "steps": []})
        with pytest.raises(JobValidationError, match="mismatch"):
            JobRegistry(tmp_defs).load("export")

    def test_invalid_yaml(self, tmp_defs):
        (tmp_defs / "broken.yaml").write_text("job_id: [unclosed")
        with pytest.raises(JobValidationError, match="Failed to load"):
            JobRegistry(tmp_defs).load("broken")

    def test_invalid_json(self, tmp_defs):
        (tmp_defs / "broken.json").write_text("{not json")
        with pytest.raises(JobValidationError, match="Failed to load"):
            JobRegistry(tmp_defs).load("broken")

    def test_caches(self, tmp_defs):
        path = tmp_defs / "export.yaml"
        _write_yaml(path, {"job_id": "export", "steps": [{"name": "load"}]})
        registry = JobRegistry(tmp_defs)
        first = registry.load("export")

        path.unlink()
        assert registry.load("export") is first

        registry.clear_cache()
        with pytest.raises(JobNotFoundError):
            registry.load("export")

    def test_list_jobs(self, tmp_defs):
        _write_yaml(tmp_defs / "b.yaml", {"job_id": "b", "steps": []})
        _write_json(tmp_defs / "nested" / "a.json", {"job_id": "a", "steps": []})
        _write_yaml(tmp_defs / "c.yml", {"job_id": "c", "steps": []})
        _write_yaml(tmp_defs / "_deprecated" / "old.yaml", {"job_id": "old", "steps": []})
        (tmp_defs / "notes.txt").write_text("ignored")

        assert JobRegistry(tmp_defs).list_jobs() == ["a", "b", "c"]

    def test_list_jobs_missing_dir(self, tmp_path):
        assert JobRegistry(tmp_path / "nope").list_jobs() == []

    def test_definitions_dir(self, tmp_defs):
        assert JobRegistry(str(tmp_defs)).definitions_dir == tmp_defs

    def test_root_definition_preferred_over_nested(self, tmp_defs):
        _write_yaml(tmp_defs / "a" / "export.yaml", {"job_id": "export", "steps": [{"name": "nested"}]})
        _write_yaml(tmp_defs / "export.yaml", {"job_id": "export", "steps": [{"name": "root"}]})
        assert JobRegistry(tmp_defs).load("export").step_names() == ["root"]

    def test_nested_yaml_preferred_over_root_json(self, tmp_defs):
        _write_json(tmp_defs / "export.json", {"job_id": "export", "steps": [{"name": "json"}]})
        _write_yaml(tmp_defs / "a" / "export.yaml", {"job_id": "export", "steps": [{"name": "yaml"}]})
        assert JobRegistry(tmp_defs).load("export").step_names() == ["yaml"]

    def test_deprecated_definitions_not_loaded(self, tmp_defs):
        _write_yaml(tmp_defs / "_deprecated" / "old.yaml", {"job_id": "old", "steps": []})
        with pytest.raises(JobNotFoundError):
            JobRegistry(tmp_defs).load("old")

    def test_directory_named_like_definition_ignored(self, tmp_defs):
        (tmp_defs / "odd.yaml").mkdir()
        assert JobRegistry(tmp_defs).list_jobs() == []
