"""Tests for job extraction and aggregate resolution."""

import pytest

from hydra_eval_jobs.evaluator import PythonEvaluator, StringWithContext, aggregate, derivation
from hydra_eval_jobs.exceptions import EvalError
from hydra_eval_jobs.jobs import (
    constituents_from_context,
    extract_job,
    is_aggregate,
    resolve_constituents,
)


@pytest.fixture
def state():
    return PythonEvaluator()


class TestExtractJob:
    """Tests for extract_job()."""

    def test_defaults(self, state):
        """Missing scheduling metadata falls back to the standard defaults."""
        drv = derivation("hello", "x86_64-linux")
        job = extract_job(state, state.get_derivation(drv))

        assert job.name == "hello"
        assert job.system == "x86_64-linux"
        assert job.drv_path == drv["drvPath"]
        assert job.outputs == {"out": drv["outPath"]}
        assert job.scheduling_priority == 100
        assert job.timeout == 36000
        assert job.max_silent == 7200
        assert job.is_channel is False
        assert job.constituents is None

    def test_meta_fields(self, state):
        meta = {
            "description": "Says hello",
            "homepage": "https://example.org",
            "license": {"shortName": "GPL-3.0"},
            "maintainers": [{"shortName": "alice"}, "bob"],
            "schedulingPriority": 50,
            "timeout": 600,
            "maxSilent": 60,
            "isHydraChannel": True,
        }
        job = extract_job(state, state.get_derivation(derivation("hello", "x86_64-linux", meta=meta)))

        assert job.description == "Says hello"
        assert job.homepage == "https://example.org"
        assert job.license == "GPL-3.0"
        assert job.maintainers == "alice, bob"
        assert job.scheduling_priority == 50
        assert job.timeout == 600
        assert job.max_silent == 60
        assert job.is_channel is True

    def test_unknown_system(self, state):
        drv = derivation("hello", "unknown")
        with pytest.raises(EvalError, match="derivation must have a ‘system’ attribute"):
            extract_job(state, state.get_derivation(drv))

    def test_missing_system(self, state):
        drv = derivation("hello", None)
        with pytest.raises(EvalError, match="derivation must have a ‘system’ attribute"):
            extract_job(state, state.get_derivation(drv))

    def test_no_outputs(self, state):
        info = state.get_derivation({"type": "derivation", "system": "x86_64-linux", "outputs": []})
        with pytest.raises(EvalError, match="at least one output"):
            extract_job(state, info)

    def test_explicit_paths(self, state):
        drv = {
            "type": "derivation",
            "name": "hello",
            "system": "x86_64-linux",
            "drvPath": "/store/p.drv",
            "outPath": "/store/p",
            "outputs": ["out"],
            "out": {"outPath": "/store/p"},
        }
        job = extract_job(state, state.get_derivation(drv))

        assert job.drv_path == "/store/p.drv"
        assert job.outputs == {"out": "/store/p"}


class TestAggregates:
    """Tests for aggregate detection and constituent resolution."""

    def test_not_aggregate(self, state):
        assert not is_aggregate(state, state.get_derivation(derivation("hello", "x86_64-linux")))

    def test_flag_false(self, state):
        drv = derivation("hello", "x86_64-linux", _hydraAggregate=False)
        assert not is_aggregate(state, state.get_derivation(drv))

    def test_flag_must_be_bool(self, state):
        drv = derivation("hello", "x86_64-linux", _hydraAggregate="yes")
        with pytest.raises(EvalError, match="while a Boolean was expected"):
            is_aggregate(state, state.get_derivation(drv))

    def test_resolves_constituents(self, state):
        hello = derivation("hello", "x86_64-linux")
        world = derivation("world", "x86_64-linux", outputs=["bin", "out"])
        agg = aggregate("tested", [hello, world])
        info = state.get_derivation(agg)

        assert is_aggregate(state, info)
        assert set(resolve_constituents(state, info)) == {hello["drvPath"], world["drvPath"]}

    def test_duplicates_collapsed(self, state):
        hello = derivation("hello", "x86_64-linux", outputs=["out", "dev"])
        agg = aggregate("tested", [hello, hello["dev"]])
        assert resolve_constituents(state, state.get_derivation(agg)) == [hello["drvPath"]]

    def test_missing_constituents(self, state):
        drv = derivation("tested", "x86_64-linux", _hydraAggregate=True)
        with pytest.raises(EvalError, match="derivation must have a ‘constituents’ attribute"):
            resolve_constituents(state, state.get_derivation(drv))

    def test_plain_strings_contribute_nothing(self, state):
        agg = aggregate("tested", ["not-a-job", StringWithContext("/store/src", {"/store/src"})])
        assert resolve_constituents(state, state.get_derivation(agg)) == []


class TestConstituentsFromContext:
    """Tests for context tag filtering."""

    def test_output_tags_only(self):
        context = {"!out!/store/a.drv", "!dev!/store/b.drv", "=/store/c.drv", "/store/d", "!broken"}
        assert constituents_from_context(context) == ["/store/a.drv", "/store/b.drv"]
