"""Unit tests for the default runner and artifact serialization."""

from __future__ import annotations

import json

import pytest

from pagegather.models.config import FormFactor
from pagegather.models.results import ArtifactError, PageLoadError, PageLoadErrorCode
from pagegather.runner import RunnerResult, artifacts_to_json, run, to_jsonable
from pagegather.timing import TimingEntry


class TestRun:
    @pytest.mark.anyio
    async def test_lifts_run_level_fields(self) -> None:
        artifacts = {
            "fetch_time": "2026-10-18T09:00:00+00:00",
            "urls": {"requested_url": "https://example.com/", "final_url": "https://example.com/en/"},
            "run_warnings": ["slow"],
            "meta_elements": [],
        }

        async def gather_fn(*, requested_url):
            assert requested_url == "https://example.com/"
            return artifacts

        result = await run(gather_fn, "https://example.com/")

        assert result.final_url == "https://example.com/en/"
        assert result.fetch_time == "2026-10-18T09:00:00+00:00"
        assert result.run_warnings == ["slow"]
        assert result.page_load_error is None
        assert result.artifacts is artifacts

    @pytest.mark.anyio
    async def test_errors_propagate(self) -> None:
        async def gather_fn(*, requested_url):
            raise ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await run(gather_fn, "https://example.com/")


class TestSerialization:
    def test_to_jsonable(self):
        value = {
            "error": ArtifactError("fonts", "timed out"),
            "form_factor": FormFactor.MOBILE,
            "timing": [TimingEntry("pagegather:gather:setupDriver", 1.0, 2.5)],
            "nested": ({"a": 1},),
        }
        assert to_jsonable(value) == {
            "error": {"gatherer": "fonts", "error": "timed out"},
            "form_factor": "mobile",
            "timing": [{"name": "pagegather:gather:setupDriver", "start_time": 1.0, "duration": 2.5}],
            "nested": [{"a": 1}],
        }

    def test_artifacts_to_json(self):
        text = artifacts_to_json({"error": ArtifactError("fonts", "timed out")}, indent=None)
        assert json.loads(text) == {"error": {"gatherer": "fonts", "error": "timed out"}}

    def test_result_to_dict(self):
        error = PageLoadError(PageLoadErrorCode.CHROME_INTERSTITIAL_ERROR, "interstitial", "https://example.com/")
        result = RunnerResult("https://example.com/", page_load_error=error, artifacts={"page_load_error": error})

        data = result.to_dict()

        assert result.degraded
        assert data["page_load_error"]["code"] == "chrome_interstitial_error"
        assert data["artifacts"]["page_load_error"]["status_code"] is None
        json.dumps(data)
