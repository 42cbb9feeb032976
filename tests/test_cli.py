import json

from typer.testing import CliRunner

from jobrelay import cli
from jobrelay.config import Settings
from jobrelay.errors import ConfigError

runner = CliRunner()


def test_fetch_jobs_dry_run_skips_sheet(monkeypatch):
    seen = {}

    def fake_fetch_jobs(query, destination, settings, sheets=None, max_age_minutes=None):
        seen.update(query=query, destination=destination, sheets=sheets)
        return {"success": True, "rowCount": 1, "requestsMade": 2, "combos": [], "jobs": [{"job_link": "x"}]}

    monkeypatch.setattr(cli, "load_settings", lambda: Settings(scrapingdog_api_key="SD"))
    monkeypatch.setattr(cli.service, "fetch_jobs", fake_fetch_jobs)

    result = runner.invoke(cli.app, ["fetch-jobs", "python", "--dry-run", "--job-type", "F", "--job-type", "C"])
    assert result.exit_code == 0, result.output
    assert seen["query"].job_types == ["F", "C"]
    assert isinstance(seen["sheets"], cli._NoSheet)
    payload = json.loads(result.output[result.output.index("{"):])
    assert payload["fetched"] == 1
    assert payload["preview_rows"] == [{"job_link": "x"}]


def test_fetch_jobs_config_error_exits(monkeypatch):
    def fake_fetch_jobs(*args, **kwargs):
        raise ConfigError("API key missing")

    monkeypatch.setattr(cli, "load_settings", lambda: Settings())
    monkeypatch.setattr(cli.service, "fetch_jobs", fake_fetch_jobs)

    result = runner.invoke(cli.app, ["fetch-jobs", "python", "--sheet-id", "abc"])
    assert result.exit_code != 0
