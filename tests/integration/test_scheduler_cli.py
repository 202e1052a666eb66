import json
import logging

import pytest

from aquawatch.workers import scheduler_cli


@pytest.fixture(autouse=True)
def memory_database(monkeypatch, tmp_path):
    monkeypatch.setenv("AQUAWATCH_DATABASE_PATH", ":memory:")
    monkeypatch.setenv("AQUAWATCH_LOG_PATH", str(tmp_path / "aquawatch.log"))
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.name in {"aquawatch_console", "aquawatch_file"}:
            root.removeHandler(handler)
            handler.close()


def test_list_jobs(capsys):
    assert scheduler_cli.main(["--list-jobs"]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    job_ids = [line.split("\t")[0] for line in lines if "\t" in line]
    assert job_ids == [
        "cache_cleanup",
        "data_integrity_check",
        "analytics_precompute",
        "data_cleanup",
        "health_monitoring",
    ]


def test_run_single_job(capsys):
    assert scheduler_cli.main(["--run-job", "cache_cleanup"]) == 0

    out = capsys.readouterr().out
    payload = json.loads(out[out.index("{"):])
    assert payload["job"]["status"] == "completed"
    assert payload["result"]["success"] is True


def test_unknown_job(capsys):
    assert scheduler_cli.main(["--run-job", "nope"]) == 2

    out = capsys.readouterr().out
    assert json.loads(out[out.index("{"):])["error"] == "NOT_FOUND"
