"""
Tests for the command line entry point.
"""

import json
from unittest.mock import patch

import pytest

import main
from src.scheduler import SchedulerCoreService


@pytest.fixture(autouse=True)
def quiet_bootstrap():
    """Skip .env loading and log handler setup."""
    with patch("main.load_dotenv"), patch("main.setup_logging"):
        yield


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


@pytest.fixture
def jobs_dir(tmp_path):
    directory = tmp_path / "jobs"
    (directory / "nested").mkdir(parents=True)
    (directory / "etl.job").write_text(
        json.dumps({"name": "etl", "expression": "0 */5 * * * ?", "handler": "jobs/etl.js"}),
        encoding="utf-8",
    )
    (directory / "nested" / "report.job").write_text(
        json.dumps({"name": "report", "parameters": [{"name": "limit", "defaultValue": "5"}]}),
        encoding="utf-8",
    )
    (directory / "notes.txt").write_text("ignored", encoding="utf-8")
    return directory


class TestImportExport:

    def test_import_directory(self, db_path, jobs_dir, capsys):
        assert main.main(["--db-path", db_path, "import", str(jobs_dir)]) == 0

        output = capsys.readouterr().out
        assert "imported etl" in output
        assert "imported report (1 parameters)" in output

        service = SchedulerCoreService.create(db_path)
        assert [job.name for job in service.get_jobs()] == ["etl", "report"]

    def test_import_invalid_document_fails(self, db_path, tmp_path):
        broken = tmp_path / "broken.job"
        broken.write_text("{not json", encoding="utf-8")

        assert main.main(["--db-path", db_path, "import", str(broken)]) == 1

    def test_export(self, db_path, jobs_dir, tmp_path):
        main.main(["--db-path", db_path, "import", str(jobs_dir)])
        output = tmp_path / "etl-export.job"

        assert main.main(["--db-path", db_path, "export", "etl", "-o", str(output)]) == 0

        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["name"] == "etl"
        assert document["expression"] == "0 */5 * * * ?"

    def test_export_missing_job(self, db_path):
        assert main.main(["--db-path", db_path, "export", "ghost"]) == 1


class TestLogCommands:

    def test_logs_and_clear(self, db_path, capsys):
        service = SchedulerCoreService.create(db_path)
        trigger = service.job_triggered("etl", "jobs/etl.js")
        service.job_failed("etl", "jobs/etl.js", trigger.id, trigger.triggered_at, "boom")

        assert main.main(["--db-path", db_path, "logs", "etl"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert "FAILED" in lines[0]
        assert f"<-{trigger.id}" in lines[0]

        assert main.main(["--db-path", db_path, "clear-logs", "etl"]) == 0
        assert "deleted 2 log(s) of etl" in capsys.readouterr().out

    def test_sweep_once(self, db_path, capsys):
        assert main.main(["--db-path", db_path, "sweep"]) == 0
        assert "deleted 0 log(s)" in capsys.readouterr().out

    def test_list(self, db_path, jobs_dir, capsys):
        main.main(["--db-path", db_path, "import", str(jobs_dir)])
        capsys.readouterr()

        assert main.main(["--db-path", db_path, "list"]) == 0

        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0].startswith("etl\t0 */5 * * * ?\tenabled")
