"""
CLI tests - run the `donedone` command as a subprocess against the fake server.

Run with: python -m pytest tests/test_cli.py -v
"""

import json
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
CLI_TIMEOUT = 30  # Timeout in seconds for CLI commands


@dataclass
class CLIResult:
    """Result of a single CLI invocation."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def json(self) -> dict:
        return json.loads(self.stdout)


def run_cli(*args: str, base_url: str | None = None, credentials: bool = True) -> CLIResult:
    """Run the CLI with given arguments and return a CLIResult."""
    cmd = [sys.executable, "-m", "donedone_cli.cli", *args]

    env = {k: v for k, v in os.environ.items() if not k.startswith("DONEDONE_")}
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
    if base_url:
        env["DONEDONE_BASE_URL"] = base_url
    if credentials:
        env["DONEDONE_USERNAME"] = "jane"
        env["DONEDONE_API_TOKEN"] = "hunter2"

    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        env=env,
        timeout=CLI_TIMEOUT,
        cwd=PROJECT_ROOT,
    )
    return CLIResult(result.returncode, result.stdout, result.stderr)


# =============================================================================
# Help & usage
# =============================================================================


def test_no_command_prints_help():
    result = run_cli()
    assert result.exit_code == 0
    assert "DoneDone CLI" in result.stdout


def test_group_without_subcommand_prints_help(fake_server):
    result = run_cli("issues", base_url=fake_server.base_url)
    assert result.exit_code == 0
    assert "comment" in result.stdout
    assert fake_server.requests == []


def test_invalid_view_is_rejected_by_parser():
    result = run_cli("issues", "list", "everything")
    assert result.exit_code == 2
    assert "invalid choice" in result.stderr


# =============================================================================
# Commands
# =============================================================================


def test_projects_list_prints_raw_body(fake_server):
    fake_server.respond(200, '[{"id":1,"name":"Website"}]')
    result = run_cli("projects", "list", base_url=fake_server.base_url)
    assert result.exit_code == 0
    assert result.stdout.strip() == '[{"id":1,"name":"Website"}]'
    assert fake_server.last.relative_path == "projects.json"
    assert fake_server.last.headers["Authorization"] == "Basic amFuZTpodW50ZXIy"


def test_issues_create_with_attachment(fake_server, tmp_path, multipart):
    shot = tmp_path / "report.txt"
    shot.write_text("log")
    result = run_cli(
        "issues",
        "create",
        "3",
        "Bug",
        "--priority",
        "1",
        "--fixer",
        "7",
        "--tester",
        "9",
        "--tags",
        "ui, login",
        "--due-date",
        "2024-06-30",
        "-a",
        str(shot),
        base_url=fake_server.base_url,
    )
    assert result.exit_code == 0, result.stderr

    req = fake_server.last
    assert (req.method, req.relative_path) == ("POST", "projects/3/issues.json")
    parts = multipart.parse(req.body, multipart.boundary_of(req.headers["Content-Type"]))
    assert [(p.name, p.content) for p in parts[:-1]] == [
        ("title", b"Bug"),
        ("priority_level_id", b"1"),
        ("fixer_id", b"7"),
        ("tester_id", b"9"),
        ("tags", b"ui,login"),
        ("due_date", b"2024-06-30"),
    ]
    assert (parts[-1].filename, parts[-1].content) == ("report.txt", b"log")


def test_issues_status_update(fake_server):
    result = run_cli("issues", "status", "3", "7", "4", "-c", "Ready to test", base_url=fake_server.base_url)
    assert result.exit_code == 0, result.stderr
    req = fake_server.last
    assert (req.method, req.relative_path) == ("PUT", "projects/3/issues/7/status.json")
    assert parse_qsl(req.body.decode()) == [("comment", "Ready to test"), ("new_status_id", "4")]


def test_issues_list_with_filters(fake_server):
    result = run_cli(
        "issues",
        "list",
        "waiting_on_you",
        "--project",
        "3",
        "--tag-ids",
        "5,6",
        "--take",
        "25",
        base_url=fake_server.base_url,
    )
    assert result.exit_code == 0, result.stderr
    parts = urlsplit(fake_server.last.relative_path)
    assert parts.path == "projects/3/issues/waiting_on_you.json"
    assert parse_qsl(parts.query) == [("tag_ids", "5,6"), ("take", "25")]


def test_activity_list_custom_filter(fake_server):
    result = run_cli(
        "activity",
        "list",
        "--custom-filter",
        "8",
        "--from-date",
        "2024-05-01",
        "--hours-from-utc",
        "2",
        base_url=fake_server.base_url,
    )
    assert result.exit_code == 0, result.stderr
    parts = urlsplit(fake_server.last.relative_path)
    assert parts.path == "activity/issues_by_global_custom_filter/8.json"
    assert parse_qsl(parts.query) == [("from_date", "2024-05-01"), ("hours_from_utc", "2")]


def test_builds_create(fake_server):
    result = run_cli("builds", "create", "3", "Build 101", "--issues", "4,5", base_url=fake_server.base_url)
    assert result.exit_code == 0, result.stderr
    assert parse_qsl(fake_server.last.body.decode(), keep_blank_values=True) == [
        ("order_numbers", "4,5"),
        ("user_ids_to_cc", ""),
        ("title", "Build 101"),
        ("email_body", ""),
        ("description", ""),
    ]


def test_filters_list_global_and_project(fake_server):
    assert run_cli("filters", "list", base_url=fake_server.base_url).exit_code == 0
    assert run_cli("filters", "list", "-p", "3", base_url=fake_server.base_url).exit_code == 0
    assert [r.relative_path for r in fake_server.requests] == [
        "global_custom_filters.json",
        "projects/3/custom_filters.json",
    ]


# =============================================================================
# Errors
# =============================================================================


def test_protocol_error_output(fake_server):
    fake_server.respond(404, '{"error":"not found"}')
    result = run_cli("projects", "get", "999", base_url=fake_server.base_url)
    assert result.exit_code == 1
    assert result.json == {"error": '{"error":"not found"}', "type": "ProtocolError", "status": 404}


def test_transport_error_output(unused_port):
    result = run_cli("projects", "list", base_url=f"http://127.0.0.1:{unused_port}/issuetracker/api/v2/")
    assert result.exit_code == 1
    assert result.json["type"] == "TransportError"
    assert "status" not in result.json


def test_missing_attachment_output(fake_server, tmp_path):
    result = run_cli(
        "issues", "comment", "3", "7", "see log", "-a", str(tmp_path / "missing.log"), base_url=fake_server.base_url
    )
    assert result.exit_code == 1
    assert result.json["type"] == "LocalError"
    assert fake_server.requests == []


def test_invalid_date_output(fake_server):
    result = run_cli("issues", "list", "--start-due-date", "tomorrow", base_url=fake_server.base_url)
    assert result.exit_code == 1
    assert "YYYY-MM-DD" in result.json["error"]
    assert fake_server.requests == []


def test_missing_credentials_output(fake_server):
    result = run_cli("projects", "list", base_url=fake_server.base_url, credentials=False)
    assert result.exit_code == 1
    assert "DONEDONE_USERNAME" in result.json["error"]


def test_verbose_logs_requests_to_stderr(fake_server):
    result = run_cli("--verbose", "lookups", "priorities", base_url=fake_server.base_url)
    assert result.exit_code == 0
    assert "GET " in result.stderr
    assert "hunter2" not in result.stderr


@pytest.mark.parametrize("args", [["--base-url"], ["--subdomain"]])
def test_flag_requires_value(args):
    assert run_cli(*args, "projects", "list").exit_code == 2
