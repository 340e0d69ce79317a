"""Tests for the cguard command line interface."""

import json

import pytest
from click.testing import CliRunner

from containerguard import __version__
from containerguard.cli import cli
from containerguard.utils.exit_codes import ExitCodes


@pytest.fixture
def runner(isolated_cwd, monkeypatch):
    """CLI runner in an empty working directory with no config overrides."""
    monkeypatch.delenv("CONTAINERGUARD_AUDIT_PASS_THRESHOLD", raising=False)
    monkeypatch.delenv("CONTAINERGUARD_LIMITS_MAX_FILE_SIZE", raising=False)
    monkeypatch.delenv("CONTAINERGUARD_AUDIT_SERVICE_HARDENING", raising=False)
    return CliRunner()


class TestCliBasics:
    """Group-level behaviour."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
        assert "cguard" in result.output

    def test_root_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("lint", "compose", "audit", "fix"):
            assert command in result.output

    @pytest.mark.parametrize("command", ["lint", "compose", "audit", "fix"])
    def test_command_help_is_ascii(self, runner, command):
        """Test that command help stays ASCII-safe for Windows consoles."""
        result = runner.invoke(cli, [command, "--help"])
        assert result.exit_code == 0
        result.output.encode("ascii")


class TestLintCommand:
    """cguard lint."""

    def test_secure_dockerfile_exits_zero(self, runner, fixtures_dir):
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.secure")])
        assert result.exit_code == ExitCodes.SUCCESS
        assert "No container security issues found" in result.output

    def test_insecure_dockerfile_exits_critical(self, runner, fixtures_dir):
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.insecure")])
        assert result.exit_code == ExitCodes.CRITICAL_SEVERITY
        assert "no-secrets-in-env" in result.output

    def test_high_only_exits_one(self, runner, isolated_cwd):
        dockerfile = isolated_cwd / "Dockerfile"
        dockerfile.write_text("FROM alpine:3.19\nHEALTHCHECK CMD true\n", encoding="utf-8")
        result = runner.invoke(cli, ["lint", str(dockerfile)])
        assert result.exit_code == ExitCodes.HIGH_SEVERITY

    def test_json_output(self, runner, fixtures_dir):
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.insecure"), "--format", "json"])
        data = json.loads(result.stdout)
        assert data["score"] == 0
        assert data["isMultiStage"] is False
        assert data["summary"]["critical"] == 2
        assert data["findings"][0]["rule"] == "no-latest-tag"

    def test_sarif_output_file(self, runner, fixtures_dir, isolated_cwd):
        target = isolated_cwd / "lint.sarif"
        result = runner.invoke(
            cli,
            ["lint", str(fixtures_dir / "Dockerfile.insecure"), "--format", "sarif", "--output", str(target)],
        )
        assert result.exit_code == ExitCodes.CRITICAL_SEVERITY
        log = json.loads(target.read_text(encoding="utf-8"))
        assert len(log["runs"][0]["results"]) == 8

    def test_missing_file(self, runner, isolated_cwd):
        result = runner.invoke(cli, ["lint", str(isolated_cwd / "nope")])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE

    def test_rules_from_config_file(self, runner, isolated_cwd):
        """Test that .containerguard/config.json switches rules off."""
        (isolated_cwd / ".containerguard").mkdir()
        (isolated_cwd / ".containerguard" / "config.json").write_text(
            json.dumps({"rules": {"no-root-user": "off"}}), encoding="utf-8"
        )
        dockerfile = isolated_cwd / "Dockerfile"
        dockerfile.write_text("FROM alpine:3.19\nHEALTHCHECK CMD true\n", encoding="utf-8")
        result = runner.invoke(cli, ["lint", str(dockerfile)])
        assert result.exit_code == ExitCodes.SUCCESS

    def test_bad_custom_pattern_is_reported(self, runner, isolated_cwd, fixtures_dir):
        """Test that configuration errors surface as a click error and are logged."""
        (isolated_cwd / ".containerguard").mkdir()
        (isolated_cwd / ".containerguard" / "config.json").write_text(
            json.dumps({"customPatterns": [{"name": "bad", "pattern": "(("}]}), encoding="utf-8"
        )
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.secure")])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert "RuleConfigError" in result.output
        assert (isolated_cwd / ".containerguard" / "error.log").exists()

    def test_oversized_file_refused(self, runner, fixtures_dir, monkeypatch):
        monkeypatch.setenv("CONTAINERGUARD_LIMITS_MAX_FILE_SIZE", "16")
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.secure")])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert "InputTooLargeError" in result.output

    def test_invalid_utf8_refused(self, runner, isolated_cwd):
        """Test that an undecodable Dockerfile is an input error, not a high finding."""
        dockerfile = isolated_cwd / "Dockerfile"
        dockerfile.write_bytes(b"FROM node:20\xff\xfe\n")
        result = runner.invoke(cli, ["lint", str(dockerfile)])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert "UnicodeDecodeError" in result.output

    def test_bare_string_custom_pattern(self, runner, isolated_cwd, fixtures_dir):
        (isolated_cwd / ".containerguard").mkdir()
        (isolated_cwd / ".containerguard" / "config.json").write_text(
            json.dumps({"customPatterns": ["no-sudo"]}), encoding="utf-8"
        )
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.secure")])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert "RuleConfigError" in result.output

    def test_error_log_written_under_root(self, runner, isolated_cwd, fixtures_dir):
        project = isolated_cwd / "project"
        (project / ".containerguard").mkdir(parents=True)
        (project / ".containerguard" / "config.json").write_text(
            json.dumps({"customPatterns": [{"name": "bad", "pattern": "(("}]}), encoding="utf-8"
        )
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.secure"), "--root", str(project)])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert (project / ".containerguard" / "error.log").exists()
        assert not (isolated_cwd / ".containerguard").exists()

    def test_markdown_output(self, runner, fixtures_dir):
        result = runner.invoke(cli, ["lint", str(fixtures_dir / "Dockerfile.insecure"), "--format", "markdown"])
        assert result.exit_code == ExitCodes.CRITICAL_SEVERITY
        assert result.stdout.startswith("# Container Security Report")
        assert "## Dockerfile Analysis" in result.stdout
        assert "**CRITICAL** [CIS 4.10] `no-secrets-in-env`" in result.stdout
        assert "- **Critical Issues**: 2" in result.stdout


class TestComposeCommand:
    """cguard compose."""

    def test_hardened_compose_exits_zero(self, runner, fixtures_dir):
        result = runner.invoke(cli, ["compose", str(fixtures_dir / "docker-compose.hardened.yml")])
        assert result.exit_code == ExitCodes.SUCCESS

    def test_insecure_compose_json(self, runner, fixtures_dir):
        result = runner.invoke(
            cli, ["compose", str(fixtures_dir / "docker-compose.insecure.yml"), "--format", "json"]
        )
        assert result.exit_code == ExitCodes.CRITICAL_SEVERITY
        data = json.loads(result.stdout)
        assert data["summary"]["total"] == 11
        assert data["components"] == {"compose": 40, "runtime": 60}
        assert sorted(data["bySection"]) == ["5"]

    def test_invalid_yaml(self, runner, isolated_cwd):
        compose_file = isolated_cwd / "docker-compose.yml"
        compose_file.write_text("services: [unclosed", encoding="utf-8")
        result = runner.invoke(cli, ["compose", str(compose_file)])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert "ComposeParseError" in result.output

    def test_missing_file(self, runner):
        result = runner.invoke(cli, ["compose", "missing.yml"])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE

    def test_hardening_flag(self, runner, fixtures_dir):
        result = runner.invoke(
            cli,
            ["compose", str(fixtures_dir / "docker-compose.insecure.yml"), "--hardening", "--format", "json"],
        )
        data = json.loads(result.stdout)
        assert data["components"] == {"compose": 40, "runtime": 60, "hardening": 60}
        assert data["summary"]["total"] == 16
        assert data["level1Score"] == 45

    def test_hardening_from_environment(self, runner, fixtures_dir, monkeypatch):
        monkeypatch.setenv("CONTAINERGUARD_AUDIT_SERVICE_HARDENING", "true")
        result = runner.invoke(
            cli, ["compose", str(fixtures_dir / "docker-compose.insecure.yml"), "--format", "json"]
        )
        assert "hardening" in json.loads(result.stdout)["components"]

    def test_markdown_output(self, runner, fixtures_dir):
        result = runner.invoke(
            cli, ["compose", str(fixtures_dir / "docker-compose.insecure.yml"), "--format", "markdown"]
        )
        assert result.exit_code == ExitCodes.CRITICAL_SEVERITY
        assert "## Compose Analysis" in result.stdout
        assert "Score: compose 40/100, runtime 60/100" in result.stdout
        assert "(service `web`)" in result.stdout


class TestAuditCommand:
    """cguard audit."""

    def test_requires_an_input(self, runner):
        result = runner.invoke(cli, ["audit"])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE

    def test_secure_inputs_pass(self, runner, fixtures_dir):
        result = runner.invoke(
            cli,
            [
                "audit",
                "--dockerfile",
                str(fixtures_dir / "Dockerfile.secure"),
                "--compose",
                str(fixtures_dir / "docker-compose.hardened.yml"),
            ],
        )
        assert result.exit_code == ExitCodes.SUCCESS
        assert "PASSED" in result.output

    def test_insecure_inputs_fail(self, runner, fixtures_dir):
        result = runner.invoke(
            cli,
            [
                "audit",
                "--dockerfile",
                str(fixtures_dir / "Dockerfile.insecure"),
                "--compose",
                str(fixtures_dir / "docker-compose.insecure.yml"),
                "--format",
                "json",
            ],
        )
        assert result.exit_code == ExitCodes.AUDIT_FAILED
        data = json.loads(result.stdout)
        assert data["passed"] is False
        assert data["score"] == data["level1Score"] == 30

    def test_threshold_option(self, runner, isolated_cwd):
        compose_file = isolated_cwd / "docker-compose.yml"
        compose_file.write_text("services:\n  app:\n    image: example/app:1\n", encoding="utf-8")

        passed = runner.invoke(cli, ["audit", "--compose", str(compose_file), "--threshold", "75"])
        failed = runner.invoke(cli, ["audit", "--compose", str(compose_file), "--threshold", "76"])

        assert passed.exit_code == ExitCodes.SUCCESS
        assert failed.exit_code == ExitCodes.AUDIT_FAILED

    def test_threshold_from_environment(self, runner, isolated_cwd, monkeypatch):
        compose_file = isolated_cwd / "docker-compose.yml"
        compose_file.write_text("services:\n  app:\n    image: example/app:1\n", encoding="utf-8")
        monkeypatch.setenv("CONTAINERGUARD_AUDIT_PASS_THRESHOLD", "80")
        result = runner.invoke(cli, ["audit", "--compose", str(compose_file)])
        assert result.exit_code == ExitCodes.AUDIT_FAILED

    def test_missing_dockerfile(self, runner, fixtures_dir):
        result = runner.invoke(
            cli,
            ["audit", "--dockerfile", "missing", "--compose", str(fixtures_dir / "docker-compose.hardened.yml")],
        )
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE

    def test_invalid_yaml_is_input_error(self, runner, isolated_cwd, fixtures_dir):
        compose_file = isolated_cwd / "docker-compose.yml"
        compose_file.write_text("services: [unclosed", encoding="utf-8")
        result = runner.invoke(
            cli,
            ["audit", "--dockerfile", str(fixtures_dir / "Dockerfile.secure"), "--compose", str(compose_file)],
        )
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert "ComposeParseError" in result.output

    def test_pass_shows_critical_count(self, runner, isolated_cwd):
        """Test that a Level-1 pass still surfaces critical secrets findings."""
        dockerfile = isolated_cwd / "Dockerfile"
        dockerfile.write_text(
            "FROM alpine:3.19\nENV DB_PASSWORD=hunter2\nUSER app\nHEALTHCHECK CMD true\n", encoding="utf-8"
        )
        result = runner.invoke(cli, ["audit", "--dockerfile", str(dockerfile)])
        assert result.exit_code == ExitCodes.SUCCESS
        assert "PASSED" in result.stdout
        assert "Critical findings: 1" in result.stdout

    def test_markdown_output(self, runner, fixtures_dir):
        result = runner.invoke(
            cli,
            [
                "audit",
                "--dockerfile",
                str(fixtures_dir / "Dockerfile.insecure"),
                "--compose",
                str(fixtures_dir / "docker-compose.insecure.yml"),
                "--format",
                "markdown",
            ],
        )
        assert result.exit_code == ExitCodes.AUDIT_FAILED
        assert "- **Level-1 Compliance**: 30/100 (FAILED)" in result.stdout
        assert result.stdout.index("## Dockerfile Analysis") < result.stdout.index("## Compose Analysis")
        assert "CONTAINER COMPLIANCE AUDIT" not in result.stdout


class TestFixCommand:
    """cguard fix."""

    def test_text_output(self, runner, fixtures_dir):
        result = runner.invoke(
            cli,
            [
                "fix",
                "--dockerfile",
                str(fixtures_dir / "Dockerfile.insecure"),
                "--compose",
                str(fixtures_dir / "docker-compose.insecure.yml"),
            ],
        )
        assert result.exit_code == ExitCodes.SUCCESS
        assert "SUGGESTED FIXES" in result.stdout
        assert "+USER 10001:10001" in result.stdout
        assert "web: cap_drop [ALL]" in result.stdout
        assert "Findings: 8 -> 6 after fixes" in result.stdout

    def test_json_output(self, runner, fixtures_dir):
        result = runner.invoke(
            cli, ["fix", "--compose", str(fixtures_dir / "docker-compose.insecure.yml"), "--format", "json"]
        )
        data = json.loads(result.stdout)
        assert list(data) == ["compose"]
        assert data["compose"]["findings"] == 11
        assert data["compose"]["remaining"] == 2

    def test_nothing_to_change(self, runner, fixtures_dir):
        result = runner.invoke(cli, ["fix", "--dockerfile", str(fixtures_dir / "Dockerfile.secure")])
        assert result.exit_code == ExitCodes.SUCCESS
        assert "Nothing to change" in result.stdout

    def test_output_dir(self, runner, fixtures_dir, isolated_cwd):
        out = isolated_cwd / "hardened"
        source = fixtures_dir / "Dockerfile.insecure"
        result = runner.invoke(cli, ["fix", "--dockerfile", str(source), "--output-dir", str(out)])
        assert result.exit_code == ExitCodes.SUCCESS
        patched = (out / "Dockerfile.insecure").read_text(encoding="utf-8")
        assert "USER 10001:10001" in patched
        assert "USER 10001:10001" not in source.read_text(encoding="utf-8")

    def test_requires_an_input(self, runner):
        result = runner.invoke(cli, ["fix"])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE

    def test_refuses_to_overwrite_inputs(self, runner, isolated_cwd):
        dockerfile = isolated_cwd / "Dockerfile"
        dockerfile.write_text("FROM alpine:3.19\n", encoding="utf-8")
        result = runner.invoke(cli, ["fix", "--dockerfile", str(dockerfile), "--output-dir", str(isolated_cwd)])
        assert result.exit_code == ExitCodes.TASK_INCOMPLETE
        assert dockerfile.read_text(encoding="utf-8") == "FROM alpine:3.19\n"


class TestLoggingFlag:
    """cguard -v."""

    def test_verbose_emits_debug_to_stderr(self, runner, fixtures_dir):
        from containerguard.utils.logging import configure_logging

        try:
            result = runner.invoke(cli, ["-v", "lint", str(fixtures_dir / "Dockerfile.secure"), "--format", "json"])
        finally:
            configure_logging()
        assert result.exit_code == ExitCodes.SUCCESS
        assert json.loads(result.stdout)["score"] == 100
        assert "DEBUG" in result.stderr
