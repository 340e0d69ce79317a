"""Dockerfile lint command."""

import sys
from pathlib import Path

import click

from containerguard.config_runtime import load_runtime_config, rule_config_from_runtime
from containerguard.pipeline.ui import print_error
from containerguard.rules.deployment.docker_analyze import create_dockerfile_linter
from containerguard.utils.error_handler import handle_exceptions
from containerguard.utils.exit_codes import ExitCodes
from containerguard.utils.helpers import read_text_file
from containerguard.utils.logging import logger
from containerguard.utils.output import emit_report


@click.command("lint")
@handle_exceptions
@click.argument("dockerfile", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "sarif", "markdown"]),
    default="text",
    help="Output format",
)
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Write results to file")
@click.option("--root", default=".", help="Project root holding .containerguard/config.json")
def lint(dockerfile, output_format, output, root):
    """Lint a Dockerfile for container security issues.

    Checks base image pinning, minimal final images, hardcoded secrets in
    ENV/ARG/RUN, sensitive files in COPY/ADD, ADD with URLs, root user,
    missing HEALTHCHECK and single-stage builds that ship build tooling.

    \b
    EXIT CODES:
      0 = No critical/high findings
      1 = High severity findings detected
      2 = Critical findings detected
      3 = Dockerfile missing, unreadable (size, encoding), or invalid config
    """
    if not dockerfile.is_file():
        print_error(f"Dockerfile not found: {dockerfile}")
        sys.exit(ExitCodes.TASK_INCOMPLETE)

    cfg = load_runtime_config(root)
    linter = create_dockerfile_linter(rule_config_from_runtime(cfg))
    content = read_text_file(dockerfile, cfg["limits"]["max_file_size"])

    logger.info(f"Linting {dockerfile}")
    result = linter.lint(content)

    payload = {
        "file": str(dockerfile),
        "findings": [f.to_dict() for f in result.findings],
        "score": result.score,
        "summary": result.summary,
        "isMultiStage": result.parsed.is_multi_stage,
    }
    emit_report(
        payload,
        result.findings,
        result.summary,
        output_format,
        output,
        artifacts={"dockerfile": dockerfile.as_posix()},
        sources={"dockerfile": result.findings},
    )
    exit_code = ExitCodes.from_summary(result.summary)
    logger.debug(f"Exit {exit_code}: {ExitCodes.get_description(exit_code)}")
    sys.exit(exit_code)
