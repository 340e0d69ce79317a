"""Compose compliance command."""

import sys
from pathlib import Path

import click

from containerguard.compliance_report import ComplianceReportAggregator
from containerguard.config_runtime import load_runtime_config, rule_config_from_runtime
from containerguard.parsers.compose_parser import ComposeParser
from containerguard.pipeline.ui import print_error
from containerguard.utils.error_handler import handle_exceptions
from containerguard.utils.exit_codes import ExitCodes
from containerguard.utils.logging import logger
from containerguard.utils.output import emit_report


@click.command("compose")
@handle_exceptions
@click.argument("compose_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "sarif", "markdown"]),
    default="text",
    help="Output format",
)
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Write results to file")
@click.option(
    "--hardening/--no-hardening",
    default=None,
    help="Also run service hardening checks (default: audit.service_hardening in config)",
)
@click.option("--root", default=".", help="Project root holding .containerguard/config.json")
def compose(compose_file, output_format, output, hardening, root):
    """Check docker-compose services against CIS container runtime controls.

    \b
    CONTROLS:
      5.3  cap_drop: [ALL]           5.11 pids_limit set
      5.4  no privileged mode        5.12 read_only root filesystem
      5.10 memory limit              5.13 no host network
      5.25 no-new-privileges         5.14 restart on-failure, not always

    \b
    --hardening adds: dangerous cap_add, missing/root user, seccomp,
    custom and internal networks, secrets in environment.

    \b
    EXIT CODES:
      0 = No critical/high findings
      1 = High severity findings detected
      2 = Critical findings detected
      3 = Compose file missing, unparseable, or invalid config
    """
    if not compose_file.is_file():
        print_error(f"Compose file not found: {compose_file}")
        sys.exit(ExitCodes.TASK_INCOMPLETE)

    cfg = load_runtime_config(root)
    if hardening is None:
        hardening = cfg["audit"]["service_hardening"]

    logger.info(f"Checking {compose_file}")
    parsed = ComposeParser().parse_file(compose_file)
    aggregator = ComplianceReportAggregator(
        rule_config=rule_config_from_runtime(cfg),
        service_hardening=hardening,
    )
    report = aggregator.build_report(compose=parsed)

    payload = {"file": str(compose_file), **report.to_dict()}
    emit_report(
        payload,
        report.findings,
        report.summary,
        output_format,
        output,
        artifacts={"compose": compose_file.as_posix()},
        sources=report.by_source,
    )
    exit_code = ExitCodes.from_summary(report.summary)
    logger.debug(f"Exit {exit_code}: {ExitCodes.get_description(exit_code)}")
    sys.exit(exit_code)
