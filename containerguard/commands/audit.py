"""Full container compliance audit command."""

import sys
from pathlib import Path

import click

from containerguard.compliance_report import ComplianceReportAggregator
from containerguard.config_runtime import load_runtime_config, rule_config_from_runtime
from containerguard.parsers.compose_parser import ComposeParser
from containerguard.pipeline.ui import console, print_error, print_header, print_verdict
from containerguard.utils.error_handler import handle_exceptions
from containerguard.utils.exit_codes import ExitCodes
from containerguard.utils.helpers import read_text_file
from containerguard.utils.logging import logger
from containerguard.utils.output import emit_report


@click.command("audit")
@handle_exceptions
@click.option("--dockerfile", type=click.Path(dir_okay=False, path_type=Path), help="Dockerfile to lint")
@click.option("--compose", "compose_file", type=click.Path(dir_okay=False, path_type=Path), help="docker-compose.yml to check")
@click.option("--threshold", type=click.IntRange(0, 100), default=None, help="Level-1 score needed to pass (default: config or 70)")
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
    help="Also run service hardening checks on the compose file (default: config)",
)
@click.option("--root", default=".", help="Project root holding .containerguard/config.json")
def audit(dockerfile, compose_file, threshold, output_format, output, hardening, root):
    """Audit a Dockerfile and/or compose file against the CIS Docker Benchmark.

    Merges Dockerfile lint findings with Compose and runtime findings, groups
    them by CIS section and gates on the Level-1 compliance score.

    \b
    EXAMPLES:
      cguard audit --dockerfile Dockerfile --compose docker-compose.yml
      cguard audit --compose docker-compose.yml --threshold 85 --format sarif

    \b
    EXIT CODES:
      0 = Level-1 score at or above threshold
      3 = No input given, an input missing or unreadable, or invalid config
      4 = Level-1 score below threshold
    """
    if dockerfile is None and compose_file is None:
        print_error("Nothing to audit: pass --dockerfile and/or --compose")
        sys.exit(ExitCodes.TASK_INCOMPLETE)

    for path in (dockerfile, compose_file):
        if path is not None and not path.is_file():
            print_error(f"Input file not found: {path}")
            sys.exit(ExitCodes.TASK_INCOMPLETE)

    cfg = load_runtime_config(root)
    if threshold is None:
        threshold = cfg["audit"]["pass_threshold"]
    if hardening is None:
        hardening = cfg["audit"]["service_hardening"]

    aggregator = ComplianceReportAggregator(
        pass_threshold=threshold,
        rule_config=rule_config_from_runtime(cfg),
        service_hardening=hardening,
    )

    content = None
    artifacts = {}
    if dockerfile is not None:
        content = read_text_file(dockerfile, cfg["limits"]["max_file_size"])
        artifacts["dockerfile"] = dockerfile.as_posix()

    compose_data = None
    if compose_file is not None:
        compose_data = ComposeParser().parse_file(compose_file)
        artifacts["compose"] = compose_file.as_posix()

    logger.info(f"Auditing {', '.join(artifacts.values())} (threshold {threshold})")
    report = aggregator.audit(dockerfile=content, compose=compose_data)
    if report.passed and report.summary["critical"]:
        logger.warning(
            f"Level-1 gate passed with {report.summary['critical']} critical findings outside the Level-1 controls"
        )

    if output_format == "text":
        print_header("CONTAINER COMPLIANCE AUDIT")

    emit_report(
        report.to_dict(),
        report.findings,
        report.summary,
        output_format,
        output,
        artifacts=artifacts,
        sources=report.by_source,
    )

    if output_format == "text":
        for section, findings in report.by_section.items():
            console.print(f"  CIS section {section}: {len(findings)} findings", highlight=False)
        print_verdict(
            report.passed,
            f"Level-1 compliance {report.level1_score}/100 (threshold {threshold})",
            f"{report.summary['total']} findings across {len(report.by_section)} CIS sections",
            critical=report.summary["critical"],
        )

    exit_code = ExitCodes.SUCCESS if report.passed else ExitCodes.AUDIT_FAILED
    logger.debug(f"Exit {exit_code}: {ExitCodes.get_description(exit_code)}")
    sys.exit(exit_code)
