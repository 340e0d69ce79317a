"""Suggest fixes for Dockerfile and Compose security issues."""

import difflib
import json
import sys
from pathlib import Path

import click
from rich.markup import escape

from containerguard.config_runtime import load_runtime_config, rule_config_from_runtime
from containerguard.parsers.compose_parser import ComposeParser
from containerguard.pipeline.ui import console, print_error, print_header
from containerguard.remediation import FixSuggestion, suggest_fixes
from containerguard.utils.error_handler import handle_exceptions
from containerguard.utils.exit_codes import ExitCodes
from containerguard.utils.helpers import read_text_file
from containerguard.utils.logging import logger

DIFF_STYLES = {"+": "green", "-": "red", "@": "cyan"}


def _unified_diff(suggestion: FixSuggestion, path: Path) -> list[str]:
    return list(
        difflib.unified_diff(
            suggestion.original.splitlines(),
            suggestion.suggested.splitlines(),
            fromfile=f"a/{path.name}",
            tofile=f"b/{path.name}",
            lineterm="",
        )
    )


def _print_suggestion(label: str, path: Path, suggestion: FixSuggestion) -> None:
    console.print(f"\n[path]{escape(str(path))}[/path] ({label})", highlight=False)
    if not suggestion.changed:
        console.print("  Nothing to change", highlight=False)
        return

    for change in suggestion.changes:
        console.print(f"  - {escape(change)}", highlight=False)
    console.print(
        f"  Findings: {suggestion.findings} -> {suggestion.remaining} after fixes\n",
        highlight=False,
    )
    for line in _unified_diff(suggestion, path):
        style = DIFF_STYLES.get(line[:1]) if not line.startswith(("+++", "---")) else "bold"
        console.print(escape(line), style=style, highlight=False, soft_wrap=True)


@click.command("fix")
@handle_exceptions
@click.option("--dockerfile", type=click.Path(dir_okay=False, path_type=Path), help="Dockerfile to patch")
@click.option("--compose", "compose_file", type=click.Path(dir_okay=False, path_type=Path), help="docker-compose.yml to harden")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write the patched files here (never over the inputs)",
)
@click.option("--root", default=".", help="Project root holding .containerguard/config.json")
def fix(dockerfile, compose_file, output_format, output_dir, root):
    """Suggest fixes: a patched Dockerfile and hardened compose defaults.

    Adds a non-root USER and a HEALTHCHECK, flags unpinned base images, and
    gives every compose service cap_drop [ALL], no-new-privileges, a
    read-only root filesystem, memory and PIDs limits and a bounded restart
    policy. Input files are never modified.

    \b
    EXAMPLES:
      cguard fix --dockerfile Dockerfile
      cguard fix --compose docker-compose.yml --output-dir hardened/

    \b
    EXIT CODES:
      0 = Suggestions produced
      3 = No input given, an input missing or unreadable, or invalid config
    """
    if dockerfile is None and compose_file is None:
        print_error("Nothing to fix: pass --dockerfile and/or --compose")
        sys.exit(ExitCodes.TASK_INCOMPLETE)

    for path in (dockerfile, compose_file):
        if path is not None and not path.is_file():
            print_error(f"Input file not found: {path}")
            sys.exit(ExitCodes.TASK_INCOMPLETE)

    cfg = load_runtime_config(root)
    rule_config = rule_config_from_runtime(cfg)

    content = None
    paths = {}
    if dockerfile is not None:
        content = read_text_file(dockerfile, cfg["limits"]["max_file_size"])
        paths["dockerfile"] = dockerfile

    compose_data = None
    if compose_file is not None:
        compose_data = ComposeParser().parse_file(compose_file)
        paths["compose"] = compose_file

    if output_dir is not None:
        clashes = [p for p in paths.values() if (output_dir / p.name).resolve() == p.resolve()]
        if clashes:
            print_error(f"--output-dir would overwrite {clashes[0]}; pick another directory")
            sys.exit(ExitCodes.TASK_INCOMPLETE)

    suggestions = suggest_fixes(dockerfile=content, compose=compose_data, rule_config=rule_config)

    if output_format == "json":
        click.echo(json.dumps({key: s.to_dict() for key, s in suggestions.items()}, indent=2))
    else:
        print_header("SUGGESTED FIXES")
        for key, suggestion in suggestions.items():
            _print_suggestion(key, paths[key], suggestion)

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        for key, suggestion in suggestions.items():
            target = output_dir / paths[key].name
            target.write_text(suggestion.suggested, encoding="utf-8")
            logger.info(f"Patched {key} written to: {target}")

    sys.exit(ExitCodes.SUCCESS)
