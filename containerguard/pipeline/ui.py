"""Rich console and styling shared by every cguard command.

Usage:
    from containerguard.pipeline.ui import console, print_header, severity_tag

    print_header("DOCKERFILE LINT")
    console.print(f"{severity_tag('high')} no-root-user")
"""

import sys

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

GUARD_THEME = Theme({
    "critical": "bold red",
    "high": "bold yellow",
    "medium": "bold blue",
    "low": "cyan",
    "info": "dim cyan",
    "error": "bold red",
    "success": "bold green",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

# Report output; JSON and SARIF bypass this and go through click.echo
console = Console(
    theme=GUARD_THEME,
    force_terminal=sys.stdout.isatty()
)

err_console = Console(theme=GUARD_THEME, stderr=True)


def severity_tag(severity: str) -> str:
    """Markup for a bracketed, colored severity label."""
    return f"\\[[{severity}]{severity.upper()}[/{severity}]]"


def print_header(title: str) -> None:
    console.rule(f"[bold]{title}[/bold]")


def print_error(msg: str) -> None:
    err_console.print(f"[error]ERROR:[/error] {msg}", highlight=False)


def print_verdict(passed: bool, message: str, detail: str, critical: int = 0) -> None:
    """Boxed PASSED/FAILED banner for the audit gate.

    Args:
        passed: Gate outcome, selects the border color
        message: Main line (score vs threshold)
        detail: Second line, dimmed
        critical: Critical findings in the report. Shown even on a pass,
                  since level-2 controls (secrets) do not move the gate.
    """
    status, style = ("PASSED", "green") if passed else ("FAILED", "red")
    body = Text()
    body.append(f"{status}\n", style=f"bold {style}")
    body.append(f"{message}\n")
    body.append(detail, style="dim")
    if critical:
        body.append(f"\nCritical findings: {critical}", style="bold red")
    console.print(Panel(body, border_style=style, expand=False))
