"""containerguard CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from containerguard import __version__
from containerguard.pipeline.ui import console
from containerguard.utils.logging import configure_logging


class GuardGroup(click.Group):
    """Help system that lists commands by what they check."""

    def format_commands(self, ctx, formatter):
        """Suppress the default command listing; format_help prints a table instead."""
        pass

    COMMAND_CATEGORIES = {
        "BUILD": {
            "title": "BUILD-TIME",
            "description": "Static checks on image definitions",
            "commands": ["lint"],
        },
        "RUNTIME": {
            "title": "RUNTIME",
            "description": "Service hardening in docker-compose files",
            "commands": ["compose"],
        },
        "COMPLIANCE": {
            "title": "COMPLIANCE",
            "description": "CIS Docker Benchmark gate for CI",
            "commands": ["audit"],
        },
        "REMEDIATION": {
            "title": "REMEDIATION",
            "description": "Patched Dockerfiles and hardened compose defaults",
            "commands": ["fix"],
        },
    }

    def format_help(self, ctx, formatter):
        super().format_help(ctx, formatter)

        registered = {
            name: cmd
            for name, cmd in self.commands.items()
            if not getattr(cmd, "hidden", False)
        }

        console.print()
        console.rule("[bold]COMMANDS[/bold]")

        for category in self.COMMAND_CATEGORIES.values():
            console.print(f"\n[bold cyan]{category['title']}[/bold cyan]")
            console.print(f"[dim]{category['description']}[/dim]")

            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=12)
            table.add_column("Description", style="white")

            for cmd_name in category["commands"]:
                if cmd_name not in registered:
                    continue
                first_line = (registered[cmd_name].help or "").split("\n")[0].strip()
                table.add_row(cmd_name, first_line.rstrip("."))

            console.print(table)

        console.print()
        console.rule()
        console.print("For detailed options: [cmd]cguard <command> --help[/cmd]")


@click.group(cls=GuardGroup)
@click.version_option(version=__version__, prog_name="cguard")
@click.help_option("-h", "--help")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr")
def cli(verbose):
    """containerguard - Container Security Compliance Engine

    \b
    QUICK START:
      cguard lint Dockerfile
      cguard compose docker-compose.yml --format sarif
      cguard audit --dockerfile Dockerfile --compose docker-compose.yml
      cguard fix --dockerfile Dockerfile --compose docker-compose.yml

    \b
    For detailed options: cguard <command> --help"""
    if verbose:
        configure_logging(level="DEBUG")


from containerguard.commands.audit import audit
from containerguard.commands.compose import compose
from containerguard.commands.fix import fix
from containerguard.commands.lint import lint

cli.add_command(lint)
cli.add_command(compose)
cli.add_command(audit)
cli.add_command(fix)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
