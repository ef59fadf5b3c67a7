"""CLI entrypoint for spigot-tools."""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import typer

from spigot_tools.app import run_bootstrap, run_command_line, run_doctor
from spigot_tools.config import ConfigError, load_config
from spigot_tools.errors import CommandError, NonZeroExitError
from spigot_tools.repos import RepositoryError
from spigot_tools.runner import Runner

app = typer.Typer(help="Prepare Spigot source repositories and run build tooling.")

RootOption = Annotated[
    Path, typer.Option("--root", "-r", help="Directory holding the cloned repositories.")
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="YAML file overriding repositories and env."),
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Print every command before execution.")
]
TimeoutOption = Annotated[
    Optional[float],
    typer.Option("--timeout", help="Kill commands still running after this many seconds."),
]


@app.callback()
def main(
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config_or_exit(config_path: Optional[Path]):
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def bootstrap(
    root: RootOption = Path("."),
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Clone BuildData, Bukkit, CraftBukkit and Spigot where missing."""
    root = root.resolve()
    config = _load_config_or_exit(config_path)
    runner = Runner(verbose=verbose, timeout=timeout, env_defaults=config.env)

    try:
        repos = run_bootstrap(root, runner, config)
    except RepositoryError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    for repo in repos:
        typer.echo(f"  {repo.name}: {repo.path}")


@app.command()
def run(
    template: Annotated[
        str, typer.Argument(help="Command line; {0}, {1}, ... are replaced by SUBSTITUTIONS.")
    ],
    substitutions: Annotated[
        Optional[List[str]], typer.Argument(help="Values for the positional placeholders.")
    ] = None,
    cwd: Annotated[
        Path, typer.Option("--cwd", help="Working directory for the command.")
    ] = Path("."),
    stderr_as_error: Annotated[
        bool,
        typer.Option("--stderr-as-error", help="Log unclassified stderr lines as errors."),
    ] = False,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Run one command template with classified output."""
    config = _load_config_or_exit(config_path)
    runner = Runner(
        verbose=verbose,
        timeout=timeout,
        stderr_as_error=stderr_as_error,
        env_defaults=config.env,
    )

    try:
        run_command_line(cwd.resolve(), template, substitutions or [], runner)
    except NonZeroExitError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=exc.code if exc.code > 0 else 1)
    except CommandError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def doctor(
    root: RootOption = Path("."),
    config_path: ConfigOption = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show where each value comes from.")
    ] = False,
) -> None:
    """Check the build environment and the state of each repository."""
    root = root.resolve()
    config = _load_config_or_exit(config_path)
    typer.echo(f"Root: {root}\n")

    checks = run_doctor(root, config)
    for check in checks:
        mark = "ok" if check.passed else "FAIL"
        line = f"  [{mark}] {check.name}: {check.message}"
        if verbose and check.source:
            line += f" ({check.source})"
        typer.echo(line)
    typer.echo()

    if not all(check.passed for check in checks):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
