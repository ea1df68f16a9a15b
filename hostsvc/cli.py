"""Command line entry point."""

import logging
from typing import Callable, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from hostsvc.config import ServiceConfig
from hostsvc.exceptions import ServiceManagerError
from hostsvc.manager import ServiceLifecycleManager
from hostsvc.status import StepResult

logger = logging.getLogger('hostsvc')

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    help='Install, update or remove the hostagent background service.',
)


def get_manager() -> ServiceLifecycleManager:
    """Lifecycle manager for the service at its well-known paths."""
    return ServiceLifecycleManager(ServiceConfig())


def configure_logging(verbose: bool = False) -> None:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(message)s',
        handlers=[handler],
        force=True,
    )


def _run(operation: Callable[[ServiceLifecycleManager], List[StepResult]]) -> None:
    try:
        operation(get_manager())
    except ServiceManagerError as e:
        logger.error('%s', e)
        raise typer.Exit(code=e.exit_code) from e


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Show debug output.'),
    install_flag: bool = typer.Option(False, '--install', hidden=True),
    update_flag: bool = typer.Option(False, '--update', hidden=True),
    uninstall_flag: bool = typer.Option(False, '--uninstall', hidden=True),
) -> None:
    """Install the service when no command is given."""
    configure_logging(verbose)
    # Legacy flag spellings of the three operations.
    operations = [
        operation for flag, operation in (
            (install_flag, ServiceLifecycleManager.install),
            (update_flag, ServiceLifecycleManager.update),
            (uninstall_flag, ServiceLifecycleManager.uninstall),
        ) if flag
    ]
    if len(operations) > 1:
        raise typer.BadParameter('--install, --update and --uninstall are mutually exclusive')
    if operations and ctx.invoked_subcommand is not None:
        raise typer.BadParameter(f'Cannot combine an operation flag with the {ctx.invoked_subcommand} command')
    if ctx.invoked_subcommand is None:
        _run(operations[0] if operations else ServiceLifecycleManager.install)


@app.command()
def install() -> None:
    """Download, register and start the service."""
    _run(ServiceLifecycleManager.install)


@app.command()
def update() -> None:
    """Replace the executable with the latest release and restart the service."""
    _run(ServiceLifecycleManager.update)


@app.command()
def uninstall() -> None:
    """Stop the service and remove all of its files."""
    _run(ServiceLifecycleManager.uninstall)


@app.command()
def status() -> None:
    """Show whether the service is installed and running."""
    manager = get_manager()
    service_status = manager.status
    typer.echo(f'init system: {service_status.init_system.name}')
    typer.echo(f'installation: {service_status.installation_status.name}')
    typer.echo(f'running: {service_status.running_status.name}')


def run(argv: Optional[List[str]] = None) -> None:
    app(args=argv, prog_name='hostsvc')
