from pathlib import Path
from typing import Optional

import click

from mlprovision.core.config import get_config, load_config, set_config
from mlprovision.core.logger import set_level


class ConfigContext:
    """Context object to hold configuration."""
    def __init__(self):
        self.config = None
        self.verbose = False


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True),
              help='Path to TOML configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """mlprovision - provision a machine learning environment on Ubuntu

    Configuration can be provided via:
    - --config option pointing to a TOML file
    - ./mlprovision.toml in current directory
    - ~/.config/mlprovision/config.toml
    """
    ctx.ensure_object(ConfigContext)
    ctx.obj.verbose = verbose

    if config_path:
        ctx.obj.config = load_config(config_path)
        set_config(ctx.obj.config)
    else:
        ctx.obj.config = get_config()

    set_level("DEBUG" if verbose else ctx.obj.config.get("logging", "level", "WARNING"))


def _make_service(config, **kwargs):
    from mlprovision.core.runner import CommandRunner
    from mlprovision.services.provision import ProvisionService

    runner = CommandRunner(
        dry_run=kwargs.pop("dry_run", False),
        use_sudo=config.get("system", "use_sudo", True),
    )
    return ProvisionService(config=config, runner=runner, **kwargs)


def _print_report(report) -> None:
    """Print the step table and the final report panel."""
    from rich.markup import escape
    from mlprovision.cli.progress import console, print_info, print_summary, print_table

    status_styles = {"ok": "[green]ok[/green]", "skipped": "[dim]skipped[/dim]",
                     "warning": "[yellow]warning[/yellow]"}
    rows = [
        [step.title, status_styles.get(step.status.value, step.status.value), escape(step.message)]
        for step in report.steps
    ]
    if rows:
        print_table("Steps", ["Step", "Status", "Details"], rows)

    print_summary("Final Report", {
        "OS version": f"Ubuntu {report.os_version}" if report.os_version else "unknown",
        "CPU/GPU flag": report.gpu_flag,
        "CUDA version target": report.cuda_version,
        "PyTorch tag": report.pytorch_tag,
    })

    for note in report.notes:
        print_info(note)
    console.print()


# =============================================================================
# Provisioning commands
# =============================================================================

@cli.command()
@click.option('--dry-run', is_flag=True, help='Show commands without changing the system')
@click.option('--cpu', 'force_cpu', is_flag=True, help='Skip GPU detection and install CPU wheels')
@click.option('--requirements', '-r', 'requirements', type=click.Path(dir_okay=False),
              help='Requirements file to install (default: requirements.txt)')
@click.option('--no-upgrade', is_flag=True, help='Skip apt upgrade')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def run(ctx, dry_run: bool, force_cpu: bool, requirements: Optional[str],
        no_upgrade: bool, yes: bool):
    """Provision the machine: system packages, GPU stack, PyTorch and NLTK.

    \b
    Examples:
        mlprovision run                 # Full setup, asks for confirmation
        mlprovision run --dry-run       # Print what would be done
        mlprovision run --cpu -y        # CPU-only setup without prompting
    """
    from rich.markup import escape
    from mlprovision.cli.progress import print_error, print_step, print_success, print_warning

    if not yes and not dry_run:
        if not click.confirm("Install system packages with sudo and set up the ML environment?"):
            click.echo("Aborted.")
            return

    service = _make_service(
        ctx.obj.config,
        dry_run=dry_run,
        requirements_file=requirements,
        force_cpu=force_cpu,
        upgrade=False if no_upgrade else None,
    )
    service.set_progress_callback(print_step)

    result = service.run()

    if result.data is not None:
        _print_report(result.data)

    if not result.success:
        print_error(f"Error: {escape(result.error)}")
        raise SystemExit(1)

    for warning in result.warnings:
        print_warning(f"Warning: {escape(warning)}")
    print_success(result.message)


@cli.command()
@click.option('--cpu', 'force_cpu', is_flag=True, help='Report the CPU path regardless of hardware')
@click.pass_context
def detect(ctx, force_cpu: bool):
    """Detect the Ubuntu version and NVIDIA GPU without changing anything."""
    from rich.markup import escape
    from mlprovision.cli.progress import print_error, print_summary

    service = _make_service(ctx.obj.config, force_cpu=force_cpu)
    result = service.detect()

    if not result.success:
        print_error(f"Error: {escape(result.error)}")
        raise SystemExit(1)

    data = result.data
    print_summary("Detected Environment", {
        "OS version": f"Ubuntu {data['os_version']}",
        "CPU/GPU flag": data["gpu_flag"],
        "nvidia-smi": "found" if data["nvidia_smi"] else "not found",
    })


@cli.command()
@click.pass_context
def verify(ctx):
    """Check the NVIDIA driver and the installed PyTorch build."""
    from mlprovision.cli.progress import console, print_success, print_warning

    service = _make_service(ctx.obj.config)
    result = service.verify()
    data = result.data

    if data["nvidia_smi"]:
        console.print(data["nvidia_smi"], markup=False, highlight=False)
    else:
        print_warning("nvidia-smi not available")

    torch_info = data["torch"]
    if torch_info["installed"]:
        print_success(f"PyTorch {torch_info['version']} (CUDA build: {torch_info['cuda_build']})")
        click.echo(f'CUDA available: {torch_info["cuda_available"]}')
        click.echo(f'Device count: {torch_info["device_count"]}')
        for device in torch_info["devices"]:
            click.echo(f'  - Index: {device["index"]}, Name: {device["name"]}')

    for warning in result.warnings:
        print_warning(warning)


@cli.command()
def version():
    """Display the current version of the mlprovision package."""
    from mlprovision.core.diagnostics import get_mlprovision_version

    click.echo(f"mlprovision v{get_mlprovision_version()}")


# =============================================================================
# Config Command Group
# =============================================================================

@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command('show')
@click.pass_context
def config_show(ctx):
    """Show current configuration."""
    from mlprovision.cli.progress import console

    config_obj = ctx.obj.config if ctx.obj else get_config()

    console.print("\n[bold]Current Configuration[/bold]")
    if config_obj._source:
        console.print(f"[dim]Source: {config_obj._source}[/dim]\n")
    else:
        console.print("[dim]Source: defaults (no config file found)[/dim]\n")

    for section_name, section in config_obj.to_dict().items():
        if section:
            console.print(f"[bold blue]\\[{section_name}][/bold blue]")
            for key, value in section.items():
                console.print(f"  {key} = {value}", markup=False)
            console.print()


@config.command('init')
@click.option('--output', '-o', default='mlprovision.toml', help='Output file path')
@click.option('--force', '-f', is_flag=True, help='Overwrite existing file')
def config_init(output, force):
    """Create a default configuration file."""
    from mlprovision.cli.progress import print_error, print_success
    from mlprovision.core.config import create_default_config_file

    path = Path(output)
    if path.exists() and not force:
        print_error(f"File already exists: {output}")
        click.echo("Use --force to overwrite.")
        raise SystemExit(1)

    create_default_config_file(output)
    print_success(f"Created configuration file: {output}")


@config.command('path')
def config_path():
    """Show configuration file search paths."""
    from mlprovision.cli.progress import console
    from mlprovision.core.config import CONFIG_LOCATIONS, find_config_file

    console.print("\n[bold]Configuration File Search Paths[/bold]\n")
    console.print("Files are merged in order (earlier entries take priority):\n")

    active_config = find_config_file()

    for i, location in enumerate(CONFIG_LOCATIONS, 1):
        exists = location.exists()
        status = "[green]✓ ACTIVE[/green]" if location == active_config else (
            "[dim]exists[/dim]" if exists else "[dim]not found[/dim]"
        )
        console.print(f"  {i}. {location} {status}")

    console.print()


def main():
    cli(obj=ConfigContext())


if __name__ == '__main__':
    main()
