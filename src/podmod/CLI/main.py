"""
Command Line Interface for PodMod.
"""
import sys
import click
from ..CONFIG.settings import RuntimeSettings, PODMAN_PATH_ENV, WORKSPACE_ENV, LOG_LEVEL_ENV
from ..LIFECYCLE.deployable_module import DeployableModule
from ..MODELS.lifecycle_state import Hook
from ..PARSERS.manifest_parser import ManifestParser
from ..RUNNERS.run_context import RunContext
from ..UTILS.log_setup import configure_logging
from ..errors import PodmodError, UnsupportedManifestError


def _load_module(ctx, manifest):
    settings = ctx.obj['settings']
    run_ctx = RunContext(input=sys.stdin, out=sys.stdout, err=sys.stderr)
    module_info = ManifestParser(strict=True).parse(manifest)
    return run_ctx, DeployableModule(
        run_ctx,
        module_info,
        workspace=settings.workspace,
        cli_defaults=settings.to_cli_parts(),
    )


@click.group()
@click.option('--podman-path', envvar=PODMAN_PATH_ENV, default=None, help='Container runtime executable')
@click.option('--subcommand', default=None, help='Runtime subcommand used to start containers')
@click.option('--workspace', '-w', envvar=WORKSPACE_ENV, default=None, help='Local directory mounted as /workspace')
@click.option('--log-level', envvar=LOG_LEVEL_ENV, default='INFO', help='Log level')
@click.pass_context
def cli(ctx, podman_path, subcommand, workspace, log_level):
    """
    PodMod - run a module's lifecycle through container images.
    """
    ctx.ensure_object(dict)
    settings = RuntimeSettings.from_env()
    updates = {'log_level': log_level.upper()}
    if podman_path:
        updates['podman_path'] = podman_path
    if subcommand:
        updates['subcommand'] = subcommand
    if workspace:
        updates['workspace'] = workspace
    ctx.obj['settings'] = settings.model_copy(update=updates)
    configure_logging(ctx.obj['settings'].log_level)


@cli.command()
@click.argument('manifest', type=click.Path(exists=True, dir_okay=False))
def check(manifest):
    """Check whether a manifest is supported."""
    parser = ManifestParser()
    module = parser.parse(manifest)
    status = "supported" if module.is_supported() else "unsupported"
    click.echo(f"{module.metadata.namespace}/{module.metadata.name}: {module.api_version} {module.kind} ({status})")
    if not module.is_supported():
        sys.exit(1)


@cli.command()
@click.argument('manifest', type=click.Path(exists=True, dir_okay=False))
@click.argument('name', type=click.Choice([h.value for h in Hook]))
@click.pass_context
def hook(ctx, manifest, name):
    """Run one of the module's hooks."""
    try:
        _, module = _load_module(ctx, manifest)
        module.run_hook(Hook(name))
    except PodmodError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('manifest', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def deploy(ctx, manifest):
    """Run the module lifecycle to completion."""
    try:
        run_ctx, module = _load_module(ctx, manifest)
    except UnsupportedManifestError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for step in module:
        try:
            step(run_ctx, module)
        except PodmodError as e:
            click.echo(f"Error in state {module.previous_state}: {e}", err=True)
        click.echo(f"{module.previous_state} -> {module.state}", err=True)

    if module.is_errored():
        sys.exit(1)
    click.echo("Module deployed.", err=True)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
