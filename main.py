#!/usr/bin/env python3
import click
import colorama
from local_registry import __version__
from local_registry.config import ENV_PREFIX, load_config
from local_registry.exceptions import UsageError
from local_registry.lifecycle import start_registry, stop_registry, list_containers, show_logs
from local_registry.utils import set_debug, log_debug

colorama.init(autoreset=True)


class ActionGroup(click.Group):
    """Dispatch table of actions; a missing or unknown action is fatal (exit 1)"""

    def resolve_command(self, ctx, args):
        cmd_name = args[0] if args else None
        if cmd_name and not cmd_name.startswith('-') and self.get_command(ctx, cmd_name) is None:
            raise UsageError(
                f"Unknown action '{cmd_name}'. "
                f"Supported: {', '.join(self.list_commands(ctx))}"
            )
        return super().resolve_command(ctx, args)


@click.group(cls=ActionGroup, invoke_without_command=True,
             context_settings={'help_option_names': ['-h', '--help']})
@click.option('--image', '-i', envvar=ENV_PREFIX + 'IMAGE',
              help='Registry image to run')
@click.option('--user', '-u', envvar=ENV_PREFIX + 'USER',
              help='Registry user (default: random)')
@click.option('--pass', '-p', 'password', envvar=ENV_PREFIX + 'PASS',
              help='Registry password (default: random)')
@click.option('--port', '-P', type=click.IntRange(1, 65535), envvar=ENV_PREFIX + 'PORT',
              help='Host port (default for start: first free port in 5000-5999)')
@click.option('--config', '-c', type=click.Path(dir_okay=False),
              help='Optional YAML config file')
@click.option('--debug', is_flag=True, help='Show debug output')
@click.version_option(__version__, '--version')
@click.pass_context
def cli(ctx, image, user, password, port, config, debug):
    """Run a throwaway, authenticated, TLS-enabled container registry

    \b
    Actions:
      start   start a registry; prints PODMAN_REGISTRY_* assignments to eval
      stop    stop the registry on PORT and remove its state
      ps      list containers of the registry on PORT
      logs    show logs of the registry on PORT
    """
    set_debug(debug)
    if ctx.invoked_subcommand is None:
        raise UsageError(f"Missing action. Supported: {', '.join(cli.list_commands(ctx))}")

    base = load_config(config)
    ctx.obj = base.with_overrides(image=image, user=user, password=password, port=port)
    log_debug(f"Configuration: image={ctx.obj.image} port={ctx.obj.port} runtime={ctx.obj.runtime}")


@cli.command()
@click.pass_obj
def start(config):
    """Start a registry and print its connection variables"""
    resolved = start_registry(config)
    for line in resolved.as_shell_assignments():
        click.echo(line)


@cli.command()
@click.pass_obj
def stop(config):
    """Stop the registry on PORT and delete its workdir"""
    stop_registry(config)


@cli.command()
@click.pass_obj
def ps(config):
    """List the containers of the registry on PORT"""
    list_containers(config)


@cli.command()
@click.pass_obj
def logs(config):
    """Show the container logs of the registry on PORT"""
    show_logs(config)


if __name__ == "__main__":
    cli()
