"""
Flask CLI maintenance commands
"""
import click
from flask import current_app
from flask.cli import with_appcontext


def _services():
    return current_app.extensions["addondepot"]


@click.command("cache-clear")
@with_appcontext
def cache_clear_command():
    """Empty the cache folder and index (protected files are kept)."""
    if _services()["cache"].clear():
        click.echo("Cache cleared.")
    else:
        raise click.ClickException("Failed to clear the cache.")


@click.command("cache-clear-addon")
@click.argument("addon_id")
@with_appcontext
def cache_clear_addon_command(addon_id):
    """Remove the cache files of one add-on."""
    if _services()["cache"].clear_addon(addon_id):
        click.echo(f"Cache cleared for {addon_id}.")
    else:
        raise click.ClickException(f"Failed to clear the cache of {addon_id}.")


@click.command("files-purge")
@with_appcontext
def files_purge_command():
    """Delete the queued files whose deletion date has passed."""
    deleted = _services()["storage"].process_delete_queue()
    click.echo(f"{deleted} file(s) deleted.")


def register_commands(app):
    app.cli.add_command(cache_clear_command)
    app.cli.add_command(cache_clear_addon_command)
    app.cli.add_command(files_purge_command)
