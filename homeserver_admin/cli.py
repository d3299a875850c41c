import logging
import sys

import click

from homeserver_admin.config import (
    DEFAULT_CONFIG, SECRET_KEYS, coerce_value, load_config, load_settings, save_config,
)
from homeserver_admin.webdav import WebDavClient, WebDavError
from homeserver_admin.webdav.browser import format_file_size
from homeserver_admin.webdav_proxy import ADMIN_USER, WebDavProxyServer

logger = logging.getLogger("homeserver_admin")


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """Pubky Homeserver Admin CLI."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s [%(name)s] %(message)s')


@cli.command()
@click.option('--host', default=None, help='Listen address (default from config)')
@click.option('--port', type=int, default=None, help='Listen port (default from config)')
def serve(host, port):
    """Run the WebDAV proxy for the admin dashboard."""
    WebDavProxyServer().run(host=host, port=port)


@cli.group()
def config():
    """Inspect and edit homeserver_admin.json."""
    pass


@config.command(name="show")
def config_show():
    """Print the effective settings (the token is masked)."""
    settings = load_settings()
    click.echo(f"admin_base_url: {settings.admin_base_url or '(missing)'}")
    click.echo(f"admin_token:    {'(set)' if settings.admin_token else '(missing)'}")
    click.echo(f"listen:         {settings.listen_host}:{settings.listen_port}")
    click.echo(f"cors_origins:   {', '.join(settings.cors_origins) or '(none)'}")
    click.echo(f"timeout:        {settings.timeout if settings.timeout is not None else '(transport default)'}")


@config.command(name="set")
@click.argument('key')
@click.argument('value')
def config_set(key, value):
    """Store KEY=VALUE in the config file."""
    if key not in DEFAULT_CONFIG:
        raise click.BadParameter(f"Unknown key '{key}'. Choose from: {', '.join(DEFAULT_CONFIG)}")
    try:
        coerced = coerce_value(key, value)
    except ValueError as e:
        raise click.BadParameter(str(e))
    current = load_config()
    current[key] = coerced
    if not save_config(current):
        click.echo("Error: Failed to save config.")
        sys.exit(1)
    shown = "(hidden)" if key in SECRET_KEYS else coerced
    click.echo(f"[Config] {key} = {shown}")


@cli.group()
@click.option('--proxy', default=None, help='Go through a running proxy (e.g. http://localhost:8089/api/webdav)')
@click.pass_context
def dav(ctx, proxy):
    """Browse and edit files over WebDAV."""
    if proxy:
        ctx.obj = WebDavClient(proxy, method_override=True)
        return
    settings = load_settings()
    if settings.missing():
        # The client reports the missing endpoint itself on first use
        ctx.obj = WebDavClient("")
        return
    ctx.obj = WebDavClient(settings.dav_url, username=ADMIN_USER,
                           password=settings.admin_token, timeout=settings.timeout)


def _run(operation, *args):
    try:
        return operation(*args)
    except WebDavError as e:
        click.echo(f"Error: {e.message}")
        sys.exit(1)


@dav.command(name="ls")
@click.argument('path', default='/')
@click.option('--depth', type=click.Choice(['0', '1', 'infinity']), default='1', help='PROPFIND depth')
@click.pass_obj
def dav_ls(client, path, depth):
    """List a directory."""
    listing = _run(client.list_directory, path, depth)
    click.echo(f"{listing.path} ({len(listing)} entries)")
    for entry in listing:
        size = "" if entry.is_collection else format_file_size(entry.content_length)
        click.echo(f"  {entry.path:<50} {size:>10}  {entry.last_modified or ''}")


@dav.command(name="cat")
@click.argument('path')
@click.pass_obj
def dav_cat(client, path):
    """Print a file."""
    click.echo(_run(client.read_file, path), nl=False)


@dav.command(name="put")
@click.argument('path')
@click.option('--file', 'source', type=click.File('r'), default=None, help='Read content from a file')
@click.option('--content', default=None, help='Inline content')
@click.option('--content-type', default='text/plain', help='MIME type')
@click.pass_obj
def dav_put(client, path, source, content, content_type):
    """Write a file."""
    if source is None and content is None:
        raise click.UsageError("Provide --file or --content")
    data = source.read() if source is not None else content
    _run(client.write_file, path, data, content_type)
    click.echo(f"Wrote {path}")


@dav.command(name="rm")
@click.argument('path')
@click.pass_obj
def dav_rm(client, path):
    """Delete a file or directory."""
    _run(client.delete_entry, path)
    click.echo(f"Deleted {path}")


@dav.command(name="mkdir")
@click.argument('path')
@click.pass_obj
def dav_mkdir(client, path):
    """Create a directory."""
    _run(client.create_directory, path)
    click.echo(f"Created {path}")


@dav.command(name="mv")
@click.argument('source')
@click.argument('destination')
@click.pass_obj
def dav_mv(client, source, destination):
    """Move or rename an entry."""
    _run(client.move, source, destination)
    click.echo(f"Moved {source} -> {destination}")


@dav.command(name="cp")
@click.argument('source')
@click.argument('destination')
@click.pass_obj
def dav_cp(client, source, destination):
    """Copy an entry."""
    _run(client.copy, source, destination)
    click.echo(f"Copied {source} -> {destination}")


if __name__ == '__main__':
    cli()
