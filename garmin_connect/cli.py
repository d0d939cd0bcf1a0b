import json
from getpass import getpass
from pathlib import Path

import click

from garmin_connect.auth.events import EventKind
from garmin_connect.auth.tokens import OAUTH1_FILENAME, OAUTH2_FILENAME
from garmin_connect.clients.garmin import GarminConnect
from garmin_connect.clients.transfer import DOWNLOAD_FORMATS, UPLOAD_FORMATS
from garmin_connect.config import Config
from garmin_connect.credentials import (
    ChainedCredentialSource,
    EnvCredentialSource,
    FileCredentialSource,
)
from garmin_connect.crypto import encrypt_password
from garmin_connect.exceptions import (
    DirectoryNotFoundError,
    GarminConnectError,
    MissingCredentialsError,
    TokenNotFoundError,
)
from garmin_connect.logger import get_logger


def _credential_source():
    return ChainedCredentialSource(EnvCredentialSource(), FileCredentialSource())


def _save_on_change(client: GarminConnect, token_dir: Path):
    """Keep the token files current when a call refreshes the session."""
    def handler(change):
        if change.reason in ("login", "refresh"):
            client.export_token_to_file(token_dir)

    client.subscribe(EventKind.SESSION_CHANGE, handler)


def _get_client(ctx) -> GarminConnect:
    """Client with a session restored from the token dir, or a fresh login."""
    token_dir = ctx.obj['token_dir']
    client = GarminConnect(
        domain=ctx.obj['domain'],
        credential_source=_credential_source(),
        require_credentials=False,
    )

    try:
        client.load_token_by_file(token_dir)
    except (DirectoryNotFoundError, TokenNotFoundError):
        try:
            client.login()
        except MissingCredentialsError:
            click.echo("Error: Not logged in. Run 'garmin-connect login' first.", err=True)
            raise click.Abort()
        client.export_token_to_file(token_dir)

    _save_on_change(client, token_dir)
    return client


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.option('--domain', default=None, help='Garmin domain (garmin.com or garmin.cn)')
@click.option('--token-dir', type=click.Path(path_type=Path), default=None,
              help='Directory holding oauth1_token.json and oauth2_token.json')
@click.option('--verbose', is_flag=True, help='Log to the console and the log file')
@click.pass_context
def cli(ctx, domain, token_dir, verbose):
    """Garmin Connect command line client."""
    ctx.ensure_object(dict)
    ctx.obj['domain'] = domain or Config.GARMIN_DOMAIN
    ctx.obj['token_dir'] = (token_dir or Config.TOKEN_DIR).expanduser()
    if verbose:
        get_logger('garmin_connect')


@cli.command()
@click.option('--username', prompt=True, help='Garmin account email')
@click.pass_context
def login(ctx, username):
    """Log in with a password and save the session tokens."""
    password = getpass(f"Enter password for {username}: ")

    try:
        client = GarminConnect(username, password, domain=ctx.obj['domain'])
        client.login()
        client.export_token_to_file(ctx.obj['token_dir'])
    except GarminConnectError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    click.echo(f"✓ Logged in as {username}, tokens saved to {ctx.obj['token_dir']}")


@cli.command()
@click.pass_context
def logout(ctx):
    """Delete the saved session tokens."""
    token_dir = ctx.obj['token_dir']
    removed = False
    for name in (OAUTH1_FILENAME, OAUTH2_FILENAME):
        path = token_dir / name
        if path.exists():
            path.unlink()
            removed = True

    if removed:
        click.echo(f"✓ Removed tokens from {token_dir}")
    else:
        click.echo(f"No tokens found in {token_dir}")


@cli.command()
@click.pass_context
def whoami(ctx):
    """Show the profile of the logged in user."""
    try:
        profile = _get_client(ctx).get_user_profile()
    except GarminConnectError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    click.echo(f"{profile.get('displayName')} ({profile.get('fullName', '')})")


@cli.command()
@click.option('--start', default=0, show_default=True, help='Offset of the first activity')
@click.option('--limit', default=20, show_default=True, help='Number of activities')
@click.option('--type', 'activity_type', help='Activity type filter')
@click.pass_context
def activities(ctx, start, limit, activity_type):
    """List recent activities."""
    try:
        items = _get_client(ctx).get_activities(start, limit, activity_type)
    except GarminConnectError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    if not items:
        click.echo("No activities found.")
        return

    for act in items:
        type_key = (act.get('activityType') or {}).get('typeKey', 'unknown')
        click.echo(
            f"{str(act.get('activityId')):<12} {str(act.get('startTimeLocal', '')):<20} "
            f"{type_key:<16} {act.get('activityName', '')}"
        )


@cli.command()
@click.argument('activity_id')
@click.option('--format', 'file_format', default='zip', type=click.Choice(DOWNLOAD_FORMATS))
@click.option('--dir', 'directory', type=click.Path(path_type=Path), default=Path.cwd(),
              help='Directory to save the file (default: current directory)')
@click.pass_context
def download(ctx, activity_id, file_format, directory):
    """Download the original data of an activity."""
    try:
        path = _get_client(ctx).download_original_activity_data(
            {'activityId': activity_id}, directory, file_format
        )
    except GarminConnectError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    click.echo(f"✓ Saved {path}")


@cli.command()
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--format', 'file_format', default=None, type=click.Choice(UPLOAD_FORMATS),
              help='File format (default: file extension)')
@click.pass_context
def upload(ctx, file_path, file_format):
    """Upload an activity file."""
    try:
        result = _get_client(ctx).upload_activity(file_path, file_format)
    except GarminConnectError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    _echo_json(result)


@cli.command('upload-status')
@click.argument('creation_date')
@click.argument('upload_id')
@click.pass_context
def upload_status(ctx, creation_date, upload_id):
    """Show the processing status of an upload."""
    try:
        result = _get_client(ctx).get_upload_activity_details(creation_date, upload_id)
    except (GarminConnectError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    _echo_json(result)


@cli.command('encrypt-password')
def encrypt_password_command():
    """Encrypt a password for GARMIN_PASSWORD_ENCRYPTED."""
    password = getpass("Password: ")
    confirm = getpass("Confirm password: ")

    if password != confirm:
        click.echo("Error: Passwords do not match!", err=True)
        raise click.Abort()

    click.echo(f"GARMIN_PASSWORD_ENCRYPTED={encrypt_password(password)}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
