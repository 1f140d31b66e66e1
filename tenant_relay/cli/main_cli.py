# tenant_relay/cli/main_cli.py
import typer
from . import admin_cli
from ..utils.security import generate_fernet_key

app = typer.Typer(
    name="relay",
    help="Tenant Relay Command Line Interface.",
    no_args_is_help=True
)

app.add_typer(admin_cli.app, name="admin")


@app.callback()
def main_callback():
    """
    Tenant Relay main CLI application.
    Use 'relay admin --help' for admin commands.
    """
    pass


@app.command("generate-key")
def generate_key():
    """Print a new Fernet key for RELAY_ENCRYPTION_KEY."""
    typer.echo(generate_fernet_key())
    typer.echo("Add this to your .env file as RELAY_ENCRYPTION_KEY", err=True)


def cli_entry_point():
    """Entry point function for console script registration in pyproject.toml"""
    app()


if __name__ == "__main__":
    cli_entry_point()
