# tenant_relay/cli/admin_cli.py
import typer
from . import tenant_cli

app = typer.Typer(
    name="admin",
    help="Tenant Relay administrative commands.",
    no_args_is_help=True
)

app.add_typer(tenant_cli.app, name="tenant")


@app.callback()
def admin_callback():
    """Administrative commands against a running relay."""
    pass


if __name__ == "__main__":
    app()
