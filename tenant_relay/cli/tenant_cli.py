# tenant_relay/cli/tenant_cli.py
import typer
from typing import Optional
from typing_extensions import Annotated
import json

from .utils_cli import make_api_request

app = typer.Typer(
    name="tenant",
    help="Inspect and configure relay tenants via the Admin API.",
    no_args_is_help=True
)


def _if_match_headers(if_match: Optional[str]):
    return {"If-Match": if_match} if if_match else None


@app.command("get")
def get_tenant(
    tenant_id: Annotated[str, typer.Argument(help="The tenant ID to retrieve.")]
):
    """Show a tenant record (provider secret masked)."""
    make_api_request("GET", f"/admin/tenants/{tenant_id}")


@app.command("list")
def list_tenants(
    skip: Annotated[int, typer.Option("--skip", help="Number of tenants to skip.", min=0)] = 0,
    limit: Annotated[
        int, typer.Option("--limit", help="Maximum number of tenants to return.", min=1, max=100)
    ] = 100
):
    """List tenant records."""
    make_api_request("GET", "/admin/tenants/", params_payload={"skip": skip, "limit": limit})


@app.command("set-credentials")
def set_credentials(
    tenant_id: Annotated[str, typer.Argument(help="The tenant ID to configure.")],
    secret: Annotated[
        str,
        typer.Option(prompt="Runtime API secret", hide_input=True, help="Runtime API key for this tenant.")
    ],
    version: Annotated[Optional[str], typer.Option("--version", help="Runtime version ID.")] = None,
    if_match: Annotated[
        Optional[str], typer.Option("--if-match", help="Only apply if the record still has this ETag.")
    ] = None
):
    """Set the conversational runtime credentials of a tenant."""
    payload = {"voiceflow_secret": secret}
    if version is not None:
        payload["voiceflow_version"] = version
    make_api_request(
        "PUT",
        f"/admin/tenants/{tenant_id}/provider-credentials",
        json_payload=payload,
        headers=_if_match_headers(if_match)
    )


@app.command("set-fields")
def set_fields(
    tenant_id: Annotated[str, typer.Argument(help="The tenant ID to update.")],
    fields_json: Annotated[
        str, typer.Option("--fields-json", help="JSON object of administrative fields to set.")
    ],
    if_match: Annotated[
        Optional[str], typer.Option("--if-match", help="Only apply if the record still has this ETag.")
    ] = None
):
    """Set administrative fields on a tenant. Other fields are left as they are."""
    try:
        fields = json.loads(fields_json)
    except json.JSONDecodeError:
        typer.secho(f"Error: Invalid JSON string provided for fields: {fields_json}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(fields, dict) or not fields:
        typer.secho("Error: --fields-json must be a non-empty JSON object.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    make_api_request(
        "PATCH",
        f"/admin/tenants/{tenant_id}/fields",
        json_payload={"fields": fields},
        headers=_if_match_headers(if_match)
    )


if __name__ == "__main__":
    app()
