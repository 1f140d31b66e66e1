# tenant_relay/cli/utils_cli.py
import requests
import typer
import json
from typing import Optional, Dict, Any, Union, List

from . import config


def make_api_request(
    method: str,
    endpoint: str,
    json_payload: Optional[Dict[str, Any]] = None,
    params_payload: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    expected_status: Union[int, List[int]] = 200
) -> Any:
    """
    Call the relay admin API and print the outcome.

    Exits with code 1 on connection errors or unexpected status codes.
    """
    full_url = f"{config.RELAY_CLI_API_BASE_URL}{endpoint}"
    request_headers: Dict[str, str] = dict(headers or {})

    if config.RELAY_CLI_ADMIN_API_KEY:
        request_headers["X-Admin-API-Key"] = config.RELAY_CLI_ADMIN_API_KEY
    elif "/admin/" in endpoint:
        typer.secho(
            "CLI: Warning - ADMIN_API_KEY not set in .env for CLI. Admin API calls might fail.",
            fg=typer.colors.YELLOW
        )

    typer.echo(f"CLI: {method.upper()} {full_url}")
    if params_payload:
        typer.echo(f"CLI: Query Params: {params_payload}")

    try:
        response = requests.request(
            method,
            full_url,
            json=json_payload,
            params=params_payload,
            headers=request_headers,
            timeout=30
        )
    except requests.exceptions.ConnectionError as e:
        typer.secho(
            f"CLI: Connection Error - Could not connect to API at {full_url}. Is the server running? Error: {e}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    except requests.exceptions.RequestException as e:
        typer.secho(f"CLI: Request Error - {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"CLI: Response Status: {response.status_code}")
    expected_statuses = [expected_status] if isinstance(expected_status, int) else expected_status

    if response.status_code not in expected_statuses:
        err_msg = f"CLI: API Error - Expected status {expected_status}, got {response.status_code}."
        try:
            err_msg += f" Detail: {response.json().get('detail', response.text)}"
        except (ValueError, AttributeError):
            err_msg += f" Raw response: {response.text}"
        typer.secho(err_msg, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    etag = response.headers.get("ETag")
    if etag:
        typer.echo(f"CLI: ETag: {etag}")
    try:
        data = response.json()
    except ValueError:
        typer.secho(f"CLI: Error - Could not decode JSON response. Raw text: {response.text}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(typer.style("CLI: Response JSON:", fg=typer.colors.CYAN))
    typer.echo(json.dumps(data, indent=2))
    return data
