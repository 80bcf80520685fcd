from typing import Optional

import typer

from donut.core.onboarding import read_pasted_json
from donut.infra.settings import (GOOGLE_CREDENTIALS_PATH,
                                  import_oauth_client_from_json_string,
                                  import_oauth_client_from_path)
from donut.infra.token_store import TokenStore

configure_app = typer.Typer(help="Configure OAuth")


@configure_app.command("oauth")
def cfg_oauth(
    path: Optional[str] = typer.Option(None, "--path", help="Path to credentials.json (optional, can paste JSON instead)"),
    paste: bool = typer.Option(False, "--paste", help="Paste JSON in terminal (end with 'END')"),
):
    """Import the OAuth client used for sign-in"""
    try:
        if paste:
            import_oauth_client_from_json_string(read_pasted_json())
        elif path:
            import_oauth_client_from_path(path)
        elif not GOOGLE_CREDENTIALS_PATH.exists():
            typer.secho("No --path / --paste provided, and no existing credentials.json found.", fg=typer.colors.RED)
            raise typer.Exit(1)
    except (OSError, ValueError) as e:
        typer.secho(f"❌ Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(1)
    typer.secho(f"✓ OAuth client saved to {GOOGLE_CREDENTIALS_PATH}", fg=typer.colors.GREEN)
    typer.echo("Next: donut auth login")


@configure_app.command("reset")
def cfg_reset(delete_all: bool = typer.Option(False, "--all", help="Delete both tokens and credentials (full reset)")):
    """Reset: by default deletes only the stored tokens; use --all to delete credentials too."""
    if delete_all and GOOGLE_CREDENTIALS_PATH.exists():
        GOOGLE_CREDENTIALS_PATH.unlink()
        typer.secho("✓ credentials.json deleted", fg=typer.colors.GREEN)
    TokenStore().delete_all()
    typer.secho("✓ tokens deleted (will reauthorize next time)", fg=typer.colors.GREEN)
