# donut/core/onboarding.py
from __future__ import annotations

import sys

import typer

from donut.core.errors import DonutError
from donut.infra.settings import (GOOGLE_CREDENTIALS_PATH,
                                  import_oauth_client_from_json_string,
                                  import_oauth_client_from_path,
                                  load_client_config)
from donut.infra.token_store import TokenStore
from donut.services.calendar_service import CalendarManager
from donut.services.session import SessionManager


def read_pasted_json() -> str:
    typer.echo("Please paste the complete JSON. End with a line containing only 'END':")
    lines = []
    while True:
        line = sys.stdin.readline()
        if not line:
            break
        if line.strip() == "END":
            break
        lines.append(line)
    return "".join(lines)


def ensure_client_configured() -> None:
    """Walk the user through importing the OAuth client when it is missing."""
    if GOOGLE_CREDENTIALS_PATH.exists():
        return
    typer.secho("A Google OAuth client (Desktop) credentials.json is required.", fg=typer.colors.CYAN)
    choice = typer.prompt("Provide it by: 1) pasting JSON  2) file path", default="2")
    try:
        if choice.strip() == "1":
            import_oauth_client_from_json_string(read_pasted_json())
        else:
            path = typer.prompt("Path to credentials.json")
            import_oauth_client_from_path(path)
        typer.secho(f"✓ OAuth client saved to {GOOGLE_CREDENTIALS_PATH}", fg=typer.colors.GREEN)
    except (OSError, ValueError) as e:
        typer.secho(f"❌ Import failed: {e}", fg=typer.colors.RED)
        raise typer.Exit(1)


def get_session_manager() -> SessionManager:
    return SessionManager(TokenStore(), load_client_config())


def ensure_signed_in(interactive: bool = True) -> SessionManager:
    """Restore the stored session, or run the browser sign-in when there is none."""
    ensure_client_configured()
    manager = get_session_manager()
    try:
        if manager.restore_session() is None:
            if not interactive:
                typer.secho("Not signed in. Run: donut auth login", fg=typer.colors.RED)
                raise typer.Exit(1)
            typer.secho("Opening your browser to sign in to Google Calendar...", fg=typer.colors.CYAN)
            session = manager.sign_in()
            typer.secho(f"✓ Signed in{' as ' + session.email if session.email else ''}", fg=typer.colors.GREEN)
    except DonutError as e:
        typer.secho(f"❌ {e.message}", fg=typer.colors.RED)
        raise typer.Exit(1)
    return manager


def get_calendar_manager(interactive: bool = True) -> CalendarManager:
    return CalendarManager(ensure_signed_in(interactive=interactive))
