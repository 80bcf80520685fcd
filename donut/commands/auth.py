from __future__ import annotations

import typer

from donut.core.errors import DonutError
from donut.core.onboarding import ensure_client_configured, get_session_manager
from donut.infra.token_store import TokenStore
from donut.services.session import SessionManager

auth_app = typer.Typer(help="Sign in to / out of Google Calendar")


@auth_app.command("login", help="Sign in through the browser")
def login():
    ensure_client_configured()
    manager = get_session_manager()
    typer.secho("Opening your browser to sign in to Google Calendar...", fg=typer.colors.CYAN)
    try:
        session = manager.sign_in()
    except DonutError as e:
        typer.secho(f"❌ Sign-in failed: {e.message}", fg=typer.colors.RED)
        raise typer.Exit(1)
    typer.secho(f"✓ Signed in{' as ' + session.email if session.email else ''}", fg=typer.colors.GREEN)


@auth_app.command("logout", help="Forget all stored tokens")
def logout():
    # no OAuth client needed to forget tokens
    SessionManager(TokenStore(), {}).sign_out()
    typer.secho("✓ Signed out", fg=typer.colors.GREEN)


@auth_app.command("status", help="Show whether a stored session is still valid")
def status():
    ensure_client_configured()
    manager = get_session_manager()
    try:
        session = manager.restore_session()
    except DonutError as e:
        typer.secho(f"❌ {e.message}", fg=typer.colors.RED)
        raise typer.Exit(1)
    if session is None:
        typer.echo("Not signed in.")
        raise typer.Exit(1)
    typer.secho(f"Signed in as {session.email or '(unknown email)'}", fg=typer.colors.GREEN)
    typer.echo(f"Access token valid until {session.expiry.astimezone().strftime('%Y/%m/%d %H:%M')}")
