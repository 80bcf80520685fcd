from __future__ import annotations

import logging

import typer

from donut.commands.auth import auth_app
from donut.commands.configure import configure_app
from donut.commands.events import events_app

app = typer.Typer(help="donut: countdown to your next Google Calendar event.")
app.add_typer(configure_app, name="configure")
app.add_typer(auth_app, name="auth")
app.add_typer(events_app)


@app.callback()
def _root(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    app()


if __name__ == "__main__":
    main()
