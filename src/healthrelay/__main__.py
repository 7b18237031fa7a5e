"""Entry point for running healthrelay as a module.

Allows running the application with:
    python -m healthrelay

This delegates to the Typer CLI app.
"""

from healthrelay.cli import app

if __name__ == "__main__":
    app()
