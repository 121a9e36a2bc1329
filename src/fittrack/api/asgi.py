"""ASGI entrypoint for the FitTrack API."""

from fittrack.api.app import create_app

app = create_app()
