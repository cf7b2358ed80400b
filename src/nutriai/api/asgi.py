"""ASGI entrypoint for the meal analysis API."""

from nutriai.api.app import create_app
from nutriai.containers import build_container

app = create_app(build_container())
