"""ASGI entrypoint for the supplement scanner API."""

from supplement_scanner.api.app import create_app
from supplement_scanner.containers import build_container

app = create_app(build_container())
