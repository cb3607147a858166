"""ASGI entrypoint for the asset handoff API."""

from asset_handoff.api.app import create_app
from asset_handoff.containers import build_container

app = create_app(build_container())
