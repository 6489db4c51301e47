"""ASGI entrypoint for the date planner API."""

from date_planner.api.app import create_app
from date_planner.containers import build_container

app = create_app(build_container())
