"""ASGI entrypoint for the nutrition chat API."""

from nutrition_chat.api.app import create_app
from nutrition_chat.containers import build_container

app = create_app(build_container())
