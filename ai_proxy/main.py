"""ASGI entrypoint: ``uvicorn ai_proxy.main:app``."""

from ai_proxy.core.app_factory import create_app

app = create_app()
