"""
asgi.py -- Process entry point for authsession.

This is the ONLY module that reads configuration from the environment. It
builds the Settings value once and hands it to the app factory; a missing or
invalid JWT_SECRET / TTL string aborts here, before the server binds a port.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
