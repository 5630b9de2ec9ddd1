"""WSGI entry point (``gunicorn nuagebook.wsgi:app``)."""
from nuagebook.startup import create_app

app = create_app()
