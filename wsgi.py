"""WSGI entrypoint for deployment.

Gunicorn loads `wsgi:app`; the Flask CLI uses the same module
(`FLASK_APP=wsgi flask db upgrade`, `flask create-admin ...`).
Tests build their own apps through `create_app(test_config)` in `app.py`.
"""
from app import create_app

app, _ = create_app()
