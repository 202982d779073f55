"""Blueprint registration."""

from __future__ import annotations

from flask import Flask


def register_blueprints(app: Flask) -> None:
    from .availability import bp as availability_bp

    app.register_blueprint(availability_bp)
