"""Doctor availability service exposing the Flask application factory."""

from __future__ import annotations

import os
from pathlib import Path

from flask import Flask, jsonify

from .blueprints import register_blueprints
from .extensions import init_extensions
from .services.auto_migrate import auto_upgrade
from .services.bootstrap import ensure_base_tables
from .cli import register_cli


def _data_root(base_dir: Path, override: Path | None = None) -> Path:
    root = override if override else base_dir / "data"
    root.mkdir(parents=True, exist_ok=True)
    (root / "logs").mkdir(parents=True, exist_ok=True)
    return root


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def create_app() -> Flask:
    project_root = Path(__file__).resolve().parent.parent
    db_override = os.getenv("CLINIC_DB_PATH")
    data_root = _data_root(project_root, Path(db_override).parent if db_override else None)
    db_path = Path(db_override) if db_override else data_root / "app.db"

    app = Flask(__name__)

    secret_key = os.getenv("CLINIC_SECRET_KEY")
    if not secret_key:
        secret_key = os.urandom(32)

    doctor_list = [
        doc.strip()
        for doc in os.getenv("CLINIC_DOCTORS", "Dr. Lina,Dr. Omar").split(",")
        if doc.strip()
    ]
    if not doctor_list:
        doctor_list = ["On Call"]

    app.config.update(
        SECRET_KEY=secret_key,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_path}",
        SQLALCHEMY_ENGINE_OPTIONS={"connect_args": {"check_same_thread": False}},
        RATELIMIT_STORAGE_URI=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        DATA_ROOT=str(data_root),
        CLINIC_DB=str(db_path),
        CLINIC_DOCTORS=doctor_list,
        AVAILABILITY_MAX_RANGE_DAYS=_env_int("AVAILABILITY_MAX_RANGE_DAYS", 90),
        AVAILABILITY_DEFAULT_DURATION=_env_int("AVAILABILITY_DEFAULT_DURATION", 30),
        AVAILABILITY_DEFAULT_BUFFER=_env_int("AVAILABILITY_DEFAULT_BUFFER", 0),
        AVAILABILITY_DEFAULT_INTERVAL=_env_int("AVAILABILITY_DEFAULT_INTERVAL", 15),
    )

    init_extensions(app)
    register_blueprints(app)
    auto_upgrade(app)
    ensure_base_tables(Path(app.config["CLINIC_DB"]))
    register_cli(app)

    @app.errorhandler(400)
    def handle_bad_request(e):
        app.logger.warning("Bad request: %s", e)
        return jsonify({"success": False, "errors": ["bad_request"]}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"success": False, "errors": ["not_found"]}), 404

    @app.errorhandler(429)
    def handle_rate_limited(e):
        return jsonify({"success": False, "errors": [f"rate_limited:{e.description}"]}), 429

    return app


__all__ = ["create_app"]
