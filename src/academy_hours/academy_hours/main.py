from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .adjustments.controller import register as register_adjustments
from .analytics.controller import register as register_analytics
from .common.logging_config import setup_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .leave.controller import register as register_leave
from .ledger.controller import register as register_ledger
from .postponements.controller import register as register_postponements

logger = logging.getLogger(__name__)


def register_routes(app: Flask, container: Container) -> None:
    register_ledger(app, container)
    register_adjustments(app, container)
    register_leave(app, container)
    register_postponements(app, container)
    register_analytics(app, container)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_DIR", None))
    logger.info(
        "Starting academy-hours (settings=%s, db=%s@%s:%s/%s)",
        settings_module, db_config.get("user"), db_config.get("host"), db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))

    container = build_container(db_config=db_config, settings=settings)
    register_routes(app, container)
    return app
