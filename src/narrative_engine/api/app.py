"""Flask application factory for the Narrative Engine API."""

import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv  # type: ignore[import-untyped]
from flask import Flask
from flask_cors import CORS  # type: ignore[import-untyped]
from flask_limiter import Limiter  # type: ignore[import-untyped]
from flask_limiter.util import get_remote_address  # type: ignore[import-untyped]

from ..config import get_settings
from ..utils.errors import register_error_handlers
from .routes import register_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Build and configure the Flask app.

    Args:
        config_overrides: Extra Flask config (tests pass RATELIMIT_ENABLED etc.)

    Returns:
        Configured Flask application
    """
    load_dotenv()
    settings = get_settings()
    configure_logging(settings["log_level"])

    app = Flask(__name__)
    app.config["ANALYSIS_RATE_LIMIT"] = settings["analysis_rate_limit"]
    app.config["JSON_SORT_KEYS"] = False
    if config_overrides:
        app.config.update(config_overrides)
    CORS(app)

    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=settings["rate_limits"],
        storage_uri=settings["storage_uri"],
        headers_enabled=True
    )
    app.extensions["narrative_limiter"] = limiter

    register_error_handlers(app, debug=settings["debug"])
    register_routes(app, limiter)
    logger.info(f"Narrative engine API ready (rate limits: {', '.join(settings['rate_limits'])})")
    return app
