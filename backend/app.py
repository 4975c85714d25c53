"""
Flask Application Factory - newsroom CMS API

Every API endpoint is a procedure (stage chain + handler) registered in a
single RouteTree. The tree is built once here, frozen, installed as the
process-wide registry and only then mounted under API_PREFIX.
"""

import logging
from typing import Any, Mapping, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from config import Config

logger = logging.getLogger(__name__)


def create_app(config_overrides: Optional[Mapping[str, Any]] = None, services=None):
    """
    Build the Flask app.

    Args:
        config_overrides: Values applied on top of Config (tests)
        services: Prebuilt service bundle; built from the config when omitted
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    api_prefix = app.config["API_PREFIX"]

    CORS(app,
         resources={rf"{api_prefix}/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE"],
         allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False,
         send_wildcard=True)

    # === API MIDDLEWARE ===
    from api.middleware import (
        setup_error_handlers,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    setup_error_handlers(app)

    # === PROCEDURES ===
    from api.contracts import install_route_tree
    from api.dispatch import create_dispatch_blueprint
    from api.procedures import ExecutionEngine, SchemaMode
    from routes import build_route_tree
    from services.container import build_services

    if services is None:
        services = build_services(app.config)

    tree = build_route_tree(services).freeze()
    install_route_tree(tree)

    mode = SchemaMode.STRICT if app.config.get("CONTRACT_MODE") == "strict" else SchemaMode.WARN
    engine = ExecutionEngine(mode=mode)

    app.register_blueprint(create_dispatch_blueprint(tree, engine), url_prefix=api_prefix)
    app.extensions["cms"] = {"services": services, "route_tree": tree, "engine": engine}

    @app.route("/health")
    def health():
        return jsonify({"status": "healthy", "routes": len(tree)})

    logger.info(f"app_ready routes={len(tree)} prefix={api_prefix} contract_mode={mode.value}")
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    app.run(debug=app.config.get("DEBUG", False), port=5000)
