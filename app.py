# app.py
import atexit
import logging

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from config import Config
from database import Database, init_database
from routes.api_routes import api_bp
from services.issuance import IssuanceCoordinator
from utils.errors import ServiceError, StorageError
from utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_object=Config, database=None):
    """
    Build the Flask app. When no database handle is injected, the pool is
    opened, connectivity verified and the schema ensured before serving.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    setup_logging(app.config['LOG_LEVEL'], app.config.get('LOG_FILE'))
    logger.info("Starting server initialization")

    if database is None:
        database = Database.from_config(config_object)
        database.open()
        init_database(database)
        atexit.register(database.close)

    app.extensions['database'] = database
    app.extensions['issuance'] = IssuanceCoordinator.from_config(database, config_object)

    @app.after_request
    def cors_and_security_headers(response):
        """Add CORS and security headers"""
        response.headers['Access-Control-Allow-Origin'] = app.config['CORS_ORIGINS']
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        return response

    @app.errorhandler(ServiceError)
    def service_error_handler(e):
        if isinstance(e, StorageError):
            logger.error("Storage error on %s %s (retryable=%s): %s",
                         request.method, request.path, e.retryable, e, exc_info=e)
        return e.to_dict(), e.status_code

    @app.errorhandler(Exception)
    def unexpected_error_handler(e):
        if isinstance(e, HTTPException):
            return {"success": False, "error": e.description}, e.code
        logger.exception("Unexpected error on %s %s", request.method, request.path)
        return {"success": False, "error": "Internal server error"}, 500

    app.register_blueprint(api_bp)
    return app


if __name__ == "__main__":
    app = create_app()
    logger.info("Server running on port %s", Config.PORT)
    app.run(host="0.0.0.0", port=Config.PORT, debug=False, use_reloader=False, threaded=True)
