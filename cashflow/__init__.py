import uuid
from flask import Flask, request

from cashflow.config import Config  # Import configuration settings
from cashflow.extensions import db, migrate, ma
from cashflow.urls import register_blueprints
from cashflow.celery_app import init_celery
from cashflow.cli import register_commands
from cashflow.services.currency import currency_service_from_config
from cashflow.utils.exception_handler import handle_error


def create_app(test_config=None, rate_provider=None):
    """Factory function to create and configure the Flask application"""
    app = Flask(__name__)  # Create Flask app instance

    if test_config:
        app.config.from_object(test_config)
    else:
        app.config.from_object(Config)  # Load configuration from config.py

    # Let flask-restful hand our exceptions to the app error handlers
    app.config["PROPAGATE_EXCEPTIONS"] = True

    # Initialize Flask extensions
    db.init_app(app)  # Initialize SQLAlchemy
    migrate.init_app(app, db)  # Initialize Flask-Migrate
    ma.init_app(app)

    # One converter (and rate cache) per app
    app.extensions["currency_service"] = currency_service_from_config(
        app.config, rate_provider
    )

    # Register Blueprints (URLs)
    register_blueprints(app)
    register_commands(app)

    app.celery = init_celery(app)
    handle_error(app)

    @app.before_request
    def validate_uuid_params():
        # Check if view_args is populated and has an 'id' key
        if request.view_args and "id" in request.view_args:
            id_value = request.view_args["id"]
            try:
                uuid.UUID(id_value)  # Validate UUID format
            except ValueError:
                return {
                    "error": f"Invalid id format, it must be a UUID: {id_value}"
                }, 400

    return app


# importing all the models
from cashflow import models
