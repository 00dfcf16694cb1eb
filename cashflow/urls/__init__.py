from cashflow.urls.recurring_transaction import recurring_transaction_bp
from cashflow.resources.health_check import health_bp


def register_blueprints(app):
    """Registers all Flask Blueprints (URL routing)"""
    app.register_blueprint(
        recurring_transaction_bp, url_prefix="/api/recurring-transactions"
    )
    app.register_blueprint(health_bp, url_prefix="/api")
