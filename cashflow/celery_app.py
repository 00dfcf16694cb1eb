from celery import Celery
from celery.schedules import crontab
from flask import has_app_context

from cashflow.config import Config


def _beat_schedule(interval_minutes):
    return {
        "process-recurring-transactions": {
            "task": "process_recurring_transactions",
            "schedule": crontab(minute=f"*/{interval_minutes}"),
        },
    }


def make_celery(app=None):
    """
    Create a Celery instance that integrates with Flask application context.
    """
    config = app.config if app else vars(Config)

    celery = Celery(
        "cashflow",
        broker=config.get("CELERY_BROKER_URL"),
        backend=config.get("CELERY_RESULT_BACKEND"),
        include=["cashflow.tasks.recurring_transaction"],
    )

    # Configure Celery
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=False,
        task_track_started=True,
        worker_max_tasks_per_child=1000,
        task_acks_late=True,
        broker_connection_retry_on_startup=True,
        worker_hijack_root_logger=False,
        task_always_eager=config.get("CELERY_TASK_ALWAYS_EAGER", False),
    )
    # Configure Celery Beat Schedule
    celery.conf.beat_schedule = _beat_schedule(
        config.get("RECURRING_PROCESS_INTERVAL_MINUTES", 5)
    )

    flask_app = {"app": app}

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            if has_app_context():
                return self.run(*args, **kwargs)

            if flask_app["app"] is None:
                # Worker started without an app: build one on first use
                from cashflow import create_app

                flask_app["app"] = create_app()

            with flask_app["app"].app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    celery.flask_app = flask_app
    return celery


def init_celery(app):
    """Point the shared Celery instance at a configured Flask app"""
    celery.conf.update(
        broker_url=app.config.get("CELERY_BROKER_URL"),
        result_backend=app.config.get("CELERY_RESULT_BACKEND"),
        task_always_eager=app.config.get("CELERY_TASK_ALWAYS_EAGER", False),
        beat_schedule=_beat_schedule(
            app.config.get("RECURRING_PROCESS_INTERVAL_MINUTES", 5)
        ),
    )
    celery.flask_app["app"] = app
    return celery


# Create a celery instance without Flask app for task definitions
celery = make_celery()
