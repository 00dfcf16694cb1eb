from flask import Blueprint
from flask_restful import Api, Resource
from sqlalchemy import inspect, text
from sqlalchemy.exc import OperationalError
from cashflow.extensions import db

health_bp = Blueprint("health", __name__)
health_api = Api(health_bp)


class HealthCheckResource(Resource):
    def get(self):
        try:
            db.session.execute(text("SELECT 1"))

            num_tables = len(inspect(db.engine).get_table_names())

            if num_tables == 0:
                return {"message": "No tables found in the database"}, 500

            return {"message": "Database is healthy", "table_count": num_tables}, 200

        except OperationalError as e:
            return {"message": "Database connection failed", "error": str(e)}, 500


health_api.add_resource(HealthCheckResource, "/health-check")
