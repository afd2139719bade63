from flask import Flask, jsonify
from config import Config
from routes import health_bp, services_bp, availability_bp, booking_bp

from models import db
from flask_migrate import Migrate
from booking_engine.errors import BookingError


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(booking_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        return jsonify(exc.to_dict()), exc.http_status

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from booking_engine.availability import DAYS, replace_calendar
from booking_engine.catalog import validate_service_fields
from models.service import Service

def register_cli(app):
    @app.cli.command("create-service")
    @click.argument("name")
    @click.argument("price")
    @click.argument("duration", type=int)
    def create_service(name, price, duration):
        """Add a service to the catalog."""
        try:
            fields = validate_service_fields({"name": name, "price": price, "duration": duration})
        except BookingError as exc:
            print(exc.message)
            return

        service = Service(**fields)
        db.session.add(service)
        db.session.commit()
        print(f"Service {service.id} created: {service.name}")

    @app.cli.command("default-calendar")
    @click.argument("service_id", type=int)
    def default_calendar(service_id):
        """Monday-Saturday 09:00-17:00, Sunday closed."""
        working_hours = [
            {
                "day": day,
                "isAvailable": day != "sunday",
                "slots": [{"start": "09:00", "end": "17:00"}] if day != "sunday" else [],
            }
            for day in DAYS
        ]
        try:
            replace_calendar(service_id, working_hours, [])
        except BookingError as exc:
            print(exc.message)
            return
        print(f"Default calendar set for service {service_id}")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5000)
