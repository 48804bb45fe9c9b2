"""
Flask application entry point for the Adopet adoption backend.

Registers the adoption lifecycle routes and, unless disabled, starts the
hourly escalation scheduler in the same process.
"""

import logging

from flask import Flask

from adopet.config import config
from adopet.api.adoptions import bp as adoptions_bp
from adopet.db.postgres import close_db_session, rollback_session
from adopet.services.adoption_service import get_adoption_service
from adopet.services.escalation import EscalationScheduler


def create_app(init_database: bool = False, service=None, start_scheduler=None):
    """Create and configure Flask app.

    service overrides the singleton AdoptionService (tests pass one bound
    to their own session factory). start_scheduler defaults to
    ENABLE_ESCALATION_SCHEDULER.
    """
    app = Flask(__name__)

    # Load config
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["DEBUG"] = config.DEBUG

    # Enable CORS for the web client
    @app.after_request
    def after_request(response):
        response.headers.add("Access-Control-Allow-Origin", "*")
        response.headers.add("Access-Control-Allow-Headers", "Content-Type,Authorization,X-User-Id")
        response.headers.add("Access-Control-Allow-Methods", "GET,PUT,POST,DELETE,OPTIONS")
        return response

    # Ensure clean session state at the start of each request
    @app.before_request
    def ensure_clean_session():
        rollback_session()

    # Clean up database session at the end of each request
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        close_db_session(exception)

    app.register_blueprint(adoptions_bp)  # /api/v1/pets/*, /api/v1/admin/adoptions/*

    adoption_service = service or get_adoption_service()
    app.extensions["adoption_service"] = adoption_service

    # Health check endpoint
    @app.route("/health")
    def health():
        scheduler = app.extensions.get("escalation_scheduler")
        return {
            "status": "ok",
            "firestore_enabled": config.ENABLE_FIRESTORE,
            "escalation_scheduler": bool(scheduler and scheduler.running),
        }

    # Initialize database tables if requested (development only)
    if init_database:
        with app.app_context():
            from adopet.db.postgres import init_db
            init_db()
            logging.getLogger("server").info("Database tables initialized")

    if start_scheduler is None:
        start_scheduler = config.ENABLE_ESCALATION_SCHEDULER
    if start_scheduler:
        scheduler = EscalationScheduler(adoption_service)
        scheduler.start()
        app.extensions["escalation_scheduler"] = scheduler

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = create_app(init_database=False)
    print(f"[Adopet] Starting server on port 5001...")
    print(f"[Adopet] Firestore enabled: {config.ENABLE_FIRESTORE}")
    print(f"[Adopet] Escalation scheduler: {config.ENABLE_ESCALATION_SCHEDULER} "
          f"(every {config.ESCALATION_INTERVAL_SECONDS}s, "
          f"window {config.ADOPTION_CONFIRMATION_WINDOW_HOURS}h)")
    print(f"[Adopet] Debug mode: {config.DEBUG}")
    print(f"[Adopet] Routes:")
    print(f"  - /api/v1/pets/* (Feed, nomination, adopter confirmation)")
    print(f"  - /api/v1/admin/adoptions/* (Register, confirm, reject, reconcile)")
    print(f"  - /health (Health check)")
    # Reloader would start a second scheduler thread
    app.run(debug=config.DEBUG, port=5001, use_reloader=False)
