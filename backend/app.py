from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from api import users_bp, tasks_bp, logs_bp, announcements_bp, dashboard_bp, notifications_bp
from config.settings import Settings
from firebase_utils import init_firebase
from middleware.error_middleware import ErrorHandler, register_error_handlers


def create_app(initialize_firebase: bool = True):
    """Create and configure the Flask application.

    Args:
        initialize_firebase: Set to False in tests, which patch
            ``firestore.client`` with an in-memory fake.
    """
    app = Flask(__name__)

    # Configure CORS - MUST be before routes
    CORS(app,
         resources={r"/*": {"origins": Settings.CORS_ORIGINS}},
         allow_headers=["Content-Type", "X-User-Id", "Authorization"],
         methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
         supports_credentials=True)

    # Initialize Firebase (allow app to start even if Firebase fails)
    firebase_initialized = init_firebase() if initialize_firebase else False

    @app.get("/")
    def health():
        return jsonify({
            "status": "ok",
            "service": "org-dashboard-api",
            "firebase": "connected" if firebase_initialized else "not configured"
        }), 200

    if Settings.DEBUG:
        app.before_request(ErrorHandler.log_request_info)

    register_error_handlers(app)

    app.register_blueprint(users_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(announcements_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(notifications_bp)

    return app


def main():
    """Main entry point for running the application."""
    Settings.validate()
    app = create_app()
    app.run(host="0.0.0.0", port=Settings.PORT, debug=Settings.DEBUG)


if __name__ == "__main__":  # pragma: no cover
    main()
