"""
Error Handling Middleware
Maps model exceptions onto JSON error responses and logs them
"""
import logging
import traceback
from flask import request, jsonify
from werkzeug.exceptions import HTTPException
from utils.errors import NotFoundError
from utils.validators import Helpers

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class ErrorHandler:
    """Builds the error bodies for the exceptions models raise"""

    @staticmethod
    def handle_validation_error(error: ValueError) -> tuple:
        """Rejected input; model messages join every failed field with "; " """
        logger.warning(f"Validation error: {error}")
        return jsonify(Helpers.build_error_response(str(error), "VALIDATION_ERROR")), 400

    @staticmethod
    def handle_authorization_error(error: PermissionError) -> tuple:
        """Actor lacks the role or relationship a mutation needs"""
        logger.warning(f"Authorization error for {request.path}: {error}")
        return jsonify(Helpers.build_error_response(str(error), "AUTHORIZATION_ERROR")), 403

    @staticmethod
    def handle_not_found_error(message: str) -> tuple:
        logger.info(f"Not found: {message}")
        return jsonify(Helpers.build_error_response(message, "NOT_FOUND")), 404

    @staticmethod
    def handle_generic_error(error: Exception) -> tuple:
        logger.error(f"Unexpected error on {request.method} {request.path}: {error}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify(Helpers.build_error_response("An unexpected error occurred", "INTERNAL_ERROR")), 500

    @staticmethod
    def log_request_info():
        """Log request information for debugging"""
        logger.info(f"Request: {request.method} {request.path}")


def register_error_handlers(app):
    """Register error handlers with Flask app"""

    app.register_error_handler(PermissionError, ErrorHandler.handle_authorization_error)
    app.register_error_handler(ValueError, ErrorHandler.handle_validation_error)

    @app.errorhandler(NotFoundError)
    def handle_missing_document(error):
        # messages already read "<Resource> not found"
        return ErrorHandler.handle_not_found_error(str(error.args[0]) if error.args else "Resource not found")

    @app.errorhandler(404)
    def handle_unknown_endpoint(error):
        return ErrorHandler.handle_not_found_error("Endpoint not found")

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify(Helpers.build_error_response("Method not allowed", "METHOD_NOT_ALLOWED")), 405

    @app.errorhandler(Exception)
    def handle_unhandled_exception(error):
        if isinstance(error, HTTPException):
            return error
        return ErrorHandler.handle_generic_error(error)
