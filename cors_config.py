# CORS configuration
import logging
import os

from flask import request
from flask_cors import CORS

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "https://cardinal-news.com",
    "https://www.cardinal-news.com",
]


def allowed_origins():
    extra = [o.strip() for o in os.environ.get('CORS_EXTRA_ORIGINS', '').split(',') if o.strip()]
    return DEFAULT_ORIGINS + extra


def configure_cors(app):
    # The reader site and admin UI call the API from these origins only
    CORS(app, resources={
        r"/*": {
            "origins": allowed_origins(),
            "methods": ["GET", "POST", "OPTIONS", "PUT", "DELETE"],
            "allow_headers": ["Content-Type", "Authorization", "X-API-Key", "X-Requested-With"],
        }
    }, supports_credentials=True)

    @app.after_request
    def log_cors(response):
        origin = request.headers.get('Origin')
        if origin:
            logger.debug(f"CORS - Origin: {origin} Method: {request.method} Response: {response.status_code}")
        return response

    return app
