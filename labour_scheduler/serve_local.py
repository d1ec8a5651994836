#!/usr/bin/env python3
"""Local development server for the labour scheduler functions.

This server mimics the Firebase Functions emulator endpoints.

Usage:
    source venv/bin/activate
    python -m labour_scheduler.serve_local

This will start a Flask server that handles:
- POST /<project>/us-central1/allocate_labour -> allocate_labour function
- POST /<project>/us-central1/save_labour_schedule -> save_labour_schedule function
- POST /<project>/us-central1/get_labour_schedule -> get_labour_schedule function
"""

import logging
import os

import structlog

from labour_scheduler.config.settings import settings

# Set environment for local development
os.environ.setdefault('FUNCTIONS_EMULATOR', 'true')
os.environ.setdefault('GCLOUD_PROJECT', settings.firebase_project_id or 'labour-scheduler-dev')
os.environ.setdefault('FIRESTORE_EMULATOR_HOST', settings.firestore_emulator_host)

from flask import Flask, request, jsonify
from flask_cors import CORS

# Configure logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
)

# Import the main module after setting env vars
from labour_scheduler.main import (
    allocate_labour,
    save_labour_schedule,
    get_labour_schedule,
)

PROJECT = os.environ['GCLOUD_PROJECT']

app = Flask(__name__)
CORS(app)


class MockRequest:
    """Mock Firebase request object to wrap Flask request."""

    def __init__(self, flask_request):
        self._request = flask_request
        self._json_data = None
        self.method = flask_request.method
        self.headers = dict(flask_request.headers)

    def get_json(self, force=False):
        if self._json_data is None:
            self._json_data = self._request.get_json(force=force) or {}
        return self._json_data


def wrap_firebase_function(firebase_fn):
    """Wrap a Firebase function to work with Flask."""
    def wrapper():
        mock_req = MockRequest(request)
        response = firebase_fn(mock_req)
        return response.get_data(), response.status_code, dict(response.headers)
    return wrapper


# Labour endpoints (matching Firebase emulator URL structure)
@app.route(f'/{PROJECT}/us-central1/allocate_labour', methods=['POST', 'OPTIONS'])
def handle_allocate_labour():
    return wrap_firebase_function(allocate_labour)()

@app.route(f'/{PROJECT}/us-central1/save_labour_schedule', methods=['POST', 'OPTIONS'])
def handle_save_labour_schedule():
    return wrap_firebase_function(save_labour_schedule)()

@app.route(f'/{PROJECT}/us-central1/get_labour_schedule', methods=['POST', 'OPTIONS'])
def handle_get_labour_schedule():
    return wrap_firebase_function(get_labour_schedule)()


# Health check
@app.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'service': 'labour-scheduler-functions'})


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    print(f"""
╔════════════════════════════════════════════════════════════════╗
║  Labour Scheduler Functions - Local Development Server         ║
╠════════════════════════════════════════════════════════════════╣
║  Server running on: http://127.0.0.1:{port}
║  Project: {PROJECT}
║  Firestore emulator: {os.environ["FIRESTORE_EMULATOR_HOST"]}
║                                                                ║
║  Endpoints:                                                    ║
║  • POST /{PROJECT}/us-central1/allocate_labour
║  • POST /{PROJECT}/us-central1/save_labour_schedule
║  • POST /{PROJECT}/us-central1/get_labour_schedule
╚════════════════════════════════════════════════════════════════╝
""")
    app.run(host='127.0.0.1', port=port, debug=True, threaded=True)
