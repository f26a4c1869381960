"""
HTTP edge of the print server.

POST /api/print takes a multipart upload plus the print settings chosen in
the web app and answers with the JSON form of a SubmissionOutcome.
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .base_transport import OutcomeStatus, PrintRequest
from .config import Config
from .dispatcher import PrintDispatcher, get_print_transport
from .errors import MalformedRangeError, MissingInputError, TransformError

logger = logging.getLogger(__name__)


def create_app(config: type = Config, dispatcher: Optional[PrintDispatcher] = None) -> Flask:
    """Application factory; `dispatcher` is injectable for tests."""
    app = Flask(__name__)
    app.config.from_object(config)
    CORS(app, origins="*")

    app.extensions["print_dispatcher"] = dispatcher or PrintDispatcher(
        transport=get_print_transport(config),
        staging_dir=app.config.get("STAGING_DIR"),
    )

    @app.get("/")
    def index():
        return "PrintLe Server is running!"

    @app.post("/api/print")
    def print_document():
        upload = request.files.get("file")
        printer_url = request.form.get("printerUrl", "")
        if upload is None or not upload.filename or not printer_url.strip():
            return jsonify({"error": "Missing file or printerUrl"}), 400

        print_request = PrintRequest.create(
            content=upload.read(),
            original_name=upload.filename,
            mime_type=upload.mimetype,
            printer_url=printer_url,
            page_range=request.form.get("pages"),
            grayscale=request.form.get("grayscale", "false"),
            duplex=request.form.get("duplex"),
        )
        logger.info("--- /api/print: %s -> %s", print_request.original_name, print_request.printer_url)

        dispatcher: PrintDispatcher = current_app.extensions["print_dispatcher"]
        try:
            outcome = dispatcher.submit(print_request)
        except MissingInputError as exc:
            return jsonify({"error": str(exc)}), 400
        except MalformedRangeError as exc:
            return jsonify({"error": "Invalid page range", "details": str(exc)}), 400
        except TransformError as exc:
            logger.error("Processing error for %s: %s", print_request.original_name, exc)
            return jsonify({"error": "Could not process document", "details": str(exc)}), 422

        body = outcome.to_dict()
        if outcome.status == OutcomeStatus.ACCEPTED:
            return jsonify(body)
        if outcome.status == OutcomeStatus.DEVICE_REJECTED:
            body["error"] = "Printer reported error"
        else:
            body["error"] = "Printer Connection Failed"
        return jsonify(body), 502

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_exc):
        max_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) / (1024 * 1024)
        return jsonify({"error": f"File too large. Maximum size is {max_mb:.0f} MB."}), 413

    @app.errorhandler(Exception)
    def internal_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error on %s", request.path)
        return jsonify({"error": "Internal Server Error"}), 500

    return app
