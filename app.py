"""
Trial Balance HTTP surface.

Thin JSON API in front of ``TrialBalanceExtractor`` for the role-gated
front end.  Authentication happens upstream; the verified role arrives in
the ``X-User-Role`` header and is passed through as an opaque token.
Nothing is stored server-side: the client keeps the document it receives
and posts it back for export.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, Tuple

from flask import Flask, request, send_file
from werkzeug.utils import secure_filename

from trial_balance.config import ExtractorConfig
from trial_balance.pipeline import AccessDenied, TrialBalanceExtractor
from trial_balance.schema_builder import SchemaBuilder
from trial_balance.sheet_reader import SheetNotFoundError, WorkbookLoadError

# -------------------------------------------------------
# App Setup
# -------------------------------------------------------

app = Flask(__name__)

app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"xlsx", "xlsm", "csv"}
ROLE_HEADER = "X-User-Role"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

extractor = TrialBalanceExtractor(ExtractorConfig(log_level=logging.WARNING))

Response = Tuple[Dict[str, Any], int]

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def error_response(message: str, status: int) -> Response:
    return {"success": False, "hasDocument": False, "error": message}, status


def current_role() -> str:
    return request.headers.get(ROLE_HEADER, "")


def read_upload():
    """Return the loaded workbook for the uploaded file, or an error response."""
    if "file" not in request.files:
        return None, error_response("No file uploaded", 400)

    file = request.files["file"]
    if file.filename == "":
        return None, error_response("No file selected", 400)

    if not allowed_file(file.filename):
        return None, error_response(
            f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}", 400
        )

    filename = secure_filename(file.filename)
    return extractor.load(file.read(), filename=filename), None


# -------------------------------------------------------
# API
# -------------------------------------------------------


@app.route("/api/health", methods=["GET"])
def api_health() -> Response:
    return {
        "status": "online",
        "version": "1.0.0",
        "endpoints": ["/api/sheets", "/api/extract", "/api/export"],
    }, 200


@app.route("/api/sheets", methods=["POST"])
def api_sheets() -> Response:
    """List the sheets of an uploaded workbook and suggest one."""
    try:
        workbook, error = read_upload()
        if error:
            return error
        return {
            "success": True,
            "sheets": workbook.sheet_names,
            "suggested": extractor.suggest_sheet(workbook),
        }, 200
    except WorkbookLoadError as e:
        return error_response(str(e), 400)


@app.route("/api/extract", methods=["POST"])
def api_extract() -> Response:
    """Extract a sheet; re-posting with another ``sheet`` re-runs extraction."""
    role = current_role()
    if not extractor.can_extract(role):
        return error_response(f"Role {role!r} is not permitted to extract", 403)

    try:
        workbook, error = read_upload()
        if error:
            return error

        sheet = request.form.get("sheet") or None
        result = extractor.extract_with_report(workbook, sheet, role=role)

        return {
            "success": True,
            "hasDocument": True,
            "document": result.document.to_dict(),
            "report": result.report.to_dict(),
        }, 200

    except WorkbookLoadError as e:
        return error_response(str(e), 400)
    except AccessDenied as e:
        return error_response(str(e), 403)
    except SheetNotFoundError as e:
        return error_response(str(e), 404)
    except Exception as e:
        logger.exception("Extraction failed")
        return error_response(str(e), 500)


@app.route("/api/export", methods=["POST"])
def api_export():
    """Turn a posted document back into an ``.xlsx`` download."""
    role = current_role()
    payload = request.get_json(silent=True) or {}
    raw_document = payload.get("document")

    try:
        document = SchemaBuilder.from_dict(raw_document) if raw_document else None
        data = extractor.export_bytes(
            document, role=role, sheet_title=payload.get("sheetTitle") or None
        )
    except AccessDenied as e:
        return error_response(str(e), 403)
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        return error_response(f"Invalid document: {e}", 400)

    if data is None:
        return {"success": True, "hasDocument": False}, 200

    download = secure_filename(f"{document.sheet_name or 'trial-balance'}.xlsx")
    return send_file(
        io.BytesIO(data),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=download or "trial-balance.xlsx",
    )


# -------------------------------------------------------
# Main
# -------------------------------------------------------

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
