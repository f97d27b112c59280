from flask import jsonify


def success_response(payload=None, message=None, status=200):
    body = {"success": True}
    if isinstance(payload, dict):
        body.update(payload)
    elif payload is not None:
        body["data"] = payload
    if message:
        body["message"] = message
    return jsonify(body), status


def error_response(code, message, details=None, status=400):
    return jsonify({
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }), status


def service_error_response(exc):
    """Render a ``ServiceError`` with the status its class declares."""
    return error_response(exc.code, exc.message, exc.details, status=exc.status)
