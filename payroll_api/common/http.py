# payroll_api/common/http.py
from flask import jsonify


def ok(data=None, status=200):
    """Success envelope: {"success": true, "data": ...}."""
    return jsonify({"success": True, "data": data}), status


def fail(message, status=400, code=None, detail=None):
    """Error envelope; `detail` carries an APIError payload such as a pending count."""
    error = {"message": message}
    if code:
        error["code"] = code
    if detail is not None:
        error["detail"] = detail
    return jsonify({"success": False, "error": error}), status
