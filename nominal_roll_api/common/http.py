# nominal_roll_api/common/http.py
from flask import jsonify, request

def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None, data=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    payload = {"success": False, "error": err}
    if data is not None:
        payload["data"] = data
    return jsonify(payload), status

def json_body() -> dict:
    d = request.get_json(silent=True)
    return d if isinstance(d, dict) else {}
