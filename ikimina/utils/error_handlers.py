from flask import jsonify


# Handle PermissionError
def handle_permission_error(error):
    response = {
        "error": "PermissionError",
        "message": str(error),
        "status_code": 403  # Forbidden
    }
    return jsonify(response), 403


# Handle marshmallow ValidationError raised outside flask-smorest argument parsing
def handle_validation_error(error):
    response = {
        "error": "Validation Error",
        "message": error.messages,
        "status_code": 400  # Bad Request
    }
    return jsonify(response), 400


# Handle TypeError
def handle_type_error(error):
    response = {
        "error": "Type Error",
        "message": str(error),
        "status_code": 400  # Bad Request
    }
    return jsonify(response), 400


def handle_rate_limit(e):
    # e.description carries the limit that was hit
    return jsonify({
        "success": False,
        "status_code": 429,
        "error": "Too Many Requests",
        "message": e.description or "Too many requests, please try again later."
    }), 429
