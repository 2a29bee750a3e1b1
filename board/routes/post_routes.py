from flask import Blueprint, current_app, jsonify, request

from board.errors import BoardError, PostValidationError
from board.schemas.post_schema import post_response_schema, posts_response_schema


post_bp = Blueprint("posts", __name__)

IDENTITY_HEADER = "X-User-Id"


def _post_service():
    return current_app.extensions["post_service"]


def _requester_id():
    value = request.headers.get(IDENTITY_HEADER, "").strip()
    return value or None


def _respond(result, data, status=200):
    body = {"success": True, "data": data, "mock": result.used_fallback}
    if result.warning:
        body["warning"] = result.warning
    return jsonify(body), status


def _not_found(result):
    body = {"success": False, "error": "Post not found", "mock": result.used_fallback}
    if result.warning:
        body["warning"] = result.warning
    return jsonify(body), 404


def _invalid_json():
    return jsonify({"success": False, "error": "Invalid JSON body"}), 400


@post_bp.errorhandler(BoardError)
def handle_board_error(error):
    body = {"success": False, "error": error.message}
    if isinstance(error, PostValidationError):
        body["fields"] = error.messages
    if error.status_code >= 500 and current_app.config.get("EXPOSE_ERROR_DETAILS"):
        body["details"] = str(error.__cause__ or error)
    return jsonify(body), error.status_code


@post_bp.route("/posts", methods=["GET"])
def list_posts():
    result = _post_service().list_posts()
    return _respond(result, posts_response_schema.dump(result.value))


@post_bp.route("/posts", methods=["POST"])
def create_post():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _invalid_json()

    result = _post_service().create_post(data, owner_id=_requester_id())
    return _respond(result, post_response_schema.dump(result.value), 201)


@post_bp.route("/posts/<post_id>", methods=["GET"])
def get_post(post_id):
    result = _post_service().get_post(post_id)
    if not result.found:
        return _not_found(result)
    return _respond(result, post_response_schema.dump(result.value))


@post_bp.route("/posts/<post_id>", methods=["PUT", "PATCH"])
def update_post(post_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _invalid_json()

    result = _post_service().update_post(post_id, data, owner_id=_requester_id())
    if not result.found:
        return _not_found(result)
    return _respond(result, post_response_schema.dump(result.value))


@post_bp.route("/posts/<post_id>", methods=["DELETE"])
def delete_post(post_id):
    result = _post_service().delete_post(post_id, owner_id=_requester_id())
    if not result.found:
        return _not_found(result)
    return _respond(result, {})
