from flask import Blueprint, current_app, jsonify


main_bp = Blueprint("main", __name__)


@main_bp.route("/health", methods=["GET"])
def health():
    storage = current_app.extensions["post_service"].storage_backend()
    return jsonify({
        "success": True,
        "data": {
            "storage": storage,
            "durable": storage == "mongodb",
        },
        "mock": storage != "mongodb",
    }), 200
