import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from board.commands import register_commands
from board.config import Config
from board.errors import ConfigurationError
from board.extensions.extensions import ma
from board.extensions.mongo_client import MongoConnection
from board.repositories.memory_post_repository import InMemoryPostRepository, SAMPLE_POSTS
from board.repositories.post_repository import MongoPostRepository
from board.routes.main_routes import main_bp
from board.routes.post_routes import post_bp
from board.services.post_service import PostService


def build_post_service(config):
    if not config.get("MONGODB_URI"):
        raise ConfigurationError("MONGODB_URI is not set")

    connection = MongoConnection.from_config(config)
    durable = MongoPostRepository(connection, config.get("MONGODB_COLLECTION", "posts"))
    fallback = InMemoryPostRepository(
        seed=SAMPLE_POSTS if config.get("SEED_FALLBACK", True) else None
    )
    return PostService(
        durable,
        fallback,
        enforce_ownership=config.get("ENFORCE_OWNERSHIP", True),
    )


def create_app(config_class=Config, post_service=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]",
    )

    ma.init_app(app)
    if post_service is None:
        post_service = build_post_service(app.config)
    app.extensions["post_service"] = post_service

    app.register_blueprint(post_bp, url_prefix="/api")
    app.register_blueprint(main_bp, url_prefix="/api")
    register_commands(app)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        return jsonify({"success": False, "error": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(err):
        logging.error(f"Unhandled exception: {err}", exc_info=True)
        body = {"success": False, "error": "Unexpected server error"}
        if app.config.get("EXPOSE_ERROR_DETAILS"):
            body["details"] = str(err)
        return jsonify(body), 500

    logging.info("Board app created")
    return app
