import os

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    MONGODB_URI = os.getenv("MONGODB_URI", "").strip()
    MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "board")
    MONGODB_COLLECTION = os.getenv("MONGODB_COLLECTION", "posts")
    # Bounded so a dead server turns into a fallback instead of a hung request.
    MONGODB_SERVER_SELECTION_TIMEOUT_MS = int(
        os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "3000")
    )
    MONGODB_CONNECT_TIMEOUT_MS = int(os.getenv("MONGODB_CONNECT_TIMEOUT_MS", "3000"))
    MONGODB_SOCKET_TIMEOUT_MS = int(os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "5000"))

    ENFORCE_OWNERSHIP = _env_bool("BOARD_ENFORCE_OWNERSHIP", True)
    SEED_FALLBACK = _env_bool("BOARD_SEED_FALLBACK", True)
    EXPOSE_ERROR_DETAILS = _env_bool("BOARD_EXPOSE_ERROR_DETAILS", False)
    LOG_LEVEL = os.getenv("BOARD_LOG_LEVEL", "INFO").strip().upper()


class TestingConfig(Config):
    TESTING = True
    MONGODB_URI = "mongodb://localhost:27017/board-test"
    MONGODB_DB_NAME = "board-test"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS = 100
    MONGODB_CONNECT_TIMEOUT_MS = 100
    MONGODB_SOCKET_TIMEOUT_MS = 200
    ENFORCE_OWNERSHIP = True
    SEED_FALLBACK = False
    EXPOSE_ERROR_DETAILS = True
