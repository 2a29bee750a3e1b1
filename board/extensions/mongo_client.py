import logging
import re
from concurrent.futures import Future
from threading import Lock

from pymongo import MongoClient
from pymongo.errors import ConfigurationError as MongoConfigurationError
from pymongo.errors import PyMongoError

from board.errors import ConfigurationError, StoreUnavailableError


_CREDENTIALS_PATTERN = re.compile(r"//[^/@]*@")


def mask_uri(uri: str) -> str:
    return _CREDENTIALS_PATTERN.sub("//<credentials>@", uri or "")


class MongoConnection:
    """Process-wide memoized MongoDB connection.

    The first caller opens the client and publishes the in-flight attempt as a
    future; callers arriving meanwhile wait on that same future, so one attempt
    yields one outcome for all of them. A failed attempt is discarded and the
    next ``connect()`` starts over.
    """

    def __init__(
        self,
        uri: str,
        db_name: str = "board",
        server_selection_timeout_ms: int = 3000,
        connect_timeout_ms: int = 3000,
        socket_timeout_ms: int = 5000,
        client_factory=MongoClient,
    ):
        self.uri = uri
        self.db_name = db_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.connect_timeout_ms = connect_timeout_ms
        self.socket_timeout_ms = socket_timeout_ms
        self._client_factory = client_factory
        self._client = None
        self._pending = None
        self._lock = Lock()

    @classmethod
    def from_config(cls, config, client_factory=MongoClient):
        return cls(
            config["MONGODB_URI"],
            db_name=config.get("MONGODB_DB_NAME", "board"),
            server_selection_timeout_ms=config.get("MONGODB_SERVER_SELECTION_TIMEOUT_MS", 3000),
            connect_timeout_ms=config.get("MONGODB_CONNECT_TIMEOUT_MS", 3000),
            socket_timeout_ms=config.get("MONGODB_SOCKET_TIMEOUT_MS", 5000),
            client_factory=client_factory,
        )

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def connect(self):
        with self._lock:
            if self._client is not None:
                logging.debug("Reusing existing MongoDB connection")
                return self._client

            pending = self._pending
            is_opener = pending is None
            if is_opener:
                pending = Future()
                self._pending = pending

        if is_opener:
            self._open(pending)

        return pending.result()

    def database(self):
        return self.connect()[self.db_name]

    def close(self):
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def _open(self, pending: Future):
        logging.info(f"Connecting to MongoDB at {mask_uri(self.uri)}")
        client = None
        try:
            client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                connectTimeoutMS=self.connect_timeout_ms,
                socketTimeoutMS=self.socket_timeout_ms,
                tz_aware=True,
            )
            # MongoClient connects lazily; force the handshake here.
            client.server_info()
        except MongoConfigurationError as e:
            # InvalidURI included.
            logging.error(f"MongoDB client is misconfigured: {e}")
            error = ConfigurationError(f"Invalid MongoDB configuration: {e}")
            error.__cause__ = e
            self._discard(pending, client, error)
            return
        except PyMongoError as e:
            logging.error(f"MongoDB connection failed: {e}")
            error = StoreUnavailableError("Could not connect to MongoDB")
            error.__cause__ = e
            self._discard(pending, client, error)
            return
        except Exception as e:
            logging.error(f"MongoDB client could not be created: {e}", exc_info=True)
            self._discard(pending, client, e)
            return

        with self._lock:
            self._client = client
            self._pending = None
        logging.info("MongoDB connection established")
        pending.set_result(client)

    def _discard(self, pending: Future, client, error: BaseException):
        if client is not None:
            client.close()
        with self._lock:
            self._pending = None
        pending.set_exception(error)
