class BoardError(Exception):
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.default_message


class ConfigurationError(BoardError):
    default_message = "Invalid configuration"


class StoreUnavailableError(BoardError):
    """The durable store could not be reached or timed out."""

    status_code = 503
    default_message = "Post storage is unavailable"


class StorageFailureError(BoardError):
    status_code = 500
    default_message = "Post storage failed"


class PostValidationError(BoardError):
    status_code = 400
    default_message = "Invalid post"

    def __init__(self, messages):
        self.messages = messages
        super().__init__(_first_message(messages))


class InvalidPostIdError(BoardError):
    status_code = 400
    default_message = "Invalid post id"


class MissingIdentityError(BoardError):
    status_code = 401
    default_message = "Authentication is required"


class PostForbiddenError(BoardError):
    status_code = 403
    default_message = "You are not allowed to modify this post"


def _first_message(messages):
    if isinstance(messages, str):
        return messages
    if isinstance(messages, dict):
        for value in messages.values():
            return _first_message(value)
    if isinstance(messages, (list, tuple)) and messages:
        return _first_message(messages[0])
    return PostValidationError.default_message
