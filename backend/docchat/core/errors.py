"""Error taxonomy for the chat pipeline.

Every error carries the HTTP status it maps to. The app-level exception
handler renders them as ``{"error": message}``.
"""


class ChatError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class Unauthorized(ChatError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class InvalidRequest(ChatError):
    status_code = 400


class NotFound(ChatError):
    status_code = 404


class RetrievalFailure(ChatError):
    """Raised by index clients. The context retriever never lets it escape."""
    status_code = 502


class GenerationFailure(ChatError):
    status_code = 502


class PersistenceFailure(ChatError):
    status_code = 500
