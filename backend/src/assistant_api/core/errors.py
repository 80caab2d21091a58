"""Error taxonomy shared by the store and the HTTP layer.

Upstream provider failures are not part of this hierarchy: they are
converted into error-flavored completion results by the LLM client.
"""


class ChatError(Exception):
    """Base error rendered as ``{"error": message}`` by the API."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InputValidationError(ChatError):
    """Empty or malformed request input."""

    def __init__(self, message: str = "Missing input"):
        super().__init__(message, status_code=400)


class UnauthenticatedError(ChatError):
    """No resolvable current user."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message, status_code=401)


class NotFoundOrForbiddenError(ChatError):
    """Conversation does not exist or is not owned by the caller."""

    def __init__(self, message: str = "Conversation not found or access denied"):
        super().__init__(message, status_code=404)


class NoUserMessagesError(ChatError):
    """Conversation has no user-authored message to derive a title from."""

    def __init__(self, message: str = "No user messages found in conversation"):
        super().__init__(message, status_code=400)
