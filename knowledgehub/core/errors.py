"""Domain errors raised by services and rendered as the JSON error envelope."""


class KnowledgeHubError(Exception):
    """Base error: carries an HTTP status, a user-facing message and an optional machine code."""

    status_code: int = 500

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationFailed(KnowledgeHubError):
    """Input is well-formed JSON but violates a business rule (unknown category, empty update)."""

    status_code = 400


class AuthenticationFailed(KnowledgeHubError):
    status_code = 401


class PermissionDenied(KnowledgeHubError):
    """Authenticated caller lacks the role or capability for the operation."""

    status_code = 403


class NotFound(KnowledgeHubError):
    """Entity is absent or not owned by the caller."""

    status_code = 404


class Conflict(KnowledgeHubError):
    status_code = 409


class UpstreamError(KnowledgeHubError):
    """An outbound fetch (RSS feed) failed or returned unusable content."""

    status_code = 502
