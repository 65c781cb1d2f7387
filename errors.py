"""
Failure kinds surfaced by the admin panel.

Each carries the HTTP status and the short message the request layer returns.
Messages are deliberately generic: no connection strings or driver details.
"""


class AdminPanelError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AdminPanelError):
    status_code = 400
    default_message = "Invalid request data"


class AuthenticationFailed(AdminPanelError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(AdminPanelError):
    """Nonexistent, or exists but belongs to another administrator."""

    status_code = 404
    default_message = "Not found"


class UpstreamUnavailable(AdminPanelError):
    status_code = 500
    default_message = "Failed to reach shop data"
