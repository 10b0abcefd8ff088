"""Exception hierarchy shared by the config, auth, and resource layers.

Everything raised on purpose derives from ``GraphAdminError`` so the CLI can
turn it into a single error line and a non-zero exit code.
"""

from typing import Optional


class GraphAdminError(Exception):
    """Base class for all expected failures."""


class ConfigError(GraphAdminError):
    """Config file missing, unreadable, malformed, or incomplete."""


class AuthenticationError(GraphAdminError):
    """The token endpoint rejected the credentials or sent an unusable reply."""


class RequestError(GraphAdminError):
    """A Graph call returned an unexpected status.

    Attributes:
        action:       What was being attempted (e.g. ``get user``).
        status_code:  HTTP status, or ``None`` if no response was received.
        body:         Raw response body text.
    """

    def __init__(self, action: str, status_code: Optional[int], body: str, message: Optional[str] = None):
        self.action = action
        self.status_code = status_code
        self.body = body
        if message is None:
            if status_code is None:
                message = f"failed to {action}: {body}"
            else:
                message = f"failed to {action} (status {status_code}): {body}"
        super().__init__(message)


class NotFoundError(RequestError):
    """A single-resource GET returned 404."""


class LicenseAssignmentError(RequestError):
    """``assignLicense`` failed with a structured Graph error.

    ``remote_message`` is the ``error.message`` from the response envelope and
    ``hint`` is the matched ``LicenseErrorHint`` (``None`` when nothing matched).
    """

    def __init__(self, action: str, status_code: int, body: str, remote_message: str, message: str, hint=None):
        self.remote_message = remote_message
        self.hint = hint
        super().__init__(action, status_code, body, message=message)
