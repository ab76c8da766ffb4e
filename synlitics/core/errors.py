"""
Error taxonomy for the upload flow.

Every collaborator failure is converted into one of these at the call site
and shown to the owner as ``message``. Nothing here is retried.
"""


class FlowError(Exception):
    """Base class for user-facing flow errors."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(FlowError):
    """Bad credentials, sign-up conflict, or the auth provider failed."""
    default_message = "Authentication failed"


class NotAuthenticatedError(FlowError):
    """An action that needs an identity and profile was invoked without one."""
    default_message = "Missing file or profile information"


class ProfileError(FlowError):
    """Profile read or write failed."""
    default_message = "Failed to save restaurant name"


class UploadError(FlowError):
    """Blob write or daily record upsert failed."""
    default_message = "Upload failed"


class ProcessingError(FlowError):
    """Writing the processing status failed."""
    default_message = "Failed to start processing"


class ValidationError(FlowError):
    """Local input validation, no collaborator round-trip."""
    default_message = "Invalid input"
