"""Domain errors raised by the service layer.

Everything derives from ValueError so callers that only care about
"the operation was refused" can keep catching ValueError; routers map the
specific classes to HTTP status codes.
"""


class EADError(ValueError):
    """Base class for refused operations."""


class NotFoundError(EADError, LookupError):
    """A referenced record does not exist."""


class EnrollmentNotFound(NotFoundError):
    def __init__(self, enrollment_id: str):
        super().__init__(f"Enrollment {enrollment_id} not found")
        self.enrollment_id = enrollment_id


class DuplicateEnrollment(EADError):
    def __init__(self, user_id: str, course_id: str):
        super().__init__("You already have an enrollment request for this course")
        self.user_id = user_id
        self.course_id = course_id


class InvalidEnrollmentTransition(EADError):
    def __init__(self, enrollment_id: str, status: str, target: str):
        super().__init__(f"Cannot move enrollment from '{status}' to '{target}'")
        self.enrollment_id = enrollment_id
        self.status = status
        self.target = target


class InvalidRating(EADError):
    pass


class InsufficientStorage(EADError):
    """An upload cannot be accepted by the blob store."""


class FileTooLarge(InsufficientStorage):
    """The file is over the size policy for its purpose."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"File too large: {size / (1024 * 1024):.1f}MB exceeds the "
            f"{limit // (1024 * 1024)}MB limit"
        )
        self.size = size
        self.limit = limit


class StorageQuotaExceeded(InsufficientStorage):
    """The environment has no room left for the file."""

    def __init__(self, size: int, available: int | None = None):
        msg = "Storage quota exceeded: not enough space to store this file"
        if available is not None:
            msg += f" ({available} bytes available)"
        super().__init__(msg)
        self.size = size
        self.available = available


class InvalidCredential(EADError):
    def __init__(self):
        super().__init__("Invalid email or password")


class DuplicateEmail(EADError):
    def __init__(self, email: str):
        super().__init__("This email is already registered")
        self.email = email


class InvalidInput(EADError):
    """Caller-supplied data failed validation."""
