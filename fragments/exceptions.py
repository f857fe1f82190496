"""Exception classes for the fragments core.

Every error carries the HTTP status code and a stable machine-readable code so
the HTTP layer can render it without inspecting the type further.
"""


class FragmentsError(Exception):
    """
    Base exception class for all fragment-related errors.
    """

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Unexpected Internal Error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(FragmentsError):
    """
    Raised when a request is well-formed but semantically invalid.
    """

    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Bad Request"


class ValidationError(BadRequestError):
    """
    Raised when a fragment is constructed or mutated with invalid input.
    """

    code = "VALIDATION_ERROR"
    default_message = "Invalid fragment"


class UnauthorizedError(FragmentsError):
    """
    Raised when the caller identity cannot be resolved.
    """

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class ForbiddenError(FragmentsError):
    """
    Raised when the caller identity is resolved but denied.
    """

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFoundError(FragmentsError):
    """
    Raised when no fragment exists for the given (owner_id, id).
    """

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not Found"


class PayloadTooLargeError(FragmentsError):
    """
    Raised when a request body exceeds the configured size ceiling.
    """

    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    default_message = "Payload Too Large"


class UnsupportedMediaTypeError(FragmentsError):
    """
    Raised for unrecognized content types and non-convertible type/extension pairs.
    """

    status_code = 415
    code = "UNSUPPORTED_MEDIA_TYPE"
    default_message = "Unsupported Media Type"


class InternalError(FragmentsError):
    """
    Raised when a storage backend or codec fails.
    """


class UnavailableError(FragmentsError):
    """
    Raised when a storage backend is unreachable or timed out.
    """

    status_code = 503
    code = "UNAVAILABLE"
    default_message = "Service Unavailable"
