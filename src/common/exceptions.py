"""
Custom exception classes for signup tracking.
Each error kind carries the HTTP status and body it is reported with.
"""

from typing import Optional


class SignupTrackingException(Exception):
    """Base exception for all signup tracking failures"""

    status_code = 500
    title = "Internal Server Error"

    def __init__(
        self, message: str, details: dict = None, status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_body(self) -> dict:
        """Response body reported to the caller"""
        return {"message": self.title, "error": str(self)}


class MethodNotAllowed(SignupTrackingException):
    """Raised for any method other than POST"""

    status_code = 405
    title = "Method Not Allowed"


class ValidationException(SignupTrackingException):
    """Raised when the inbound request fails validation"""

    status_code = 400
    title = "Bad Request"


class MissingTrackingCookie(ValidationException):
    """Raised when the _fprom_tid cookie is absent"""

    pass


class MissingIdentity(ValidationException):
    """Raised when neither email nor uid is supplied"""

    pass


class InvalidRequestBody(ValidationException):
    """Raised when the body is not a JSON object of the expected shape"""

    pass


class ServerMisconfigured(SignupTrackingException):
    """Raised when FirstPromoter credentials are not configured"""

    pass


class FirstPromoterException(SignupTrackingException):
    """Base for failures of the outbound FirstPromoter call"""

    title = "Failed to track signup with FirstPromoter."

    def to_body(self) -> dict:
        return {"success": False, "message": self.title, "error": str(self)}


class UpstreamRejected(FirstPromoterException):
    """Raised when FirstPromoter answers with a non-2xx status"""

    def __init__(self, message: str, status_code: int, response_body=None):
        super().__init__(
            message, details={"response": response_body}, status_code=status_code
        )
        self.response_body = response_body


class UpstreamUnreachable(FirstPromoterException):
    """Raised when the request was sent but no response was received"""

    pass


class RequestSetupFailed(FirstPromoterException):
    """Raised when the request could not be constructed or sent"""

    pass


class UnknownFailure(FirstPromoterException):
    """Raised for any other error during the outbound call"""

    pass
