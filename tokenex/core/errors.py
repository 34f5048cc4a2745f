"""OAuth2 error taxonomy for the token exchange flow.

Every failure the server reports to a caller is an ``OAuth2Error``. The
``error`` code and ``status_code`` are rendered by the exception handler
installed in ``tokenex.core.app``.
"""

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_INTERNAL_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503


class OAuth2Error(Exception):
    """Base class for errors surfaced as OAuth2 error responses."""

    error = "server_error"
    status_code = HTTP_INTERNAL_ERROR
    retryable = False
    default_description = "internal server error"

    def __init__(self, description: str | None = None) -> None:
        self.description = description or self.default_description
        super().__init__(self.description)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "error_description": self.description}


class InvalidRequest(OAuth2Error):
    """Missing or malformed request parameters."""

    error = "invalid_request"
    status_code = HTTP_BAD_REQUEST
    default_description = "invalid request"


class TokenValidationError(OAuth2Error):
    """A presented token failed validation."""

    error = "invalid_request"
    status_code = HTTP_BAD_REQUEST
    default_description = "token validation failed"


class MalformedToken(TokenValidationError):
    default_description = "token is not a well-formed signed JWT"


class InvalidSignature(TokenValidationError):
    default_description = "token signature could not be verified"


class UntrustedIssuer(TokenValidationError):
    default_description = "token issuer does not match the expected issuer"


class TokenExpiredOrNotYetValid(TokenValidationError):
    default_description = "token is expired or not yet valid"


class UnknownIssuer(TokenValidationError):
    default_description = "token issuer is not trusted"


class KeyResolutionFailed(OAuth2Error):
    """Verification keys for a trusted issuer could not be obtained."""

    error = "temporarily_unavailable"
    status_code = HTTP_SERVICE_UNAVAILABLE
    retryable = True
    default_description = "verification keys are temporarily unavailable"


class ClientAuthFailed(OAuth2Error):
    """Client authentication failed. Never carries the underlying cause."""

    error = "invalid_client"
    status_code = HTTP_UNAUTHORIZED
    default_description = "client authentication failed"

    def __init__(self) -> None:
        super().__init__()


class AuthorizationDenied(OAuth2Error):
    """The exchange is not permitted for this client."""

    status_code = HTTP_BAD_REQUEST

    def __init__(self, reason: str, error: str = "access_denied") -> None:
        self.reason = reason
        self.error = error
        if error == "access_denied":
            self.status_code = HTTP_FORBIDDEN
        super().__init__(reason)


class InternalFailure(OAuth2Error):
    """Catch-all for unclassified failures."""

    def __init__(self) -> None:
        super().__init__()
