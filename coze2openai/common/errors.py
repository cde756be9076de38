"""
Error Definitions

Defines custom exception classes used in the application for unified error handling.
Every error renders as an OpenAI-style envelope: {"error": {"code": ..., "message": ...}}.
"""

from typing import Any

INVALID_JSON_BODY_MESSAGE = (
    "We could not parse the JSON body of your request. (HINT: This likely means you aren't "
    "using your HTTP library correctly. The OpenAI API expects a JSON payload, but what was "
    "sent was not valid JSON. If you have trouble figuring out how to fix this, please contact "
    "us through our help center at help.openai.com."
)


class AppError(Exception):
    """
    Application Base Exception

    Base class for all custom exceptions, containing error message, code and HTTP status.
    """

    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        status_code: int = 500,
    ):
        """
        Initialize exception

        Args:
            message: Error message
            code: Error code
            status_code: HTTP status code
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary format (for API response)

        Returns:
            dict: Error information dictionary
        """
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class AuthenticationError(AppError):
    """
    Authentication Error

    Raised when the bearer token is missing or not in the configured token set.
    """

    def __init__(
        self,
        message: str = "Incorrect API key provided.",
        code: str = "invalid_api_key",
    ):
        super().__init__(message=message, code=code, status_code=401)


class InvalidRequestError(AppError):
    """
    Invalid Request Error

    Raised when the request body cannot be parsed or is not usable.
    """

    def __init__(
        self,
        message: str = INVALID_JSON_BODY_MESSAGE,
        code: str = "invalid_request_error",
    ):
        super().__init__(message=message, code=code, status_code=400)


class ModelNotFoundError(AppError):
    """
    Model Not Found Error

    Raised when the requested model has no bound bot.
    """

    def __init__(self, model: str):
        super().__init__(
            message=f"The model `{model}` does not exist or you do not have access to it.",
            code="model_not_found",
            status_code=400,
        )
        self.model = model


class BackendError(AppError):
    """
    Backend Error

    Raised when Coze reports a failure. Code and message are passed through verbatim.
    """

    def __init__(
        self,
        message: str = "Upstream service error",
        code: str = "upstream_error",
    ):
        super().__init__(message=message, code=code, status_code=500)
