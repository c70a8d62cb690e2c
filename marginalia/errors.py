"""Errors raised by the service layer and mapped onto HTTP responses."""


class ServiceError(Exception):
    """A failure with a human readable reason and an HTTP status code."""

    def __init__(self, reason: str, code: int) -> None:
        super().__init__(reason, code)
        self.reason = reason
        self.code = code

    def __str__(self) -> str:
        return f"{self.reason} (code: {self.code})"