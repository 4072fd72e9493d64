"""
Exception types raised by the jsonsvr interpreter.

Errors are scoped to a single request: the HTTP binding logs them and
answers 500, and the server keeps running. Only a failure to load the
service file at startup is fatal.
"""
from typing import Optional


class JsonSvrError(Exception):
    """Base class for all jsonsvr errors."""
    pass


class EvaluationError(JsonSvrError):
    """A snippet failed to compile or raised while running."""
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class TemplateError(JsonSvrError):
    pass


class MalformedTemplateError(TemplateError):
    """A command descriptor is missing a required field or has the wrong shape."""
    pass


class UnrecognizedCommandError(TemplateError):
    def __init__(self, command: str):
        super().__init__(f"Unrecognized command: '{command}'")
        self.command = command


class ServiceLoadError(JsonSvrError):
    """The service descriptor could not be read or parsed."""
    pass


__all__ = [
    "JsonSvrError",
    "EvaluationError",
    "TemplateError",
    "MalformedTemplateError",
    "UnrecognizedCommandError",
    "ServiceLoadError",
]
