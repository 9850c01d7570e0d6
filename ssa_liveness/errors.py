from __future__ import annotations


class AnalysisError(Exception):
    """Base class for errors raised while loading or analyzing a module."""


class MalformedInputError(AnalysisError, ValueError):
    """
    Raised when the input violates the parser contract.

    ``subject`` names the offending field path (``FunctionList[0].Params``) or
    block Name (``%loop``) so the diagnostic points at the broken structure.
    """

    def __init__(self, message: str, subject: str | None = None) -> None:
        super().__init__(message)
        self.subject = subject
