"""Failure kinds raised by a conversion.

Every kind aborts the current ``convert`` call. Nothing here is retried
automatically; callers retry by converting again.
"""
from __future__ import annotations


class ConversionError(RuntimeError):
    pass


class InvalidInput(ConversionError):
    """The caller passed something that is not a non-empty byte sequence."""


class EngineNotReady(ConversionError):
    pass


class ParseFailed(ConversionError):
    """The engine rejected the score bytes outright."""


class ResourceResolutionFailed(ConversionError):
    def __init__(self, name: str, cause: object) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"could not resolve resource {name!r}: {cause}")


class StagingFailed(ConversionError):
    def __init__(self, name: str, reason: object) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"could not stage resource {name!r}: {reason}")


class UnresolvedAfterRetry(ConversionError):
    def __init__(self, names: list[str]) -> None:
        self.names = list(names)
        super().__init__(f"still missing after one resolve pass: {', '.join(self.names)}")


class RenderFailed(ConversionError):
    pass


class HandleReleased(ConversionError):
    pass
