"""
Error taxonomy for document conversion.

Every failure carries the stage it happened in plus enough context
(iteration, window, raw reply) to diagnose it without re-running.
None of these are recoverable at the Driver: a conversion either returns
the full ordered markdown sequence or raises.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorType(str, Enum):
    """Machine-interpretable stage names."""

    CONFIG = "CONFIG"
    """Missing or invalid credentials."""

    SEGMENTATION = "SEGMENTATION"
    """Document unreadable or unsplittable."""

    TRANSPORT = "TRANSPORT"
    """Oracle call failed at the network/protocol layer."""

    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"
    """Reply arguments were not valid JSON or did not match the reply schema."""

    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    """Reply parsed but requested an impossible window."""

    CANCELLED = "CANCELLED"
    """Conversion aborted by an external cancellation signal."""

    OUTPUT = "OUTPUT"
    """Converted passages could not be written to the requested file."""


class ConversionError(RuntimeError):
    """Base class only; raise one of the staged subclasses below."""

    error_type: ClassVar[ErrorType]

    def __init__(
        self,
        message: str,
        *,
        iteration: int | None = None,
        window: tuple[int, int] | None = None,
        raw: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if not hasattr(type(self), "error_type"):
            raise TypeError(f"{type(self).__name__} has no stage; raise a ConversionError subclass")
        self.message = message
        self.iteration = iteration
        self.window = window
        self.raw = raw
        self.details = details or {}
        super().__init__(self.to_log_message())

    @property
    def stage(self) -> str:
        return self.error_type.value

    def to_log_message(self) -> str:
        parts = [f"[{self.error_type.value}] {self.message}"]
        if self.iteration is not None:
            parts.append(f"iteration={self.iteration}")
        if self.window is not None:
            parts.append(f"window=[{self.window[0]}, {self.window[1]}]")
        for key, value in self.details.items():
            parts.append(f"{key}={value}")
        if self.raw is not None:
            parts.append(f"raw={self.raw[:500]!r}")
        return " ".join(parts)


class ConfigError(ConversionError):
    error_type = ErrorType.CONFIG


class SegmentationError(ConversionError):
    error_type = ErrorType.SEGMENTATION


class TransportError(ConversionError):
    error_type = ErrorType.TRANSPORT


class SchemaError(ConversionError):
    error_type = ErrorType.SCHEMA_VIOLATION


class InvariantError(ConversionError):
    error_type = ErrorType.INVARIANT_VIOLATION


class ConversionCancelled(ConversionError):
    error_type = ErrorType.CANCELLED


class OutputError(ConversionError):
    error_type = ErrorType.OUTPUT
