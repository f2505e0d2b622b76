"""Failure taxonomy for the pack index.

None of these escape a component boundary: each is caught where a single
file is processed, logged, and turned into "this file contributes nothing".
"""

from __future__ import annotations

from dataclasses import dataclass

from packdex.index.schema import Kind


class PackIndexError(Exception):
    """Base class for per-file indexing failures."""


@dataclass(frozen=True)
class ClassificationUnknown(PackIndexError):
    """No classification rule matched the path."""

    path: str

    def __str__(self) -> str:
        return f"Unknown file kind: {self.path}"


@dataclass(frozen=True)
class ExtractionSchemaMissing(PackIndexError):
    """A required identifier field is absent from otherwise readable content."""

    kind: Kind
    field: str

    def __str__(self) -> str:
        return f"{self.kind.value}: missing required field '{self.field}'"


@dataclass(frozen=True)
class ContentUnreadable(PackIndexError):
    """The file could not be read or parsed as JSON."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"Cannot read {self.path}: {self.reason}"


@dataclass(frozen=True)
class ManifestInvalid(PackIndexError):
    """A pack manifest is unreadable or declares no recognized module type."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"Invalid manifest {self.path}: {self.reason}"
