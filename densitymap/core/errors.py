"""
errors.py — Structured error values raised by the analysis engine.

Every error carries the region it concerns and the pipeline phase it came
from, so the API layer can build a user-facing message without parsing
exception text. Nothing in the engine formats user-facing strings.

  InvalidCoordinate   malformed point data (never silently dropped)
  RegionNotFound      name unresolvable upstream, or not cached yet
  ServiceError        transport / format failure of a map-data service
  ServiceUnavailable  prediction service not configured or unreachable
  InvalidResponse     prediction service returned a malformed payload
"""

from typing import Optional


class DensityMapError(Exception):
    """Base class; `region_name` and `phase` may be filled in by callers."""

    def __init__(
        self,
        message: str,
        *,
        region_name: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.region_name = region_name
        self.phase = phase

    def with_context(self, region_name: Optional[str] = None, phase: Optional[str] = None):
        """Fill in context that is still missing and return self (for `raise`)."""
        if self.region_name is None:
            self.region_name = region_name
        if self.phase is None:
            self.phase = phase
        return self

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "detail": self.message,
            "region": self.region_name,
            "phase": self.phase,
        }


class InvalidCoordinate(DensityMapError, ValueError):
    pass


class RegionNotFound(DensityMapError, LookupError):
    pass


class ServiceError(DensityMapError):
    pass


class ServiceUnavailable(DensityMapError):
    pass


class InvalidResponse(DensityMapError):
    pass
