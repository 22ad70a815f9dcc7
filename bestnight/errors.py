"""Error taxonomy shared by the core, the provider clients and the adapters."""
from __future__ import annotations

from typing import Any, Dict, Optional


class ComboError(Exception):
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "error": self.message}


class InputError(ComboError, ValueError):
    """Missing or invalid caller input. Never worth retrying."""

    kind = "input"


class UpstreamError(ComboError):
    """Provider request failed, timed out or returned a non-success status."""

    kind = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class LocationNotFoundError(ComboError):
    """Geocoding produced no match; the caller should ask for another location."""

    kind = "not_found"
