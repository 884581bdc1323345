"""Error raised by every outbound integration client."""

from typing import Optional


class ExternalServiceError(Exception):
    """A sheet, store, calendar or LLM call failed.

    The detail is for operator logs only and is never shown to end users.
    """

    def __init__(self, service: str, detail: str, status_code: Optional[int] = None) -> None:
        self.service = service
        self.detail = detail
        self.status_code = status_code
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{service} call failed{suffix}: {detail}")
