"""DomainError: typed failure with a stable code, surfaced by the HTTP layer as an error envelope."""
from __future__ import annotations


class DomainError(Exception):
    """Base for rule violations. Subclasses override code/category/status_code."""

    code: str = "DOMAIN_ERROR"
    category: str = "domain"
    status_code: int = 400
    default_message: str = "Operation rejected"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_envelope(self) -> dict[str, object]:
        return {"error": {"code": self.code, "category": self.category, "message": self.message}}
