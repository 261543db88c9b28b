"""Error taxonomy shared by curation components."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class CurationError(Exception):
    """Base curation error."""

    message: str
    code: str = "curation_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class NotFoundError(CurationError):
    """Referenced user, episode or article does not exist."""

    code: str = "not_found"
    entity: str | None = None
    entity_id: str | None = None


@dataclass(slots=True)
class ValidationError(CurationError):
    """Malformed parameters rejected before any storage access."""

    code: str = "validation_error"


@dataclass(slots=True)
class StorageUnavailableError(CurationError):
    """Durable store cannot be reached; the only condition worth an upstream retry."""

    code: str = "storage_unavailable"


def not_found(entity: str, entity_id: str) -> NotFoundError:
    return NotFoundError(
        message=f"{entity} not found: {entity_id}",
        entity=entity,
        entity_id=entity_id,
    )
