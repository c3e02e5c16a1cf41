"""
Domain errors raised by the service layer.
Routers let these propagate; main.create_app() maps them to HTTP responses.
"""
from datetime import datetime, timezone
from typing import Optional


class AssetServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(AssetServiceError):
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        if entity_id is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} with id {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidState(AssetServiceError):
    status_code = 409


class UniquenessViolation(AssetServiceError):
    status_code = 409


class ValidationError(AssetServiceError):
    status_code = 422


class ExternalCollaboratorError(AssetServiceError):
    status_code = 502

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def check_date_range(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    # Naive bounds are read as UTC
    if start_date is not None and end_date is not None and _as_utc(start_date) > _as_utc(end_date):
        raise ValidationError("start_date must not be after end_date")
