"""Plain records stored in the JSON collections.

Surveys own their tracking parameters. Responses and audit entries refer to
other records by id only, so nothing cascades when a record goes away.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
import uuid

from django.db import models
from django.utils import timezone

from surveytrack_app.core.storage import parse_timestamp


def new_id() -> str:
    return str(uuid.uuid4())


class AuditAction(models.TextChoices):
    CREATE = "create", "Create"
    UPDATE = "update", "Update"
    DELETE = "delete", "Delete"
    VIEW = "view", "View"
    ENCRYPT = "encrypt", "Encrypt"
    DECRYPT = "decrypt", "Decrypt"


class AuditEntityType(models.TextChoices):
    SURVEY = "survey", "Survey"
    PARAMETER = "parameter", "Parameter"
    RESPONSE = "response", "Response"


@dataclass
class TrackingParameter:
    name: str
    # Codec-tagged when is_encrypted is set, plaintext otherwise
    value: str
    is_encrypted: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "is_encrypted": self.is_encrypted,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> TrackingParameter:
        value = data.get("value")
        return cls(
            id=data["id"],
            name=data["name"],
            value=value if isinstance(value, str) else "",
            is_encrypted=bool(data.get("is_encrypted", False)),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
        )


@dataclass
class Survey:
    name: str
    description: str = ""
    created_by: str = ""
    is_active: bool = True
    parameters: list[TrackingParameter] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)

    def get_parameter(self, parameter_id: str) -> TrackingParameter | None:
        for parameter in self.parameters:
            if parameter.id == parameter_id:
                return parameter
        return None

    def append_parameter(self, parameter: TrackingParameter) -> None:
        """Append a parameter, keeping parameter ids unique within the survey."""
        if self.get_parameter(parameter.id) is not None:
            raise ValueError(f"Duplicate parameter id: {parameter.id}")
        self.parameters.append(parameter)
        self.updated_at = timezone.now()

    def remove_parameter(self, parameter_id: str) -> TrackingParameter | None:
        parameter = self.get_parameter(parameter_id)
        if parameter is None:
            return None
        self.parameters = [p for p in self.parameters if p.id != parameter_id]
        self.updated_at = timezone.now()
        return parameter

    @property
    def has_encrypted_parameters(self) -> bool:
        return any(p.is_encrypted for p in self.parameters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "created_by": self.created_by,
            "is_active": self.is_active,
            "parameters": [p.to_dict() for p in self.parameters],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Survey:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
            created_by=data.get("created_by", ""),
            is_active=bool(data.get("is_active", True)),
            parameters=[TrackingParameter.from_dict(p) for p in data["parameters"]],
        )


@dataclass(frozen=True)
class SurveyResponse:
    survey_id: str
    # Parameter name -> decoded value captured at submission time
    parameters: dict[str, str]
    ip_address: str = ""
    user_agent: str = ""
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=timezone.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "survey_id": self.survey_id,
            "parameters": dict(self.parameters),
            "timestamp": self.timestamp.isoformat(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SurveyResponse:
        return cls(
            id=data["id"],
            survey_id=data["survey_id"],
            parameters=dict(data.get("parameters") or {}),
            timestamp=parse_timestamp(data["timestamp"]),
            ip_address=data.get("ip_address", ""),
            user_agent=data.get("user_agent", ""),
        )


@dataclass(frozen=True)
class AuditLog:
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: str
    metadata: dict[str, Any] | None = None
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=timezone.now)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: dict) -> AuditLog:
        return cls(
            id=data["id"],
            action=data["action"],
            entity_type=data["entity_type"],
            entity_id=data["entity_id"],
            user_id=data["user_id"],
            timestamp=parse_timestamp(data["timestamp"]),
            details=data.get("details", ""),
            metadata=data.get("metadata"),
        )
