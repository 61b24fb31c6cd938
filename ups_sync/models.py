"""Binding request, variant and mirror models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import ANDROID_APP_TYPE, BINDING_OWNER_KIND, BINDING_SECRET_TYPE, SECRET_TYPE_LABEL


class PushApplication(BaseModel):
    """The UPS application whose variants are managed."""
    application_id: str


class BindingRequest(BaseModel):
    """A mobile client binding secret, decoded from a watch event."""
    name: str
    labels: dict[str, str] = {}
    owner_kinds: list[str] = []
    app_type: str = ""
    client_id: str = ""  # becomes the variant display name
    google_key: str = ""
    project_number: str = ""

    @property
    def is_binding(self) -> bool:
        return self.labels.get(SECRET_TYPE_LABEL) == BINDING_SECRET_TYPE

    @property
    def is_android(self) -> bool:
        return self.app_type == ANDROID_APP_TYPE

    @property
    def owned_by_binding(self) -> bool:
        return BINDING_OWNER_KIND in self.owner_kinds


class AndroidVariant(BaseModel):
    """An Android variant as exchanged with the UPS REST API."""
    model_config = ConfigDict(populate_by_name=True)

    variant_id: str = Field(default="", alias="variantID")
    secret: str = ""
    name: str = ""
    description: Optional[str] = None
    google_key: str = Field(default="", alias="googleKey")
    project_number: str = Field(default="", alias="projectNumber")

    @field_validator("variant_id", "secret", "name", "google_key", "project_number", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        # UPS sends null for unset fields
        return "" if value is None else value


class MirrorRecord(BaseModel):
    """Cluster-local copy of a variant, stored as a config map."""
    name: str
    variant_name: str
    description: str = ""
    variant_id: str
    secret: str
    google_key: str
    project_number: str

    @classmethod
    def for_variant(cls, name: str, variant: AndroidVariant) -> "MirrorRecord":
        return cls(
            name=name,
            variant_name=variant.name,
            description=variant.description or "",
            variant_id=variant.variant_id,
            secret=variant.secret,
            google_key=variant.google_key,
            project_number=variant.project_number,
        )


class Outcome(Enum):
    """Result of processing one watch event."""
    CREATED = "created"
    SKIPPED_EXISTING = "skipped_existing"
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    IGNORED = "ignored"
    FAILED = "failed"


class ProcessingOutcome(BaseModel):
    """What happened to a single watch event."""
    event_type: str
    request_name: Optional[str] = None
    outcome: Outcome
    message: str = ""
    request_removed: bool = False
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
