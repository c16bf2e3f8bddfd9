from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# ── Attribute values ─────────────────────────────────────────────────────────
# Profile attributes are open maps of heterogeneous values.  Every lookup goes
# through ``attribute_value`` so consumers branch on one closed set of kinds.

class NumberValue(BaseModel):
    kind: Literal["number"] = "number"
    value: float


class BoolValue(BaseModel):
    kind: Literal["bool"] = "bool"
    value: bool


class StringArrayValue(BaseModel):
    kind: Literal["string_array"] = "string_array"
    values: list[str]


class StringValue(BaseModel):
    kind: Literal["string"] = "string"
    value: str


class NullValue(BaseModel):
    kind: Literal["null"] = "null"


AttributeValue = Annotated[
    Union[NumberValue, BoolValue, StringArrayValue, StringValue, NullValue],
    Field(discriminator="kind"),
]


def attribute_value(raw: Any) -> AttributeValue:
    """Wrap a raw JSON value in its tagged attribute kind."""
    if raw is None:
        return NullValue()
    # bool before number: bool is an int subclass
    if isinstance(raw, bool):
        return BoolValue(value=raw)
    if isinstance(raw, (int, float)):
        return NumberValue(value=float(raw))
    if isinstance(raw, (list, tuple, set, frozenset)):
        return StringArrayValue(values=[str(v) for v in raw])
    return StringValue(value=str(raw))


# ── Profiles ─────────────────────────────────────────────────────────────────

class Profile(BaseModel):
    user_id: str
    attributes: dict[str, Any] = {}
    preferences: dict[str, Any] = {}
    weights: dict[str, float] = {}
    filters: dict[str, Any] = {}
    metadata: dict[str, Any] = {}
    is_active: bool = True
    average_score: float = 0.0
    match_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("weights")
    @classmethod
    def _weights_non_negative(cls, v: dict[str, float]) -> dict[str, float]:
        for key, weight in v.items():
            if weight < 0:
                raise ValueError(f"Weight for {key!r} must be non-negative, got {weight}")
        return v

    def attribute(self, key: str) -> AttributeValue:
        return attribute_value(self.attributes.get(key))


class ProfileUpsert(BaseModel):
    user_id: str
    attributes: dict[str, Any]
    preferences: dict[str, Any]


class ProfileUpdate(BaseModel):
    attributes: Optional[dict[str, Any]] = None
    preferences: Optional[dict[str, Any]] = None
    weights: Optional[dict[str, float]] = None
    filters: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None


# ── Directory users (collaborative filtering / content matching) ────────────

class UserRecord(BaseModel):
    id: str
    name: str
    email: str = ""
    role: Literal["mentor", "mentee"]
    skills: list[str] = []
    bio: Optional[str] = None
    availability: Optional[str] = None
    reputation_score: float = 0.0
    industry: Optional[str] = None
    experience_years: int = 0
    location: Optional[str] = None
    is_available_for_mentoring: bool = False
    is_active: bool = True

    model_config = {"from_attributes": True}

    @field_validator("skills", mode="before")
    @classmethod
    def _none_skills_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v
