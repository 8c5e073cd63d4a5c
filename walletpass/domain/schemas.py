from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, Literal, Optional, Union, Annotated


ProfileName = Literal["logistics", "healthcare", "loyalty"]
PassType = Literal["parent", "child"]


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire. Both spellings accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ============================================
# Pass Schemas
# ============================================

class TimeWindow(CamelModel):
    from_: str = Field(..., alias="from")
    to: str
    tz: Optional[str] = None


class CreateParentInput(CamelModel):
    id: Optional[str] = None
    profile: ProfileName = "logistics"
    program_name: str = Field(..., min_length=1)
    site: Optional[str] = None
    window: Optional[TimeWindow] = None
    capacity: Optional[Union[PositiveInt, PositiveFloat]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CreateChildInput(CamelModel):
    id: Optional[str] = None
    profile: ProfileName = "logistics"
    parent_id: str = Field(..., min_length=1)
    # logistics
    plate: Optional[str] = None
    carrier: Optional[str] = None
    client: Optional[str] = None
    # healthcare
    patient_name: Optional[str] = None
    procedure: Optional[str] = None
    doctor: Optional[str] = None
    # loyalty
    business_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    member_id: Optional[str] = None
    points: Optional[int] = Field(default=None, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class PassRecord(CamelModel):
    id: str
    profile: ProfileName
    metadata: dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: str
    updated_at: str
    hash: str = ""
    signature: str = ""


class ParentPass(PassRecord):
    type: Literal["parent"] = "parent"
    program_name: str
    site: Optional[str] = None
    window: Optional[TimeWindow] = None
    capacity: Optional[Union[PositiveInt, PositiveFloat]] = None


class ChildPass(PassRecord):
    type: Literal["child"] = "child"
    parent_id: str
    plate: Optional[str] = None
    carrier: Optional[str] = None
    client: Optional[str] = None
    patient_name: Optional[str] = None
    procedure: Optional[str] = None
    doctor: Optional[str] = None
    business_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    member_id: Optional[str] = None
    points: Optional[int] = None


Pass = Annotated[Union[ParentPass, ChildPass], Field(discriminator="type")]


class StatusUpdate(CamelModel):
    status: str = Field(..., min_length=1)


# ============================================
# Loyalty Schemas
# ============================================

class GeoLocation(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: Optional[float] = None
    relevant_text: Optional[str] = None


class BusinessCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    program_name: Optional[str] = None
    points_label: Optional[str] = None
    wallet: Optional[dict[str, Any]] = None


class Business(CamelModel):
    id: str
    name: str
    program_name: str
    points_label: str = "Points"
    loyalty_program_id: Optional[str] = None
    wallet: Optional[dict[str, Any]] = None
    created_at: str
    updated_at: str


class CustomerAccountCreate(CamelModel):
    id: Optional[str] = None
    business_id: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    member_id: Optional[str] = None


class CustomerAccount(CamelModel):
    id: str
    business_id: str
    full_name: str
    member_id: str
    created_at: str
    updated_at: str


class LoyaltyProgramCreate(CamelModel):
    program_id: Optional[str] = None
    business_id: str = Field(..., min_length=1)
    program_name: Optional[str] = None
    site: Optional[str] = None
    locations: Optional[list[GeoLocation]] = None
    relevant_text: Optional[str] = None
    country_code: Optional[str] = Field(default=None, min_length=2, max_length=2)
    homepage_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class LoyaltyCardIssue(CamelModel):
    card_id: Optional[str] = None
    business_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    initial_points: int = Field(default=0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class LoyaltyPointsUpdate(CamelModel):
    card_id: str = Field(..., min_length=1)
    set_points: Optional[int] = Field(default=None, ge=0)
    delta: Optional[int] = None

    @model_validator(mode="after")
    def _require_change(self):
        if self.set_points is None and self.delta is None:
            raise ValueError("Either setPoints or delta is required")
        return self


class LoyaltyMessagePush(CamelModel):
    card_id: Optional[str] = None
    object_id: Optional[str] = None
    header: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    message_type: str = "TEXT_AND_NOTIFY"

    @model_validator(mode="after")
    def _require_target(self):
        if not self.card_id and not self.object_id:
            raise ValueError("Either cardId or objectId is required")
        return self


# ============================================
# Generation Schemas
# ============================================

class GenerateRequest(CamelModel):
    include_apple: bool = True
    include_google: bool = True


class PassGenerationResult(CamelModel):
    pass_data: dict[str, Any]
    apple_pkpass: Optional[bytes] = None
    google_object: Optional[dict[str, Any]] = None
    google_save_url: Optional[str] = None
    errors: dict[str, str] = Field(default_factory=dict)
