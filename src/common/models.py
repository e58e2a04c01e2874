"""
Request and payload models for FirstPromoter signup tracking.

Provides Pydantic models for inbound validation and outbound serialisation.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value):
    if value == "":
        return None
    return value


class TrackingPayload(BaseModel):
    """
    Body of POST /track/signup on the FirstPromoter API.

    ip and ref_id are accepted by FirstPromoter but never populated here.
    """

    model_config = ConfigDict(frozen=True)

    tid: str = Field(min_length=1, description="FirstPromoter tracking id")
    email: Optional[str] = None
    uid: Optional[str] = None
    ip: Optional[str] = None
    ref_id: Optional[str] = None

    def to_request_body(self) -> dict:
        """Serialise with absent fields omitted rather than sent as null"""
        return self.model_dump(exclude_none=True)


class SignupRequest(BaseModel):
    """Inbound signup event: tracking cookie plus identity from the JSON body."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    tid: Optional[str] = Field(default=None, description="Value of _fprom_tid")
    email: Optional[str] = None
    uid: Optional[str] = None

    @field_validator("tid", "email", "uid", mode="before")
    @classmethod
    def blank_is_absent(cls, v):
        return _blank_to_none(v)

    @property
    def has_identity(self) -> bool:
        return bool(self.email or self.uid)

    def to_tracking_payload(self) -> TrackingPayload:
        return TrackingPayload(tid=self.tid, email=self.email, uid=self.uid)
