"""
Request Schemas for Callboard

Stored documents use camelCase field names, so every payload model accepts
and dumps camelCase aliases while exposing snake_case attributes.

Payloads:
- Commitment (daily call target + expected closures/meetings)
- Report (actual calls + prospects, meeting outcomes, closures)
- Prospect
- Account / employee administration
- Announcement
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---- Enumerations ----

Role = Literal["employee", "manager", "admin"]
CommitmentStatus = Literal["pending", "achieved", "completed", "missed", "failed"]
ProspectStatus = Literal["pending", "converted", "lost"]
MeetingType = Literal["online", "offline"]
MeetingResult = Literal["converted", "lost", "follow_up", "rescheduled"]
Priority = Literal["high", "medium", "low"]
ReportOutcome = Literal["all", "exceeded", "met", "missed"]
ProspectWindow = Literal["today", "week", "month"]

PRIVILEGED_ROLES = ("admin", "manager")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


# ---- Commitments ----


class ExpectedClosure(CamelModel):
    customer_name: str
    contact_details: str = ""
    products: str = ""
    expected_revenue: float = Field(0, ge=0)
    notes: Optional[str] = None


class ExpectedMeeting(CamelModel):
    prospect_id: str = ""
    prospect_name: str = ""
    type: MeetingType = "online"
    product: str = ""


class ExpectedProspects(CamelModel):
    total: int = Field(0, ge=0)


class CommitmentCreate(CamelModel):
    calls_to_be_made: int = Field(..., ge=0, description="Daily call target")
    expected_closures: List[ExpectedClosure] = Field(default_factory=list)
    expected_meetings: List[ExpectedMeeting] = Field(default_factory=list)
    expected_prospects: ExpectedProspects = Field(default_factory=ExpectedProspects)


# ---- Reports ----


class ProspectEntry(CamelModel):
    name: str = Field(..., min_length=1)
    contact: str = ""
    source: str = ""
    remarks: str = ""


class MeetingOutcome(CamelModel):
    meeting_id: str = ""
    prospect_id: str = ""
    prospect_name: str = ""
    outcome: MeetingResult
    expected_revenue: float = Field(0, ge=0)
    rescheduled_date: Optional[str] = None
    notes: Optional[str] = None


class ClosureEntry(CamelModel):
    prospect_id: str = ""
    prospect_name: str = ""
    product: str = ""
    amount: float = Field(0, ge=0)
    closure_date: Optional[str] = None
    notes: Optional[str] = None


class ReportCreate(CamelModel):
    calls_made: int = Field(..., ge=0)
    prospects: List[ProspectEntry] = Field(default_factory=list)
    meeting_outcomes: List[MeetingOutcome] = Field(default_factory=list)
    closures: List[ClosureEntry] = Field(default_factory=list)
    feedback: str = ""


# ---- Prospects ----


class ProspectStatusUpdate(CamelModel):
    status: ProspectStatus


# ---- Accounts ----


class RegisterRequest(CamelModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: Role = "employee"


class PasswordResetRequest(CamelModel):
    email: str = Field(..., min_length=3)


class ProfileUpdate(CamelModel):
    name: str = Field(..., min_length=1)
    photo_url: Optional[str] = None


class RoleUpdate(CamelModel):
    role: Role


class ActiveUpdate(CamelModel):
    is_active: bool


# ---- Admin ----


class AnnouncementCreate(CamelModel):
    title: str = Field(..., min_length=1)
    content: str = ""
    priority: Priority = "medium"


class MigrationLogEntry(CamelModel):
    time: datetime
    level: Literal["info", "error"]
    message: str


class MigrationResponse(CamelModel):
    entries: List[MigrationLogEntry]
    errors: int
