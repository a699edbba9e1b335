"""Pydantic schemas for waitlist registrants, admission results and scoring."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose persisted/wire field names are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Enums
# ============================================================================


class Role(str, Enum):
    """Applicant role."""
    STUDENT = "Student"
    INDEPENDENT_RESEARCHER = "Independent Researcher"
    SOFTWARE_ENGINEER = "Software Engineer"
    SYSTEMS_ARCHITECT = "Systems Architect"
    DATA_SCIENTIST = "Data Scientist"
    FOUNDER = "Founder"
    OTHER = "Other"


class StudentLevel(str, Enum):
    """Study level, only meaningful for students."""
    UNDERGRADUATE = "Undergraduate"
    MASTERS = "Masters / Graduate"
    PHD = "PhD / Doctorate"
    POST_DOC = "Post-Doc"


class ExperienceLevel(str, Enum):
    """Ordered experience level."""
    BEGINNER = "Beginner (0-2 years)"
    INTERMEDIATE = "Intermediate (2-5 years)"
    ADVANCED = "Advanced (5-10 years)"
    EXPERT = "Expert (10+ years)"

    @property
    def level(self) -> int:
        """Get numeric level for comparison."""
        return list(ExperienceLevel).index(self)

    def __ge__(self, other: "ExperienceLevel") -> bool:
        return self.level >= other.level

    def __gt__(self, other: "ExperienceLevel") -> bool:
        return self.level > other.level

    def __le__(self, other: "ExperienceLevel") -> bool:
        return self.level <= other.level

    def __lt__(self, other: "ExperienceLevel") -> bool:
        return self.level < other.level


class ReferralSource(str, Enum):
    """How the applicant heard about the lab."""
    TWITTER = "Twitter/X"
    YOUTUBE = "YouTube"
    FRIEND = "Friend/Colleague"
    SEARCH_ENGINE = "Search Engine"
    LINKEDIN = "LinkedIn"
    REDDIT = "Reddit"
    OTHER = "Other"


class InterestArea(str, Enum):
    """Fixed catalog of interest areas."""
    SYSTEM_DESIGN = "System Design"
    AI_ML_ENGINEERING = "AI/ML Engineering"
    AI_GOVERNANCE = "AI Governance & Compliance"
    RED_TEAMING = "Red Teaming & Security"
    PROMPT_ENGINEERING = "Prompt Engineering"
    INFRASTRUCTURE = "Infrastructure & MLOps"
    RESEARCH = "Research"


class RegistrantStatus(str, Enum):
    """Waitlist status.

    - PENDING: registered, waiting for review
    - APPROVED: admin granted access
    - ACTIVE: registrant started using their access
    - WAITLIST: deferred by an admin, may still be approved later
    """
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    WAITLIST = "waitlist"

    def can_transition_to(self, target: "RegistrantStatus") -> bool:
        """Whether ``self -> target`` is a legal status move."""
        return target in ALLOWED_STATUS_TRANSITIONS[self]


ALLOWED_STATUS_TRANSITIONS: dict[RegistrantStatus, frozenset[RegistrantStatus]] = {
    RegistrantStatus.PENDING: frozenset({RegistrantStatus.APPROVED, RegistrantStatus.WAITLIST}),
    RegistrantStatus.WAITLIST: frozenset({RegistrantStatus.APPROVED}),
    RegistrantStatus.APPROVED: frozenset({RegistrantStatus.ACTIVE}),
    RegistrantStatus.ACTIVE: frozenset(),
}


# ============================================================================
# Registration
# ============================================================================


class RegistrationRequest(CamelModel):
    """Registration form submission."""
    name: str = Field(..., min_length=2, max_length=200)
    email: str = Field(..., max_length=320)
    date_of_birth: date
    role: Role
    student_level: Optional[StudentLevel] = None
    degree: Optional[str] = None
    organization: str = Field(..., min_length=1, max_length=200)
    interest_areas: list[InterestArea] = Field(..., min_length=1)
    experience_level: ExperienceLevel
    referral_source: ReferralSource
    motivation: str = Field(default="", max_length=5000)
    privacy: bool = False
    newsletter: bool = True
    referred_by: Optional[str] = None

    # Hidden form field; humans leave it empty
    honeypot: str = ""

    # Access id cached on the client from an earlier registration
    cached_access_id: Optional[str] = None

    @field_validator("name", "organization")
    @classmethod
    def strip_required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("date_of_birth")
    @classmethod
    def birth_date_in_past(cls, value: date) -> date:
        if value >= date.today():
            raise ValueError("Date of birth must be in the past")
        return value

    @field_validator("privacy")
    @classmethod
    def privacy_accepted(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must accept the privacy policy")
        return value

    @field_validator("interest_areas")
    @classmethod
    def dedupe_interest_areas(cls, value: list[InterestArea]) -> list[InterestArea]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def student_fields_only_for_students(self) -> "RegistrationRequest":
        if self.role == Role.STUDENT:
            if self.student_level is None:
                raise ValueError("Student level is required for students")
            if not self.degree or not self.degree.strip():
                raise ValueError("Degree/Major is required for students")
            self.degree = self.degree.strip()
        else:
            self.student_level = None
            self.degree = None
        return self


class Registrant(CamelModel):
    """A stored waitlist registrant."""
    id: Optional[str] = None
    name: str
    email: str
    date_of_birth: Optional[date] = None
    role: Role
    student_level: Optional[StudentLevel] = None
    degree: Optional[str] = None
    organization: str = ""
    interest_areas: list[InterestArea] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    referral_source: Optional[ReferralSource] = None
    motivation: Optional[str] = None
    privacy: bool = True
    newsletter: bool = False

    access_id: str
    referral_code: str
    referred_by: Optional[str] = None

    waitlist_position: int = Field(..., ge=1)
    status: RegistrantStatus = RegistrantStatus.PENDING
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    gdpr_status: Optional[str] = None


class RegistrationResponse(CamelModel):
    """Response after a successful (or already-known) registration."""
    passed: bool = True
    already_registered: bool = False
    access_id: str
    referral_code: str
    waitlist_position: int
    status: RegistrantStatus
    warnings: list[str] = Field(default_factory=list)
    client_cache: dict[str, str] = Field(
        default_factory=dict, description="Values the client should keep locally"
    )


class RegistrationLookup(CamelModel):
    """Public view of a registration, looked up by access id."""
    access_id: str
    name: str
    referral_code: str
    waitlist_position: int
    status: RegistrantStatus


# ============================================================================
# Admission
# ============================================================================


class AdmissionResult(CamelModel):
    """Outcome of the admission gate."""
    passed: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    retry_after_seconds: Optional[int] = None


# ============================================================================
# Scoring & admin
# ============================================================================


class PriorityScore(CamelModel):
    """Advisory ranking for a registrant; never written back to the record."""
    user_id: str
    base_score: int
    referral_bonus: int
    engagement_bonus: int
    total_score: int
    calculated_position: int


class WaitlistStats(CamelModel):
    """Aggregate waitlist counters."""
    total_users: int
    pending_count: int
    approved_count: int
    active_count: int
    waitlist_count: int
    average_wait_hours: int = Field(
        0, description="Mean hours between registration and approval"
    )


class ReferrerStats(CamelModel):
    """Leaderboard entry."""
    user_id: Optional[str] = None
    name: str
    email: str
    referral_code: str
    total_referrals: int
    position_improvement: int


class StatusUpdateRequest(CamelModel):
    """Admin status change."""
    status: RegistrantStatus


class BulkApproveRequest(CamelModel):
    """Approve the next N pending registrants."""
    count: int = Field(..., ge=1, le=1000)


class BulkApproveResult(CamelModel):
    """Outcome of a bulk approval run.

    ``completed`` is False when an update failed part-way; the registrants in
    ``approved_ids`` stay approved and the caller can re-run for the rest.
    """
    requested: int
    approved_count: int
    approved_ids: list[str] = Field(default_factory=list)
    completed: bool = True


# ============================================================================
# Privacy (GDPR)
# ============================================================================


class PrivacyEmailRequest(CamelModel):
    """Request keyed by the registrant's email."""
    email: EmailStr


class DeletionRequestCreate(PrivacyEmailRequest):
    """Account deletion request."""
    reason: Optional[str] = Field(default=None, max_length=1000)


class ConsentUpdateRequest(PrivacyEmailRequest):
    """Consent preference changes; omitted flags are left untouched."""
    newsletter: Optional[bool] = None
    privacy: Optional[bool] = None
    analytics: Optional[bool] = None


class DeletionResponse(CamelModel):
    """Deletion request/processing outcome."""
    request_id: str
    status: str
    clear_client_cache: list[str] = Field(default_factory=list)
