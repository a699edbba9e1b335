"""Waitlist registration and admin operations.

Registration runs the admission gate and, only when it passes, persists a new
registrant. Admin operations (status changes, bulk approval, stats, scoring,
referral leaderboard, CSV export) work over the stored registrants.
"""

import csv
import io
import logging
import secrets
import string
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from app.core.admission_gate import run_admission_gate
from app.core.logging import get_logger, log_with_context
from app.core.priority_scoring import POSITIONS_PER_REFERRAL, calculate_priority_score
from app.core.registration_validators import normalize_email, validate_honeypot
from app.core.schemas_registrants import (
    AdmissionResult,
    BulkApproveResult,
    PriorityScore,
    ReferrerStats,
    Registrant,
    RegistrantStatus,
    RegistrationRequest,
    WaitlistStats,
)
from app.core.timestamps import parse_timestamp, utc_now
from app.db import registrants as registrants_db

logger = get_logger(__name__)

ACCESS_ID_LENGTH = 8
REFERRAL_CODE_PREFIX = "MFOUR-"
REFERRAL_CODE_LENGTH = 5
_TOKEN_ALPHABET = string.ascii_uppercase + string.digits

# Keys the registrant's client keeps locally for the "already registered" shortcut
CLIENT_CACHE_KEYS = (
    "lab_access_id",
    "lab_user_name",
    "lab_referral_code",
    "lab_waitlist_position",
)

CSV_HEADERS = [
    "Name",
    "Email",
    "Role",
    "Organization",
    "Experience",
    "Interests",
    "Referral Source",
    "Position",
    "Created At",
]

CONNECTION_FAILED_MESSAGE = "Connection failed. Please try again."
UNKNOWN_REFERRAL_WARNING = "Referral code not recognised; registration continues without it."


class RegistrantNotFoundError(Exception):
    """Raised when no registrant matches the lookup."""


class InvalidStatusTransitionError(Exception):
    """Raised when a status change would break the monotonic lifecycle."""


class RegistrationWriteError(Exception):
    """Raised when the admitted registrant could not be persisted."""


@dataclass
class RegistrationOutcome:
    """Result of a registration attempt."""

    admission: AdmissionResult
    registrant: Optional[Registrant] = None
    already_registered: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.registrant is not None


def generate_access_id() -> str:
    """Opaque 8-character access id."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(ACCESS_ID_LENGTH))


def generate_referral_code() -> str:
    """Referral code in the MFOUR-XXXXX format."""
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
    return f"{REFERRAL_CODE_PREFIX}{suffix}"


def client_cache_for(registrant: Registrant) -> dict[str, str]:
    """Values the client caches so repeat visits can skip the form."""
    return dict(
        zip(
            CLIENT_CACHE_KEYS,
            (
                registrant.access_id,
                registrant.name,
                registrant.referral_code,
                str(registrant.waitlist_position),
            ),
        )
    )


# ============================================================================
# Registration
# ============================================================================


def _registrant_from_cached_hint(access_id: Optional[str], email: str) -> Optional[Registrant]:
    """Resolve the client-held access id, if it belongs to this email."""
    if not access_id:
        return None
    try:
        row = registrants_db.get_registrant_by_access_id(access_id.strip().upper())
    except Exception:
        logger.warning("Cached access id lookup failed; continuing with full registration")
        return None
    if row and row.get("email") == email:
        return Registrant.model_validate(row)
    return None


def _resolve_referrer(referred_by: Optional[str], warnings: list[str]) -> Optional[str]:
    if not referred_by or not referred_by.strip():
        return None
    code = referred_by.strip().upper()
    try:
        owner = registrants_db.get_registrant_by_referral_code(code)
    except Exception as e:
        log_with_context(
            logger,
            logging.WARNING,
            "Referral lookup failed open",
            event="referral_lookup_fail_open",
            error=repr(e),
        )
        return code
    if owner is None:
        warnings.append(UNKNOWN_REFERRAL_WARNING)
        return None
    return code


def register_applicant(
    request: RegistrationRequest,
    ip_address: str,
    user_agent: Optional[str],
    now: Optional[datetime] = None,
) -> RegistrationOutcome:
    """
    Run the admission gate and persist the registrant if it passes.

    Args:
        request: Validated form submission
        ip_address: Requester IP
        user_agent: Requester user agent
        now: Registration time (defaults to now)

    Returns:
        RegistrationOutcome; ``registrant`` is None when admission failed

    Raises:
        RegistrationWriteError: If the final write to the store fails
    """
    now = now or utc_now()
    email = normalize_email(request.email)

    # A filled honeypot never gets the shortcut; the gate rejects it below
    cached = None
    if not validate_honeypot(request.honeypot):
        cached = _registrant_from_cached_hint(request.cached_access_id, email)
    if cached is not None:
        logger.info(
            f"Registration short-circuited by cached access id for {email}",
            extra={"email": email},
        )
        return RegistrationOutcome(
            admission=AdmissionResult(passed=True),
            registrant=cached,
            already_registered=True,
        )

    admission = run_admission_gate(
        email=email,
        ip_address=ip_address,
        user_agent=user_agent,
        honeypot=request.honeypot,
        now=now,
    )
    if not admission.passed:
        return RegistrationOutcome(admission=admission)

    warnings = list(admission.warnings)
    referred_by = _resolve_referrer(request.referred_by, warnings)

    try:
        position = registrants_db.next_waitlist_position()
        registrant = Registrant(
            name=request.name,
            email=email,
            date_of_birth=request.date_of_birth,
            role=request.role,
            student_level=request.student_level,
            degree=request.degree,
            organization=request.organization,
            interest_areas=request.interest_areas,
            experience_level=request.experience_level,
            referral_source=request.referral_source,
            motivation=request.motivation or None,
            privacy=request.privacy,
            newsletter=request.newsletter,
            access_id=generate_access_id(),
            referral_code=generate_referral_code(),
            referred_by=referred_by,
            waitlist_position=position,
            status=RegistrantStatus.PENDING,
            created_at=now,
            updated_at=now,
            last_active_at=now,
            ip_address=ip_address,
            user_agent=user_agent or "",
        )
        row = registrants_db.insert_registrant(
            registrant.model_dump(mode="json", by_alias=True, exclude={"id", "gdpr_status"})
        )
    except Exception as e:
        logger.exception(f"Failed to persist registrant {email}")
        raise RegistrationWriteError(CONNECTION_FAILED_MESSAGE) from e

    stored = Registrant.model_validate(row)
    log_with_context(
        logger,
        logging.INFO,
        "Registrant created",
        event="registrant_created",
        email=email,
        waitlist_position=stored.waitlist_position,
        referred_by=referred_by,
    )
    return RegistrationOutcome(admission=admission, registrant=stored, warnings=warnings)


def lookup_registration(access_id: str) -> Registrant:
    """Find a registration by the access id held on the client."""
    row = registrants_db.get_registrant_by_access_id(access_id.strip().upper())
    if not row:
        raise RegistrantNotFoundError("No registration found for this access id")
    return Registrant.model_validate(row)


# ============================================================================
# Status changes
# ============================================================================


def update_registrant_status(
    email: str,
    new_status: RegistrantStatus,
    now: Optional[datetime] = None,
) -> Registrant:
    """
    Move a registrant to a new status.

    Raises:
        RegistrantNotFoundError: If no registrant has this email
        InvalidStatusTransitionError: If the move is not allowed
    """
    now = now or utc_now()
    row = registrants_db.get_registrant_by_email(normalize_email(email))
    if not row:
        raise RegistrantNotFoundError(f"No registrant with email {email}")

    current = RegistrantStatus(row["status"])
    if not current.can_transition_to(new_status):
        raise InvalidStatusTransitionError(
            f"Cannot move registrant from {current.value} to {new_status.value}"
        )

    updates: dict = {"status": new_status.value, "updatedAt": now.isoformat()}
    if new_status == RegistrantStatus.APPROVED:
        updates["approvedAt"] = now.isoformat()
    elif new_status == RegistrantStatus.ACTIVE:
        if not row.get("approvedAt"):
            updates["approvedAt"] = now.isoformat()
        updates["lastActiveAt"] = now.isoformat()

    updated = registrants_db.update_registrant(row["id"], updates)
    if not updated:
        raise RegistrantNotFoundError(f"Registrant {row['id']} disappeared during update")

    logger.info(
        f"Registrant status {current.value} -> {new_status.value}",
        extra={"email": row["email"]},
    )
    return Registrant.model_validate(updated)


def bulk_approve(count: int, now: Optional[datetime] = None) -> BulkApproveResult:
    """
    Approve the ``count`` oldest pending registrants (strict FIFO).

    Updates run one by one and are not rolled back. If an update fails the run
    stops, the already-approved registrants stay approved, and the result has
    ``completed=False`` so the caller can invoke it again for the remainder.
    """
    now = now or utc_now()
    pending = registrants_db.list_registrants_by_status(RegistrantStatus.PENDING.value, limit=count)

    approved_ids: list[str] = []
    stamp = now.isoformat()
    for row in pending[:count]:
        try:
            updated = registrants_db.update_registrant(
                row["id"],
                {
                    "status": RegistrantStatus.APPROVED.value,
                    "approvedAt": stamp,
                    "updatedAt": stamp,
                },
            )
        except Exception:
            logger.exception(
                f"Bulk approval stopped after {len(approved_ids)} of {len(pending)} registrants"
            )
            return BulkApproveResult(
                requested=count,
                approved_count=len(approved_ids),
                approved_ids=approved_ids,
                completed=False,
            )
        if updated is None:
            logger.warning(f"Pending registrant {row['id']} vanished before approval")
            continue
        approved_ids.append(row["id"])

    logger.info(f"Bulk approved {len(approved_ids)} registrants (requested {count})")
    return BulkApproveResult(
        requested=count,
        approved_count=len(approved_ids),
        approved_ids=approved_ids,
    )


# ============================================================================
# Reporting
# ============================================================================


def _average_wait_hours(approved_rows: list[dict]) -> int:
    waits = []
    for row in approved_rows:
        created = parse_timestamp(row.get("createdAt"))
        approved = parse_timestamp(row.get("approvedAt"))
        if created and approved:
            waits.append((approved - created).total_seconds())
    if not waits:
        return 0
    return round(sum(waits) / len(waits) / 3600)


def get_waitlist_stats() -> WaitlistStats:
    """Server-side counts per status plus the average approval wait."""
    average_wait = 0
    try:
        average_wait = _average_wait_hours(
            registrants_db.list_registrants_by_status(RegistrantStatus.APPROVED.value)
        )
    except Exception:
        logger.warning("Failed to calculate average wait time", exc_info=True)

    return WaitlistStats(
        total_users=registrants_db.count_registrants(),
        pending_count=registrants_db.count_registrants(RegistrantStatus.PENDING.value),
        approved_count=registrants_db.count_registrants(RegistrantStatus.APPROVED.value),
        active_count=registrants_db.count_registrants(RegistrantStatus.ACTIVE.value),
        waitlist_count=registrants_db.count_registrants(RegistrantStatus.WAITLIST.value),
        average_wait_hours=average_wait,
    )


def list_waitlist(status: RegistrantStatus = RegistrantStatus.PENDING) -> list[Registrant]:
    """Registrants in a status bucket, oldest first."""
    rows = registrants_db.list_registrants_by_status(status.value)
    return [Registrant.model_validate(row) for row in rows]


def score_registrant(registrant_id: str, now: Optional[datetime] = None) -> PriorityScore:
    """Count a registrant's referrals and compute their priority score."""
    row = registrants_db.get_registrant_by_id(registrant_id)
    if not row:
        raise RegistrantNotFoundError(f"No registrant with id {registrant_id}")
    registrant = Registrant.model_validate(row)
    referral_count = registrants_db.count_referrals(registrant.referral_code)
    return calculate_priority_score(registrant, referral_count, now=now)


def get_top_referrers(limit: int = 10) -> list[ReferrerStats]:
    """Registrants with the most referrals, highest first; zero-referral users excluded."""
    counts = Counter(registrants_db.list_referred_by_codes())
    if not counts:
        return []

    top = counts.most_common()
    owners = {
        row["referralCode"]: row
        for row in registrants_db.list_registrants_by_referral_codes([code for code, _ in top])
    }

    leaderboard: list[ReferrerStats] = []
    for code, total in top:
        owner = owners.get(code)
        if owner is None:
            continue
        leaderboard.append(
            ReferrerStats(
                user_id=owner.get("id"),
                name=owner.get("name", ""),
                email=owner.get("email", ""),
                referral_code=code,
                total_referrals=total,
                position_improvement=total * POSITIONS_PER_REFERRAL,
            )
        )
        if len(leaderboard) >= limit:
            break
    return leaderboard


def export_waitlist_csv(status: RegistrantStatus = RegistrantStatus.PENDING) -> str:
    """Render a status bucket as CSV for offline review."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for registrant in list_waitlist(status):
        writer.writerow(
            [
                registrant.name,
                registrant.email,
                registrant.role.value,
                registrant.organization,
                registrant.experience_level.value if registrant.experience_level else "",
                "; ".join(area.value for area in registrant.interest_areas),
                registrant.referral_source.value if registrant.referral_source else "",
                registrant.waitlist_position,
                registrant.created_at.isoformat() if registrant.created_at else "",
            ]
        )
    return buffer.getvalue()
