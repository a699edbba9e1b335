"""Fake in-memory waitlist store for behavioral testing."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.core.timestamps import parse_timestamp


class StoreUnavailable(RuntimeError):
    """Raised by the fake when an operation is configured to fail."""


class FakeWaitlistDB:
    """In-memory implementation of the app.db registrant, attempt and privacy functions."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all stores to initial state."""
        self.registrants: List[Dict[str, Any]] = []
        self.attempts: List[Dict[str, Any]] = []
        self.deletion_requests: Dict[str, Dict[str, Any]] = {}
        self.export_requests: List[Dict[str, Any]] = []
        # Operation names that raise StoreUnavailable when called
        self.failing: set[str] = set()
        # Fail update_registrant after this many successful calls
        self.fail_updates_after: Optional[int] = None
        self._update_calls = 0

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise StoreUnavailable(f"{op} unavailable")

    # Seeding helpers
    def add_registrant(self, **fields: Any) -> Dict[str, Any]:
        """Insert a registrant row directly (camelCase keys)."""
        row = {
            "id": str(uuid4()),
            "name": "Test User",
            "email": f"user{len(self.registrants) + 1}@example.com",
            "role": "Software Engineer",
            "organization": "Acme",
            "interestAreas": ["System Design"],
            "experienceLevel": "Intermediate (2-5 years)",
            "referralSource": "Friend/Colleague",
            "privacy": True,
            "newsletter": False,
            "accessId": uuid4().hex[:8].upper(),
            "referralCode": f"MFOUR-{uuid4().hex[:5].upper()}",
            "referredBy": None,
            "status": "pending",
            "approvedAt": None,
            "createdAt": "2026-01-01T00:00:00+00:00",
        }
        row.update(fields)
        row.setdefault("waitlistPosition", len(self.registrants) + 1)
        self.registrants.append(row)
        return row

    def add_attempt(self, email: str, ip_address: str, timestamp: datetime) -> None:
        self.attempts.append(
            {
                "email": email,
                "ipAddress": ip_address,
                "userAgent": "Mozilla/5.0 (X11; Linux x86_64)",
                "timestamp": timestamp.isoformat(),
            }
        )

    # Registrant operations
    def _find(self, key: str, value: Any) -> Optional[Dict[str, Any]]:
        for row in self.registrants:
            if row.get(key) == value:
                return row
        return None

    def get_registrant_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        self._check("get_registrant_by_email")
        return self._find("email", email.strip().lower())

    def get_registrant_by_id(self, registrant_id: str) -> Optional[Dict[str, Any]]:
        self._check("get_registrant_by_id")
        return self._find("id", str(registrant_id))

    def get_registrant_by_access_id(self, access_id: str) -> Optional[Dict[str, Any]]:
        self._check("get_registrant_by_access_id")
        return self._find("accessId", access_id)

    def get_registrant_by_referral_code(self, referral_code: str) -> Optional[Dict[str, Any]]:
        self._check("get_registrant_by_referral_code")
        return self._find("referralCode", referral_code)

    def count_registrants(self, status: Optional[str] = None) -> int:
        self._check("count_registrants")
        return len([r for r in self.registrants if status is None or r.get("status") == status])

    def count_referrals(self, referral_code: str) -> int:
        self._check("count_referrals")
        return len([r for r in self.registrants if r.get("referredBy") == referral_code])

    def list_registrants_by_status(self, status: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        self._check("list_registrants_by_status")
        rows = sorted(
            (r for r in self.registrants if r.get("status") == status),
            key=lambda r: parse_timestamp(r.get("createdAt")),
        )
        return rows[:limit] if limit is not None else rows

    def list_referred_by_codes(self) -> List[str]:
        self._check("list_referred_by_codes")
        return [r["referredBy"] for r in self.registrants if r.get("referredBy")]

    def list_registrants_by_referral_codes(self, codes: List[str]) -> List[Dict[str, Any]]:
        self._check("list_registrants_by_referral_codes")
        return [r for r in self.registrants if r.get("referralCode") in codes]

    def next_waitlist_position(self) -> int:
        self._check("next_waitlist_position")
        return len(self.registrants) + 1

    def insert_registrant(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self._check("insert_registrant")
        row = {"id": str(uuid4()), **data}
        self.registrants.append(row)
        return dict(row)

    def update_registrant(self, registrant_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._check("update_registrant")
        if self.fail_updates_after is not None and self._update_calls >= self.fail_updates_after:
            raise StoreUnavailable("update_registrant unavailable")
        self._update_calls += 1
        row = self._find("id", str(registrant_id))
        if row is None:
            return None
        row.update(updates)
        return dict(row)

    def delete_registrant(self, registrant_id: str) -> bool:
        self._check("delete_registrant")
        row = self._find("id", str(registrant_id))
        if row is None:
            return False
        self.registrants.remove(row)
        return True

    # Attempt log operations
    def log_attempt(self, email: str, ip_address: str, user_agent: str, timestamp: datetime) -> Dict[str, Any]:
        self._check("log_attempt")
        record = {
            "email": email,
            "ipAddress": ip_address,
            "userAgent": user_agent,
            "timestamp": timestamp.isoformat(),
        }
        self.attempts.append(record)
        return record

    def _attempts_since(self, key: str, value: str, since: datetime) -> List[Dict[str, Any]]:
        rows = [
            a
            for a in self.attempts
            if a.get(key) == value and parse_timestamp(a["timestamp"]) >= since
        ]
        return sorted(rows, key=lambda a: parse_timestamp(a["timestamp"]))

    def list_attempts_by_ip(self, ip_address: str, since: datetime) -> List[Dict[str, Any]]:
        self._check("list_attempts_by_ip")
        return self._attempts_since("ipAddress", ip_address, since)

    def list_attempts_by_email(self, email: str, since: datetime) -> List[Dict[str, Any]]:
        self._check("list_attempts_by_email")
        return self._attempts_since("email", email.strip().lower(), since)

    # Privacy request operations
    def create_deletion_request(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_deletion_request")
        row = {"id": str(uuid4()), **data}
        self.deletion_requests[row["id"]] = row
        return dict(row)

    def get_deletion_request(self, request_id: str) -> Optional[Dict[str, Any]]:
        self._check("get_deletion_request")
        row = self.deletion_requests.get(str(request_id))
        return dict(row) if row else None

    def mark_deletion_request_completed(self, request_id: str, processed_at: datetime) -> Optional[Dict[str, Any]]:
        self._check("mark_deletion_request_completed")
        row = self.deletion_requests.get(str(request_id))
        if row is None:
            return None
        row.update({"status": "completed", "processedAt": processed_at.isoformat()})
        return dict(row)

    def create_export_request(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_export_request")
        row = {"id": str(uuid4()), **data}
        self.export_requests.append(row)
        return dict(row)


REGISTRANT_FUNCTIONS = (
    "get_registrant_by_email",
    "get_registrant_by_id",
    "get_registrant_by_access_id",
    "get_registrant_by_referral_code",
    "count_registrants",
    "count_referrals",
    "list_registrants_by_status",
    "list_referred_by_codes",
    "list_registrants_by_referral_codes",
    "next_waitlist_position",
    "insert_registrant",
    "update_registrant",
    "delete_registrant",
)
ATTEMPT_FUNCTIONS = ("log_attempt", "list_attempts_by_ip", "list_attempts_by_email")
PRIVACY_FUNCTIONS = (
    "create_deletion_request",
    "get_deletion_request",
    "mark_deletion_request_completed",
    "create_export_request",
)


def install(monkeypatch, fake: FakeWaitlistDB) -> FakeWaitlistDB:
    """Point the app.db modules at the fake."""
    from app.db import privacy_requests, registrants, registration_attempts

    for module, names in (
        (registrants, REGISTRANT_FUNCTIONS),
        (registration_attempts, ATTEMPT_FUNCTIONS),
        (privacy_requests, PRIVACY_FUNCTIONS),
    ):
        for name in names:
            monkeypatch.setattr(module, name, getattr(fake, name))
    return fake
