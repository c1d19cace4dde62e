"""
Core Data Models for iBudget

These models define the strict schemas for all data flowing through the
security and export core. They are designed to:
1. Enforce invariants at construction time (positive amounts, non-empty labels)
2. Be immutable once created, so snapshots can be shared across threads
3. Serialize to a canonical JSON form for the encrypted export

DESIGN DECISION: Amounts are Decimal, never float.
Totals must be exact and reproducible, and the export must carry the
amount the user typed without binary rounding.
"""

from datetime import date as date_type
from datetime import datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretBytes,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SecurityStatus(str, Enum):
    """
    Advisory security posture derived from failed authentication attempts.

    Never stored. Recomputed from the failure count on every query.
    """
    NORMAL = "Normal"
    WATCH = "Watch"
    LOCKED = "Locked"

    @property
    def rank(self) -> int:
        """Ordering used to check that the posture only escalates."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    SecurityStatus.NORMAL: 0,
    SecurityStatus.WATCH: 1,
    SecurityStatus.LOCKED: 2,
}


# =============================================================================
# LEDGER MODELS
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A single expense in the ledger.

    Title and category are stripped and must be non-empty; the ledger
    substitutes its configured defaults before building the record.
    Naive datetimes are taken to be UTC so the export has a single
    unambiguous timestamp format.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    title: str = Field(
        ...,
        min_length=1,
        description="Display title"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Display category"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent (strictly positive)"
    )
    date: datetime = Field(
        ...,
        description="When the expense happened"
    )

    @field_validator('date', mode='before')
    @classmethod
    def promote_calendar_date(cls, v):
        """Accept a plain date as midnight UTC."""
        if isinstance(v, date_type) and not isinstance(v, datetime):
            return datetime.combine(v, time(), tzinfo=timezone.utc)
        return v

    @field_validator('date')
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


# =============================================================================
# SECURITY MODELS
# =============================================================================

class LoginFailureEvent(BaseModel):
    """One failed authentication attempt. Append-only, never modified."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the failure was observed (UTC)"
    )
    reason: str = Field(
        default="",
        description="Human-readable failure cause from the authenticator"
    )


class AuthenticationOutcome(BaseModel):
    """
    Result of a biometric check, handed in by the presentation layer.

    The core never talks to a biometric API itself. It only receives
    this plain value.
    """
    model_config = ConfigDict(frozen=True)

    succeeded: bool
    reason: Optional[str] = None
    biometrics_available: bool = True

    @model_validator(mode='after')
    def validate_consistency(self) -> 'AuthenticationOutcome':
        if self.succeeded and not self.biometrics_available:
            raise ValueError("Authentication cannot succeed without biometrics")
        return self

    @classmethod
    def success(cls) -> 'AuthenticationOutcome':
        return cls(succeeded=True)

    @classmethod
    def failure(cls, reason: Optional[str] = None) -> 'AuthenticationOutcome':
        return cls(succeeded=False, reason=reason)

    @classmethod
    def unavailable(cls) -> 'AuthenticationOutcome':
        return cls(succeeded=False, biometrics_available=False)


class SecurityOverview(BaseModel):
    """Everything the Security Center view shows, captured at one instant."""
    model_config = ConfigDict(frozen=True)

    is_unlocked: bool
    status: SecurityStatus
    failure_count: int = Field(ge=0)
    recent_failures: tuple[LoginFailureEvent, ...] = ()
    last_export_size: Optional[int] = Field(
        default=None,
        ge=0,
        description="Byte length of the latest export, if any"
    )


# =============================================================================
# EXPORT MODELS
# =============================================================================

class EncryptionKey(BaseModel):
    """
    Symmetric AES key, scoped to one session.

    The key bytes are held as SecretBytes so they never show up in
    reprs, logs or error messages.
    """
    model_config = ConfigDict(frozen=True)

    material: SecretBytes

    @field_validator('material')
    @classmethod
    def validate_length(cls, v: SecretBytes) -> SecretBytes:
        if len(v.get_secret_value()) not in (16, 24, 32):
            raise ValueError("AES keys must be 128, 192 or 256 bits")
        return v

    @property
    def bit_length(self) -> int:
        return len(self.material.get_secret_value()) * 8

    def reveal(self) -> bytes:
        return self.material.get_secret_value()


class ExportArtifact(BaseModel):
    """
    Sealed ledger snapshot.

    `sealed` is nonce || ciphertext || tag and is opaque to callers.
    Only the most recent artifact is retained by the export coordinator.
    """
    model_config = ConfigDict(frozen=True)

    sealed: bytes = Field(
        ...,
        min_length=1,
        repr=False,
        description="Nonce, ciphertext and authentication tag"
    )
    record_count: int = Field(
        ...,
        ge=0,
        description="Number of expenses in the snapshot"
    )
    created_at: datetime = Field(
        default_factory=utc_now
    )

    @property
    def byte_length(self) -> int:
        return len(self.sealed)
