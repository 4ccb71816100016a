"""
Error taxonomy for the registration and payment workflow.

Services never raise these; they return them alongside an empty value,
e.g. ``(None, NotFound(registration_id=7))``. The caller (the portal
facade) turns them into plain dicts for whatever UI sits on top.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Optional


@dataclass(frozen=True)
class RegistrationError:
    """Base class: every error carries a stable code and a human message."""
    code:      ClassVar[str] = "error"
    retryable: ClassVar[bool] = False

    @property
    def message(self) -> str:
        return self.code

    def as_dict(self) -> Dict[str, Any]:
        payload = {"code": self.code, "message": self.message, "retryable": self.retryable}
        payload.update(asdict(self))
        return payload


# ── Validation ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class InvalidField(RegistrationError):
    code: ClassVar[str] = "invalid_field"

    field:  str
    reason: str

    @property
    def message(self) -> str:
        return f"{self.field}: {self.reason}"


@dataclass(frozen=True)
class CrossFieldConflict(RegistrationError):
    code: ClassVar[str] = "cross_field_conflict"

    reason: str
    field:  Optional[str] = None

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class DuplicateRollNumber(RegistrationError):
    code: ClassVar[str] = "duplicate_roll_number"

    roll_number: str

    @property
    def message(self) -> str:
        return f"Roll number {self.roll_number} has already been registered."


# ── Upload ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FileTooLarge(RegistrationError):
    code:      ClassVar[str] = "file_too_large"
    retryable: ClassVar[bool] = True

    size:  int
    limit: int

    @property
    def message(self) -> str:
        return f"File is too large. Max size is {self.limit // (1024 * 1024)}MB."


@dataclass(frozen=True)
class UnsupportedFileType(RegistrationError):
    code:      ClassVar[str] = "unsupported_file_type"
    retryable: ClassVar[bool] = True

    content_type: str

    @property
    def message(self) -> str:
        return "Invalid file type. Please upload a JPG, PNG, or WEBP image."


@dataclass(frozen=True)
class ProofAlreadyVerified(RegistrationError):
    code: ClassVar[str] = "payment_already_verified"

    registration_id: int

    @property
    def message(self) -> str:
        return "Payment has already been verified. No proof is needed."


@dataclass(frozen=True)
class NetworkFailure(RegistrationError):
    code:      ClassVar[str] = "network_failure"
    retryable: ClassVar[bool] = True

    reason: str = ""

    @property
    def message(self) -> str:
        return "Could not reach the storage service. Please try again."


# ── Admin ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PermissionDenied(RegistrationError):
    code: ClassVar[str] = "permission_denied"

    action: str

    @property
    def message(self) -> str:
        return f"Read-only access: you do not have permission to {self.action}."


@dataclass(frozen=True)
class NotFound(RegistrationError):
    code: ClassVar[str] = "not_found"

    registration_id: Optional[int] = None
    roll_number:     Optional[str] = None

    @property
    def message(self) -> str:
        if self.roll_number is not None:
            return f"No registration found for roll number {self.roll_number}."
        return "This registration no longer exists. Refresh the view."
