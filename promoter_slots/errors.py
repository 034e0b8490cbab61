"""
Domain errors
Raised by services and repositories, mapped to JSON responses in main.py
"""

from typing import Optional


class DomainError(Exception):
    """Base class for every error surfaced to API callers"""

    status_code = 500
    code = "domain_error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


# ============================================================================
# 400 - bad input
# ============================================================================


class ValidationError(DomainError):
    """Invalid input"""

    status_code = 400
    code = "validation_error"


# ============================================================================
# 404 - unresolved identifiers
# ============================================================================


class NotFoundError(DomainError):
    """Resource not found"""

    status_code = 404
    code = "not_found"


class RegistrationNotFound(NotFoundError):
    """User is not registered in this slot"""

    code = "registration_not_found"


# ============================================================================
# 409 - uniqueness and capacity
# ============================================================================


class ConflictError(DomainError):
    """Conflicting state"""

    status_code = 409
    code = "conflict"


class AlreadyRegistered(ConflictError):
    """User is already registered in this slot"""

    code = "already_registered"


class AlreadyScheduled(ConflictError):
    """User already holds a seat in another slot"""

    code = "already_scheduled"


class SlotFull(ConflictError):
    """Slot is at capacity"""

    code = "slot_full"


class DuplicateEmail(ConflictError):
    """A user with this email already exists"""

    code = "duplicate_email"


class DuplicateSlot(ConflictError):
    """A slot already exists for this date and start time"""

    code = "duplicate_slot"


class DuplicateConfigName(ConflictError):
    """A schedule configuration with this name already exists"""

    code = "duplicate_config_name"


# ============================================================================
# 412 - business preconditions
# ============================================================================


class PreconditionFailedError(DomainError):
    """Operation not allowed in the current state"""

    status_code = 412
    code = "precondition_failed"


class NotAttended(PreconditionFailedError):
    """User must have attended at least one meeting to be approved"""

    code = "not_attended"


class SlotHasRegistrations(PreconditionFailedError):
    """Slot cannot be deleted while it has registered users"""

    code = "slot_has_registrations"


class SlotNotBookable(PreconditionFailedError):
    """Slot is not open for registration"""

    code = "slot_not_bookable"


class SoleActiveConfig(PreconditionFailedError):
    """The only active schedule configuration cannot be deleted"""

    code = "sole_active_config"


class InvalidStateTransition(PreconditionFailedError):
    """User state does not allow this transition"""

    code = "invalid_state_transition"


# ============================================================================
# 502 - meeting provider and credentials
# ============================================================================


class ExternalServiceError(DomainError):
    """External service failure"""

    status_code = 502
    code = "external_service_error"


class CredentialsUnavailable(ExternalServiceError):
    """No Google credentials configured. Authenticate from the admin panel."""

    code = "credentials_unavailable"


class RefreshFailed(ExternalServiceError):
    """Failed to refresh the Google access token. Credentials may have been revoked."""

    code = "refresh_failed"


class MeetingCreationFailed(ExternalServiceError):
    """Google Calendar did not return a Meet link"""

    code = "meeting_creation_failed"


class NotificationError(DomainError):
    """Notification could not be delivered (logged, never surfaced)"""

    code = "notification_error"
