"""Domain errors.

Every error carries the HTTP status it maps to and a stable ``code`` that
clients can switch on. ``main.py`` installs a handler rendering them as
``{"detail": ..., "code": ...}``.
"""

from fastapi import status


class CoParentError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(code={self.code!r}, detail={self.detail!r})>"


class ValidationError(CoParentError):
    """Malformed rule, date, time or timezone input. Raised before any write."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"
    default_detail = "Invalid input"

    def __init__(self, detail: str | None = None, field: str | None = None):
        super().__init__(detail)
        self.field = field


# Returned (not raised) by the rule validator
RuleError = ValidationError


class AlreadyLinked(CoParentError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_linked"
    default_detail = "You already have a family linked to your account"


class AlreadyLinkedElsewhere(AlreadyLinked):
    code = "already_linked_elsewhere"
    default_detail = "Your account is already linked to a different family"


class AlreadyPending(CoParentError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_pending"
    default_detail = "An invite is already pending for this email"


class InviteInvalid(CoParentError):
    status_code = status.HTTP_410_GONE
    code = "invite_invalid"
    default_detail = "Invite is not pending"


class InviteNotFound(InviteInvalid):
    status_code = status.HTTP_404_NOT_FOUND
    code = "invite_not_found"
    default_detail = "Invite not found or already used"


class AlreadyAccepted(CoParentError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_accepted"
    default_detail = "Invite was already accepted by another account"


class FamilyNotFound(CoParentError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "family_not_found"
    default_detail = "Family not found"


class NotFamilyMember(CoParentError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "not_family_member"
    default_detail = "You are not a member of this family"


class StoreUnavailable(CoParentError):
    """Transient store failure. Every mutation is atomic, so retrying is safe."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"
    default_detail = "Store temporarily unavailable, please retry"
