"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"
    NOT_A_GROUP_ADMIN = "NOT_A_GROUP_ADMIN"
    NOT_RESERVATION_MANAGER = "NOT_RESERVATION_MANAGER"

    # Not found errors (404)
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    RESERVATION_NOT_FOUND = "RESERVATION_NOT_FOUND"
    INVITATION_NOT_FOUND = "INVITATION_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Conflict errors (409)
    CONFLICT = "CONFLICT"
    OWNER_IMMUTABLE = "OWNER_IMMUTABLE"
    LAST_ADMIN = "LAST_ADMIN"
    NOT_A_GROUP_MEMBER = "NOT_A_GROUP_MEMBER"
    RESERVATION_CANCELLED = "RESERVATION_CANCELLED"
    LINK_ONLY_RESERVATION = "LINK_ONLY_RESERVATION"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500/503)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAVAILABLE = "UNAVAILABLE"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authenticated, but lacking the role required for the operation."""

    def __init__(
        self,
        message: str = "Access denied",
        error_code: ErrorCode = ErrorCode.FORBIDDEN,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=403,
            details=details,
        )


class NotGroupAdminError(AuthorizationError):
    """Only group admins may perform the operation."""

    def __init__(self, group_id: str) -> None:
        super().__init__(
            message="Only group admins can perform this action",
            error_code=ErrorCode.NOT_A_GROUP_ADMIN,
            details={"group_id": group_id},
        )


class NotReservationManagerError(AuthorizationError):
    """Only the reservation creator or a group admin may manage it."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            message="Only the reservation creator or a group admin can manage this reservation",
            error_code=ErrorCode.NOT_RESERVATION_MANAGER,
            details={"reservation_id": reservation_id},
        )


class GroupNotFoundError(AppException):
    """Group not found or soft-deleted."""

    def __init__(self, group_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.GROUP_NOT_FOUND,
            message=f"Group not found: {group_id}",
            status_code=404,
            details={"group_id": group_id},
        )


class ReservationNotFoundError(AppException):
    """Reservation not found."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.RESERVATION_NOT_FOUND,
            message=f"Reservation not found: {reservation_id}",
            status_code=404,
            details={"reservation_id": reservation_id},
        )


class InvitationNotFoundError(AppException):
    """Invitation not found."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_NOT_FOUND,
            message="Invitation not found",
            status_code=404,
        )


class ValidationError(AppException):
    """Malformed input."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status_code=400,
            details={"field": field} if field else None,
        )


class ConflictError(AppException):
    """The request is valid but conflicts with the current state."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFLICT,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=409,
            details=details,
        )


class OwnerImmutableError(ConflictError):
    """The group owner cannot be demoted or removed."""

    def __init__(self) -> None:
        super().__init__(
            message="The group owner always keeps admin rights and membership",
            error_code=ErrorCode.OWNER_IMMUTABLE,
        )


class LastAdminError(ConflictError):
    """The change would leave the group without admins."""

    def __init__(self) -> None:
        super().__init__(
            message="A group must keep at least one admin",
            error_code=ErrorCode.LAST_ADMIN,
        )


class NotAGroupMemberError(ConflictError):
    """Target actor is not a member of the group."""

    def __init__(self, actor_id: str) -> None:
        super().__init__(
            message="User is not a member of this group",
            error_code=ErrorCode.NOT_A_GROUP_MEMBER,
            details={"actor_id": actor_id},
        )


class ReservationCancelledError(ConflictError):
    """The reservation is cancelled."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            message="This reservation has been cancelled",
            error_code=ErrorCode.RESERVATION_CANCELLED,
            details={"reservation_id": reservation_id},
        )


class LinkOnlyReservationError(ConflictError):
    """Operation requires a group-scoped reservation."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            message="Only group reservations support this operation",
            error_code=ErrorCode.LINK_ONLY_RESERVATION,
            details={"reservation_id": reservation_id},
        )


class InvitationExpiredError(ConflictError):
    """Invitation is inactive or past its expiry."""

    def __init__(self) -> None:
        super().__init__(
            message="This invitation is expired or no longer valid",
            error_code=ErrorCode.INVITATION_EXPIRED,
        )


class ServiceUnavailableError(AppException):
    """Transient store failure; safe to retry."""

    def __init__(self, message: str = "The service is temporarily unavailable") -> None:
        super().__init__(
            error_code=ErrorCode.UNAVAILABLE,
            message=message,
            status_code=503,
        )


class TransactionConflictError(Exception):
    """A transaction lost a concurrent-write race or hit a transient store error.

    Raised by the unit of work; ``run_in_transaction`` retries the whole
    closure and converts the final failure into ServiceUnavailableError.
    """
