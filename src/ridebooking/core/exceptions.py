"""Standardized exception hierarchy for the booking platform."""

from typing import Any


class BookingError(Exception):
    """Base exception for all booking errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(BookingError):
    """Errors that may succeed on retry."""

    pass


class NetworkError(TransientError):
    """Network-level failure talking to an external service."""

    pass


class ProviderTimeout(TransientError):
    """Directions provider did not answer within the timeout."""

    pass


class ProviderRateLimited(TransientError):
    """Directions provider rejected the request with 429."""

    pass


class ProviderUnavailable(TransientError):
    """Directions provider temporarily unavailable (5xx responses)."""

    pass


class MalformedProviderResponse(TransientError):
    """Provider answered 2xx but without a usable route."""

    pass


class PermanentError(BookingError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input or data format."""

    pass


class InvalidCoordinates(ValidationError):
    """Coordinate missing, non-finite or outside world bounds."""

    pass


class InvalidRideData(ValidationError):
    """Ride fields violate their constraints."""

    pass


class MissingVehicleInfo(ValidationError):
    """Driver assigned without a vehicle type."""

    pass


class ProviderRequestError(ValidationError):
    """Provider rejected the request as malformed (400)."""

    pass


class ServiceAreaRestricted(PermanentError):
    """Endpoint lies outside the configured geo-fence."""

    pass


class RouteNotFound(PermanentError):
    """Provider affirmatively reports there is no route."""

    pass


class ProviderAuthError(PermanentError):
    """Provider credentials missing or rejected (401/403)."""

    pass


class NotFoundError(PermanentError):
    """Requested entity does not exist."""

    pass


class RideNotFound(NotFoundError):
    pass


class StateError(PermanentError):
    """Invalid state for the requested operation."""

    pass


class InvalidStatusTransition(StateError):
    """Edge not present in the ride transition table."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Invalid status transition from {current} to {target}",
            {"current": current, "target": target},
        )
        self.current = current
        self.target = target


class RatingNotAllowed(StateError):
    """Rating recorded on a ride that has not completed."""

    pass


class StaleRideState(StateError):
    """Ride changed between read and write (lost optimistic race)."""

    pass


class ActiveRideConflict(StateError):
    """Passenger or driver already has an active ride."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass


class ResolutionCancelled(BookingError):
    """Caller cancelled a pending route resolution."""

    pass


class FatalError(BookingError):
    """Critical errors that indicate a defect rather than bad input."""

    pass


class InvariantViolation(FatalError):
    pass
