class CampusEventsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400


class ValidationError(CampusEventsError):
    status_code = 400


class NotFoundError(CampusEventsError):
    status_code = 404


class DuplicateRegistrationError(CampusEventsError):
    status_code = 409

    def __init__(self, message: str = "You are already registered for this event"):
        super().__init__(message)


class AlreadyApprovedError(CampusEventsError):
    status_code = 409

    def __init__(self, message: str = "Registration is already approved"):
        super().__init__(message)


class InvalidTransitionError(CampusEventsError):
    status_code = 409


class RegistrationDeniedError(CampusEventsError):
    """The ledger refused the attempt; ``reason`` is shown to the participant as is."""

    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CapacityExceededError(CampusEventsError):
    status_code = 409

    def __init__(self, message: str = "No seats available"):
        super().__init__(message)


class VenueUnavailableError(CampusEventsError):
    status_code = 409

    def __init__(self, message: str = "Venue is not available for the specified date and time"):
        super().__init__(message)


class EventBusyError(CampusEventsError):
    status_code = 409

    def __init__(self, message: str = "Could not acquire lock, please try again."):
        super().__init__(message)


class InvalidTicketError(CampusEventsError):
    status_code = 400


class TicketIssueError(Exception):
    """Ticket could not be built; never surfaced, the caller flags the registration."""


class TransactionAbortError(CampusEventsError):
    status_code = 500

    def __init__(self, reference: str):
        super().__init__(f"Internal server error (reference {reference})")
        self.reference = reference
