from fastapi import HTTPException

from campus_events.services.errors import CampusEventsError, TransactionAbortError


def http_error(exc: CampusEventsError) -> HTTPException:
    if isinstance(exc, TransactionAbortError):
        return HTTPException(
            status_code=exc.status_code,
            detail={"message": "Internal server error", "reference": exc.reference},
        )
    return HTTPException(status_code=exc.status_code, detail=str(exc))
