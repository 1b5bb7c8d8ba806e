from typing import Optional

from fastapi import HTTPException, status


class LeaveDeskError(Exception):
    pass


class InvalidInput(LeaveDeskError):
    pass


class UpstreamUnavailable(LeaveDeskError):
    def __init__(self, operation: str, request_id: Optional[str] = None, cause: Optional[Exception] = None):
        self.operation = operation
        self.request_id = request_id
        self.cause = cause
        detail = f"{operation} failed"
        if request_id:
            detail += f" for {request_id}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)


def get_user_exception():
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate admin key",
    )
    return credentials_exception


def get_unknown_entity_exception(detail: str = "Entity not found"):
    entity_exception = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail
    )
    return entity_exception


def get_conflict_exception(detail: str):
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def get_upstream_exception(error: UpstreamUnavailable):
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Service temporarily unavailable - {error.operation}"
    )
