from typing import NoReturn

from fastapi import HTTPException

from servicematch.services.errors import (
    ConflictError,
    MatchingError,
    NotFoundError,
    PermissionDeniedError,
    SelectionInvalidError,
)


def raise_http_error(exc: MatchingError) -> NoReturn:
    if isinstance(exc, SelectionInvalidError):
        raise HTTPException(status_code=400, detail={"message": str(exc), "field": exc.field})
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        raise HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=409, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))
