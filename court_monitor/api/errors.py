"""Translate domain exceptions raised by services into HTTP errors"""

import logging

from fastapi import HTTPException

from court_monitor.domain.exceptions import (
    DocumentStorageError,
    DuplicateRenewal,
    InvalidInput,
    NoFieldsToUpdate,
    NotFoundError,
)


def to_http_exception(error: Exception, request_id: str) -> HTTPException:
    """
    Map an exception to the HTTPException an endpoint should raise.

    Services have already rolled back by the time an exception gets here.
    Unrecognized errors are logged in full and hidden behind a generic 500.
    """
    extra = {"request_id": request_id}

    if isinstance(error, NotFoundError):
        logging.warning(f"Not found: {error}", extra=extra)
        return HTTPException(status_code=404, detail=str(error))

    if isinstance(error, DuplicateRenewal):
        logging.warning(f"Duplicate renewal: {error}", extra=extra)
        return HTTPException(status_code=409, detail=str(error))

    if isinstance(error, InvalidInput):
        logging.warning(f"Invalid input: {error}", extra=extra)
        return HTTPException(status_code=422, detail=str(error))

    if isinstance(error, NoFieldsToUpdate):
        logging.warning(f"Empty update: {error}", extra=extra)
        return HTTPException(status_code=400, detail=str(error))

    if isinstance(error, DocumentStorageError):
        logging.error(f"Document storage error: {error}", extra=extra)
        return HTTPException(status_code=502, detail="Document storage unavailable")

    logging.error(f"Unexpected error: {error}", extra=extra, exc_info=error)
    return HTTPException(status_code=500, detail="Internal server error")
