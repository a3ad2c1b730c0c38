"""Failures raised by the meeting pipeline.

Every error is scoped to one meeting or one turn; none of them is fatal to the
process. Routes map ``status_code`` onto the HTTP response.
"""
from fastapi import HTTPException


class OpsRoomError(Exception):
    status_code = 500


class Unauthorized(OpsRoomError):
    status_code = 401


class NotFound(OpsRoomError):
    status_code = 404


class Conflict(OpsRoomError):
    status_code = 409


class InvalidTransition(OpsRoomError):
    status_code = 409


class InvalidState(OpsRoomError):
    status_code = 409


class Busy(OpsRoomError):
    status_code = 429


class ExtractionFailure(OpsRoomError):
    status_code = 502


def to_http(exc: OpsRoomError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc) or exc.__class__.__name__)
