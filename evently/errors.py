"""Failure values returned by services.

Services do not raise for expected failures. They return a
`(value, failure)` tuple where `failure` is None on success or a
`Failure(kind, message)`. Blueprints turn a failure into a JSON response
with `error_response()`.
"""

import enum
from typing import NamedTuple

from flask import jsonify


class ErrorKind(enum.Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    DOWNSTREAM = "downstream"


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DOWNSTREAM: 500,
}


class Failure(NamedTuple):
    kind: ErrorKind
    message: str


def validation(message):
    return Failure(ErrorKind.VALIDATION, message)


def forbidden(message):
    return Failure(ErrorKind.FORBIDDEN, message)


def not_found(message):
    return Failure(ErrorKind.NOT_FOUND, message)


def downstream(message):
    return Failure(ErrorKind.DOWNSTREAM, message)


def error_response(failure):
    """Build a (response, status) pair for a Failure."""
    return jsonify({"error": failure.message}), HTTP_STATUS[failure.kind]
