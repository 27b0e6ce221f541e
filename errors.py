"""Errors raised by the route layer and turned into JSON responses by main.py."""

from typing import List, Optional

from schemas import ErrorDetail


class APIError(Exception):
    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str, details: Optional[List[ErrorDetail]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(APIError):
    status_code = 400
    error_type = "validation_error"


class AuthError(APIError):
    status_code = 401
    error_type = "auth_error"


class NotFoundError(APIError):
    status_code = 404
    error_type = "not_found_error"


class ConflictError(APIError):
    status_code = 409
    error_type = "conflict_error"
