"""Application errors and their HTTP mapping."""
from typing import Any

from fastapi import status


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input rejected before any store access."""

    def __init__(self, message: str, code: str = "validation_error"):
        super().__init__(message, code, status.HTTP_422_UNPROCESSABLE_ENTITY)


class NotFoundError(AppError):
    """Operation on an id that does not exist."""

    def __init__(self, message: str, code: str = "not_found"):
        super().__init__(message, code, status.HTTP_404_NOT_FOUND)


class AuthError(AppError):
    """Missing or unknown bearer token."""

    def __init__(self, message: str = "Token inválido ou ausente."):
        super().__init__(message, "unauthorized", status.HTTP_401_UNAUTHORIZED)


class StoreError(AppError):
    """Failure of the record store. The message never carries driver detail."""

    def __init__(self, message: str = "Erro interno ao acessar os dados."):
        super().__init__(message, "store_error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(error: AppError) -> dict[str, Any]:
    return {"detail": {"code": error.code, "message": error.message}}
