"""
Excepciones HTTP personalizadas para la API.
Los servicios las lanzan directamente; FastAPI las traduce a la respuesta.
"""

from fastapi import HTTPException, status


class CredentialsException(HTTPException):
    """Error de credenciales inválidas (401)."""

    def __init__(self, detail: str = "Credenciales inválidas"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(HTTPException):
    """Error de permisos insuficientes (403)."""

    def __init__(self, detail: str = "No tiene permisos para realizar esta acción"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class NotFoundException(HTTPException):
    """Recurso no encontrado (404)."""

    def __init__(self, resource: str = "Recurso", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} no encontrado",
        )


class ConflictException(HTTPException):
    """Conflicto de datos (409) — ej: email duplicado o solapamiento de citas."""

    def __init__(self, detail: str = "El recurso ya existe"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class AlreadyResolvedException(ConflictException):
    """La solicitud ya fue aprobada o rechazada (409)."""

    def __init__(self, detail: str = "La solicitud ya fue resuelta"):
        super().__init__(detail=detail)


class DuplicatePendingException(ConflictException):
    """Ya existe una solicitud pendiente del mismo tipo para el paciente (409)."""

    def __init__(self, detail: str = "Ya existe una solicitud pendiente para este paciente"):
        super().__init__(detail=detail)


class ValidationException(HTTPException):
    """Error de validación de negocio (422)."""

    def __init__(self, detail: str = "Error de validación"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class InvalidAmountException(ValidationException):
    """Monto no válido: abono no positivo o costo/pago negativo (422)."""

    def __init__(self, detail: str = "Monto inválido"):
        super().__init__(detail=detail)
