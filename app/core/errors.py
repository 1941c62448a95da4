from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.extensions import db

logger = logging.getLogger(__name__)


class CarpetaError(ValueError):
    kind = "error"
    status_code = 400
    default_message = "Solicitud invalida"

    def __init__(self, message: str | None = None, errors: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": False, "error": self.kind, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class NotFoundError(CarpetaError):
    kind = "not_found"
    status_code = 404
    default_message = "Registro no encontrado"


class ConflictError(CarpetaError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflicto con el estado actual del recurso"


class ValidationError(CarpetaError):
    kind = "validation"
    status_code = 422
    default_message = "Error de validacion"


class InternalError(CarpetaError):
    kind = "internal"
    status_code = 500
    default_message = "Error al acceder a la base de datos"


def _integrity_message(exc: IntegrityError) -> str:
    return str(getattr(exc, "orig", exc) or "").lower()


def translate_storage_error(exc: SQLAlchemyError) -> CarpetaError:
    if isinstance(exc, IntegrityError):
        detail = _integrity_message(exc)
        if "unique" in detail or "duplicate" in detail:
            return ConflictError("Ya existe un registro con ese identificador")
        if "foreign key" in detail:
            return ConflictError("Operacion rechazada: existen registros relacionados")
        if "check" in detail:
            return ValidationError("La operacion viola una restriccion de integridad de carpetas")
    logger.error("Unhandled storage error", exc_info=exc)
    return InternalError()


@contextmanager
def transaction() -> Iterator[None]:
    try:
        yield
        db.session.commit()
    except CarpetaError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise translate_storage_error(exc) from exc
    except Exception:
        db.session.rollback()
        raise
