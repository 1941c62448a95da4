from __future__ import annotations

from functools import wraps

from flask import abort
from flask_login import current_user

from app.core.models import FolderKind, UserRole

CONSULTAR = "consultar"
CREAR = "crear"
MODIFICAR = "modificar"
ELIMINAR = "eliminar"

_MANAGE = frozenset({CONSULTAR, CREAR, MODIFICAR, ELIMINAR})
_READ_ONLY = frozenset({CONSULTAR})

FOLDER_PERMISSIONS: dict[UserRole, dict[FolderKind, frozenset[str]]] = {
    UserRole.ADMIN: {kind: _MANAGE for kind in FolderKind},
    UserRole.JUZGADO: {
        FolderKind.CJ: _MANAGE,
        FolderKind.CJO: _MANAGE,
        FolderKind.CEMCI: _READ_ONLY,
        FolderKind.CEMS: _READ_ONLY,
    },
    UserRole.JUZGADO_EJECUCION: {
        FolderKind.CJ: _READ_ONLY,
        FolderKind.CJO: _READ_ONLY,
        FolderKind.CEMCI: _MANAGE,
        FolderKind.CEMS: _MANAGE,
    },
    UserRole.CONSULTA: {kind: _READ_ONLY for kind in FolderKind},
}


def has_folder_permission(role: UserRole | None, kind: FolderKind, operation: str) -> bool:
    if role is None:
        return False
    return operation in FOLDER_PERMISSIONS.get(role, {}).get(kind, frozenset())


def require_folder_permission(kind: FolderKind, operation: str):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not has_folder_permission(getattr(current_user, "role", None), kind, operation):
                abort(403)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
