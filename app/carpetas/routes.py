from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required

from app.carpetas import carpetas_bp
from app.carpetas.services import (
    apply_medida_cautelar,
    cemci_by_id,
    cems_by_id,
    cj_by_id,
    cjo_by_id,
    cemci_stats,
    cems_stats,
    cj_stats,
    cjo_stats,
    create_cemci,
    create_cems,
    create_cj,
    create_cjo,
    create_proceso,
    delete_proceso,
    get_links,
    list_cemcis,
    list_cems,
    list_cjos,
    list_cjs,
    list_medidas,
    list_medidas_privativas,
    list_procesos,
    medida_by_id,
    medida_stats,
    proceso_by_adolescente,
    proceso_completo,
    proceso_stats,
    remove_cemci,
    remove_cems,
    remove_cj,
    remove_cjo,
    remove_medida_cautelar,
    revoke_medida_cautelar,
    update_cemci,
    update_cems,
    update_cj,
    update_cjo,
    update_medida_cautelar,
    update_proceso,
)
from app.core.errors import NotFoundError, ValidationError
from app.core.models import FolderKind
from app.core.permissions import CONSULTAR, CREAR, ELIMINAR, MODIFICAR, require_folder_permission
from app.core.utils import serialize


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON")
    return data


def _filters() -> dict[str, str]:
    return {key: value for key, value in request.args.items()}


def _ok(data=None, message: str = "", status: int = 200):
    return jsonify({"success": True, "message": message, "data": serialize(data)}), status


# Procesos: creating or deleting a case creates or requires removing its CJ


@carpetas_bp.get("/procesos")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def procesos_list():
    return _ok(list_procesos(_filters()))


@carpetas_bp.post("/procesos")
@login_required
@require_folder_permission(FolderKind.CJ, CREAR)
def procesos_create():
    return _ok(create_proceso(_payload()), "Proceso creado exitosamente", 201)


@carpetas_bp.get("/procesos/estadisticas")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def procesos_statistics():
    return _ok(proceso_stats())


@carpetas_bp.get("/procesos/<int:proceso_id>")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def procesos_detail(proceso_id: int):
    return _ok(proceso_completo(proceso_id))


@carpetas_bp.get("/procesos/adolescente/<int:adolescente_id>")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def procesos_by_adolescente(adolescente_id: int):
    proceso = proceso_by_adolescente(adolescente_id)
    if proceso is None:
        raise NotFoundError("El adolescente no tiene proceso asignado")
    return _ok(proceso_completo(proceso.id))


@carpetas_bp.put("/procesos/<int:proceso_id>")
@login_required
@require_folder_permission(FolderKind.CJ, MODIFICAR)
def procesos_update(proceso_id: int):
    return _ok(update_proceso(proceso_id, _payload()), "Proceso actualizado exitosamente")


@carpetas_bp.delete("/procesos/<int:proceso_id>")
@login_required
@require_folder_permission(FolderKind.CJ, ELIMINAR)
def procesos_delete(proceso_id: int):
    delete_proceso(proceso_id)
    return _ok(None, "Proceso eliminado exitosamente")


@carpetas_bp.get("/procesos/<int:proceso_id>/carpetas")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def procesos_links(proceso_id: int):
    return _ok(get_links(proceso_id))


# Medidas cautelares are issued by the control court that owns the CJ


@carpetas_bp.get("/procesos/<int:proceso_id>/medidas")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def medidas_list(proceso_id: int):
    activas = (request.args.get("activas") or "").strip().lower() in {"1", "true", "si"}
    return _ok(list_medidas(proceso_id, activas_only=activas))


@carpetas_bp.post("/procesos/<int:proceso_id>/medidas")
@login_required
@require_folder_permission(FolderKind.CJ, CREAR)
def medidas_apply(proceso_id: int):
    result = apply_medida_cautelar(proceso_id, _payload())
    message = "Medida cautelar aplicada"
    if result.cemci_creado:
        message += "; CEMCI creada automaticamente"
    return _ok(result, message, 201)


@carpetas_bp.get("/procesos/<int:proceso_id>/privativas")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def medidas_privativas(proceso_id: int):
    medidas = list_medidas_privativas(proceso_id)
    return _ok({"tiene_privativas": bool(medidas), "medidas": medidas})


@carpetas_bp.get("/medidas/estadisticas")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def medidas_statistics():
    return _ok(medida_stats())


@carpetas_bp.put("/medidas/<int:medida_id>")
@login_required
@require_folder_permission(FolderKind.CJ, MODIFICAR)
def medidas_update(medida_id: int):
    result = update_medida_cautelar(medida_id, _payload())
    message = "Medida cautelar actualizada"
    if result.cemci_creado:
        message += "; CEMCI creada automaticamente"
    return _ok(result, message)


@carpetas_bp.get("/medidas/<int:medida_id>")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def medidas_detail(medida_id: int):
    return _ok(medida_by_id(medida_id))


@carpetas_bp.post("/medidas/<int:medida_id>/revocar")
@login_required
@require_folder_permission(FolderKind.CJ, MODIFICAR)
def medidas_revoke(medida_id: int):
    return _ok(revoke_medida_cautelar(medida_id, _payload()), "Medida cautelar revocada")


@carpetas_bp.delete("/medidas/<int:medida_id>")
@login_required
@require_folder_permission(FolderKind.CJ, ELIMINAR)
def medidas_delete(medida_id: int):
    remove_medida_cautelar(medida_id)
    return _ok(None, "Medida cautelar eliminada")


# CJ


@carpetas_bp.get("/cj")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def cj_list():
    return _ok(list_cjs(_filters()))


@carpetas_bp.post("/cj")
@login_required
@require_folder_permission(FolderKind.CJ, CREAR)
def cj_create():
    return _ok(create_cj(_payload()), "CJ creada exitosamente", 201)


@carpetas_bp.get("/cj/estadisticas")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def cj_statistics():
    return _ok(cj_stats())


@carpetas_bp.get("/cj/<int:cj_id>")
@login_required
@require_folder_permission(FolderKind.CJ, CONSULTAR)
def cj_detail(cj_id: int):
    return _ok(cj_by_id(cj_id))


@carpetas_bp.put("/cj/<int:cj_id>")
@login_required
@require_folder_permission(FolderKind.CJ, MODIFICAR)
def cj_update(cj_id: int):
    return _ok(update_cj(cj_id, _payload()), "CJ actualizada exitosamente")


@carpetas_bp.delete("/cj/<int:cj_id>")
@login_required
@require_folder_permission(FolderKind.CJ, ELIMINAR)
def cj_delete(cj_id: int):
    remove_cj(cj_id)
    return _ok(None, "CJ eliminada exitosamente")


# CJO


@carpetas_bp.get("/cjo")
@login_required
@require_folder_permission(FolderKind.CJO, CONSULTAR)
def cjo_list():
    return _ok(list_cjos(_filters()))


@carpetas_bp.get("/cjo/estadisticas")
@login_required
@require_folder_permission(FolderKind.CJO, CONSULTAR)
def cjo_statistics():
    return _ok(cjo_stats())


@carpetas_bp.post("/cj/<int:cj_id>/cjo")
@login_required
@require_folder_permission(FolderKind.CJO, CREAR)
def cjo_create(cj_id: int):
    result = create_cjo(cj_id, _payload())
    message = "CJO creada exitosamente"
    if result.cems_creado:
        message += "; CEMS creada automaticamente por sentencia"
    return _ok(result, message, 201)


@carpetas_bp.get("/cjo/<int:cjo_id>")
@login_required
@require_folder_permission(FolderKind.CJO, CONSULTAR)
def cjo_detail(cjo_id: int):
    return _ok(cjo_by_id(cjo_id))


@carpetas_bp.put("/cjo/<int:cjo_id>")
@login_required
@require_folder_permission(FolderKind.CJO, MODIFICAR)
def cjo_update(cjo_id: int):
    result = update_cjo(cjo_id, _payload())
    message = "CJO actualizada exitosamente"
    if result.cems_creado:
        message += "; CEMS creada automaticamente por sentencia"
    return _ok(result, message)


@carpetas_bp.delete("/cjo/<int:cjo_id>")
@login_required
@require_folder_permission(FolderKind.CJO, ELIMINAR)
def cjo_delete(cjo_id: int):
    remove_cjo(cjo_id)
    return _ok(None, "CJO eliminada exitosamente")


# CEMCI


@carpetas_bp.get("/cemci")
@login_required
@require_folder_permission(FolderKind.CEMCI, CONSULTAR)
def cemci_list():
    return _ok(list_cemcis(_filters()))


@carpetas_bp.post("/cemci")
@login_required
@require_folder_permission(FolderKind.CEMCI, CREAR)
def cemci_create():
    return _ok(create_cemci(_payload()), "CEMCI creada exitosamente", 201)


@carpetas_bp.get("/cemci/estadisticas")
@login_required
@require_folder_permission(FolderKind.CEMCI, CONSULTAR)
def cemci_statistics():
    return _ok(cemci_stats())


@carpetas_bp.get("/cemci/<int:cemci_id>")
@login_required
@require_folder_permission(FolderKind.CEMCI, CONSULTAR)
def cemci_detail(cemci_id: int):
    return _ok(cemci_by_id(cemci_id))


@carpetas_bp.put("/cemci/<int:cemci_id>")
@login_required
@require_folder_permission(FolderKind.CEMCI, MODIFICAR)
def cemci_update(cemci_id: int):
    return _ok(update_cemci(cemci_id, _payload()), "CEMCI actualizada exitosamente")


@carpetas_bp.delete("/cemci/<int:cemci_id>")
@login_required
@require_folder_permission(FolderKind.CEMCI, ELIMINAR)
def cemci_delete(cemci_id: int):
    remove_cemci(cemci_id)
    return _ok(None, "CEMCI eliminada exitosamente")


# CEMS


@carpetas_bp.get("/cems")
@login_required
@require_folder_permission(FolderKind.CEMS, CONSULTAR)
def cems_list():
    return _ok(list_cems(_filters()))


@carpetas_bp.post("/cems")
@login_required
@require_folder_permission(FolderKind.CEMS, CREAR)
def cems_create():
    return _ok(create_cems(_payload()), "CEMS creada exitosamente", 201)


@carpetas_bp.get("/cems/estadisticas")
@login_required
@require_folder_permission(FolderKind.CEMS, CONSULTAR)
def cems_statistics():
    return _ok(cems_stats())


@carpetas_bp.get("/cems/<int:cems_id>")
@login_required
@require_folder_permission(FolderKind.CEMS, CONSULTAR)
def cems_detail(cems_id: int):
    return _ok(cems_by_id(cems_id))


@carpetas_bp.put("/cems/<int:cems_id>")
@login_required
@require_folder_permission(FolderKind.CEMS, MODIFICAR)
def cems_update(cems_id: int):
    return _ok(update_cems(cems_id, _payload()), "CEMS actualizada exitosamente")


@carpetas_bp.delete("/cems/<int:cems_id>")
@login_required
@require_folder_permission(FolderKind.CEMS, ELIMINAR)
def cems_delete(cems_id: int):
    remove_cems(cems_id)
    return _ok(None, "CEMS eliminada exitosamente")
