from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from sqlalchemy import case, func, or_
from sqlalchemy.orm import joinedload

from app.carpetas.numbering import next_folder_number, number_column, record_manual_number, validate_folder_number
from app.carpetas.rules import classify_sentencia, genera_cems, is_cems_transition, validate_cj_dates, validate_date_sequence
from app.core.errors import ConflictError, NotFoundError, ValidationError, transaction
from app.core.extensions import db
from app.core.models import (
    CEMCI,
    CEMS,
    CJ,
    CJO,
    FOLDER_MODELS,
    Adolescente,
    Domicilio,
    EstadoProcesal,
    FolderKind,
    MedidaCautelar,
    Proceso,
    ProcesoCarpeta,
    SentenciaTipo,
    StatusProceso,
    TipoMedidaCautelar,
)

logger = logging.getLogger(__name__)

Payload = dict[str, Any]


@dataclass(frozen=True)
class FolderLinks:
    proceso_id: int
    cj_id: int | None = None
    cjo_id: int | None = None
    cemci_id: int | None = None
    cems_id: int | None = None

    @classmethod
    def from_bridge(cls, bridge: ProcesoCarpeta) -> "FolderLinks":
        return cls(
            proceso_id=bridge.proceso_id,
            cj_id=bridge.cj_id,
            cjo_id=bridge.cjo_id,
            cemci_id=bridge.cemci_id,
            cems_id=bridge.cems_id,
        )

    def get(self, kind: FolderKind) -> int | None:
        return getattr(self, kind.bridge_column)

    def has(self, kind: FolderKind) -> bool:
        return self.get(kind) is not None

    @property
    def empty(self) -> bool:
        return not any(self.has(kind) for kind in FolderKind)


@dataclass
class MedidaResult:
    medida: MedidaCautelar
    genera_cemci: bool
    cemci_creado: bool = False
    cemci_id: int | None = None


@dataclass
class CjoResult:
    cjo: CJO
    cems_creado: bool = False
    cems_id: int | None = None


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------

def _parse_text(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{field_name} debe ser texto")
    raw = str(value).strip()
    return raw or None


def _parse_optional_date(value: Any, field_name: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"Formato de fecha invalido para {field_name} (use AAAA-MM-DD)") from exc


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    raw = str(value).strip().lower()
    if raw in {"1", "true", "si", "sí", "on", "yes"}:
        return True
    if raw in {"", "0", "false", "no", "off"}:
        return False
    raise ValidationError(f"Valor booleano invalido para {field_name}")


def _parse_optional_bool(value: Any, field_name: str) -> bool | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _parse_bool(value, field_name)


def _parse_optional_int(value: Any, field_name: str) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip()
    if not raw:
        return None
    if not raw.isdigit():
        raise ValidationError(f"Valor numerico invalido para {field_name}")
    return int(raw)


def _parse_count(value: Any, field_name: str) -> int:
    return _parse_optional_int(value, field_name) or 0


def _parse_required_id(value: Any, field_name: str) -> int:
    parsed = _parse_optional_int(value, field_name)
    if not parsed:
        raise ValidationError(f"Falta {field_name}")
    return parsed


def _parse_optional_decimal(value: Any, field_name: str) -> Decimal | None:
    if value is None:
        return None
    raw = str(value).strip().replace(",", ".")
    if not raw:
        return None
    try:
        amount = Decimal(raw).quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise ValidationError(f"Importe invalido en {field_name}") from exc
    if amount < 0:
        raise ValidationError(f"{field_name} no puede ser negativo")
    return amount


FieldParser = Callable[[Any, str], Any]

CJ_FIELDS: dict[str, FieldParser] = {
    "fecha_ingreso": _parse_optional_date,
    "tipo_fuero": _parse_text,
    "numero_ampea": _parse_text,
    "tipo_narcotico_asegurado": _parse_text,
    "peso_narcotico_gramos": _parse_optional_decimal,
    "control": _parse_bool,
    "lesiones": _parse_bool,
    "fecha_control": _parse_optional_date,
    "fecha_formulacion": _parse_optional_date,
    "vinculacion": _parse_bool,
    "fecha_vinculacion": _parse_optional_date,
    "conducta_vinculacion": _parse_text,
    "declaro": _parse_text,
    "suspension_condicional_proceso_prueba": _parse_bool,
    "plazo_suspension": _parse_text,
    "fecha_suspension": _parse_optional_date,
    "fecha_terminacion_suspension": _parse_optional_date,
    "audiencia_intermedia": _parse_bool,
    "fecha_audiencia_intermedia": _parse_optional_date,
    "estatus_carpeta_preliminar": _parse_text,
    "reincidente": _parse_bool,
    "sustraido": _parse_bool,
    "fecha_sustraccion": _parse_optional_date,
    "medidas_proteccion": _parse_text,
    "numero_toca_apelacion": _parse_text,
    "numero_total_audiencias": _parse_count,
    "corporacion_ejecutora": _parse_text,
    "representante_pp_nnya": _parse_text,
    "tipo_representacion_pp_nnya": _parse_text,
    "observaciones": _parse_text,
    "observaciones_adicionales": _parse_text,
    "domicilio_hechos_id": _parse_optional_int,
}

# fuero is owned by the CJ and only changes through update_cj
CJO_FIELDS: dict[str, FieldParser] = {
    "fecha_ingreso": _parse_optional_date,
    "fecha_auto_apertura": _parse_optional_date,
    "sentencia": _parse_text,
    "fecha_sentencia": _parse_optional_date,
    "monto_reparacion_dano": _parse_optional_decimal,
    "fecha_causo_estado": _parse_optional_date,
    "toca_apelacion": _parse_text,
    "fecha_sentencia_enviada_ejecucion": _parse_optional_date,
    "juez_envia": _parse_text,
    "juez_recibe": _parse_text,
    "compurga_totalidad": _parse_bool,
    "representante_pp_nnya": _parse_text,
    "tipo_representacion_pp_nnya": _parse_text,
}

CEMCI_FIELDS: dict[str, FieldParser] = {
    "fecha_recepcion_cemci": _parse_optional_date,
    "estado_procesal_id": _parse_optional_int,
    "concluido": _parse_optional_date,
    "observaciones": _parse_text,
}

CEMS_FIELDS: dict[str, FieldParser] = {
    "fecha_recepcion": _parse_optional_date,
    "estado_procesal_id": _parse_optional_int,
    "status": _parse_optional_bool,
    "jto": _parse_text,
    "cmva": _parse_text,
    "ceip": _parse_text,
    "plan_actividad_fecha_inicio": _parse_optional_date,
    "declinacion_competencia": _parse_bool,
    "estado_declina": _parse_text,
    "estado_recibe": _parse_text,
    "adolescentes_orden_comparecencia": _parse_text,
    "observaciones": _parse_text,
}


def _collect_fields(payload: Payload, fields: dict[str, FieldParser]) -> dict[str, Any]:
    return {name: parser(payload[name], name) for name, parser in fields.items() if name in payload}


def _apply_fields(target: object, values: dict[str, Any]) -> None:
    for name, value in values.items():
        setattr(target, name, value)


def _number_key(kind: FolderKind) -> str:
    return f"numero_{kind.value.lower()}"


def _resolve_number(kind: FolderKind, raw: Any, current_id: int | None = None) -> str:
    text = _parse_text(raw, _number_key(kind))
    if not text:
        return next_folder_number(kind)
    numero = validate_folder_number(text, kind)
    model = FOLDER_MODELS[kind]
    existing = model.query.filter(number_column(kind) == numero).first()
    if existing and existing.id != current_id:
        raise ConflictError(f'El numero de {kind.value} "{numero}" ya existe')
    record_manual_number(kind, numero)
    return numero


def _count(model: type, *criteria) -> int:
    return db.session.query(func.count(model.id)).filter(*criteria).scalar() or 0


def _check_catalog(model: type, record_id: int | None, label: str) -> None:
    if record_id is None:
        return
    if db.session.get(model, record_id) is None:
        raise NotFoundError(f"{label} no encontrado")


# ---------------------------------------------------------------------------
# Folder bridge
# ---------------------------------------------------------------------------

def _bridge_row(proceso_id: int, lock: bool = False) -> ProcesoCarpeta | None:
    query = ProcesoCarpeta.query.filter_by(proceso_id=proceso_id)
    if lock:
        query = query.with_for_update()
    return query.first()


def get_links(proceso_id: int) -> FolderLinks:
    bridge = _bridge_row(proceso_id)
    if not bridge:
        raise NotFoundError("No se encontro relacion de carpetas para este proceso")
    return FolderLinks.from_bridge(bridge)


def proceso_for_folder(kind: FolderKind, folder_id: int) -> ProcesoCarpeta | None:
    column = getattr(ProcesoCarpeta, kind.bridge_column)
    return ProcesoCarpeta.query.filter(column == folder_id).with_for_update().first()


def link_folder(proceso_id: int, kind: FolderKind, folder_id: int) -> FolderLinks:
    bridge = _bridge_row(proceso_id, lock=True)
    if not bridge:
        raise NotFoundError("No se encontro relacion de carpetas para este proceso")
    if getattr(bridge, kind.bridge_column) is not None:
        raise ConflictError(f"El proceso ya tiene una carpeta {kind.value} asignada")
    if kind != FolderKind.CJ and bridge.cj_id is None:
        raise ValidationError(f"El proceso debe tener una CJ antes de asignar una carpeta {kind.value}")
    if kind == FolderKind.CEMS and bridge.cjo_id is None:
        raise ValidationError("Para asignar una CEMS el proceso debe tener CJ y CJO")
    setattr(bridge, kind.bridge_column, folder_id)
    db.session.add(bridge)
    db.session.flush()
    logger.info("Linked %s %s to proceso %s", kind.value, folder_id, proceso_id)
    return FolderLinks.from_bridge(bridge)


def _unlink_folder(bridge: ProcesoCarpeta, kind: FolderKind) -> None:
    setattr(bridge, kind.bridge_column, None)
    db.session.add(bridge)
    db.session.flush()
    logger.info("Unlinked %s from proceso %s", kind.value, bridge.proceso_id)


def unlink_folder(proceso_id: int, kind: FolderKind) -> FolderLinks:
    bridge = _bridge_row(proceso_id, lock=True)
    if not bridge:
        raise NotFoundError("No se encontro relacion de carpetas para este proceso")
    _unlink_folder(bridge, kind)
    return FolderLinks.from_bridge(bridge)


def _bridge_for_cj_or_error(cj: CJ) -> ProcesoCarpeta:
    bridge = proceso_for_folder(FolderKind.CJ, cj.id)
    if not bridge:
        raise ValidationError(f"La CJ {cj.numero_cj} no esta asociada a ningun proceso")
    return bridge


def bridge_invariant_violations() -> list[str]:
    problems: list[str] = []
    for bridge in ProcesoCarpeta.query.order_by(ProcesoCarpeta.proceso_id.asc()).all():
        links = FolderLinks.from_bridge(bridge)
        if links.cj_id is None and any(links.has(k) for k in (FolderKind.CJO, FolderKind.CEMCI, FolderKind.CEMS)):
            problems.append(f"proceso {links.proceso_id}: carpetas sin CJ")
        if links.cems_id is not None and links.cjo_id is None:
            problems.append(f"proceso {links.proceso_id}: CEMS sin CJO")
        if links.cjo_id is not None:
            cjo = db.session.get(CJO, links.cjo_id)
            if cjo is None or cjo.cj_id != links.cj_id:
                problems.append(f"proceso {links.proceso_id}: CJO no pertenece a la CJ del proceso")
    return problems


# ---------------------------------------------------------------------------
# Case registry
# ---------------------------------------------------------------------------

def proceso_by_id(proceso_id: int) -> Proceso:
    proceso = (
        Proceso.query.options(joinedload(Proceso.adolescente), joinedload(Proceso.status))
        .filter_by(id=proceso_id)
        .first()
    )
    if not proceso:
        raise NotFoundError("Proceso no encontrado")
    return proceso


def proceso_by_adolescente(adolescente_id: int) -> Proceso | None:
    return Proceso.query.filter_by(adolescente_id=adolescente_id).first()


def proceso_completo(proceso_id: int) -> dict[str, object]:
    proceso = proceso_by_id(proceso_id)
    bridge = _bridge_row(proceso.id)
    links = FolderLinks.from_bridge(bridge) if bridge else FolderLinks(proceso_id=proceso.id)
    return {
        "proceso": proceso,
        "links": links,
        "carpetas": {
            "cj": bridge.cj if bridge else None,
            "cjo": bridge.cjo if bridge else None,
            "cemci": bridge.cemci if bridge else None,
            "cems": bridge.cems if bridge else None,
        },
        "medidas": list_medidas(proceso.id),
    }


def list_procesos(filters: dict[str, str]) -> list[Proceso]:
    query = (
        Proceso.query.options(joinedload(Proceso.adolescente), joinedload(Proceso.status))
        .join(Adolescente, Adolescente.id == Proceso.adolescente_id)
        .order_by(Proceso.id.desc())
    )
    status_id = (filters.get("status_id") or "").strip()
    if status_id:
        if not status_id.isdigit():
            return []
        query = query.filter(Proceso.status_id == int(status_id))
    search = (filters.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Adolescente.nombre.ilike(pattern), Adolescente.iniciales.ilike(pattern)))
    return query.all()


def create_proceso(payload: Payload) -> dict[str, object]:
    adolescente_id = _parse_required_id(payload.get("adolescente_id"), "adolescente_id")
    cj_payload = payload.get("cj")
    if not isinstance(cj_payload, dict):
        raise ValidationError("Faltan los datos de la carpeta CJ")
    status_id = _parse_optional_int(payload.get("status_id"), "status_id")

    with transaction():
        if db.session.get(Adolescente, adolescente_id) is None:
            raise NotFoundError("El adolescente especificado no existe")
        existing = proceso_by_adolescente(adolescente_id)
        if existing:
            raise ConflictError(
                f"El adolescente ya tiene un proceso asignado (ID: {existing.id}). "
                "Un adolescente solo puede tener un proceso."
            )
        _check_catalog(StatusProceso, status_id, "Status")

        proceso = Proceso(
            adolescente_id=adolescente_id,
            status_id=status_id,
            observaciones=_parse_text(payload.get("observaciones"), "observaciones") or "",
        )
        db.session.add(proceso)
        db.session.flush()

        cj = _insert_cj(cj_payload)
        db.session.add(ProcesoCarpeta(proceso_id=proceso.id, cj_id=cj.id))
        db.session.flush()
        logger.info("Created proceso %s with CJ %s", proceso.id, cj.numero_cj)

    return proceso_completo(proceso.id)


def proceso_stats() -> dict[str, object]:
    rows = (
        db.session.query(StatusProceso.nombre, func.count(Proceso.id))
        .select_from(Proceso)
        .outerjoin(StatusProceso, StatusProceso.id == Proceso.status_id)
        .group_by(StatusProceso.nombre)
        .all()
    )
    return {
        "total": _count(Proceso),
        "por_status": {(nombre or "Sin status"): total for nombre, total in rows},
    }


def update_proceso(proceso_id: int, payload: Payload) -> Proceso:
    with transaction():
        proceso = proceso_by_id(proceso_id)
        changed = False
        if "status_id" in payload:
            status_id = _parse_optional_int(payload.get("status_id"), "status_id")
            _check_catalog(StatusProceso, status_id, "Status")
            proceso.status_id = status_id
            changed = True
        if "observaciones" in payload:
            proceso.observaciones = _parse_text(payload.get("observaciones"), "observaciones") or ""
            changed = True
        if not changed:
            raise ValidationError("No hay campos para actualizar")
        db.session.add(proceso)
    return proceso


def delete_proceso(proceso_id: int) -> None:
    with transaction():
        proceso = proceso_by_id(proceso_id)
        bridge = _bridge_row(proceso.id, lock=True)
        if bridge and not FolderLinks.from_bridge(bridge).empty:
            raise ConflictError(
                "No se puede eliminar el proceso porque tiene carpetas asociadas (CJ, CJO, CEMCI o CEMS). "
                "Primero debe eliminar las carpetas."
            )
        if bridge:
            db.session.delete(bridge)
        db.session.delete(proceso)
        logger.info("Deleted proceso %s", proceso_id)


# ---------------------------------------------------------------------------
# CJ
# ---------------------------------------------------------------------------

def cj_by_id(cj_id: int) -> CJ:
    cj = CJ.query.options(joinedload(CJ.domicilio_hechos)).filter_by(id=cj_id).first()
    if not cj:
        raise NotFoundError("Carpeta Judicial (CJ) no encontrada")
    return cj


def list_cjs(filters: dict[str, str]) -> list[CJ]:
    query = CJ.query.order_by(CJ.fecha_ingreso.desc(), CJ.id.desc())
    search = (filters.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(CJ.numero_cj.ilike(pattern), CJ.numero_ampea.ilike(pattern)))
    tipo_fuero = (filters.get("tipo_fuero") or "").strip()
    if tipo_fuero:
        query = query.filter(CJ.tipo_fuero == tipo_fuero)
    for flag in ("vinculacion", "reincidente"):
        raw = (filters.get(flag) or "").strip()
        if raw:
            query = query.filter(getattr(CJ, flag).is_(_parse_bool(raw, flag)))
    return query.all()


def cj_stats() -> dict[str, object]:
    por_fuero = {
        (fuero or "Sin fuero"): total
        for fuero, total in db.session.query(CJ.tipo_fuero, func.count(CJ.id)).group_by(CJ.tipo_fuero).all()
    }
    return {
        "total": _count(CJ),
        "por_fuero": por_fuero,
        "vinculados": _count(CJ, CJ.vinculacion.is_(True)),
        "reincidentes": _count(CJ, CJ.reincidente.is_(True)),
    }


def _insert_cj(payload: Payload) -> CJ:
    values = _collect_fields(payload, CJ_FIELDS)
    validate_cj_dates(values)
    _check_catalog(Domicilio, values.get("domicilio_hechos_id"), "Domicilio de los hechos")
    numero = _resolve_number(FolderKind.CJ, payload.get("numero_cj"))
    cj = CJ(numero_cj=numero, **values)
    db.session.add(cj)
    db.session.flush()
    return cj


def create_cj(payload: Payload) -> CJ:
    # Data-correction path: links only when proceso_id names a case without a CJ
    proceso_id = _parse_optional_int(payload.get("proceso_id"), "proceso_id")
    with transaction():
        if proceso_id is not None:
            proceso_by_id(proceso_id)
        cj = _insert_cj(payload)
        if proceso_id is not None:
            link_folder(proceso_id, FolderKind.CJ, cj.id)
    return cj


def update_cj(cj_id: int, payload: Payload) -> CJ:
    with transaction():
        cj = cj_by_id(cj_id)
        values = _collect_fields(payload, CJ_FIELDS)
        numero = None
        if _parse_text(payload.get("numero_cj"), "numero_cj"):
            numero = _resolve_number(FolderKind.CJ, payload.get("numero_cj"), current_id=cj.id)
        if not values and numero is None:
            raise ValidationError("No hay campos para actualizar")

        merged = {name: getattr(cj, name) for name in ("fecha_ingreso", "fecha_control", "fecha_vinculacion",
                                                        "fecha_suspension", "fecha_terminacion_suspension")}
        merged.update({k: v for k, v in values.items() if k in merged})
        validate_cj_dates(merged)
        _check_catalog(Domicilio, values.get("domicilio_hechos_id"), "Domicilio de los hechos")

        fuero_changed = "tipo_fuero" in values and values["tipo_fuero"] != cj.tipo_fuero
        _apply_fields(cj, values)
        if numero is not None:
            cj.numero_cj = numero
        db.session.add(cj)

        if fuero_changed:
            cjo = CJO.query.filter_by(cj_id=cj.id).first()
            if cjo:
                cjo.fuero = cj.tipo_fuero
                db.session.add(cjo)
                logger.info("Propagated fuero %s from CJ %s to CJO %s", cj.tipo_fuero, cj.numero_cj, cjo.numero_cjo)
    return cj


def remove_cj(cj_id: int) -> None:
    with transaction():
        cj = cj_by_id(cj_id)
        if CJO.query.filter_by(cj_id=cj.id).first():
            raise ConflictError(
                "No se puede eliminar la CJ porque tiene una carpeta CJO asociada. Primero debe eliminar la CJO."
            )
        if CEMCI.query.filter_by(cj_id=cj.id).first():
            raise ConflictError(
                "No se puede eliminar la CJ porque tiene una carpeta CEMCI asociada. Primero debe eliminar la CEMCI."
            )
        bridge = proceso_for_folder(FolderKind.CJ, cj.id)
        if bridge:
            _unlink_folder(bridge, FolderKind.CJ)
        db.session.delete(cj)
        logger.info("Deleted CJ %s", cj.numero_cj)


# ---------------------------------------------------------------------------
# Precautionary measures (cascade -> CEMCI)
# ---------------------------------------------------------------------------

def medida_by_id(medida_id: int) -> MedidaCautelar:
    medida = MedidaCautelar.query.options(joinedload(MedidaCautelar.tipo)).filter_by(id=medida_id).first()
    if not medida:
        raise NotFoundError("Medida cautelar no encontrada")
    return medida


def list_medidas(proceso_id: int, activas_only: bool = False) -> list[MedidaCautelar]:
    query = (
        MedidaCautelar.query.options(joinedload(MedidaCautelar.tipo))
        .filter_by(proceso_id=proceso_id)
        .order_by(MedidaCautelar.fecha_medida_cautelar.desc(), MedidaCautelar.id.desc())
    )
    if activas_only:
        query = query.filter(MedidaCautelar.revocada.is_(False))
    return query.all()


def list_medidas_privativas(proceso_id: int) -> list[MedidaCautelar]:
    proceso_by_id(proceso_id)
    return (
        MedidaCautelar.query.options(joinedload(MedidaCautelar.tipo))
        .join(TipoMedidaCautelar, TipoMedidaCautelar.id == MedidaCautelar.tipo_medida_cautelar_id)
        .filter(MedidaCautelar.proceso_id == proceso_id)
        .filter(TipoMedidaCautelar.genera_cemci.is_(True))
        .order_by(MedidaCautelar.fecha_medida_cautelar.desc(), MedidaCautelar.id.desc())
        .all()
    )


def medida_stats() -> list[dict[str, object]]:
    activa = case((MedidaCautelar.revocada.is_(False), 1), else_=0)
    revocada = case((MedidaCautelar.revocada.is_(True), 1), else_=0)
    rows = (
        db.session.query(
            TipoMedidaCautelar.nombre,
            TipoMedidaCautelar.genera_cemci,
            func.count(MedidaCautelar.id),
            func.sum(activa),
            func.sum(revocada),
        )
        .join(MedidaCautelar, MedidaCautelar.tipo_medida_cautelar_id == TipoMedidaCautelar.id)
        .group_by(TipoMedidaCautelar.id, TipoMedidaCautelar.nombre, TipoMedidaCautelar.genera_cemci)
        .order_by(func.count(MedidaCautelar.id).desc(), TipoMedidaCautelar.nombre.asc())
        .all()
    )
    return [
        {
            "tipo": nombre,
            "total": total,
            "activas": int(activas or 0),
            "revocadas": int(revocadas or 0),
            "privativas": total if genera_cemci else 0,
        }
        for nombre, genera_cemci, total, activas, revocadas in rows
    ]


def _tipo_medida(tipo_id: int) -> TipoMedidaCautelar:
    tipo = db.session.get(TipoMedidaCautelar, tipo_id)
    if tipo is None:
        raise NotFoundError("El tipo de medida cautelar no existe")
    return tipo


def _cascade_cemci(bridge: ProcesoCarpeta, medida: MedidaCautelar, result: MedidaResult) -> None:
    if bridge.cemci_id is None:
        cemci = CEMCI(
            numero_cemci=next_folder_number(FolderKind.CEMCI),
            cj_id=bridge.cj_id,
            cjo_id=bridge.cjo_id,
        )
        db.session.add(cemci)
        db.session.flush()
        link_folder(bridge.proceso_id, FolderKind.CEMCI, cemci.id)
        result.cemci_creado = True
        logger.info("Medida %s on proceso %s created CEMCI %s", medida.id, bridge.proceso_id, cemci.numero_cemci)
    result.cemci_id = bridge.cemci_id


def _bridge_with_cj(proceso_id: int) -> ProcesoCarpeta:
    bridge = _bridge_row(proceso_id, lock=True)
    if bridge is None or bridge.cj_id is None:
        raise ValidationError("El proceso debe tener una CJ antes de aplicar medidas cautelares")
    return bridge


def apply_medida_cautelar(proceso_id: int, payload: Payload) -> MedidaResult:
    tipo_id = _parse_required_id(payload.get("tipo_medida_cautelar_id"), "tipo_medida_cautelar_id")
    fecha = _parse_optional_date(payload.get("fecha_medida_cautelar"), "fecha_medida_cautelar") or date.today()

    with transaction():
        proceso = proceso_by_id(proceso_id)
        tipo = _tipo_medida(tipo_id)
        bridge = _bridge_with_cj(proceso.id)

        medida = MedidaCautelar(
            proceso_id=proceso.id,
            tipo_medida_cautelar_id=tipo.id,
            fecha_medida_cautelar=fecha,
            observaciones=_parse_text(payload.get("observaciones"), "observaciones") or "",
        )
        db.session.add(medida)
        db.session.flush()

        result = MedidaResult(medida=medida, genera_cemci=tipo.genera_cemci)
        if tipo.genera_cemci:
            _cascade_cemci(bridge, medida, result)
    return result


def update_medida_cautelar(medida_id: int, payload: Payload) -> MedidaResult:
    with transaction():
        medida = medida_by_id(medida_id)
        previous = medida.tipo
        changed = False
        if "tipo_medida_cautelar_id" in payload:
            tipo = _tipo_medida(_parse_required_id(payload.get("tipo_medida_cautelar_id"), "tipo_medida_cautelar_id"))
            medida.tipo_medida_cautelar_id = tipo.id
            medida.tipo = tipo
            changed = True
        if "fecha_medida_cautelar" in payload:
            fecha = _parse_optional_date(payload.get("fecha_medida_cautelar"), "fecha_medida_cautelar")
            if fecha is None:
                raise ValidationError("fecha_medida_cautelar no puede quedar vacia")
            validate_date_sequence(
                fecha,
                medida.fecha_revocacion,
                "fecha_revocacion debe ser posterior a fecha_medida_cautelar",
            )
            medida.fecha_medida_cautelar = fecha
            changed = True
        if "observaciones" in payload:
            medida.observaciones = _parse_text(payload.get("observaciones"), "observaciones") or ""
            changed = True
        if not changed:
            raise ValidationError("No hay campos para actualizar")
        db.session.add(medida)
        db.session.flush()

        result = MedidaResult(medida=medida, genera_cemci=medida.tipo.genera_cemci)
        # Only a switch from a non-privative type cascades; revoked measures never do
        if medida.tipo.genera_cemci and not previous.genera_cemci and not medida.revocada:
            _cascade_cemci(_bridge_with_cj(medida.proceso_id), medida, result)
    return result


def revoke_medida_cautelar(medida_id: int, payload: Payload) -> MedidaCautelar:
    with transaction():
        medida = medida_by_id(medida_id)
        if medida.revocada:
            raise ConflictError("La medida ya esta revocada")
        fecha = _parse_optional_date(payload.get("fecha_revocacion"), "fecha_revocacion") or date.today()
        validate_date_sequence(
            medida.fecha_medida_cautelar,
            fecha,
            "fecha_revocacion debe ser posterior a fecha_medida_cautelar",
        )
        medida.revocada = True
        medida.fecha_revocacion = fecha
        db.session.add(medida)
    return medida


def remove_medida_cautelar(medida_id: int) -> None:
    # The CEMCI it may have created stays linked to the case
    with transaction():
        medida = medida_by_id(medida_id)
        db.session.delete(medida)


# ---------------------------------------------------------------------------
# CEMCI
# ---------------------------------------------------------------------------

def cemci_by_id(cemci_id: int) -> CEMCI:
    cemci = (
        CEMCI.query.options(joinedload(CEMCI.cj), joinedload(CEMCI.cjo), joinedload(CEMCI.estado_procesal))
        .filter_by(id=cemci_id)
        .first()
    )
    if not cemci:
        raise NotFoundError("CEMCI no encontrada")
    return cemci


def list_cemcis(filters: dict[str, str]) -> list[CEMCI]:
    query = CEMCI.query.options(joinedload(CEMCI.cj)).order_by(CEMCI.id.desc())
    estado = (filters.get("estado_procesal_id") or "").strip()
    if estado:
        if not estado.isdigit():
            return []
        query = query.filter(CEMCI.estado_procesal_id == int(estado))
    concluido = (filters.get("concluido") or "").strip()
    if concluido:
        if _parse_bool(concluido, "concluido"):
            query = query.filter(CEMCI.concluido.isnot(None))
        else:
            query = query.filter(CEMCI.concluido.is_(None))
    return query.all()


def cemci_stats() -> dict[str, int]:
    return {
        "total": _count(CEMCI),
        "con_cjo": _count(CEMCI, CEMCI.cjo_id.isnot(None)),
        "sin_cjo": _count(CEMCI, CEMCI.cjo_id.is_(None)),
        "concluidas": _count(CEMCI, CEMCI.concluido.isnot(None)),
        "activas": _count(CEMCI, CEMCI.concluido.is_(None)),
    }


def _validate_cjo_for_cj(cjo_id: int | None, cj: CJ) -> None:
    if cjo_id is None:
        return
    cjo = cjo_by_id(cjo_id)
    if cjo.cj_id != cj.id:
        raise ValidationError("La CJO indicada no pertenece a la CJ de la carpeta")


def create_cemci(payload: Payload) -> CEMCI:
    cj_id = _parse_required_id(payload.get("cj_id"), "cj_id")
    cjo_id = _parse_optional_int(payload.get("cjo_id"), "cjo_id")
    with transaction():
        cj = cj_by_id(cj_id)
        _validate_cjo_for_cj(cjo_id, cj)
        bridge = _bridge_for_cj_or_error(cj)
        values = _collect_fields(payload, CEMCI_FIELDS)
        _check_catalog(EstadoProcesal, values.get("estado_procesal_id"), "Estado procesal")

        cemci = CEMCI(
            numero_cemci=_resolve_number(FolderKind.CEMCI, payload.get("numero_cemci")),
            cj_id=cj.id,
            cjo_id=cjo_id,
            **values,
        )
        db.session.add(cemci)
        db.session.flush()
        link_folder(bridge.proceso_id, FolderKind.CEMCI, cemci.id)
    return cemci


def update_cemci(cemci_id: int, payload: Payload) -> CEMCI:
    with transaction():
        cemci = cemci_by_id(cemci_id)
        values = _collect_fields(payload, CEMCI_FIELDS)
        if "cjo_id" in payload:
            cjo_id = _parse_optional_int(payload.get("cjo_id"), "cjo_id")
            _validate_cjo_for_cj(cjo_id, cemci.cj)
            values["cjo_id"] = cjo_id
        if _parse_text(payload.get("numero_cemci"), "numero_cemci"):
            values["numero_cemci"] = _resolve_number(FolderKind.CEMCI, payload.get("numero_cemci"), current_id=cemci.id)
        if not values:
            raise ValidationError("No hay campos para actualizar")
        _check_catalog(EstadoProcesal, values.get("estado_procesal_id"), "Estado procesal")
        _apply_fields(cemci, values)
        db.session.add(cemci)
    return cemci


def remove_cemci(cemci_id: int) -> None:
    with transaction():
        cemci = cemci_by_id(cemci_id)
        bridge = proceso_for_folder(FolderKind.CEMCI, cemci.id)
        if bridge:
            _unlink_folder(bridge, FolderKind.CEMCI)
        CEMS.query.filter_by(cemci_id=cemci.id).update({"cemci_id": None}, synchronize_session="fetch")
        db.session.delete(cemci)
        logger.info("Deleted CEMCI %s", cemci.numero_cemci)


# ---------------------------------------------------------------------------
# CJO (cascade -> CEMS)
# ---------------------------------------------------------------------------

def cjo_by_id(cjo_id: int) -> CJO:
    cjo = CJO.query.options(joinedload(CJO.cj)).filter_by(id=cjo_id).first()
    if not cjo:
        raise NotFoundError("Carpeta de Juicio Oral (CJO) no encontrada")
    return cjo


def list_cjos(filters: dict[str, str]) -> list[CJO]:
    query = CJO.query.options(joinedload(CJO.cj)).order_by(CJO.fecha_ingreso.desc(), CJO.id.desc())
    fuero = (filters.get("fuero") or "").strip()
    if fuero:
        query = query.filter(CJO.fuero == fuero)
    sentencia = (filters.get("sentencia") or "").strip()
    if sentencia:
        query = query.filter(CJO.sentencia.ilike(f"%{sentencia}%"))
    return query.all()


def cjo_stats() -> dict[str, object]:
    rows = db.session.query(CJO.sentencia_tipo, func.count(CJO.id)).group_by(CJO.sentencia_tipo).all()
    by_tipo = {tipo.value: 0 for tipo in SentenciaTipo}
    for tipo, total in rows:
        by_tipo[tipo.value] = total
    promedio = db.session.query(func.avg(CJO.monto_reparacion_dano)).scalar()
    return {
        "total": sum(by_tipo.values()),
        "por_sentencia": by_tipo,
        "generan_cems": sum(total for tipo, total in rows if genera_cems(tipo)),
        "promedio_reparacion": Decimal(str(promedio)).quantize(Decimal("0.01")) if promedio is not None else None,
    }


def _cascade_cems(bridge: ProcesoCarpeta, cjo: CJO) -> CEMS | None:
    if bridge.cems_id is not None:
        logger.info("Proceso %s already has CEMS %s, skipping cascade", bridge.proceso_id, bridge.cems_id)
        return None
    cems = CEMS(
        numero_cems=next_folder_number(FolderKind.CEMS),
        cj_id=cjo.cj_id,
        cjo_id=cjo.id,
        cemci_id=bridge.cemci_id,
    )
    db.session.add(cems)
    db.session.flush()
    link_folder(bridge.proceso_id, FolderKind.CEMS, cems.id)
    logger.info("Sentencia on CJO %s created CEMS %s", cjo.numero_cjo, cems.numero_cems)
    return cems


def create_cjo(cj_id: int, payload: Payload) -> CjoResult:
    with transaction():
        cj = cj_by_id(cj_id)
        if CJO.query.filter_by(cj_id=cj.id).first():
            raise ConflictError("Ya existe una CJO para esta CJ")
        bridge = _bridge_for_cj_or_error(cj)
        values = _collect_fields(payload, CJO_FIELDS)

        cjo = CJO(
            numero_cjo=_resolve_number(FolderKind.CJO, payload.get("numero_cjo")),
            cj_id=cj.id,
            fuero=_parse_text(payload.get("fuero"), "fuero") or cj.tipo_fuero,
            **values,
        )
        cjo.sentencia_tipo = classify_sentencia(cjo.sentencia)
        db.session.add(cjo)
        db.session.flush()
        link_folder(bridge.proceso_id, FolderKind.CJO, cjo.id)

        cems = _cascade_cems(bridge, cjo) if genera_cems(cjo.sentencia_tipo) else None
    return CjoResult(cjo=cjo, cems_creado=cems is not None, cems_id=cems.id if cems else None)


def update_cjo(cjo_id: int, payload: Payload) -> CjoResult:
    with transaction():
        cjo = cjo_by_id(cjo_id)
        previous = classify_sentencia(cjo.sentencia)
        values = _collect_fields(payload, CJO_FIELDS)
        if _parse_text(payload.get("numero_cjo"), "numero_cjo"):
            values["numero_cjo"] = _resolve_number(FolderKind.CJO, payload.get("numero_cjo"), current_id=cjo.id)
        if not values:
            raise ValidationError("No hay campos para actualizar")
        _apply_fields(cjo, values)
        cjo.sentencia_tipo = classify_sentencia(cjo.sentencia)
        db.session.add(cjo)
        db.session.flush()

        cems = None
        if is_cems_transition(previous, cjo.sentencia_tipo):
            bridge = proceso_for_folder(FolderKind.CJO, cjo.id)
            if bridge is None:
                raise ValidationError(f"La CJO {cjo.numero_cjo} no esta asociada a ningun proceso")
            cems = _cascade_cems(bridge, cjo)
    return CjoResult(cjo=cjo, cems_creado=cems is not None, cems_id=cems.id if cems else None)


def remove_cjo(cjo_id: int) -> None:
    with transaction():
        cjo = cjo_by_id(cjo_id)
        bridge = proceso_for_folder(FolderKind.CJO, cjo.id)
        if (bridge and bridge.cems_id is not None) or CEMS.query.filter_by(cjo_id=cjo.id).first():
            raise ConflictError(
                "No se puede eliminar la CJO porque tiene una carpeta CEMS asociada. Primero debe eliminar la CEMS."
            )
        if bridge:
            _unlink_folder(bridge, FolderKind.CJO)
        CEMCI.query.filter_by(cjo_id=cjo.id).update({"cjo_id": None}, synchronize_session="fetch")
        db.session.delete(cjo)
        logger.info("Deleted CJO %s", cjo.numero_cjo)


# ---------------------------------------------------------------------------
# CEMS
# ---------------------------------------------------------------------------

def cems_by_id(cems_id: int) -> CEMS:
    cems = (
        CEMS.query.options(
            joinedload(CEMS.cj),
            joinedload(CEMS.cjo),
            joinedload(CEMS.cemci),
            joinedload(CEMS.estado_procesal),
        )
        .filter_by(id=cems_id)
        .first()
    )
    if not cems:
        raise NotFoundError("CEMS no encontrada")
    return cems


def list_cems(filters: dict[str, str]) -> list[CEMS]:
    query = CEMS.query.options(joinedload(CEMS.cj), joinedload(CEMS.cjo)).order_by(CEMS.id.desc())
    estado = (filters.get("estado_procesal_id") or "").strip()
    if estado:
        if not estado.isdigit():
            return []
        query = query.filter(CEMS.estado_procesal_id == int(estado))
    status = (filters.get("status") or "").strip()
    if status:
        query = query.filter(CEMS.status.is_(_parse_bool(status, "status")))
    return query.all()


def cems_stats() -> dict[str, int]:
    return {
        "total": _count(CEMS),
        "con_cemci": _count(CEMS, CEMS.cemci_id.isnot(None)),
        "sin_cemci": _count(CEMS, CEMS.cemci_id.is_(None)),
        "activos": _count(CEMS, CEMS.status.is_(True)),
        "inactivos": _count(CEMS, CEMS.status.is_(False)),
        "con_declinacion": _count(CEMS, CEMS.declinacion_competencia.is_(True)),
    }


def _validate_cemci_for_cj(cemci_id: int | None, cj_id: int) -> None:
    if cemci_id is None:
        return
    cemci = cemci_by_id(cemci_id)
    if cemci.cj_id != cj_id:
        raise ValidationError("La CEMCI indicada no pertenece a la CJ de la carpeta")


def create_cems(payload: Payload) -> CEMS:
    cj_id = _parse_required_id(payload.get("cj_id"), "cj_id")
    cjo_id = _parse_required_id(payload.get("cjo_id"), "cjo_id")
    cemci_id = _parse_optional_int(payload.get("cemci_id"), "cemci_id")
    with transaction():
        cj = cj_by_id(cj_id)
        cjo = cjo_by_id(cjo_id)
        if cjo.cj_id != cj.id:
            raise ValidationError("La CJO indicada no pertenece a la CJ de la carpeta")
        _validate_cemci_for_cj(cemci_id, cj.id)
        bridge = _bridge_for_cj_or_error(cj)
        values = _collect_fields(payload, CEMS_FIELDS)
        _check_catalog(EstadoProcesal, values.get("estado_procesal_id"), "Estado procesal")

        cems = CEMS(
            numero_cems=_resolve_number(FolderKind.CEMS, payload.get("numero_cems")),
            cj_id=cj.id,
            cjo_id=cjo.id,
            cemci_id=cemci_id,
            **values,
        )
        db.session.add(cems)
        db.session.flush()
        link_folder(bridge.proceso_id, FolderKind.CEMS, cems.id)
    return cems


def update_cems(cems_id: int, payload: Payload) -> CEMS:
    with transaction():
        cems = cems_by_id(cems_id)
        values = _collect_fields(payload, CEMS_FIELDS)
        if "cemci_id" in payload:
            cemci_id = _parse_optional_int(payload.get("cemci_id"), "cemci_id")
            _validate_cemci_for_cj(cemci_id, cems.cj_id)
            values["cemci_id"] = cemci_id
        if _parse_text(payload.get("numero_cems"), "numero_cems"):
            values["numero_cems"] = _resolve_number(FolderKind.CEMS, payload.get("numero_cems"), current_id=cems.id)
        if not values:
            raise ValidationError("No hay campos para actualizar")
        _check_catalog(EstadoProcesal, values.get("estado_procesal_id"), "Estado procesal")
        _apply_fields(cems, values)
        db.session.add(cems)
    return cems


def remove_cems(cems_id: int) -> None:
    with transaction():
        cems = cems_by_id(cems_id)
        bridge = proceso_for_folder(FolderKind.CEMS, cems.id)
        if bridge:
            _unlink_folder(bridge, FolderKind.CEMS)
        db.session.delete(cems)
        logger.info("Deleted CEMS %s", cems.numero_cems)
