from __future__ import annotations

from datetime import date

from app.core.errors import ValidationError
from app.core.models import SentenciaTipo

GENERATING_SENTENCIAS = frozenset({SentenciaTipo.CONDENATORIA, SentenciaTipo.MIXTA})

# (earlier field, later field, message)
CJ_DATE_SEQUENCES: tuple[tuple[str, str, str], ...] = (
    ("fecha_ingreso", "fecha_control", "fecha_control debe ser posterior a fecha_ingreso"),
    ("fecha_control", "fecha_vinculacion", "fecha_vinculacion debe ser posterior a fecha_control"),
    (
        "fecha_suspension",
        "fecha_terminacion_suspension",
        "fecha_terminacion_suspension debe ser posterior a fecha_suspension",
    ),
)


def classify_sentencia(text: str | None) -> SentenciaTipo:
    raw = (text or "").strip().lower()
    if not raw:
        return SentenciaTipo.SIN_SENTENCIA
    # "Condenatoria Mixta" is still a conviction
    if "condenatori" in raw:
        return SentenciaTipo.CONDENATORIA
    if "mixta" in raw:
        return SentenciaTipo.MIXTA
    if "absolutori" in raw:
        return SentenciaTipo.ABSOLUTORIA
    return SentenciaTipo.OTRA


def genera_cems(tipo: SentenciaTipo) -> bool:
    return tipo in GENERATING_SENTENCIAS


def is_cems_transition(previous: SentenciaTipo, current: SentenciaTipo) -> bool:
    return not genera_cems(previous) and genera_cems(current)


def validate_date_sequence(earlier: date | None, later: date | None, message: str) -> None:
    if earlier and later and earlier > later:
        raise ValidationError(message)


def validate_cj_dates(values: dict[str, date | None]) -> None:
    for earlier, later, message in CJ_DATE_SEQUENCES:
        validate_date_sequence(values.get(earlier), values.get(later), message)
