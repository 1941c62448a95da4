from __future__ import annotations

import logging
import re
from datetime import date

from app.core.errors import ValidationError
from app.core.extensions import db
from app.core.models import FOLDER_MODELS, ContadorCarpeta, FolderKind

logger = logging.getLogger(__name__)

FOLDER_NUMBER_RE = re.compile(r"^(?P<kind>[A-Z]+)-(?P<seq>\d{3,})/(?P<year>\d{4})$")


def format_folder_number(kind: FolderKind, seq: int, year: int) -> str:
    return f"{kind.value}-{seq:03d}/{year}"


def parse_folder_number(value: str) -> tuple[FolderKind, int, int]:
    match = FOLDER_NUMBER_RE.match((value or "").strip().upper())
    if not match:
        raise ValidationError(f"Numero de carpeta invalido: {value!r} (formato TIPO-NNN/AAAA)")
    try:
        kind = FolderKind(match.group("kind"))
    except ValueError as exc:
        raise ValidationError(f"Tipo de carpeta desconocido en {value!r}") from exc
    return kind, int(match.group("seq")), int(match.group("year"))


def validate_folder_number(value: str, kind: FolderKind) -> str:
    parsed_kind, seq, year = parse_folder_number(value)
    if parsed_kind != kind:
        raise ValidationError(f"El numero {value!r} no corresponde a una carpeta {kind.value}")
    return format_folder_number(kind, seq, year)


def number_column(kind: FolderKind):
    model = FOLDER_MODELS[kind]
    return getattr(model, f"numero_{kind.value.lower()}")


def max_stored_sequence(kind: FolderKind, year: int) -> int:
    column = number_column(kind)
    rows = db.session.query(column).filter(column.like(f"{kind.value}-%/{year}")).all()
    highest = 0
    for (numero,) in rows:
        match = FOLDER_NUMBER_RE.match(numero or "")
        if match and match.group("kind") == kind.value:
            highest = max(highest, int(match.group("seq")))
    return highest


def _locked_counter(kind: FolderKind, year: int) -> ContadorCarpeta:
    counter = (
        ContadorCarpeta.query.filter_by(tipo=kind, anio=year)
        .with_for_update()
        .first()
    )
    if counter is None:
        counter = ContadorCarpeta(tipo=kind, anio=year, ultimo=0)
        db.session.add(counter)
        db.session.flush()
    return counter


def next_folder_number(kind: FolderKind, year: int | None = None) -> str:
    year = year or date.today().year
    counter = _locked_counter(kind, year)
    seq = max(counter.ultimo, max_stored_sequence(kind, year)) + 1
    counter.ultimo = seq
    db.session.add(counter)
    db.session.flush()
    numero = format_folder_number(kind, seq, year)
    logger.info("Assigned folder number %s", numero)
    return numero


def record_manual_number(kind: FolderKind, numero: str) -> None:
    # Keep the counter ahead of a user-supplied number
    _, seq, year = parse_folder_number(numero)
    counter = _locked_counter(kind, year)
    if seq > counter.ultimo:
        counter.ultimo = seq
        db.session.add(counter)
        db.session.flush()
