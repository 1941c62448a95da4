from __future__ import annotations

import logging
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.carpetas.numbering import (
    format_folder_number,
    max_stored_sequence,
    next_folder_number,
    parse_folder_number,
    record_manual_number,
    validate_folder_number,
)
from app.carpetas.rules import classify_sentencia, genera_cems, is_cems_transition, validate_cj_dates
from app.core.errors import ConflictError, InternalError, ValidationError, transaction, translate_storage_error
from app.core.extensions import db
from app.core.models import ContadorCarpeta, FolderKind, ProcesoCarpeta, SentenciaTipo, UserRole
from app.core.permissions import CONSULTAR, CREAR, ELIMINAR, MODIFICAR, has_folder_permission


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Condenatoria", SentenciaTipo.CONDENATORIA),
        ("condenatoria mixta", SentenciaTipo.CONDENATORIA),
        ("Sentencia MIXTA", SentenciaTipo.MIXTA),
        ("Absolutoria", SentenciaTipo.ABSOLUTORIA),
        ("Sobreseimiento", SentenciaTipo.OTRA),
        ("   ", SentenciaTipo.SIN_SENTENCIA),
        (None, SentenciaTipo.SIN_SENTENCIA),
    ],
)
def test_classify_sentencia(text, expected):
    assert classify_sentencia(text) == expected


def test_genera_cems_is_defined_for_every_verdict():
    generating = {tipo for tipo in SentenciaTipo if genera_cems(tipo)}
    assert generating == {SentenciaTipo.CONDENATORIA, SentenciaTipo.MIXTA}


def test_cems_transition_only_from_non_generating():
    assert is_cems_transition(SentenciaTipo.ABSOLUTORIA, SentenciaTipo.MIXTA)
    assert is_cems_transition(SentenciaTipo.SIN_SENTENCIA, SentenciaTipo.CONDENATORIA)
    assert not is_cems_transition(SentenciaTipo.MIXTA, SentenciaTipo.CONDENATORIA)
    assert not is_cems_transition(SentenciaTipo.ABSOLUTORIA, SentenciaTipo.OTRA)


def test_cj_date_sequences():
    validate_cj_dates({"fecha_ingreso": date(2025, 1, 10), "fecha_control": date(2025, 1, 10)})
    with pytest.raises(ValidationError):
        validate_cj_dates({"fecha_ingreso": date(2025, 1, 10), "fecha_control": date(2025, 1, 9)})
    with pytest.raises(ValidationError):
        validate_cj_dates({"fecha_control": date(2025, 2, 1), "fecha_vinculacion": date(2025, 1, 31)})
    with pytest.raises(ValidationError):
        validate_cj_dates(
            {"fecha_suspension": date(2025, 3, 1), "fecha_terminacion_suspension": date(2025, 2, 1)}
        )


def test_folder_number_format_and_parse():
    assert format_folder_number(FolderKind.CEMCI, 7, 2025) == "CEMCI-007/2025"
    assert format_folder_number(FolderKind.CJ, 1234, 2025) == "CJ-1234/2025"
    assert parse_folder_number("cjo-012/2024") == (FolderKind.CJO, 12, 2024)
    assert validate_folder_number(" CJ-001/2025 ", FolderKind.CJ) == "CJ-001/2025"


@pytest.mark.parametrize("value", ["CJ-1/2025", "CJ001/2025", "XX-001/2025", "CJ-001/25", ""])
def test_parse_folder_number_rejects_malformed(value):
    with pytest.raises(ValidationError):
        parse_folder_number(value)


def test_validate_folder_number_rejects_other_kind():
    with pytest.raises(ValidationError):
        validate_folder_number("CJO-001/2025", FolderKind.CJ)


def test_next_folder_number_sequence_per_kind_and_year(app):
    with app.app_context():
        assert next_folder_number(FolderKind.CEMS, 2025) == "CEMS-001/2025"
        assert next_folder_number(FolderKind.CEMS, 2025) == "CEMS-002/2025"
        assert next_folder_number(FolderKind.CEMS, 2024) == "CEMS-001/2024"
        assert next_folder_number(FolderKind.CEMCI, 2025) == "CEMCI-001/2025"
        db.session.commit()
        counter = ContadorCarpeta.query.filter_by(tipo=FolderKind.CEMS, anio=2025).first()
        assert counter.ultimo == 2


def test_next_folder_number_defaults_to_current_year(app):
    with app.app_context():
        assert next_folder_number(FolderKind.CJ).endswith(f"/{date.today().year}")


def test_manual_number_moves_counter_forward(app):
    with app.app_context():
        record_manual_number(FolderKind.CJ, "CJ-040/2025")
        record_manual_number(FolderKind.CJ, "CJ-010/2025")
        assert next_folder_number(FolderKind.CJ, 2025) == "CJ-041/2025"


def test_max_stored_sequence_is_zero_without_folders(app):
    with app.app_context():
        assert max_stored_sequence(FolderKind.CJO, 2025) == 0


def test_folder_permission_map():
    for kind in FolderKind:
        assert has_folder_permission(UserRole.ADMIN, kind, ELIMINAR)
        assert has_folder_permission(UserRole.CONSULTA, kind, CONSULTAR)
        assert not has_folder_permission(UserRole.CONSULTA, kind, CREAR)

    assert has_folder_permission(UserRole.JUZGADO, FolderKind.CJO, MODIFICAR)
    assert not has_folder_permission(UserRole.JUZGADO, FolderKind.CEMS, CREAR)
    assert has_folder_permission(UserRole.JUZGADO_EJECUCION, FolderKind.CEMCI, CREAR)
    assert not has_folder_permission(UserRole.JUZGADO_EJECUCION, FolderKind.CJ, ELIMINAR)
    assert not has_folder_permission(None, FolderKind.CJ, CONSULTAR)


def test_unclassified_storage_error_is_opaque_and_logged(caplog):
    error = OperationalError("SELECT * FROM cj", {}, Exception("secret table detail"))
    with caplog.at_level(logging.ERROR, logger="app.core.errors"):
        translated = translate_storage_error(error)

    assert isinstance(translated, InternalError)
    assert translated.status_code == 500
    assert "secret" not in translated.message
    assert "secret" not in str(translated.to_dict())
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_integrity_errors_map_to_business_errors():
    unique = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: cj.numero_cj"))
    check = IntegrityError("INSERT", {}, Exception("CHECK constraint failed: ck_proceso_carpeta_cems_requires_cjo"))
    assert isinstance(translate_storage_error(unique), ConflictError)
    assert isinstance(translate_storage_error(check), ValidationError)


def test_transaction_maps_check_violation_to_validation(app):
    with app.app_context():
        with pytest.raises(ValidationError):
            with transaction():
                db.session.add(ProcesoCarpeta(proceso_id=999, cems_id=5))
                db.session.flush()
        assert ProcesoCarpeta.query.count() == 0


def test_transaction_wraps_storage_failure_as_internal(app):
    with app.app_context():
        with pytest.raises(InternalError):
            with transaction():
                db.session.add(ContadorCarpeta(tipo=FolderKind.CJ, anio=2025, ultimo=3))
                raise OperationalError("UPDATE contador_carpeta", {}, Exception("database is locked"))
        assert ContadorCarpeta.query.count() == 0


def test_json_responses_keep_insertion_order(app):
    assert app.json.sort_keys is False


def test_parse_text_rejects_structured_values_naming_the_field():
    from app.carpetas.services import _parse_text

    assert _parse_text("  nota  ", "observaciones") == "nota"
    assert _parse_text("   ", "observaciones") is None
    with pytest.raises(ValidationError, match="observaciones debe ser texto"):
        _parse_text({"a": 1}, "observaciones")
