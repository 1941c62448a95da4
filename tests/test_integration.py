from __future__ import annotations

from app.core.models import CEMCI, CEMS, ProcesoCarpeta


def _create_case(client, adolescente_id: int, **cj_fields):
    cj = {"tipo_fuero": "Común"}
    cj.update(cj_fields)
    return client.post("/api/procesos", json={"adolescente_id": adolescente_id, "cj": cj})


def test_api_requires_login(client):
    response = client.get("/api/procesos")
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_login_rejects_bad_password(client):
    response = client.post("/auth/login", json={"email": "admin@juzgado.local", "password": "nope"})
    assert response.status_code == 401


def test_login_and_me(client, login_admin):
    assert login_admin().status_code == 200
    response = client.get("/auth/me")
    assert response.get_json()["data"]["rol"] == "Administrador"


def test_full_flow_over_http(app, client, login_admin, adolescente_ids, privativa_id):
    login_admin()

    created = _create_case(client, adolescente_ids[0], numero_cj="CJ-001/2025", fecha_ingreso="2025-01-05")
    assert created.status_code == 201
    body = created.get_json()
    assert body["success"] is True
    proceso_id = body["data"]["proceso"]["id"]
    cj_id = body["data"]["carpetas"]["cj"]["id"]
    assert body["data"]["carpetas"]["cj"]["fecha_ingreso"] == "2025-01-05"
    assert body["data"]["links"]["cemci_id"] is None

    medida = client.post(f"/api/procesos/{proceso_id}/medidas", json={"tipo_medida_cautelar_id": privativa_id})
    assert medida.status_code == 201
    assert medida.get_json()["data"]["cemci_creado"] is True

    cjo = client.post(f"/api/cj/{cj_id}/cjo", json={"numero_cjo": "CJO-001/2025", "sentencia": "Condenatoria Mixta"})
    assert cjo.status_code == 201
    cjo_data = cjo.get_json()["data"]
    assert cjo_data["cems_creado"] is True
    assert cjo_data["cjo"]["sentencia_tipo"] == "CONDENATORIA"

    links = client.get(f"/api/procesos/{proceso_id}/carpetas").get_json()["data"]
    assert links["cjo_id"] == cjo_data["cjo"]["id"]
    assert links["cems_id"] == cjo_data["cems_id"]
    assert links["cemci_id"] is not None

    again = client.post(f"/api/cj/{cj_id}/cjo", json={"sentencia": "Condenatoria"})
    assert again.status_code == 409
    assert again.get_json()["error"] == "conflict"

    with app.app_context():
        assert CEMCI.query.count() == 1
        assert CEMS.query.count() == 1


def test_duplicate_case_returns_conflict(client, login_admin, adolescente_ids):
    login_admin()
    assert _create_case(client, adolescente_ids[0]).status_code == 201
    response = _create_case(client, adolescente_ids[0])
    assert response.status_code == 409


def test_validation_and_not_found_statuses(client, login_admin, adolescente_ids):
    login_admin()
    bad_dates = _create_case(client, adolescente_ids[0], fecha_ingreso="2025-02-10", fecha_control="2025-02-01")
    assert bad_dates.status_code == 422
    assert bad_dates.get_json()["error"] == "validation"

    missing = client.get("/api/cjo/999")
    assert missing.status_code == 404


def test_consulta_can_read_but_not_write(client, login_consulta, adolescente_ids):
    login_consulta()
    assert client.get("/api/cj").status_code == 200
    assert _create_case(client, adolescente_ids[0]).status_code == 403


def test_juzgado_cannot_manage_execution_folders(app, client, login_juzgado, adolescente_ids):
    login_juzgado()
    created = _create_case(client, adolescente_ids[0])
    assert created.status_code == 201
    cj_id = created.get_json()["data"]["carpetas"]["cj"]["id"]

    assert client.post("/api/cemci", json={"cj_id": cj_id}).status_code == 403
    assert client.get("/api/cemci").status_code == 200


def test_ejecucion_manages_cemci(app, client, login_admin, login_ejecucion, adolescente_ids):
    login_admin()
    created = _create_case(client, adolescente_ids[0])
    cj_id = created.get_json()["data"]["carpetas"]["cj"]["id"]
    client.post("/auth/logout")

    login_ejecucion()
    assert _create_case(client, adolescente_ids[1]).status_code == 403
    response = client.post("/api/cemci", json={"cj_id": cj_id, "fecha_recepcion_cemci": "2025-05-02"})
    assert response.status_code == 201
    cemci_id = response.get_json()["data"]["id"]

    update = client.put(f"/api/cemci/{cemci_id}", json={"observaciones": "Ingreso confirmado"})
    assert update.status_code == 200
    assert update.get_json()["data"]["observaciones"] == "Ingreso confirmado"

    assert client.delete(f"/api/cemci/{cemci_id}").status_code == 200
    with app.app_context():
        assert ProcesoCarpeta.query.filter(ProcesoCarpeta.cemci_id.isnot(None)).count() == 0


def test_delete_case_after_teardown(client, login_admin, adolescente_ids):
    login_admin()
    created = _create_case(client, adolescente_ids[0]).get_json()["data"]
    proceso_id = created["proceso"]["id"]
    cj_id = created["carpetas"]["cj"]["id"]

    assert client.delete(f"/api/procesos/{proceso_id}").status_code == 409
    assert client.delete(f"/api/cj/{cj_id}").status_code == 200
    assert client.delete(f"/api/procesos/{proceso_id}").status_code == 200
    assert client.get(f"/api/procesos/{proceso_id}").status_code == 404


def test_cjo_statistics(client, login_admin, adolescente_ids):
    login_admin()
    first = _create_case(client, adolescente_ids[0]).get_json()["data"]["carpetas"]["cj"]["id"]
    second = _create_case(client, adolescente_ids[1]).get_json()["data"]["carpetas"]["cj"]["id"]
    client.post(f"/api/cj/{first}/cjo", json={"sentencia": "Condenatoria", "monto_reparacion_dano": "1500.50"})
    client.post(f"/api/cj/{second}/cjo", json={"sentencia": "Absolutoria"})

    stats = client.get("/api/cjo/estadisticas").get_json()["data"]
    assert stats["total"] == 2
    assert stats["generan_cems"] == 1
    assert stats["por_sentencia"]["ABSOLUTORIA"] == 1


def test_carpetas_check_command(app, adolescente_ids, make_proceso):
    make_proceso(adolescente_ids[0])
    runner = app.test_cli_runner()
    result = runner.invoke(args=["carpetas-check"])
    assert result.exit_code == 0
    assert "consistentes" in result.output

    next_number = runner.invoke(args=["carpetas-next-number", "--kind", "CEMS", "--year", "2025"])
    assert next_number.output.strip() == "CEMS-001/2025"


def test_non_object_json_body_is_rejected(client, login_admin):
    login_admin()
    response = client.post("/api/procesos", json=[1])
    assert response.status_code == 422
    assert response.get_json()["error"] == "validation"


def test_medida_update_and_privativas_over_http(client, login_admin, adolescente_ids, privativa_id, no_privativa_id):
    login_admin()
    proceso_id = _create_case(client, adolescente_ids[0]).get_json()["data"]["proceso"]["id"]
    medida = client.post(f"/api/procesos/{proceso_id}/medidas", json={"tipo_medida_cautelar_id": no_privativa_id})
    medida_id = medida.get_json()["data"]["medida"]["id"]

    before = client.get(f"/api/procesos/{proceso_id}/privativas").get_json()["data"]
    assert before == {"tiene_privativas": False, "medidas": []}

    updated = client.put(f"/api/medidas/{medida_id}", json={"tipo_medida_cautelar_id": privativa_id})
    assert updated.status_code == 200
    assert updated.get_json()["data"]["cemci_creado"] is True

    after = client.get(f"/api/procesos/{proceso_id}/privativas").get_json()["data"]
    assert after["tiene_privativas"] is True
    assert [row["id"] for row in after["medidas"]] == [medida_id]


def test_statistics_routes(client, login_consulta, login_admin, adolescente_ids, privativa_id):
    login_admin()
    proceso_id = _create_case(client, adolescente_ids[0]).get_json()["data"]["proceso"]["id"]
    client.post(f"/api/procesos/{proceso_id}/medidas", json={"tipo_medida_cautelar_id": privativa_id})
    client.post("/auth/logout")

    login_consulta()
    for path in ("procesos", "cj", "cjo", "cemci", "cems", "medidas"):
        response = client.get(f"/api/{path}/estadisticas")
        assert response.status_code == 200, path

    assert client.get("/api/cj/estadisticas").get_json()["data"]["por_fuero"] == {"Común": 1}
    assert client.get("/api/cemci/estadisticas").get_json()["data"]["activas"] == 1
    medidas = client.get("/api/medidas/estadisticas").get_json()["data"]
    assert medidas[0]["privativas"] == 1
