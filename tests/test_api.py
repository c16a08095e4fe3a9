"""
Tests de la API HTTP: autenticación, roles, flujo financiero y solicitudes.
"""

from uuid import uuid4

from app.models.patient import Patient, PatientStatus

API = "/api/v1"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


# ── Auth ─────────────────────────────────────────────


async def test_login_and_me(client, admin_user):
    response = await client.post(
        f"{API}/auth/login",
        json={"email": "admin@test.com", "password": "TestPass123"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "admin"

    me = await client.get(
        f"{API}/auth/me",
        headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["email"] == "admin@test.com"


async def test_login_wrong_password(client, admin_user):
    response = await client.post(
        f"{API}/auth/login",
        json={"email": "admin@test.com", "password": "WrongPass999"},
    )
    assert response.status_code == 401


async def test_requires_authentication(client):
    response = await client.get(f"{API}/finance/summary")
    assert response.status_code in (401, 403)


async def test_invalid_token(client):
    response = await client.get(
        f"{API}/finance/summary", headers={"Authorization": "Bearer basura"}
    )
    assert response.status_code == 401


# ── Usuarios ─────────────────────────────────────────


async def test_create_professional_and_clamp_commission(client, admin_user, headers_for):
    response = await client.post(
        f"{API}/users",
        json={
            "name": "Nueva Profesional",
            "email": "nueva@test.com",
            "password": "Segura1234",
            "role": "professional",
            "commission": 140,
        },
        headers=headers_for(admin_user),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["commission"] == 100
    assert body["saldo_pendiente"] == 0

    duplicate = await client.post(
        f"{API}/users",
        json={
            "name": "Otra",
            "email": "nueva@test.com",
            "password": "Segura1234",
        },
        headers=headers_for(admin_user),
    )
    assert duplicate.status_code == 409


async def test_professional_cannot_manage_users(client, professional, headers_for):
    response = await client.patch(
        f"{API}/users/{professional.id}/commission",
        json={"commission": 5},
        headers=headers_for(professional),
    )
    assert response.status_code == 403


# ── Flujo financiero ─────────────────────────────────


async def test_session_abono_and_delete_flow(
    client, admin_user, financial_user, professional, patient, headers_for
):
    admin = headers_for(admin_user)

    created = await client.post(
        f"{API}/appointments",
        json={
            "patient_id": str(patient.id),
            "professional_id": str(professional.id),
            "date": "2026-03-02",
            "start_time": "09:00",
            "end_time": "09:45",
            "session_cost": 100,
        },
        headers=admin,
    )
    assert created.status_code == 201
    appointment_id = created.json()["id"]

    completed = await client.post(
        f"{API}/appointments/{appointment_id}/complete",
        json={"attended": True, "payment_amount": 100},
        headers=headers_for(professional),
    )
    assert completed.status_code == 200
    assert completed.json()["remaining_balance"] == 0

    summary = await client.get(f"{API}/finance/summary", headers=headers_for(financial_user))
    assert summary.json()["total_debt"] == 20
    assert summary.json()["total_revenue"] == 100

    abono = await client.post(
        f"{API}/finance/professionals/{professional.id}/abonos",
        json={"amount": 15},
        headers=headers_for(financial_user),
    )
    assert abono.status_code == 201
    assert abono.json()["saldo_pendiente"] == 5
    assert abono.json()["abono"]["professional_name"] == "Laura Gómez"

    statement = await client.get(
        f"{API}/finance/professionals/{professional.id}/statement",
        headers=headers_for(professional),
    )
    assert statement.status_code == 200
    assert statement.json()["total_abonado"] == 15

    deleted = await client.delete(f"{API}/appointments/{appointment_id}", headers=admin)
    assert deleted.status_code == 204

    summary = await client.get(f"{API}/finance/summary", headers=admin)
    assert summary.json()["total_revenue"] == 0
    assert summary.json()["total_debt"] == 0

    reconcile = await client.post(
        f"{API}/finance/professionals/{professional.id}/reconcile", headers=admin
    )
    assert reconcile.status_code == 200
    assert reconcile.json()["in_sync"] is True


async def test_invalid_abono_amount(client, financial_user, professional, headers_for):
    response = await client.post(
        f"{API}/finance/professionals/{professional.id}/abonos",
        json={"amount": 0},
        headers=headers_for(financial_user),
    )
    assert response.status_code == 422


async def test_abono_unknown_professional(client, financial_user, headers_for):
    response = await client.post(
        f"{API}/finance/professionals/{uuid4()}/abonos",
        json={"amount": 10},
        headers=headers_for(financial_user),
    )
    assert response.status_code == 404


async def test_professional_cannot_record_abono(client, professional, headers_for):
    response = await client.post(
        f"{API}/finance/professionals/{professional.id}/abonos",
        json={"amount": 10},
        headers=headers_for(professional),
    )
    assert response.status_code == 403


async def test_professional_cannot_read_other_statement(
    client, professional, other_professional, headers_for
):
    response = await client.get(
        f"{API}/finance/professionals/{other_professional.id}/statement",
        headers=headers_for(professional),
    )
    assert response.status_code == 403


# ── Solicitudes y actividades ────────────────────────


async def test_status_request_resolution_over_http(
    client, admin_user, professional, patient, headers_for
):
    payload = {
        "patient_id": str(patient.id),
        "current_status": "active",
        "requested_status": "inactive",
        "reason": "Alta",
    }
    created = await client.post(
        f"{API}/status-requests", json=payload, headers=headers_for(professional)
    )
    assert created.status_code == 201
    request_id = created.json()["id"]

    duplicate = await client.post(
        f"{API}/status-requests", json=payload, headers=headers_for(professional)
    )
    assert duplicate.status_code == 409

    forbidden = await client.post(
        f"{API}/status-requests/{request_id}/approve", headers=headers_for(professional)
    )
    assert forbidden.status_code == 403

    approved = await client.post(
        f"{API}/status-requests/{request_id}/approve",
        json={"admin_response": "Ok"},
        headers=headers_for(admin_user),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    again = await client.post(
        f"{API}/status-requests/{request_id}/reject", headers=headers_for(admin_user)
    )
    assert again.status_code == 409
    assert again.json()["detail"] == "La solicitud ya fue resuelta"

    patient_response = await client.get(
        f"{API}/patients/{patient.id}", headers=headers_for(admin_user)
    )
    assert patient_response.json()["status"] == PatientStatus.INACTIVE.value


async def test_frequency_request_and_activity_feed(
    client, admin_user, professional, patient, headers_for
):
    created = await client.post(
        f"{API}/frequency-requests",
        json={
            "patient_id": str(patient.id),
            "new_frequency": "monthly",
            "reason": "Evolución favorable",
        },
        headers=headers_for(professional),
    )
    assert created.status_code == 201

    admin = headers_for(admin_user)
    pending = await client.get(f"{API}/frequency-requests/pending", headers=admin)
    assert len(pending.json()) == 1

    resolved = await client.post(
        f"{API}/frequency-requests/{created.json()['id']}/resolve",
        json={"decision": "approved"},
        headers=admin,
    )
    assert resolved.status_code == 200

    feed = await client.get(f"{API}/activities", headers=admin)
    types = [a["type"] for a in feed.json()]
    assert types == ["FREQUENCY_CHANGE_APPROVED", "FREQUENCY_CHANGE_REQUESTED"]
    assert feed.json()[0]["metadata"]["requestedFrequency"] == "monthly"

    count = await client.get(f"{API}/activities/unread-count", headers=admin)
    assert count.json() == {"count": 2}

    await client.patch(f"{API}/activities/{feed.json()[0]['id']}/read", headers=admin)
    count = await client.get(f"{API}/activities/unread-count", headers=admin)
    assert count.json() == {"count": 1}

    read_all = await client.patch(f"{API}/activities/read-all", headers=admin)
    assert read_all.json() == {"updated": 1}

    cleared = await client.delete(f"{API}/activities", headers=admin)
    assert cleared.json() == {"deleted": 2}


async def test_frequency_request_from_other_professional(
    client, other_professional, patient, headers_for
):
    response = await client.post(
        f"{API}/frequency-requests",
        json={
            "patient_id": str(patient.id),
            "new_frequency": "monthly",
            "reason": "x",
        },
        headers=headers_for(other_professional),
    )
    assert response.status_code == 403


async def test_patient_listing_scoped_for_professional(
    client, db_session, professional, other_professional, patient, headers_for
):
    db_session.add(Patient(name="Paciente Ajeno", professional_id=other_professional.id))
    await db_session.commit()

    response = await client.get(f"{API}/patients", headers=headers_for(professional))
    assert response.status_code == 200
    assert [p["name"] for p in response.json()["items"]] == ["Ana Pérez"]


async def test_patient_requests_visible_to_assigned_professional_only(
    client, admin_user, professional, other_professional, patient, headers_for
):
    for prefix in ("status-requests", "frequency-requests"):
        url = f"{API}/{prefix}/patient/{patient.id}"

        own = await client.get(url, headers=headers_for(professional))
        assert own.status_code == 200

        admin = await client.get(url, headers=headers_for(admin_user))
        assert admin.status_code == 200

        foreign = await client.get(url, headers=headers_for(other_professional))
        assert foreign.status_code == 403
