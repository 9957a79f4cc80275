from medibook.models import Appointment, Doctor, Role, Timeslot

PROFILE = {
    "specialty": "Dermatology",
    "degree": "MD",
    "experience": 7,
    "fees": "120.50",
    "address_line1": "22 Elm St",
    "city": "Boston",
    "state": "MA",
    "postal_code": "02101",
    "about": "Skin specialist",
}


def test_admin_creates_profile_customer_cannot(client, admin, customer, make_user, auth_headers):
    doctor_user = make_user(Role.doctor)
    payload = {**PROFILE, "user_id": doctor_user.id}

    res = client.post("/doctors", headers=auth_headers(admin), json=payload)
    assert res.status_code == 201
    body = res.json()
    assert body["user_id"] == doctor_user.id
    assert body["fees"] == 120.5
    assert body["user"]["name"] == doctor_user.name
    assert body["user"]["email"] == doctor_user.email

    other_doctor = make_user(Role.doctor)
    res = client.post(
        "/doctors", headers=auth_headers(customer), json={**PROFILE, "user_id": other_doctor.id}
    )
    assert res.status_code == 403


def test_create_requires_existing_doctor_user(client, admin, customer, auth_headers):
    res = client.post("/doctors", headers=auth_headers(admin), json={**PROFILE, "user_id": 9999})
    assert res.status_code == 404
    assert res.json()["detail"] == "User not found"

    res = client.post("/doctors", headers=auth_headers(admin), json={**PROFILE, "user_id": customer.id})
    assert res.status_code == 400
    assert res.json()["detail"] == "User role is not doctor"


def test_second_profile_for_same_user_conflicts(client, admin, make_doctor, auth_headers):
    doctor = make_doctor()
    res = client.post("/doctors", headers=auth_headers(admin), json={**PROFILE, "user_id": doctor.user_id})
    assert res.status_code == 400
    assert res.json()["detail"] == "Doctor profile already exists for this user"


def test_create_validates_fields(client, admin, make_user, auth_headers):
    doctor_user = make_user(Role.doctor)
    res = client.post(
        "/doctors",
        headers=auth_headers(admin),
        json={**PROFILE, "user_id": doctor_user.id, "fees": "-5", "experience": -1, "city": ""},
    )
    assert res.status_code == 422
    fields = {e["field"] for e in res.json()["errors"]}
    assert {"fees", "experience", "city"} <= fields


def test_list_includes_user_details_and_filters(client, customer, make_doctor, auth_headers):
    cardio = make_doctor(specialty="Cardiology", city="Springfield")
    make_doctor(specialty="Pediatrics", city="Shelbyville")

    res = client.get("/doctors", headers=auth_headers(customer))
    assert res.status_code == 200
    assert len(res.json()) == 2
    assert all(d["user"]["email"] for d in res.json())

    res = client.get("/doctors", params={"specialty": "cardiology"}, headers=auth_headers(customer))
    assert [d["id"] for d in res.json()] == [cardio.id]

    res = client.get("/doctors", params={"city": "SHELBYVILLE"}, headers=auth_headers(customer))
    assert len(res.json()) == 1


def test_get_doctor(client, customer, make_doctor, auth_headers):
    doctor = make_doctor()
    res = client.get(f"/doctors/{doctor.id}", headers=auth_headers(customer))
    assert res.status_code == 200
    assert res.json()["specialty"] == "Cardiology"
    assert client.get("/doctors/9999", headers=auth_headers(customer)).status_code == 404


def test_owning_doctor_updates_profile(client, db, make_doctor, auth_headers):
    doctor = make_doctor()
    owner = doctor.user

    res = client.put(
        f"/doctors/{doctor.id}",
        headers=auth_headers(owner),
        json={"fees": "200.00", "about": "Updated", "user_id": 12345},
    )
    assert res.status_code == 200
    assert res.json()["fees"] == 200.0
    assert res.json()["about"] == "Updated"
    assert res.json()["user_id"] == owner.id


def test_other_doctor_and_customer_cannot_update(client, customer, make_doctor, auth_headers):
    doctor = make_doctor()
    other = make_doctor()
    res = client.put(f"/doctors/{doctor.id}", headers=auth_headers(other.user), json={"about": "x"})
    assert res.status_code == 403
    res = client.put(f"/doctors/{doctor.id}", headers=auth_headers(customer), json={"about": "x"})
    assert res.status_code == 403


def test_admin_delete_cascades_to_timeslots_and_appointments(
    client, db, admin, customer, make_doctor, make_timeslot, auth_headers
):
    doctor = make_doctor()
    timeslot = make_timeslot(doctor)
    client.post("/appointments", headers=auth_headers(customer), json={"timeslot_id": timeslot.id})

    assert client.delete(f"/doctors/{doctor.id}", headers=auth_headers(doctor.user)).status_code == 403

    res = client.delete(f"/doctors/{doctor.id}", headers=auth_headers(admin))
    assert res.status_code == 200

    db.expire_all()
    assert db.query(Doctor).count() == 0
    assert db.query(Timeslot).count() == 0
    assert db.query(Appointment).count() == 0
