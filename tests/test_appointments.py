import datetime as dt
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from medibook.domain.timeslots.repository import TimeslotRepository
from medibook.models import Appointment, AppointmentStatus, Role, Timeslot, TimeslotStatus


def assert_booking_invariant(db):
    """A timeslot is booked exactly when one confirmed appointment points at it"""
    db.expire_all()
    for timeslot in db.query(Timeslot).all():
        confirmed = (
            db.query(Appointment)
            .filter(
                Appointment.timeslot_id == timeslot.id,
                Appointment.status == AppointmentStatus.confirmed,
            )
            .count()
        )
        assert (timeslot.status == TimeslotStatus.booked) == (confirmed == 1), timeslot.id
        assert confirmed <= 1


def book(client, headers, timeslot_id, **extra):
    return client.post("/appointments", headers=headers, json={"timeslot_id": timeslot_id, **extra})


def test_booking_scenario(client, db, customer, make_user, make_doctor, make_timeslot, auth_headers):
    doctor = make_doctor()
    timeslot = make_timeslot(doctor)

    res = book(client, auth_headers(customer), timeslot.id, notes="First visit")
    assert res.status_code == 201
    appointment = res.json()
    assert appointment["status"] == "confirmed"
    assert appointment["customer_id"] == customer.id
    assert appointment["timeslot"]["status"] == "booked"
    assert appointment["timeslot"]["doctor"]["user"]["name"] == doctor.user.name
    assert appointment["customer"]["email"] == customer.email
    assert_booking_invariant(db)

    second = make_user(Role.customer)
    res = book(client, auth_headers(second), timeslot.id)
    assert res.status_code == 400
    assert res.json()["detail"] == "Timeslot is not available"

    res = client.delete(f"/timeslots/{timeslot.id}", headers=auth_headers(doctor.user))
    assert res.status_code == 400

    res = client.delete(f"/appointments/{appointment['id']}", headers=auth_headers(customer))
    assert res.status_code == 200
    assert res.json() == {"message": "Appointment deleted successfully"}
    assert_booking_invariant(db)

    res = client.delete(f"/timeslots/{timeslot.id}", headers=auth_headers(doctor.user))
    assert res.status_code == 200


def test_only_customers_book(client, admin, make_doctor, make_timeslot, auth_headers):
    doctor = make_doctor()
    timeslot = make_timeslot(doctor)
    assert book(client, auth_headers(doctor.user), timeslot.id).status_code == 403
    assert book(client, auth_headers(admin), timeslot.id).status_code == 403


def test_booking_missing_or_unavailable_timeslot(client, customer, make_doctor, make_timeslot, auth_headers):
    doctor = make_doctor()
    closed = make_timeslot(doctor, status=TimeslotStatus.unavailable)

    res = book(client, auth_headers(customer), 9999)
    assert res.status_code == 404

    res = book(client, auth_headers(customer), closed.id)
    assert res.status_code == 400
    assert res.json()["detail"] == "Timeslot is not available"


def test_notes_are_sanitized(client, customer, make_doctor, make_timeslot, auth_headers):
    timeslot = make_timeslot(make_doctor())
    res = book(client, auth_headers(customer), timeslot.id, notes="<script>x</script><b>Bring</b> records")
    assert res.status_code == 201
    assert "<" not in res.json()["notes"]
    assert "Bring records" in res.json()["notes"]


def test_stale_read_loses_to_guarded_update(
    client, db, customer, make_user, make_doctor, make_timeslot, auth_headers, monkeypatch
):
    """Two customers both saw the timeslot as available; only the first write wins"""
    timeslot = make_timeslot(make_doctor())
    assert book(client, auth_headers(customer), timeslot.id).status_code == 201

    stale = SimpleNamespace(id=timeslot.id, status=TimeslotStatus.available)
    monkeypatch.setattr(TimeslotRepository, "lock_timeslot", staticmethod(lambda db, timeslot_id: stale))

    late = make_user(Role.customer)
    res = book(client, auth_headers(late), timeslot.id)
    assert res.status_code == 400
    assert res.json()["detail"] == "Timeslot is not available"

    db.expire_all()
    assert db.query(Appointment).count() == 1
    assert_booking_invariant(db)


def test_unique_index_is_last_line_of_defence(
    client, db, customer, make_user, make_doctor, make_timeslot, auth_headers, monkeypatch
):
    timeslot = make_timeslot(make_doctor())
    assert book(client, auth_headers(customer), timeslot.id).status_code == 201

    stale = SimpleNamespace(id=timeslot.id, status=TimeslotStatus.available)
    monkeypatch.setattr(TimeslotRepository, "lock_timeslot", staticmethod(lambda db, timeslot_id: stale))
    monkeypatch.setattr(
        TimeslotRepository, "transition_status", staticmethod(lambda db, tid, frm, to: True)
    )

    late = make_user(Role.customer)
    res = book(client, auth_headers(late), timeslot.id)
    assert res.status_code == 400
    assert res.json()["detail"] == "Timeslot is not available"

    db.expire_all()
    assert db.query(Appointment).count() == 1
    assert_booking_invariant(db)


def test_storage_rejects_second_confirmed_appointment(db, customer, make_doctor, make_timeslot):
    timeslot = make_timeslot(make_doctor(), status=TimeslotStatus.booked)
    db.add(Appointment(timeslot_id=timeslot.id, customer_id=customer.id))
    db.commit()

    db.add(Appointment(timeslot_id=timeslot.id, customer_id=customer.id))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    # canceled rows do not count against the index
    db.add(
        Appointment(
            timeslot_id=timeslot.id, customer_id=customer.id, status=AppointmentStatus.canceled
        )
    )
    db.commit()
    assert db.query(Appointment).count() == 2


def test_cancel_releases_timeslot_and_allows_rebooking(
    client, db, customer, make_user, make_doctor, make_timeslot, auth_headers
):
    timeslot = make_timeslot(make_doctor())
    appt = book(client, auth_headers(customer), timeslot.id).json()

    res = client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"status": "canceled"})
    assert res.status_code == 200
    assert res.json()["status"] == "canceled"
    assert res.json()["timeslot"]["status"] == "available"
    assert_booking_invariant(db)

    other = make_user(Role.customer)
    assert book(client, auth_headers(other), timeslot.id).status_code == 201
    assert_booking_invariant(db)


def test_canceled_appointment_is_terminal(client, customer, make_doctor, make_timeslot, auth_headers):
    doctor = make_doctor()
    timeslot = make_timeslot(doctor)
    spare = make_timeslot(doctor, start=dt.time(13, 0), end=dt.time(14, 0))
    appt = book(client, auth_headers(customer), timeslot.id).json()
    client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"status": "canceled"})

    res = client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"status": "confirmed"})
    assert res.status_code == 400

    res = client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"timeslot_id": spare.id})
    assert res.status_code == 400

    res = client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"notes": "Sorry"})
    assert res.status_code == 200
    assert res.json()["notes"] == "Sorry"


def test_reschedule_moves_booking(client, db, customer, make_doctor, make_timeslot, auth_headers):
    doctor = make_doctor()
    old = make_timeslot(doctor)
    new = make_timeslot(doctor, start=dt.time(13, 0), end=dt.time(14, 0))
    appt = book(client, auth_headers(customer), old.id).json()

    res = client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"timeslot_id": new.id})
    assert res.status_code == 200
    assert res.json()["timeslot_id"] == new.id

    db.expire_all()
    assert db.get(Timeslot, old.id).status == TimeslotStatus.available
    assert db.get(Timeslot, new.id).status == TimeslotStatus.booked
    assert_booking_invariant(db)


def test_reschedule_to_unavailable_timeslot_changes_nothing(
    client, db, customer, make_user, make_doctor, make_timeslot, auth_headers
):
    doctor = make_doctor()
    mine = make_timeslot(doctor)
    taken = make_timeslot(doctor, start=dt.time(13, 0), end=dt.time(14, 0))
    appt = book(client, auth_headers(customer), mine.id).json()
    book(client, auth_headers(make_user(Role.customer)), taken.id)

    res = client.put(
        f"/appointments/{appt['id']}",
        headers=auth_headers(customer),
        json={"timeslot_id": taken.id, "notes": "move me"},
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "New timeslot is not available"

    res = client.put(f"/appointments/{appt['id']}", headers=auth_headers(customer), json={"timeslot_id": 9999})
    assert res.status_code == 400

    db.expire_all()
    stored = db.get(Appointment, appt["id"])
    assert stored.timeslot_id == mine.id
    assert stored.notes is None
    assert_booking_invariant(db)


def test_delete_canceled_appointment_leaves_timeslot(
    client, db, customer, make_user, make_doctor, make_timeslot, auth_headers
):
    timeslot = make_timeslot(make_doctor())
    first = book(client, auth_headers(customer), timeslot.id).json()
    client.put(f"/appointments/{first['id']}", headers=auth_headers(customer), json={"status": "canceled"})
    other = make_user(Role.customer)
    book(client, auth_headers(other), timeslot.id)

    assert client.delete(f"/appointments/{first['id']}", headers=auth_headers(customer)).status_code == 200

    db.expire_all()
    assert db.get(Timeslot, timeslot.id).status == TimeslotStatus.booked
    assert_booking_invariant(db)


def test_read_access(client, customer, make_user, make_doctor, make_timeslot, auth_headers, admin):
    doctor = make_doctor()
    other_doctor = make_doctor()
    appt = book(client, auth_headers(customer), make_timeslot(doctor).id).json()
    url = f"/appointments/{appt['id']}"

    assert client.get(url, headers=auth_headers(customer)).status_code == 200
    assert client.get(url, headers=auth_headers(doctor.user)).status_code == 200
    assert client.get(url, headers=auth_headers(admin)).status_code == 200
    assert client.get(url, headers=auth_headers(other_doctor.user)).status_code == 403
    assert client.get(url, headers=auth_headers(make_user(Role.customer))).status_code == 403
    assert client.get("/appointments/9999", headers=auth_headers(admin)).status_code == 404


def test_only_booking_customer_or_admin_changes_appointment(
    client, admin, customer, make_user, make_doctor, make_timeslot, auth_headers
):
    doctor = make_doctor()
    appt = book(client, auth_headers(customer), make_timeslot(doctor).id).json()
    url = f"/appointments/{appt['id']}"

    assert client.put(url, headers=auth_headers(doctor.user), json={"notes": "x"}).status_code == 403
    assert client.delete(url, headers=auth_headers(make_user(Role.customer))).status_code == 403
    assert client.put(url, headers=auth_headers(admin), json={"notes": "admin note"}).status_code == 200
    assert client.delete(url, headers=auth_headers(admin)).status_code == 200


def test_list_is_scoped_by_role(client, admin, customer, make_user, make_doctor, make_timeslot, auth_headers):
    doctor = make_doctor()
    other_doctor = make_doctor()
    other_customer = make_user(Role.customer)

    mine = book(client, auth_headers(customer), make_timeslot(doctor).id).json()
    theirs = book(client, auth_headers(other_customer), make_timeslot(other_doctor).id).json()

    res = client.get("/appointments", headers=auth_headers(customer))
    assert [a["id"] for a in res.json()] == [mine["id"]]

    res = client.get("/appointments", headers=auth_headers(other_doctor.user))
    assert [a["id"] for a in res.json()] == [theirs["id"]]

    res = client.get("/appointments", headers=auth_headers(admin))
    assert {a["id"] for a in res.json()} == {mine["id"], theirs["id"]}

    client.put(f"/appointments/{mine['id']}", headers=auth_headers(customer), json={"status": "canceled"})
    res = client.get("/appointments", params={"status": "canceled"}, headers=auth_headers(admin))
    assert [a["id"] for a in res.json()] == [mine["id"]]


def test_list_for_doctor_without_profile_is_404(client, make_user, auth_headers):
    res = client.get("/appointments", headers=auth_headers(make_user(Role.doctor)))
    assert res.status_code == 404


def test_deleted_account_cannot_book(client, db, customer, make_doctor, make_timeslot, auth_headers):
    timeslot = make_timeslot(make_doctor())
    headers = auth_headers(customer)
    assert client.delete("/users/me", headers=headers).status_code == 200

    res = book(client, headers, timeslot.id)
    assert res.status_code == 404
    assert res.json()["detail"] == "User not found"

    db.expire_all()
    assert db.query(Appointment).count() == 0
    assert db.get(Timeslot, timeslot.id).status == TimeslotStatus.available
