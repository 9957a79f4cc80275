from medibook.models import Message, Role


def send(client, headers, receiver_id, content="Hello there"):
    return client.post("/messages", headers=headers, json={"receiver_id": receiver_id, "content": content})


def test_send_message(client, customer, make_doctor, auth_headers):
    doctor = make_doctor()
    res = send(client, auth_headers(customer), doctor.user_id, "Is Tuesday ok?")
    assert res.status_code == 201
    body = res.json()
    assert body["sender_id"] == customer.id
    assert body["receiver_id"] == doctor.user_id
    assert body["is_read"] is False
    assert body["sender"]["email"] == customer.email
    assert body["receiver"]["name"] == doctor.user.name


def test_send_to_missing_receiver_is_404(client, customer, auth_headers):
    res = send(client, auth_headers(customer), 9999)
    assert res.status_code == 404
    assert res.json()["detail"] == "Receiver not found"


def test_content_is_sanitized(client, customer, make_user, auth_headers):
    other = make_user(Role.customer)
    res = send(client, auth_headers(customer), other.id, "<img src=x onerror=alert(1)>Hi <b>there</b>")
    assert res.status_code == 201
    assert res.json()["content"] == "Hi there"

    res = send(client, auth_headers(customer), other.id, "<p>   </p>")
    assert res.status_code == 422


def test_list_is_scoped_and_newest_first(client, db, admin, customer, make_user, auth_headers):
    friend = make_user(Role.customer)
    stranger = make_user(Role.customer)

    first = send(client, auth_headers(customer), friend.id, "first").json()
    second = send(client, auth_headers(friend), customer.id, "second").json()
    send(client, auth_headers(stranger), friend.id, "not for customer")

    res = client.get("/messages", headers=auth_headers(customer))
    assert [m["id"] for m in res.json()] == [second["id"], first["id"]]

    res = client.get("/messages", headers=auth_headers(admin))
    assert len(res.json()) == 3


def test_unread_only_lists_unread_received(client, customer, make_user, auth_headers):
    friend = make_user(Role.customer)
    read_me = send(client, auth_headers(friend), customer.id, "one").json()
    unread = send(client, auth_headers(friend), customer.id, "two").json()
    send(client, auth_headers(customer), friend.id, "mine")

    client.put(f"/messages/{read_me['id']}/read", headers=auth_headers(customer))

    res = client.get("/messages", params={"unread_only": True}, headers=auth_headers(customer))
    assert [m["id"] for m in res.json()] == [unread["id"]]


def test_participants_read_and_third_party_cannot(client, admin, customer, make_user, auth_headers):
    friend = make_user(Role.customer)
    stranger = make_user(Role.customer)
    msg = send(client, auth_headers(customer), friend.id).json()
    url = f"/messages/{msg['id']}"

    assert client.get(url, headers=auth_headers(customer)).status_code == 200
    assert client.get(url, headers=auth_headers(friend)).status_code == 200
    assert client.get(url, headers=auth_headers(admin)).status_code == 200
    assert client.get(url, headers=auth_headers(stranger)).status_code == 403
    assert client.get("/messages/9999", headers=auth_headers(admin)).status_code == 404


def test_only_receiver_marks_read(client, db, customer, make_user, auth_headers):
    friend = make_user(Role.customer)
    msg = send(client, auth_headers(customer), friend.id).json()
    url = f"/messages/{msg['id']}/read"

    assert client.put(url, headers=auth_headers(customer)).status_code == 403

    res = client.put(url, headers=auth_headers(friend))
    assert res.status_code == 200
    assert res.json() == {"message": "Message marked as read", "is_read": True}

    db.expire_all()
    assert db.get(Message, msg["id"]).is_read is True


def test_delete_by_participant(client, db, customer, make_user, auth_headers):
    friend = make_user(Role.customer)
    stranger = make_user(Role.customer)
    msg = send(client, auth_headers(customer), friend.id).json()
    url = f"/messages/{msg['id']}"

    assert client.delete(url, headers=auth_headers(stranger)).status_code == 403

    res = client.delete(url, headers=auth_headers(friend))
    assert res.status_code == 200
    assert res.json() == {"message": "Message deleted successfully"}

    db.expire_all()
    assert db.query(Message).count() == 0


def test_messages_require_authentication(client):
    assert client.get("/messages").status_code == 401


def test_deleted_account_cannot_send(client, db, customer, make_user, auth_headers):
    other = make_user(Role.customer)
    headers = auth_headers(customer)
    assert client.delete("/users/me", headers=headers).status_code == 200

    res = send(client, headers, other.id)
    assert res.status_code == 404
    assert res.json()["detail"] == "User not found"
    assert db.query(Message).count() == 0
