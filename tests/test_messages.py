"""Messaging between students, teachers and admins."""
from app.models.message import Message
from app.models.user import UserRole


def _send(client, headers, user, **body):
    body.setdefault("title", "Question")
    body.setdefault("content", "How do fractions work?")
    return client.post("/api/messages", json=body, headers=headers(user))


def test_student_message_goes_to_every_teacher(db, client, headers, student, make_user):
    first, second = make_user(UserRole.TEACHER), make_user(UserRole.TEACHER)
    make_user(UserRole.ADMIN)

    res = _send(client, headers, student)
    assert res.status_code == 201
    assert {m["recipient_id"] for m in res.json()} == {first.id, second.id}
    assert db.query(Message).count() == 2

    inbox = client.get("/api/messages", headers=headers(first)).json()
    assert len(inbox) == 1
    assert inbox[0]["sender_name"] == student.full_name
    assert inbox[0]["is_broadcast"] is False


def test_student_without_teachers(client, headers, student):
    res = _send(client, headers, student)
    assert res.status_code == 400


def test_student_can_message_one_teacher_only(client, headers, student, teacher, make_user):
    assert _send(client, headers, student, recipient_id=teacher.id).status_code == 201
    classmate = make_user(UserRole.STUDENT)
    assert _send(client, headers, student, recipient_id=classmate.id).status_code == 403
    assert _send(client, headers, student, broadcast=True).status_code == 403


def test_teacher_broadcast_reaches_everyone_else(client, headers, teacher, student, make_user):
    other = make_user(UserRole.STUDENT)
    res = _send(client, headers, teacher, title="Exam", content="Friday 9am", broadcast=True)
    assert res.status_code == 201
    assert res.json()[0]["recipient_id"] is None

    for user in (student, other):
        titles = [m["title"] for m in client.get("/api/messages", headers=headers(user)).json()]
        assert titles == ["Exam"]
    assert client.get("/api/messages", headers=headers(teacher)).json() == []
    assert [m["title"] for m in client.get("/api/messages/sent", headers=headers(teacher)).json()] == ["Exam"]


def test_teacher_must_pick_recipient_or_broadcast(client, headers, teacher):
    assert _send(client, headers, teacher).status_code == 400


def test_blank_title_or_content_rejected(client, headers, teacher, student):
    assert _send(client, headers, teacher, recipient_id=student.id, title="  ").status_code == 400
    assert _send(client, headers, teacher, recipient_id=student.id, content="").status_code == 400


def test_unknown_recipient(client, headers, teacher):
    assert _send(client, headers, teacher, recipient_id="nobody").status_code == 404


def test_mark_read_only_by_recipient(client, headers, teacher, student, make_user):
    message_id = _send(client, headers, teacher, recipient_id=student.id).json()[0]["id"]
    stranger = make_user(UserRole.STUDENT)

    assert client.post(f"/api/messages/{message_id}/read", headers=headers(stranger)).status_code == 404
    res = client.post(f"/api/messages/{message_id}/read", headers=headers(student))
    assert res.status_code == 200
    first_read = res.json()["read_at"]
    assert first_read is not None

    again = client.post(f"/api/messages/{message_id}/read", headers=headers(student)).json()
    assert again["read_at"] == first_read


def test_broadcast_has_no_read_state(client, headers, teacher, student):
    message_id = _send(client, headers, teacher, broadcast=True).json()[0]["id"]
    assert client.post(f"/api/messages/{message_id}/read", headers=headers(student)).status_code == 404


def test_admin_moderation(db, client, headers, admin, teacher, student):
    message_id = _send(client, headers, teacher, recipient_id=student.id).json()[0]["id"]

    assert client.get("/api/messages/all", headers=headers(teacher)).status_code == 403
    assert client.delete(f"/api/messages/{message_id}", headers=headers(teacher)).status_code == 403

    everything = client.get("/api/messages/all", headers=headers(admin)).json()
    assert [m["id"] for m in everything] == [message_id]

    assert client.delete(f"/api/messages/{message_id}", headers=headers(admin)).status_code == 200
    assert db.query(Message).count() == 0
    assert client.delete(f"/api/messages/{message_id}", headers=headers(admin)).status_code == 404


def test_banned_user_cannot_send(client, headers, student, teacher, ban):
    ban(student)
    assert _send(client, headers, student, recipient_id=teacher.id).status_code == 403
