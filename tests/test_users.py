"""
User API tests: profile and self-service update, listing, lookup and
search, administrator updates and account deletion.
"""

from sqlalchemy import func, select

from mss.models.token import Token
from tests.helpers import (
    ADMIN_PASSWORD,
    API,
    USER_PASSWORD,
    auth_header,
    create_admin_in_db,
    create_user_in_db,
    get_user,
    login,
    unique_email,
)


def admin_session(client, db_session):
    email = unique_email("admin")
    admin = create_admin_in_db(db_session, email=email)
    return admin, login(client, email, ADMIN_PASSWORD)["accessToken"]


def test_profile_requires_token(client):
    r = client.get(f"{API}/users/user")
    assert r.status_code == 401


def test_profile_rejects_garbage_token(client):
    r = client.get(f"{API}/users/user", headers=auth_header("not-a-jwt"))
    assert r.status_code == 401
    assert r.text.startswith("Invalid token: ")


def test_delete_without_authentication_is_not_found(client, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    r = client.delete(f"{API}/users/id/{user.id}")
    assert r.status_code == 404
    assert r.json()["detail"] == "Resource is not found."


def test_delete_requires_admin_delete(client, db_session):
    email = unique_email()
    create_user_in_db(db_session, email=email)
    other = create_user_in_db(db_session, email=unique_email())
    token = login(client, email, USER_PASSWORD)["accessToken"]

    r = client.delete(f"{API}/users/id/{other.id}", headers=auth_header(token))
    assert r.status_code == 403


def test_admin_deletes_user(client, db_session):
    _, token = admin_session(client, db_session)
    email = unique_email()
    user = create_user_in_db(db_session, email=email)
    user_id = user.id
    user_token = login(client, email, USER_PASSWORD)["accessToken"]

    r = client.delete(f"{API}/users/id/{user_id}", headers=auth_header(token))
    assert r.status_code == 204

    deleted = get_user(db_session, email)
    assert deleted.is_deleted is True
    assert deleted.deleted_at is not None
    remaining = db_session.scalar(select(func.count()).select_from(Token).where(Token.user_id == user_id))
    assert remaining == 0

    # the deleted user can neither use the old token nor log in
    assert client.get(f"{API}/users/user", headers=auth_header(user_token)).status_code == 401
    relogin = client.post(f"{API}/auth/authenticate", json={"email": email, "password": USER_PASSWORD})
    assert relogin.status_code == 401

    again = client.delete(f"{API}/users/id/{user_id}", headers=auth_header(token))
    assert again.status_code == 404


def test_admin_cannot_be_deleted(client, db_session):
    _, token = admin_session(client, db_session)
    other_admin = create_admin_in_db(db_session, email=unique_email("admin"))

    r = client.delete(f"{API}/users/id/{other_admin.id}", headers=auth_header(token))
    assert r.status_code == 403
    assert r.json()["detail"] == "Admin cannot be deleted"


def test_delete_unknown_user(client, db_session):
    _, token = admin_session(client, db_session)
    r = client.delete(f"{API}/users/id/999999", headers=auth_header(token))
    assert r.status_code == 404


def test_list_users_excludes_deleted(client, db_session):
    _, token = admin_session(client, db_session)
    active = create_user_in_db(db_session, email=unique_email())
    gone = create_user_in_db(db_session, email=unique_email("gone"))
    gone.is_deleted = True
    db_session.commit()

    r = client.get(f"{API}/users", headers=auth_header(token))
    assert r.status_code == 200, r.text
    emails = {u["email"] for u in r.json()}
    assert active.email in emails
    assert gone.email not in emails


def test_get_user_by_id_requires_admin_read(client, db_session):
    _, token = admin_session(client, db_session)
    email = unique_email()
    user = create_user_in_db(db_session, email=email)

    r = client.get(f"{API}/users/id/{user.id}", headers=auth_header(token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["email"] == email
    assert body["mobileNumber"] == "0123456789"
    assert body["isDeleted"] is False

    missing = client.get(f"{API}/users/id/999999", headers=auth_header(token))
    assert missing.status_code == 404
    assert missing.json()["detail"] == "User with this id doesn't exist"

    user_token = login(client, email, USER_PASSWORD)["accessToken"]
    forbidden = client.get(f"{API}/users/id/{user.id}", headers=auth_header(user_token))
    assert forbidden.status_code == 403


def test_user_details_and_self_update(client, db_session):
    email = unique_email()
    create_user_in_db(db_session, email=email)
    token = login(client, email, USER_PASSWORD)["accessToken"]

    details = client.get(f"{API}/users/user-details", headers=auth_header(token))
    assert details.status_code == 200, details.text
    assert details.json()["email"] == email

    r = client.put(
        f"{API}/users/user-details-update",
        json={
            "firstname": "Janet",
            "lastname": "Smith",
            "email": email,
            "mobileNumber": "0987654321",
            "dateOfBirth": "1990-05-17",
            "address": "1 Garage Street",
            "isDeleted": True,
        },
        headers=auth_header(token),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["firstname"] == "Janet"
    assert body["dateOfBirth"] == "1990-05-17"
    # only administrators can change the deletion status
    assert body["isDeleted"] is False

    user = get_user(db_session, email)
    assert user.lastname == "Smith"
    assert user.address == "1 Garage Street"


def test_self_update_rejects_taken_email(client, db_session):
    email = unique_email()
    create_user_in_db(db_session, email=email)
    other = create_user_in_db(db_session, email=unique_email())
    token = login(client, email, USER_PASSWORD)["accessToken"]

    r = client.put(
        f"{API}/users/user-details-update",
        json={"firstname": "Jane", "lastname": "Doe", "email": other.email},
        headers=auth_header(token),
    )
    assert r.status_code == 409
    assert get_user(db_session, email) is not None


def test_admin_updates_and_restores_user(client, db_session):
    _, token = admin_session(client, db_session)
    email = unique_email()
    user = create_user_in_db(db_session, email=email)
    user_id = user.id
    body = {"firstname": "Mark", "lastname": "Mechanic", "email": email, "isDeleted": True}

    deleted = client.put(f"{API}/users/id/{user_id}", json=body, headers=auth_header(token))
    assert deleted.status_code == 200, deleted.text
    assert deleted.json()["isDeleted"] is True
    assert get_user(db_session, email).deleted_at is not None

    body["isDeleted"] = False
    restored = client.put(f"{API}/users/id/{user_id}", json=body, headers=auth_header(token))
    assert restored.status_code == 200, restored.text
    user = get_user(db_session, email)
    assert user.is_deleted is False
    assert user.deleted_at is None
    assert user.firstname == "Mark"

    missing = client.put(f"{API}/users/id/999999", json=body, headers=auth_header(token))
    assert missing.status_code == 404
    assert missing.json()["detail"] == "User with this id doesn't exist"


def test_admin_update_requires_admin_update(client, db_session):
    email = unique_email()
    user = create_user_in_db(db_session, email=email)
    token = login(client, email, USER_PASSWORD)["accessToken"]

    r = client.put(
        f"{API}/users/id/{user.id}",
        json={"firstname": "Jane", "lastname": "Doe", "email": email},
        headers=auth_header(token),
    )
    assert r.status_code == 403


def test_admin_update_cannot_delete_admin(client, db_session):
    _, token = admin_session(client, db_session)
    email = unique_email("admin")
    other_admin = create_admin_in_db(db_session, email=email)

    r = client.put(
        f"{API}/users/id/{other_admin.id}",
        json={"firstname": "Other", "lastname": "Admin", "email": email, "isDeleted": True},
        headers=auth_header(token),
    )
    assert r.status_code == 403
    assert get_user(db_session, email).is_deleted is False


def test_search_users(client, db_session):
    _, token = admin_session(client, db_session)
    for first, phone in [("Alice", "061-111-2222"), ("Alan", "0613334444"), ("Bob", "0615556666")]:
        user = create_user_in_db(db_session, email=unique_email(first.lower()))
        user.firstname = first
        user.lastname = "Wrench"
        user.mobile_number = phone.replace("-", "")
        db_session.commit()

    r = client.post(
        f"{API}/users/search",
        params={"page": 0, "pageSize": 1},
        json={"fullName": "al"},
        headers=auth_header(token),
    )
    assert r.status_code == 200, r.text
    assert [u["firstname"] for u in r.json()] == ["Alan"]
    assert r.headers["X-Total-Items"] == "2"
    assert r.headers["X-Total-Pages"] == "2"
    assert r.headers["X-Current-Page"] == "0"

    by_phone = client.post(
        f"{API}/users/search",
        json={"phoneNumber": "061-111"},
        headers=auth_header(token),
    )
    assert [u["firstname"] for u in by_phone.json()] == ["Alice"]

    deleted_only = client.post(f"{API}/users/search", json={"isDeleted": True}, headers=auth_header(token))
    assert deleted_only.status_code == 200
    assert deleted_only.json() == []


def test_search_requires_admin_read(client, db_session):
    email = unique_email()
    create_user_in_db(db_session, email=email)
    token = login(client, email, USER_PASSWORD)["accessToken"]

    r = client.post(f"{API}/users/search", json={}, headers=auth_header(token))
    assert r.status_code == 403


def test_authenticated_resend_verification(client, db_session, mailer):
    _, token = admin_session(client, db_session)
    pending = unique_email("pending")
    create_user_in_db(db_session, email=pending, enabled=False)

    r = client.post(f"{API}/users", json={"email": pending}, headers=auth_header(token))
    assert r.status_code == 201
    assert r.text == "Verification code successfully sent."
    assert pending in mailer.verification_codes

    verified = create_user_in_db(db_session, email=unique_email())
    again = client.post(f"{API}/users", json={"email": verified.email}, headers=auth_header(token))
    assert again.status_code == 400
    assert again.text == "User is already verified"
