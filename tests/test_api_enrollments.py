from conftest import ADMIN_PASSWORD, auth_header


def _signup(client, **overrides):
    payload = {
        "firstName": "John",
        "lastName": "Smith",
        "email": "john@x.com",
        "sponsorName": "Admin User",
        "package": "Entry Pack",
    }
    payload.update(overrides)
    return client.post("/api/enrollments", json=payload)


# ---------------------------------------------------------
# Iscrizione pubblica
# ---------------------------------------------------------
def test_signup_returns_record_and_token_without_password(client, sent_emails):
    resp = _signup(client)
    assert resp.status_code == 201, resp.text

    body = resp.json()
    enrollment = body["enrollment"]
    assert enrollment["enrollmentId"] == "PL-1000"
    assert enrollment["fullName"] == "John Smith"
    assert enrollment["fastStartBonus"] == 50
    assert enrollment["personalVolume"] == 100
    assert enrollment["salesVolume"] == 100
    assert enrollment["teamVolume"] == 0
    assert enrollment["sponsorId"] is None
    assert enrollment["status"] == "Pending"
    assert enrollment["role"] == "user"
    assert body["token"]
    assert body["tokenType"] == "bearer"

    # la password temporanea parte solo via email
    assert body["passwordSent"] is True
    (kind, mail), = sent_emails
    assert kind == "welcome"
    assert mail["enrollment_code"] == "PL-1000"
    assert mail["temp_password"] not in resp.text
    assert "password" not in enrollment
    assert "passwordHash" not in enrollment


def test_signup_resolves_sponsor_end_to_end(client, sent_emails):
    _signup(client)
    resp = _signup(client, firstName="Mary", lastName="Jones", email="mary@x.com", sponsorName="John Smith")

    assert resp.status_code == 201
    assert resp.json()["enrollment"]["enrollmentId"] == "PL-1001"
    assert resp.json()["enrollment"]["sponsorId"] == "PL-1000"


def test_signup_accepts_snake_case_payload(client, sent_emails):
    resp = client.post(
        "/api/enrollments",
        json={
            "first_name": "Ann",
            "last_name": "Lee",
            "email": "ann@x.com",
            "sponsor_name": "Nobody",
            "package": "Pro Pack",
            "payment_method": "Bank Transfer",
            "zip_code": "00100",
        },
    )
    assert resp.status_code == 201, resp.text
    enrollment = resp.json()["enrollment"]
    assert enrollment["paymentMethod"] == "Bank Transfer"
    assert enrollment["zipCode"] == "00100"
    assert enrollment["fastStartBonus"] == 200


def test_signup_with_email_disabled_still_succeeds(client):
    resp = _signup(client)
    assert resp.status_code == 201
    assert resp.json()["passwordSent"] is False


def test_signup_duplicate_email_is_409(client, sent_emails):
    _signup(client)
    resp = _signup(client, email="JOHN@X.COM")

    assert resp.status_code == 409
    assert resp.json()["errors"][0]["field"] == "email"


def test_signup_blank_required_field_is_422_with_field_detail(client, sent_emails):
    resp = _signup(client, sponsorName="   ")

    assert resp.status_code == 422
    assert resp.json()["errors"] == [{"field": "sponsor_name", "message": "Field required"}]


def test_signup_unknown_package_is_422(client, sent_emails):
    assert _signup(client, package="Gold Pack").status_code == 422


def test_signup_overlong_fields_are_422(client, sent_emails):
    assert _signup(client, firstName="J" * 300).status_code == 422
    assert _signup(client, zipCode="1" * 21).status_code == 422
    assert sent_emails == []

    # nessun codice consumato
    assert _signup(client).json()["enrollment"]["enrollmentId"] == "PL-1000"


def test_token_from_signup_authenticates(client, sent_emails):
    token = _signup(client).json()["token"]

    me = client.get("/api/enrollments/me", headers=auth_header(token))
    assert me.status_code == 200
    assert me.json()["email"] == "john@x.com"


# ---------------------------------------------------------
# Login / password
# ---------------------------------------------------------
def test_login_with_emailed_temp_password_and_change_it(client, sent_emails):
    _signup(client)
    temp_password = sent_emails[0][1]["temp_password"]

    resp = client.post("/api/enrollments/login", json={"email": "John@x.com", "password": temp_password})
    assert resp.status_code == 200
    headers = auth_header(resp.json()["token"])

    bad = client.put(
        "/api/enrollments/me/password",
        json={"currentPassword": "wrong-one", "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert bad.status_code == 422

    ok = client.put(
        "/api/enrollments/me/password",
        json={"currentPassword": temp_password, "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert ok.status_code == 200

    old = client.post("/api/enrollments/login", json={"email": "john@x.com", "password": temp_password})
    assert old.status_code == 401
    new = client.post("/api/enrollments/login", json={"email": "john@x.com", "password": "brand-new-pass"})
    assert new.status_code == 200


def test_login_unknown_email_is_401(client):
    resp = client.post("/api/enrollments/login", json={"email": "ghost@x.com", "password": "whatever"})
    assert resp.status_code == 401


def test_requests_without_valid_token_are_rejected(client):
    missing = client.get("/api/enrollments/me")
    assert missing.status_code == 401
    assert missing.json()["detail"] == "Please authenticate."

    resp = client.get("/api/enrollments/me", headers=auth_header("garbage"))
    assert resp.status_code == 401

    basic = client.get("/api/enrollments/me", headers={"Authorization": "Basic abc"})
    assert basic.status_code == 401


# ---------------------------------------------------------
# Permessi
# ---------------------------------------------------------
def test_user_cannot_list_or_read_others(client, sent_emails, admin):
    token = _signup(client).json()["token"]
    headers = auth_header(token)

    assert client.get("/api/enrollments", headers=headers).status_code == 403
    assert client.get(f"/api/enrollments/{admin.id}", headers=headers).status_code == 403


def test_user_can_edit_own_profile_but_not_status(client, sent_emails):
    body = _signup(client).json()
    headers = auth_header(body["token"])
    pk = body["enrollment"]["id"]

    resp = client.put(
        f"/api/enrollments/{pk}",
        json={"city": "Rome", "status": "Active", "role": "admin"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["city"] == "Rome"
    assert resp.json()["status"] == "Pending"
    assert resp.json()["role"] == "user"

    assert client.patch(f"/api/enrollments/{pk}/status", json={"status": "Active"}, headers=headers).status_code == 403


# ---------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------
def test_admin_lists_and_filters(client, sent_emails, admin_headers):
    _signup(client)
    _signup(client, firstName="Mary", lastName="Jones", email="mary@x.com", package="Pro Pack")

    all_rows = client.get("/api/enrollments", headers=admin_headers).json()
    assert {r["email"] for r in all_rows} == {"admin@x.com", "john@x.com", "mary@x.com"}

    pro = client.get("/api/enrollments", params={"package": "Pro Pack"}, headers=admin_headers).json()
    assert {r["email"] for r in pro} == {"admin@x.com", "mary@x.com"}

    found = client.get("/api/enrollments", params={"q": "jones"}, headers=admin_headers).json()
    assert [r["email"] for r in found] == ["mary@x.com"]

    pending = client.get("/api/enrollments", params={"status": "Pending"}, headers=admin_headers).json()
    assert len(pending) == 3


def test_admin_sets_any_status(client, sent_emails, admin_headers):
    pk = _signup(client).json()["enrollment"]["id"]

    for status in ("Terminated", "Active", "Suspended"):
        resp = client.patch(f"/api/enrollments/{pk}/status", json={"status": status}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == status

    bad = client.patch(f"/api/enrollments/{pk}/status", json={"status": "Gone"}, headers=admin_headers)
    assert bad.status_code == 422


def test_admin_updates_team_volume(client, sent_emails, admin_headers):
    pk = _signup(client, package="Elite Pack").json()["enrollment"]["id"]

    resp = client.patch(f"/api/enrollments/{pk}/team-volume", json={"teamVolume": 350}, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["teamVolume"] == 350
    assert body["salesVolume"] == body["personalVolume"] + 350 == 550

    negative = client.patch(f"/api/enrollments/{pk}/team-volume", json={"teamVolume": -1}, headers=admin_headers)
    assert negative.status_code == 422

    huge = client.patch(f"/api/enrollments/{pk}/team-volume", json={"teamVolume": 1e12}, headers=admin_headers)
    assert huge.status_code == 422

    # entra in team_volume ma sales_volume sfora Numeric(12, 2)
    edge = client.patch(
        f"/api/enrollments/{pk}/team-volume", json={"teamVolume": 9_999_999_999.99}, headers=admin_headers
    )
    assert edge.status_code == 422
    assert edge.json()["errors"][0]["field"] == "teamVolume"


def test_profile_update_rejects_overlong_city(client, sent_emails):
    body = _signup(client).json()
    pk = body["enrollment"]["id"]

    resp = client.put(f"/api/enrollments/{pk}", json={"city": "R" * 101}, headers=auth_header(body["token"]))
    assert resp.status_code == 422


def test_admin_lookup_by_code_and_not_found(client, sent_emails, admin_headers):
    _signup(client)

    resp = client.get("/api/enrollments/code/PL-1001", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "john@x.com"

    assert client.get("/api/enrollments/code/PL-7777", headers=admin_headers).status_code == 404
    assert client.get("/api/enrollments/99999", headers=admin_headers).status_code == 404


def test_downline_lists_direct_enrollees(client, sent_emails, admin_headers):
    john = _signup(client).json()
    _signup(client, firstName="Mary", lastName="Jones", email="mary@x.com", sponsorName="john smith")
    _signup(client, firstName="Paul", lastName="Ray", email="paul@x.com", sponsorName="John Smith")
    _signup(client, firstName="Zoe", lastName="Kim", email="zoe@x.com", sponsorName="Mary Jones")

    pk = john["enrollment"]["id"]
    mine = client.get(f"/api/enrollments/{pk}/downline", headers=auth_header(john["token"]))
    assert mine.status_code == 200
    assert [r["email"] for r in mine.json()] == ["mary@x.com", "paul@x.com"]


def test_admin_deletes_enrollment(client, sent_emails, admin_headers):
    pk = _signup(client).json()["enrollment"]["id"]

    resp = client.delete(f"/api/enrollments/{pk}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Enrollment deleted"}
    assert client.get(f"/api/enrollments/{pk}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/enrollments/{pk}", headers=admin_headers).status_code == 404


def test_admin_resets_password_out_of_band(client, sent_emails, admin_headers):
    pk = _signup(client).json()["enrollment"]["id"]

    resp = client.post(f"/api/enrollments/{pk}/reset-password", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"enrollmentId": "PL-1001", "passwordSent": True}

    kind, mail = sent_emails[-1]
    assert kind == "reset"
    assert mail["temp_password"] not in resp.text

    login = client.post("/api/enrollments/login", json={"email": "john@x.com", "password": mail["temp_password"]})
    assert login.status_code == 200


def test_admin_login_with_bootstrap_password(client, admin):
    resp = client.post("/api/enrollments/login", json={"email": "admin@x.com", "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["enrollment"]["role"] == "admin"


# ---------------------------------------------------------
# Pacchetti / health
# ---------------------------------------------------------
def test_packages_catalog(client):
    resp = client.get("/api/packages")
    assert resp.status_code == 200
    rows = {p["name"]: p for p in resp.json()}
    assert rows["Entry Pack"]["fast_start_bonus"] == 50
    assert rows["Pro Pack"]["personal_volume"] == 400


def test_health(client):
    assert client.get("/health").json()["ok"] is True
