import pytest


def test_health_check(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"


# -------- AUTH TESTS --------
def test_register_verify_and_login(client, mailer, user_data):
    # Register new user
    r = client.post("/auth/register", json=user_data)
    assert r.status_code == 201
    user_id = r.json()["userId"]
    assert "token" not in r.json()
    assert len(mailer.sent) == 1

    # Duplicate email, different case
    dup = dict(user_data, email="ALICE@Example.com")
    r2 = client.post("/auth/register", json=dup)
    assert r2.status_code == 409

    # Verify
    r3 = client.post("/auth/verify-otp", json={"userId": user_id, "otp": mailer.last_code(user_data["email"])})
    assert r3.status_code == 200
    body = r3.json()
    assert body["token"]
    assert body["user"]["isEmailVerified"] is True
    assert body["user"]["authProvider"] == "local"

    # Login with correct credentials
    r4 = client.post("/auth/login", json={"email": user_data["email"], "password": user_data["password"]})
    assert r4.status_code == 200
    token = r4.json()["token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == user_data["email"]


def test_login_failures_are_indistinguishable(client, auth_header, user_data):
    wrong_pw = client.post("/auth/login", json={"email": user_data["email"], "password": "wrongpw"})
    no_user = client.post("/auth/login", json={"email": "somebody@example.com", "password": "wrongpw"})
    assert wrong_pw.status_code == 401
    assert no_user.status_code == 401
    assert wrong_pw.json() == no_user.json()


def test_login_unverified_requires_verification(client, mailer, user_data):
    r = client.post("/auth/register", json=user_data)
    user_id = r.json()["userId"]
    first_code = mailer.last_code(user_data["email"])

    r2 = client.post("/auth/login", json={"email": user_data["email"], "password": user_data["password"]})
    assert r2.status_code == 403
    error = r2.json()["error"]
    assert error["type"] == "verification_required"
    assert error["requiresVerification"] is True
    assert error["userId"] == user_id
    assert "token" not in r2.json()
    assert len(mailer.sent) == 2

    # The first code was superseded by the one sent at login.
    second_code = mailer.last_code(user_data["email"])
    if first_code != second_code:
        stale = client.post("/auth/verify-otp", json={"userId": user_id, "otp": first_code})
        assert stale.status_code == 400
    ok = client.post("/auth/verify-otp", json={"userId": user_id, "otp": second_code})
    assert ok.status_code == 200


def test_profile_requires_auth(client, auth_header):
    # No token
    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"

    # Valid token
    r2 = client.get("/auth/me", headers=auth_header)
    assert r2.status_code == 200
    assert r2.json()["user"]["name"] == "Alice"


def test_update_profile(client, auth_header):
    r = client.put("/auth/profile", json={"name": "  Alice Liddell "}, headers=auth_header)
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice Liddell"

    r2 = client.put("/auth/profile", json={"name": "A"}, headers=auth_header)
    assert r2.status_code == 422

    r3 = client.put("/auth/profile", json={"name": "Bob"})
    assert r3.status_code == 401


def test_register_validation(client):
    r = client.post("/auth/register", json={"name": "A", "email": "not-an-email", "password": "123"})
    assert r.status_code == 422
    error = r.json()["error"]
    assert error["type"] == "validation_error"
    fields = {d["field"] for d in error["details"]}
    assert fields == {"name", "email", "password"}


def test_logout(client, auth_header):
    assert client.post("/auth/logout", headers=auth_header).status_code == 200
    assert client.post("/auth/logout").status_code == 200


# ------- NOTES CRUD --------
def test_notes_crud(client, auth_header):
    # Empty notes list
    r = client.get("/notes/", headers=auth_header)
    assert r.status_code == 200
    assert r.json()["notes"] == []
    assert r.json()["pagination"] == {"current": 1, "pages": 0, "total": 0, "limit": 20}

    # Create a note (valid)
    note_data = {"title": "First", "content": "Hello note", "tags": ["work", " ", 7, "work", " ideas "]}
    r2 = client.post("/notes/", json=note_data, headers=auth_header)
    assert r2.status_code == 201
    note = r2.json()["note"]
    assert note["title"] == "First"
    assert note["content"] == "Hello note"
    assert note["tags"] == ["work", "ideas"]
    assert note["isPinned"] is False
    assert note["backgroundColor"] == "#ffffff"
    note_id = note["id"]

    # List notes (should include the new one)
    notes = client.get("/notes/", headers=auth_header).json()["notes"]
    assert len(notes) == 1
    assert notes[0]["title"] == "First"

    # Get note by ID (success)
    r3 = client.get(f"/notes/{note_id}", headers=auth_header)
    assert r3.status_code == 200
    assert r3.json()["note"]["id"] == note_id

    # Update note (partial)
    update = {"content": "Updated!", "title": "Renamed"}
    r4 = client.put(f"/notes/{note_id}", json=update, headers=auth_header)
    assert r4.status_code == 200
    assert r4.json()["note"]["content"] == "Updated!"
    assert r4.json()["note"]["title"] == "Renamed"
    assert r4.json()["note"]["tags"] == ["work", "ideas"]

    # Pin
    r5 = client.patch(f"/notes/{note_id}/pin", headers=auth_header)
    assert r5.status_code == 200
    assert r5.json()["note"]["isPinned"] is True
    assert r5.json()["message"] == "Note pinned successfully"

    # Delete note
    r6 = client.delete(f"/notes/{note_id}", headers=auth_header)
    assert r6.status_code == 200

    # Ensure note gone
    r7 = client.get(f"/notes/{note_id}", headers=auth_header)
    assert r7.status_code == 404


def test_update_only_overwrites_supplied_fields(client, auth_header):
    created = client.post(
        "/notes/",
        json={"title": "Keep", "content": "old", "tags": ["a", "b"], "backgroundColor": "#abc"},
        headers=auth_header,
    ).json()["note"]
    client.patch(f"/notes/{created['id']}/pin", headers=auth_header)

    r = client.put(f"/notes/{created['id']}", json={"content": "new"}, headers=auth_header)
    assert r.status_code == 200
    note = r.json()["note"]
    assert note["content"] == "new"
    assert note["title"] == "Keep"
    assert note["tags"] == ["a", "b"]
    assert note["isPinned"] is True
    assert note["backgroundColor"] == "#abc"


def test_notes_auth_required(client):
    # All notes endpoints must require auth
    r = client.get("/notes/")
    assert r.status_code == 401
    r2 = client.post("/notes/", json={"title": "x", "content": "y"})
    assert r2.status_code == 401
    r3 = client.get("/notes/123")
    assert r3.status_code == 401
    r4 = client.get("/notes/stats/overview")
    assert r4.status_code == 401


def test_notes_multi_user(client, auth_header, second_auth_header):
    # User 1 adds note
    note_data = {"title": "U1 note", "content": "Owned"}
    r = client.post("/notes/", json=note_data, headers=auth_header)
    note_id = r.json()["note"]["id"]

    # User 2 cannot see, change, pin or delete
    notes2 = client.get("/notes/", headers=second_auth_header).json()["notes"]
    assert all(n["id"] != note_id for n in notes2)

    missing = client.get("/notes/999999", headers=second_auth_header)
    r2 = client.get(f"/notes/{note_id}", headers=second_auth_header)
    assert r2.status_code == 404
    assert r2.json() == missing.json()

    r3 = client.put(f"/notes/{note_id}", json={"title": "hax"}, headers=second_auth_header)
    assert r3.status_code == 404

    r4 = client.patch(f"/notes/{note_id}/pin", headers=second_auth_header)
    assert r4.status_code == 404

    r5 = client.delete(f"/notes/{note_id}", headers=second_auth_header)
    assert r5.status_code == 404

    # Still intact for the owner
    r6 = client.get(f"/notes/{note_id}", headers=auth_header)
    assert r6.json()["note"]["title"] == "U1 note"
    assert r6.json()["note"]["isPinned"] is False


def test_notes_search(client, auth_header):
    # Insert several notes
    for i in range(3):
        client.post("/notes/", json={"title": f"todo-{i}", "content": "mytask"}, headers=auth_header)
    client.post("/notes/", json={"title": "Meeting", "content": "work"}, headers=auth_header)
    client.post("/notes/", json={"title": "Plain", "content": "text", "tags": ["Groceries"]}, headers=auth_header)
    # Search by title
    r = client.get("/notes/?search=TODO", headers=auth_header)
    assert r.status_code == 200
    found = [note["title"] for note in r.json()["notes"]]
    assert sorted(found) == ["todo-0", "todo-1", "todo-2"]
    # Search by content
    r2 = client.get("/notes/?search=work", headers=auth_header)
    assert [n["title"] for n in r2.json()["notes"]] == ["Meeting"]
    # Search by tag
    r3 = client.get("/notes/?search=grocer", headers=auth_header)
    assert [n["title"] for n in r3.json()["notes"]] == ["Plain"]
    # LIKE wildcards are literal
    r4 = client.get("/notes/?search=%25", headers=auth_header)
    assert r4.json()["notes"] == []


def test_notes_tag_filter(client, auth_header):
    client.post("/notes/", json={"title": "A", "content": "x", "tags": ["work"]}, headers=auth_header)
    client.post("/notes/", json={"title": "B", "content": "x", "tags": ["workshop"]}, headers=auth_header)
    client.post("/notes/", json={"title": "C", "content": "x"}, headers=auth_header)
    r = client.get("/notes/?tag=work", headers=auth_header)
    assert [n["title"] for n in r.json()["notes"]] == ["A"]


def test_notes_pagination(client, auth_header):
    for i in range(7):
        client.post("/notes/", json={"title": f"note-{i}", "content": "c"}, headers=auth_header)

    titles = []
    for page in (1, 2, 3):
        r = client.get(f"/notes/?page={page}&limit=3&sortBy=title&sortOrder=asc", headers=auth_header)
        assert r.status_code == 200
        body = r.json()
        assert body["pagination"] == {"current": page, "pages": 3, "total": 7, "limit": 3}
        titles.extend(n["title"] for n in body["notes"])
    assert titles == [f"note-{i}" for i in range(7)]

    beyond = client.get("/notes/?page=4&limit=3", headers=auth_header)
    assert beyond.json()["notes"] == []

    far = client.get("/notes/?page=99999999999999999999&limit=100", headers=auth_header)
    assert far.status_code == 200
    assert far.json()["notes"] == []
    assert far.json()["pagination"]["total"] == 7


def test_notes_pinned_first(client, auth_header):
    ids = {}
    for title in ("a", "b", "c"):
        ids[title] = client.post("/notes/", json={"title": title, "content": "c"}, headers=auth_header).json()["note"]["id"]
    client.patch(f"/notes/{ids['c']}/pin", headers=auth_header)

    r = client.get("/notes/?sortBy=title&sortOrder=asc", headers=auth_header)
    assert [n["title"] for n in r.json()["notes"]] == ["c", "a", "b"]

    r2 = client.get("/notes/?sortBy=title&sortOrder=asc&pinnedFirst=false", headers=auth_header)
    assert [n["title"] for n in r2.json()["notes"]] == ["a", "b", "c"]


def test_notes_list_rejects_bad_query(client, auth_header):
    assert client.get("/notes/?page=0", headers=auth_header).status_code == 422
    assert client.get("/notes/?limit=1000", headers=auth_header).status_code == 422
    assert client.get("/notes/?sortBy=owner", headers=auth_header).status_code == 422
    assert client.get("/notes/?sortOrder=up", headers=auth_header).status_code == 422


def test_notes_stats(client, auth_header, second_auth_header):
    for tags in (["work", "urgent"], ["work"], ["home"], ["work", "home"]):
        client.post("/notes/", json={"title": "t", "content": "c", "tags": tags}, headers=auth_header)
    client.post("/notes/", json={"title": "t", "content": "c", "tags": ["home", "other"]}, headers=second_auth_header)
    first = client.get("/notes/", headers=auth_header).json()["notes"][0]
    client.patch(f"/notes/{first['id']}/pin", headers=auth_header)

    r = client.get("/notes/stats/overview", headers=auth_header)
    assert r.status_code == 200
    stats = r.json()["stats"]
    assert stats["totalNotes"] == 4
    assert stats["pinnedNotes"] == 1
    assert stats["tags"] == [
        {"name": "work", "count": 3},
        {"name": "home", "count": 2},
        {"name": "urgent", "count": 1},
    ]


def test_create_note_invalid(client, auth_header):
    # Missing title
    r = client.post("/notes/", json={"content": "x"}, headers=auth_header)
    assert r.status_code == 422
    # Title too long
    r2 = client.post("/notes/", json={"title": "x" * 201, "content": "x"}, headers=auth_header)
    assert r2.status_code == 422
    # Blank content
    r3 = client.post("/notes/", json={"title": "x", "content": "   "}, headers=auth_header)
    assert r3.status_code == 422
    # Content too long
    r4 = client.post("/notes/", json={"title": "x", "content": "y" * 10001}, headers=auth_header)
    assert r4.status_code == 422
    # Not a hex color
    r5 = client.post("/notes/", json={"title": "x", "content": "y", "backgroundColor": "red"}, headers=auth_header)
    assert r5.status_code == 422
    assert r5.json()["error"]["details"][0]["field"] == "backgroundColor"


def test_update_note_not_found(client, auth_header):
    r = client.put("/notes/999", json={"title": "nope"}, headers=auth_header)
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Note not found"


def test_delete_note_not_found(client, auth_header):
    r = client.delete("/notes/999", headers=auth_header)
    assert r.status_code == 404


def test_duplicate_registration(client, user_data):
    # Register first time should succeed
    r = client.post("/auth/register", json=user_data)
    assert r.status_code == 201
    # Register duplicate should fail
    r2 = client.post("/auth/register", json=user_data)
    assert r2.status_code == 409
    assert r2.json()["error"]["type"] == "conflict_error"


@pytest.mark.parametrize("note_id", ["99999999999999999999", "9223372036854775808", "0", "-1"])
def test_note_ids_out_of_range_are_not_found(client, auth_header, note_id):
    requests = [
        client.get(f"/notes/{note_id}", headers=auth_header),
        client.put(f"/notes/{note_id}", json={"title": "nope"}, headers=auth_header),
        client.delete(f"/notes/{note_id}", headers=auth_header),
        client.patch(f"/notes/{note_id}/pin", headers=auth_header),
    ]
    for r in requests:
        assert r.status_code == 404
        assert r.json()["error"]["message"] == "Note not found"
