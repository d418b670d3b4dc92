def test_viewing_a_profile_records_one_visit(api_client, make_user, auth_headers, mongo_db, presence, broadcaster):
    owner, viewer = make_user("owner", headline="Builder"), make_user("viewer")
    presence.register("sid-owner", owner)

    for _ in range(2):
        resp = api_client.get("/api/v1/users/owner", headers=auth_headers(viewer))
        assert resp.status_code == 200
        assert resp.json()["headline"] == "Builder"

    assert mongo_db["notifications"].count_documents({"recipient_id": owner}) == 1
    assert broadcaster.rooms("new_notification") == [str(owner)]


def test_own_profile_creates_no_notification(api_client, make_user, auth_headers, mongo_db):
    me = make_user("me")
    resp = api_client.get("/api/v1/users/me", headers=auth_headers(me))
    assert resp.status_code == 200
    assert mongo_db["notifications"].count_documents({}) == 0


def test_private_profile_is_limited(api_client, make_user, auth_headers):
    make_user("hidden", private=True, headline="Secret", location="Oslo")
    viewer = make_user("viewer")

    body = api_client.get("/api/v1/users/hidden", headers=auth_headers(viewer)).json()
    assert body["location"] == "Oslo"
    assert "headline" not in body
    assert body["privacySettings"]["isProfilePrivate"] is True


def test_unknown_profile_is_404(api_client, make_user, auth_headers):
    resp = api_client.get("/api/v1/users/nobody", headers=auth_headers(make_user("viewer")))
    assert resp.status_code == 404
    assert resp.json()["error"] == "User not found"
