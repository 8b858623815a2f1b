def _submit(client, **fields):
    payload = {"username": "satoshi", "pnl": 12.5, "score": 3}
    payload.update(fields)
    return client.post("/api/contest/submit", json=payload)


def test_contest_info(client):
    body = client.get("/api/contest").json()
    assert body["status"] == "open"
    assert body["endpoints"]["submit"] == "/api/contest/submit"


def test_submit_creates_submission(client):
    resp = _submit(client, txHash="0xabc", note="  first try  ", extra="dropped")

    assert resp.status_code == 201
    submission = resp.json()["submission"]
    assert submission["username"] == "satoshi"
    assert submission["txHash"] == "0xabc"
    assert submission["note"] == "first try"
    assert submission["pnl"] == 12.5
    assert "extra" not in submission
    assert submission["id"]
    assert submission["createdAt"] == submission["updatedAt"]


def test_submit_defaults_numbers_to_zero(client):
    submission = client.post("/api/contest/submit", json={"username": "vitalik"}).json()["submission"]
    assert submission["pnl"] == 0
    assert submission["score"] == 0


def test_submit_validation(client):
    assert client.post("/api/contest/submit", json={}).status_code == 400
    assert _submit(client, username="x" * 81).status_code == 400
    resp = _submit(client, note="n" * 501)
    assert resp.status_code == 400
    assert resp.json()["ok"] is False


def test_list_newest_first_with_pagination(client):
    for i in range(5):
        _submit(client, username=f"player{i}")

    body = client.get("/api/contest/submissions", params={"limit": 2, "page": 2}).json()

    assert body["total"] == 5
    assert body["page"] == 2
    assert body["limit"] == 2
    assert [item["username"] for item in body["items"]] == ["player2", "player1"]


def test_list_clamps_limit_and_page(client):
    body = client.get("/api/contest/submissions", params={"limit": 1000, "page": 0}).json()
    assert body["limit"] == 200
    assert body["page"] == 1


def test_delete_requires_admin_token(client):
    submission_id = _submit(client).json()["submission"]["id"]

    assert client.delete(f"/api/contest/submissions/{submission_id}").status_code == 403
    resp = client.delete(
        f"/api/contest/submissions/{submission_id}",
        headers={"X-Admin-Token": "wrong"},
    )
    assert resp.status_code == 403


def test_delete_with_admin_token(client):
    submission_id = _submit(client).json()["submission"]["id"]
    headers = {"X-Admin-Token": "secret-token"}

    resp = client.delete(f"/api/contest/submissions/{submission_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "removedId": submission_id}

    again = client.delete(f"/api/contest/submissions/{submission_id}", headers=headers)
    assert again.status_code == 404


def test_delete_forbidden_when_admin_token_unset(client):
    client.app.state.settings.admin_token = None
    submission_id = _submit(client).json()["submission"]["id"]

    resp = client.delete(
        f"/api/contest/submissions/{submission_id}",
        headers={"X-Admin-Token": "secret-token"},
    )
    assert resp.status_code == 403


def test_unknown_route_is_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Not found"
