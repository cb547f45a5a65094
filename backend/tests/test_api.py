"""
End-to-end REST flow: register teams, generate a bracket, dispatch to courts,
play matches and read the bracket back.
"""
from fastapi.testclient import TestClient


def _register(client: TestClient, n: int, category: str = "mens_doubles"):
    ids = []
    for i in range(n):
        response = client.post(
            "/api/teams",
            json={"name": f"Team {i + 1}", "roster": f"P{2 * i + 1} / P{2 * i + 2}", "category": category},
        )
        assert response.status_code == 201
        ids.append(response.json()["id"])
    return ids


def _generate(client: TestClient, **overrides):
    payload = {"category": "mens_doubles", "seeding_method": "manual", "bye_policy": "trailing", "third_place": False}
    payload.update(overrides)
    return client.post("/api/brackets", json=payload)


def _by_code(client: TestClient, tournament_id: int):
    response = client.get(f"/api/brackets/{tournament_id}/matches")
    assert response.status_code == 200
    return {m["match_code"]: m for m in response.json()}


def test_health(client: TestClient):
    assert client.get("/api/health").json()["status"] == "healthy"


def test_team_registration_rules(client: TestClient):
    first = client.post("/api/teams", json={"name": "Smash Bros", "category": "mixed_doubles"})
    assert first.status_code == 201

    duplicate = client.post("/api/teams", json={"name": "Smash Bros", "category": "mixed_doubles"})
    assert duplicate.status_code == 409
    other_category = client.post("/api/teams", json={"name": "Smash Bros", "category": "mens_doubles"})
    assert other_category.status_code == 201

    assert client.post("/api/teams", json={"name": "  ", "category": "mens_doubles"}).status_code == 422
    assert client.post("/api/teams", json={"name": "X", "category": "croquet"}).status_code == 422

    listed = client.get("/api/teams", params={"category": "mixed_doubles"}).json()
    assert [t["name"] for t in listed] == ["Smash Bros"]


def test_five_team_bracket_shape(client: TestClient):
    ids = _register(client, 5)
    response = _generate(client)
    assert response.status_code == 201
    body = response.json()

    assert body["tournament"]["bracket_size"] == 8
    assert body["tournament"]["total_rounds"] == 3
    assert [r["name"] for r in body["rounds"]] == ["Quarterfinal", "Semifinal", "Final"]
    assert [len(r["matches"]) for r in body["rounds"]] == [1, 2, 1]

    semis = body["rounds"][1]["matches"]
    assert (semis[0]["team_a_id"], semis[0]["team_b_id"]) == (None, ids[2])
    assert (semis[1]["team_a_id"], semis[1]["team_b_id"]) == (ids[3], ids[4])
    assert [p["received_bye"] for p in body["participants"]] == [False, False, True, True, True]


def test_generation_errors(client: TestClient):
    _register(client, 1)
    assert _generate(client).status_code == 422
    assert _generate(client, seeding_method="swiss").status_code == 422
    assert _generate(client, team_ids=[1, 42]).status_code == 404

    _register(client, 2, category="womens_doubles")
    assert _generate(client, category="womens_doubles").status_code == 201
    assert _generate(client, category="womens_doubles").status_code == 409
    assert _generate(client, category="womens_doubles", replace=True).status_code == 201


def test_play_a_four_team_bracket(client: TestClient):
    ids = _register(client, 4)
    tournament_id = _generate(client, third_place=True).json()["tournament"]["id"]
    for name in ("Court 1", "Court 2"):
        assert client.post("/api/courts", json={"name": name}).status_code == 201

    queue = client.get("/api/courts/queue").json()
    assert [m["match_code"] for m in queue] == ["R1-M1", "R1-M2"]

    assigned = client.post("/api/courts/dispatch").json()
    assert [(a["match"]["match_code"], a["court"]["name"]) for a in assigned] == [
        ("R1-M1", "Court 1"),
        ("R1-M2", "Court 2"),
    ]
    assert client.post("/api/courts/dispatch/next").json() is None
    assert [c["busy"] for c in client.get("/api/courts").json()] == [True, True]

    matches = _by_code(client, tournament_id)
    semi_one = matches["R1-M1"]["id"]
    assert client.post(f"/api/matches/{semi_one}/start").json()["status"] == "playing"
    live = client.post(f"/api/matches/{semi_one}/score", json={"score_a": 11, "score_b": 6})
    assert live.json()["score_a"] == 11

    result = client.post(
        f"/api/matches/{semi_one}/result",
        json={"winner_team_id": ids[0], "score_a": 21, "score_b": 12},
    )
    assert result.status_code == 200
    body = result.json()
    assert body["advanced"] is True
    assert body["parent_match_id"] == matches["R2-M1"]["id"]
    assert body["third_place_match_id"] == matches["3RD"]["id"]
    assert body["match"]["status"] == "completed"

    # Same winner again: accepted, nothing moves
    again = client.post(f"/api/matches/{semi_one}/result", json={"winner_team_id": ids[0]})
    assert again.status_code == 200
    assert again.json()["advanced"] is False
    assert client.post(f"/api/matches/{semi_one}/result", json={"winner_team_id": ids[1]}).status_code == 409

    semi_two = matches["R1-M2"]["id"]
    assert client.post(f"/api/matches/{semi_two}/result", json={"winner_team_id": ids[0]}).status_code == 422
    assert client.post(f"/api/matches/{semi_two}/result", json={"winner_team_id": ids[3]}).status_code == 200

    # Final and third place both wait for a court
    queue = client.get("/api/courts/queue").json()
    assert [m["match_code"] for m in queue] == ["R2-M1", "3RD"]

    final = client.post(f"/api/matches/{matches['R2-M1']['id']}/result", json={"winner_team_id": ids[3]})
    assert final.json()["tournament_completed"] is False
    third = client.post(f"/api/matches/{matches['3RD']['id']}/result", json={"winner_team_id": ids[1]})
    assert third.json()["tournament_completed"] is True

    bracket = client.get(f"/api/brackets/{tournament_id}").json()
    assert bracket["tournament"]["status"] == "completed"
    assert bracket["tournament"]["champion_team_id"] == ids[3]
    positions = {p["team_id"]: p["final_position"] for p in bracket["participants"]}
    assert positions == {ids[3]: 1, ids[0]: 2, ids[1]: 3, ids[2]: 4}


def test_result_for_unready_or_unknown_match(client: TestClient):
    ids = _register(client, 4)
    tournament_id = _generate(client).json()["tournament"]["id"]
    final = _by_code(client, tournament_id)["R2-M1"]["id"]

    assert client.post(f"/api/matches/{final}/result", json={"winner_team_id": ids[0]}).status_code == 422
    assert client.post("/api/matches/999/result", json={"winner_team_id": ids[0]}).status_code == 404
    assert client.post("/api/tournaments/999/replay-advancement").status_code == 404
    assert client.post(f"/api/tournaments/{tournament_id}/replay-advancement").json() == {"filled_slots": 0}


def test_closing_a_court_and_manual_assignment(client: TestClient):
    _register(client, 4)
    tournament_id = _generate(client).json()["tournament"]["id"]
    court_one = client.post("/api/courts", json={"name": "Court 1"}).json()["id"]
    court_two = client.post("/api/courts", json={"name": "Court 2"}).json()["id"]
    matches = _by_code(client, tournament_id)

    closed = client.patch(f"/api/courts/{court_one}", json={"is_closed": True})
    assert closed.json()["is_closed"] is True
    assert client.post(f"/api/matches/{matches['R1-M2']['id']}/assign", json={"court_id": court_one}).status_code == 409

    assigned = client.post(f"/api/matches/{matches['R1-M2']['id']}/assign", json={"court_id": court_two})
    assert assigned.status_code == 200
    assert assigned.json()["status"] == "scheduled"

    assert client.post("/api/courts/dispatch/next").json() is None
    assert client.post(f"/api/matches/{matches['R1-M2']['id']}/unassign").json()["court_id"] is None
    assert client.post(f"/api/matches/{matches['R1-M1']['id']}/unassign").status_code == 422


def test_clear_bracket_then_delete_team(client: TestClient):
    ids = _register(client, 3)
    _generate(client)
    assert client.delete(f"/api/teams/{ids[0]}").status_code == 409

    cleared = client.delete("/api/brackets/category/mens_doubles")
    assert cleared.json() == {"deleted_matches": 2}
    assert client.get("/api/brackets", params={"category": "mens_doubles"}).json() == []
    assert client.delete(f"/api/teams/{ids[0]}").status_code == 204
    assert client.get(f"/api/teams/{ids[0]}").status_code == 404


def test_team_update_rejects_non_positive_seed(client: TestClient):
    (team_id,) = _register(client, 1)
    assert client.put(f"/api/teams/{team_id}", json={"seed": 0}).status_code == 422
    assert client.put(f"/api/teams/{team_id}", json={"seed": -3}).status_code == 422
    assert client.get(f"/api/teams/{team_id}").json()["seed"] is None

    updated = client.put(f"/api/teams/{team_id}", json={"seed": 2})
    assert updated.status_code == 200
    assert updated.json()["seed"] == 2
