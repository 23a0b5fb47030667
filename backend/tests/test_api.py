from conftest import CAMPUS_LAT, CAMPUS_LNG, TODAY

TAB = {"X-Session-Id": "tab-1", "X-Player-Id": "player-1"}


def play_match(client, clock, mode, headers=TAB):
    response = client.post(f"/api/game/{mode}/load", headers=headers)
    assert response.status_code == 200
    assert response.json()["action"] == "fresh"

    for round_number in range(1, 6):
        clock.advance(8000)
        response = client.post("/api/game/guess", json={"lat": CAMPUS_LAT, "lng": CAMPUS_LNG}, headers=headers)
        assert response.json()["state"]["gamePhase"] == "guessing"

        response = client.post("/api/game/submit", headers=headers)
        body = response.json()
        assert body["state"]["gamePhase"] == "results"
        assert len(body["state"]["roundResults"]) == round_number

        response = client.post("/api/game/next", headers=headers)
    return response.json()


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_session_header_required(client):
    response = client.post("/api/game/random/load")
    assert response.status_code == 400


def test_no_active_match(client):
    assert client.get("/api/game/state", headers=TAB).status_code == 404
    assert client.post("/api/game/submit", headers=TAB).status_code == 404
    assert client.get("/api/game/results/random", headers=TAB).status_code == 404


def test_unknown_mode(client):
    assert client.post("/api/game/weekly/load", headers=TAB).status_code == 422


def test_coordinates_hidden_until_round_is_scored(client):
    loaded = client.post("/api/game/random/load", headers=TAB).json()
    photo = loaded["match"]["photo"]
    assert photo["url"].startswith("https://cdn.example.com/")
    assert photo["lat"] is None and photo["lng"] is None
    assert loaded["match"]["roundsPerGame"] == 5

    client.post("/api/game/guess", json={"lat": CAMPUS_LAT, "lng": CAMPUS_LNG}, headers=TAB)
    assert client.get("/api/game/state", headers=TAB).json()["photo"]["lat"] is None

    scored = client.post("/api/game/submit", headers=TAB).json()
    assert scored["photo"]["lat"] is not None
    assert scored["state"]["roundResults"][0]["actualLocation"]["lat"] == scored["photo"]["lat"]


def test_full_random_match(client, clock):
    final = play_match(client, clock, "random")
    assert final["state"]["gamePhase"] == "complete"
    assert final["photo"] is None

    results = client.get("/api/game/results/random", headers=TAB).json()
    assert [r["round"] for r in results["results"]] == [1, 2, 3, 4, 5]
    assert results["totalScore"] == sum(r["score"] for r in results["results"])
    assert results["totalScore"] == final["state"]["totalScore"]
    assert all(r["timeSpent"] == 8000 for r in results["results"])

    # Finished random matches are not resumed
    assert client.get("/api/game/state", headers=TAB).status_code == 404
    assert client.post("/api/game/random/load", headers=TAB).json()["action"] == "fresh"


def test_reload_resumes_match(client):
    client.post("/api/game/random/load", headers=TAB)
    client.post("/api/game/guess", json={"lat": CAMPUS_LAT, "lng": CAMPUS_LNG}, headers=TAB)

    resumed = client.post("/api/game/random/load", headers=TAB).json()
    assert resumed["action"] == "resume"
    assert resumed["match"]["state"]["userGuess"] == {"lat": CAMPUS_LAT, "lng": CAMPUS_LNG}

    restarted = client.post("/api/game/random/new", headers=TAB).json()
    assert restarted["action"] == "fresh"
    assert restarted["match"]["state"]["userGuess"] is None


def test_out_of_range_guess_is_ignored(client):
    client.post("/api/game/random/load", headers=TAB)
    response = client.post("/api/game/guess", json={"lat": 91.0, "lng": 0.0}, headers=TAB)
    assert response.status_code == 200
    assert response.json()["state"]["userGuess"] is None
    assert response.json()["state"]["gamePhase"] == "playing"


def test_toggle_map(client):
    client.post("/api/game/random/load", headers=TAB)
    assert client.post("/api/game/toggle-map", headers=TAB).json()["state"]["isMapExpanded"] is True


def test_daily_is_played_once(client, clock):
    play_match(client, clock, "daily")

    for headers in (TAB, {"X-Session-Id": "tab-2", "X-Player-Id": "player-1"}):
        loaded = client.post("/api/game/daily/load", headers=headers).json()
        assert loaded["action"] == "show_results"
        assert loaded["date"] == TODAY
        assert len(loaded["results"]) == 5

    # Gating is per player
    other = {"X-Session-Id": "tab-3", "X-Player-Id": "player-2"}
    loaded = client.post("/api/game/daily/load", headers=other).json()
    assert loaded["action"] == "fresh"


def test_daily_photos_are_shared(client):
    first = client.post("/api/game/daily/load", headers=TAB).json()
    second = client.post(
        "/api/game/daily/load", headers={"X-Session-Id": "tab-9", "X-Player-Id": "player-9"}
    ).json()
    assert first["match"]["photo"]["id"] == second["match"]["photo"]["id"]


def from_ip(address):
    return {**TAB, "X-Forwarded-For": address}


def test_submit_daily_from_game(client, clock):
    response = client.post("/api/game/daily/submit", json={"name": "Alice", "authToken": "tok"}, headers=from_ip("10.1.0.1"))
    assert response.status_code == 400

    play_match(client, clock, "daily")
    response = client.post("/api/game/daily/submit", json={"name": "Alice", "authToken": "tok"}, headers=from_ip("10.1.0.2"))
    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["entry"]["timeTaken"] == 40

    response = client.post("/api/game/daily/submit", json={"name": "Alice", "authToken": "tok"}, headers=from_ip("10.1.0.3"))
    assert response.status_code == 409

    board = client.get("/api/daily/leaderboard").json()
    assert board["date"] == TODAY
    assert [e["name"] for e in board["entries"]] == ["Alice"]


def test_score_endpoint(client):
    payload = {"date": TODAY, "name": "Bob", "score": 12000, "timeTaken": 90, "authToken": "bob"}
    headers = {"X-Forwarded-For": "10.0.0.1"}

    response = client.post("/api/daily/scores", json=payload, headers=headers)
    assert response.status_code == 201
    assert response.json()["entry"]["score"] == 12000

    response = client.post("/api/daily/scores", json=payload, headers=headers)
    assert response.status_code == 409

    response = client.post("/api/daily/scores", json=payload, headers=headers)
    assert response.status_code == 429


def test_score_endpoint_validation(client):
    headers = {"X-Forwarded-For": "10.0.0.2"}
    stale = {"date": "2026-10-16", "name": "Bob", "score": 1, "timeTaken": 1, "authToken": "bob"}
    assert client.post("/api/daily/scores", json=stale, headers=headers).status_code == 400

    too_high = {"date": TODAY, "name": "Bob", "score": 25001, "timeTaken": 1, "authToken": "bob"}
    headers = {"X-Forwarded-For": "10.0.0.3"}
    assert client.post("/api/daily/scores", json=too_high, headers=headers).status_code == 422


def test_generate_daily_selection(client):
    first = client.post("/api/daily/generate").json()
    second = client.post("/api/daily/generate").json()
    assert first["date"] == TODAY
    assert len(first["photoIds"]) == 5
    assert first["photoIds"] == second["photoIds"]


def test_daily_submit_is_rate_limited(client, clock):
    play_match(client, clock, "daily")
    headers = from_ip("10.2.0.1")
    codes = [
        client.post(
            "/api/game/daily/submit", json={"name": "Alice", "authToken": f"tok{i}"}, headers=headers
        ).status_code
        for i in range(3)
    ]
    assert codes == [200, 409, 429]
    assert len(client.get("/api/daily/leaderboard").json()["entries"]) == 1


def test_daily_submit_keeps_censored_name_in_bounds(client, clock):
    play_match(client, clock, "daily")
    response = client.post(
        "/api/game/daily/submit",
        json={"name": "ass ass ass ass ass", "authToken": "tok"},
        headers=from_ip("10.3.0.1"),
    )
    assert response.status_code == 200
    name = response.json()["entry"]["name"]
    assert len(name) <= 20
    assert "ass" not in name
