"""HTTP play API and CLI commands."""

from __future__ import annotations

from squaresum.games.square_sum.progress import SqlProgressStore
from squaresum.games.square_sum.square_sum_routes import get_catalog

BASE = "/games/square_sum/api"


def _level(app, ordinal: int):
    with app.app_context():
        return get_catalog().get_level(ordinal)


def _solve_over_http(client, level) -> dict:
    body = None
    for chip in level.required_chips:
        keys = list(level.solution[chip.id])
        payload = {"chip_id": chip.id}
        if len(keys) == 1:
            payload["key"] = keys[0]
        else:
            payload["keys"] = keys
        resp = client.post(f"{BASE}/place", json=payload)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["ok"] is True
    return body


def test_level_list_marks_only_first_unlocked(client) -> None:
    resp = client.get(f"{BASE}/levels")
    rows = resp.get_json()["levels"]

    assert resp.status_code == 200
    assert len(rows) == 60
    assert rows[0]["unlocked"] is True
    assert not any(r["unlocked"] for r in rows[1:])


def test_level_list_filters_by_tier(client) -> None:
    rows = client.get(f"{BASE}/levels?tier=hard").get_json()["levels"]

    assert [r["ordinal"] for r in rows] == list(range(41, 61))


def test_unknown_tier_is_a_bad_request(client) -> None:
    resp = client.get(f"{BASE}/levels?tier=legendary")

    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False


def test_level_detail_hides_solution(client) -> None:
    body = client.get(f"{BASE}/levels/1").get_json()

    assert body["level"]["ordinal"] == 1
    assert "solution" not in body["level"]


def test_missing_level_is_not_found(client) -> None:
    assert client.get(f"{BASE}/levels/61").status_code == 404
    assert client.post(f"{BASE}/start", json={"ordinal": 61}).status_code == 404


def test_start_requires_an_ordinal(client) -> None:
    assert client.post(f"{BASE}/start", json={}).status_code == 400
    assert client.post(f"{BASE}/start", json={"ordinal": "one"}).status_code == 400


def test_locked_level_cannot_start(client) -> None:
    resp = client.post(f"{BASE}/start", json={"ordinal": 2})

    assert resp.status_code == 403


def test_place_without_a_level_in_progress(client) -> None:
    resp = client.post(f"{BASE}/place", json={"chip_id": "x", "key": "slot_a"})

    assert resp.status_code == 400


def test_state_before_start_has_no_session(client) -> None:
    body = client.get(f"{BASE}/state").get_json()

    assert body["ok"] is True
    assert body["session"] is None


def test_solving_level_one_unlocks_level_two(app, client) -> None:
    start = client.post(f"{BASE}/start", json={"ordinal": 1})
    assert start.status_code == 200
    assert start.get_json()["session"]["status"] == "in_progress"

    body = _solve_over_http(client, _level(app, 1))

    assert body["just_solved"] is True
    assert body["session"]["solved"] is True
    assert body["stats"]["solved"] == 1
    assert body["stats"]["placements"] == 4

    progress = client.get(f"{BASE}/progress").get_json()
    assert progress["completed"] == 1
    assert progress["progress"][0]["best_moves"] == 4
    assert progress["progress"][1]["unlocked"] is True
    assert client.post(f"{BASE}/start", json={"ordinal": 2}).status_code == 200


def test_unknown_chip_is_reported_not_raised(client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 1})

    resp = client.post(f"{BASE}/place", json={"chip_id": "not-a-chip", "key": "slot_a"})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["ok"] is False
    assert body["session"]["moves"] == 0


def test_rejected_junction_changes_nothing(app, client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 6})
    # level 6 is locked for a fresh player
    assert client.get(f"{BASE}/state").get_json()["session"] is None

    client.post(f"{BASE}/start", json={"ordinal": 1})
    chip = _level(app, 1).chip_inventory[0]
    resp = client.post(f"{BASE}/place", json={"chip_id": chip.id, "keys": ["slot_a", "slot_q"]})
    body = resp.get_json()

    assert body["ok"] is False
    assert body["session"]["moves"] == 0
    assert body["stats"]["rejected"] == 1


def test_unknown_chip_reply_carries_stats(client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 1})

    body = client.post(f"{BASE}/place", json={"chip_id": "not-a-chip", "key": "slot_a"}).get_json()

    assert body["stats"]["rejected"] == 1
    assert body["stats"]["placements"] == 0


def test_non_object_bodies_are_bad_requests(client) -> None:
    assert client.post(f"{BASE}/start", json=[1]).status_code == 400
    assert client.post(f"{BASE}/start", json="1").status_code == 400

    client.post(f"{BASE}/start", json={"ordinal": 1})
    for payload in (["x"], 7, "slot_a"):
        resp = client.post(f"{BASE}/place", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["ok"] is False
    assert client.post(f"{BASE}/highlight", json=[None]).status_code == 400
    assert client.get(f"{BASE}/state").get_json()["session"]["moves"] == 0


def test_junction_keys_accept_a_joined_string(app, client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 1})
    chip = _level(app, 1).chip_inventory[0]

    body = client.post(f"{BASE}/place", json={"chip_id": chip.id, "keys": "slot_a,slot_b"}).get_json()

    assert body["ok"] is True
    assert body["session"]["ledger"][chip.id] == "junction:slot_a:slot_b"


def test_reset_restores_the_hand(app, client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 1})
    fresh = client.get(f"{BASE}/state").get_json()["session"]
    chip = _level(app, 1).chip_inventory[0]
    client.post(f"{BASE}/place", json={"chip_id": chip.id, "key": "slot_b"})

    body = client.post(f"{BASE}/reset").get_json()

    assert body["session"] == fresh
    assert body["stats"]["resets"] == 1


def test_highlight_and_overlaps(app, client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 1})
    chip = _level(app, 1).chip_inventory[0]

    body = client.post(f"{BASE}/highlight", json={"chip_id": chip.id}).get_json()
    assert body["session"]["highlighted"] == chip.id

    keys = client.get(f"{BASE}/overlaps?column=0&row=0").get_json()["keys"]
    assert keys == ["slot_a"]
    assert client.get(f"{BASE}/overlaps?column=0").status_code == 400


def test_tabs_keep_separate_sessions(client) -> None:
    client.post(f"{BASE}/start", json={"ordinal": 1, "client_id": "tab-1"})

    assert client.get(f"{BASE}/state?client_id=tab-1").get_json()["session"]["ordinal"] == 1
    assert client.get(f"{BASE}/state?client_id=tab-2").get_json()["session"] is None


def test_sql_backend_persists_completion(sql_app, sql_client) -> None:
    sql_client.post(f"{BASE}/start", json={"ordinal": 1})
    body = _solve_over_http(sql_client, _level(sql_app, 1))

    assert body["just_solved"] is True
    rows = sql_client.get(f"{BASE}/levels?tier=easy").get_json()["levels"]
    assert rows[0]["completed"] is True
    assert rows[1]["unlocked"] is True


def test_security_headers(client) -> None:
    resp = client.get(f"{BASE}/levels/1")

    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_stats_command(app) -> None:
    result = app.test_cli_runner().invoke(args=["squaresum-stats"])

    assert result.exit_code == 0
    assert "levels=60" in result.output


def test_level_command_prints_solution(app) -> None:
    result = app.test_cli_runner().invoke(args=["squaresum-level", "6", "--solution"])

    assert result.exit_code == 0
    assert "slot_a + slot_b" in result.output


def test_level_command_rejects_unknown_level(app) -> None:
    result = app.test_cli_runner().invoke(args=["squaresum-level", "99"])

    assert result.exit_code != 0
    assert "No level 99" in result.output


def test_reset_progress_needs_sql_backend(app, sql_app) -> None:
    assert app.test_cli_runner().invoke(args=["squaresum-reset-progress", "p"]).exit_code != 0

    with sql_app.app_context():
        SqlProgressStore("p").record_completion(1, 4, 1.0)
    result = sql_app.test_cli_runner().invoke(args=["squaresum-reset-progress", "p"])

    assert result.exit_code == 0
    with sql_app.app_context():
        assert not SqlProgressStore("p").is_completed(1)
