"""HTTP tests for the league router against a temporary SQLite database."""

import pytest
from fastapi import HTTPException

DAY = "2026-10-19"
ROSTER_LINES = "Alex, M\nBen, M\nCara, F\nDana, F"
EIGHT_LINES = "Alex, M\nBen, M\nCarl, M\nDan, M\nEva, F\nFay, F\nGia, F\nHana, F"


# ── Helpers ─────────────────────────────────────────────────────────────────


def create_league(client, slot=1, lines=ROSTER_LINES, **extra):
    return client.post(f"/league/slots/{slot}", data={"name": "Wednesday Tennis", "player_lines": lines, **extra})


def player_ids(client, slot=1):
    players = client.get(f"/league/{slot}").json()["players"]
    return {p["name"]: p["id"] for p in players}


def team_players(match):
    return tuple(p["id"] for team in (match["team_a"], match["team_b"]) for p in team["players"])


def play_manual(client, names, score_a, score_b, slot=1, date=DAY):
    ids = player_ids(client, slot)
    resp = client.post(f"/league/{slot}/matches/generate", data={
        "mode": "manual", "date": date, "player_ids": [ids[n] for n in names],
    })
    assert resp.status_code == 200
    [match] = resp.json()["matches"]
    resp = client.post(f"/league/{slot}/matches/{match['id']}/score", data={"score_a": score_a, "score_b": score_b})
    assert resp.status_code == 200
    return resp.json()


# ══════════════════════════════════════════════════════════════════════════════
# Tests
# ══════════════════════════════════════════════════════════════════════════════


class TestSlots:
    def test_create_and_list(self, client):
        resp = create_league(client, end_date="2026-12-31")
        assert resp.status_code == 201
        assert resp.json()["players"] == 4

        slots = client.get("/league/").json()
        assert [s["slot"] for s in slots] == [1, 2, 3]
        assert slots[0]["league"]["name"] == "Wednesday Tennis"
        assert slots[0]["league"]["end_date"] == "2026-12-31"
        assert slots[1]["league"] is None

    def test_occupied_slot_needs_overwrite(self, client):
        assert create_league(client).status_code == 201
        assert create_league(client).status_code == 409

        resp = create_league(client, lines="Eve, F\nFinn, M", overwrite="true")
        assert resp.status_code == 201
        assert sorted(player_ids(client)) == ["Eve", "Finn"]

    def test_rejects_bad_input(self, client):
        assert create_league(client, lines="Alex, M").status_code == 400
        assert create_league(client, lines="Alex\nBen, M").status_code == 400
        assert create_league(client, slot=4).status_code == 404
        resp = client.post("/league/slots/1", data={"name": "  ", "player_lines": ROSTER_LINES})
        assert resp.status_code == 400

    def test_delete(self, client):
        create_league(client, slot=2)
        assert client.post("/league/2/delete").json() == {"deleted": True}
        assert client.get("/league/2").status_code == 404
        assert client.post("/league/2/delete").json() == {"deleted": False}


class TestRoster:
    def test_add_edit_delete(self, client):
        create_league(client)
        resp = client.post("/league/1/players", data={"name": "Eve", "gender": "FEMALE"})
        assert resp.status_code == 201
        eve = resp.json()
        assert eve["bonus_points"] == 0

        resp = client.post(f"/league/1/players/{eve['id']}/edit", data={"bonus_points": 3, "name": "Evelyn"})
        assert resp.json()["bonus_points"] == 3
        assert resp.json()["name"] == "Evelyn"

        client.post(f"/league/1/players/{eve['id']}/delete")
        assert "Evelyn" not in player_ids(client)

    def test_negative_bonus_rejected(self, client):
        create_league(client)
        resp = client.post("/league/1/players", data={"name": "Eve", "gender": "FEMALE", "bonus_points": -1})
        assert resp.status_code == 422

    def test_unknown_player(self, client):
        create_league(client)
        assert client.post("/league/1/players/nope/delete").status_code == 404


class TestMatches:
    def test_manual_score_and_ranking(self, client):
        create_league(client)
        match = play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        assert match["is_finished"]
        assert [p["name"] for p in match["team_a"]["players"]] == ["Alex", "Cara"]

        ranking = client.get("/league/1/ranking").json()
        stats = {s["name"]: s for s in ranking}
        assert stats["Alex"]["wins"] == 1 and stats["Alex"]["total_points"] == 2
        assert stats["Alex"]["win_rate"] == 100
        assert stats["Dana"]["losses"] == 1 and stats["Dana"]["total_points"] == 1
        assert [s["current_rank"] for s in ranking] == [1, 2, 3, 4]

    def test_cancel_keeps_scores(self, client):
        create_league(client)
        match = play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        resp = client.post(f"/league/1/matches/{match['id']}/cancel").json()
        assert not resp["is_finished"]
        assert (resp["score_a"], resp["score_b"]) == (6, 2)
        assert all(s["total_points"] == 0 for s in client.get("/league/1/ranking").json())

    def test_score_range(self, client):
        create_league(client)
        match = play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        resp = client.post(f"/league/1/matches/{match['id']}/score", data={"score_a": 7, "score_b": 2})
        assert resp.status_code == 422

    def test_delete_match(self, client):
        create_league(client)
        match = play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        client.post(f"/league/1/matches/{match['id']}/delete")
        assert client.get("/league/1").json()["matches"] == []

    def test_manual_with_guests(self, client):
        create_league(client)
        ids = player_ids(client)
        resp = client.post("/league/1/matches/generate", data={
            "mode": "manual", "date": DAY, "player_ids": [ids["Alex"]],
        })
        [match] = resp.json()["matches"]
        assert match["team_a"]["players"][1]["id"] == "guest-female"
        assert match["team_b"]["players"][0]["id"] == "guest-male"

    def test_singles_teams_are_tagged(self, client):
        create_league(client)
        ids = player_ids(client)
        resp = client.post("/league/1/matches/generate", data={
            "mode": "singles", "date": DAY, "player_ids": [ids["Alex"], ids["Ben"]],
        })
        [match] = resp.json()["matches"]
        assert match["team_a"]["kind"] == "singles"
        assert len(match["team_a"]["players"]) == 1

    def test_not_enough_players(self, client):
        create_league(client)
        ids = player_ids(client)
        resp = client.post("/league/1/matches/generate", data={
            "mode": "doubles", "date": DAY, "player_ids": [ids["Alex"], ids["Ben"], ids["Cara"]],
        })
        assert resp.status_code == 400
        assert "at least 4" in resp.json()["detail"]

    def test_unknown_player_in_pool(self, client):
        create_league(client)
        resp = client.post("/league/1/matches/generate", data={
            "mode": "singles", "date": DAY, "player_ids": ["ghost", "ghost2"],
        })
        assert resp.status_code == 400

    def test_round_robin_preview_then_confirm(self, client):
        create_league(client, lines=EIGHT_LINES)
        ids = list(player_ids(client).values())

        preview = client.post("/league/1/matches/generate", data={
            "mode": "round_robin", "date": DAY, "player_ids": ids,
        }).json()
        assert preview["committed"] is False
        assert preview["count"] == 8
        assert preview["seed"] is not None
        assert client.get("/league/1").json()["matches"] == []

        confirmed = client.post("/league/1/matches/generate", data={
            "mode": "round_robin", "date": DAY, "player_ids": ids, "confirm": "true", "seed": preview["seed"],
        }).json()
        assert confirmed["committed"] is True
        assert confirmed["back_to_back"] == preview["back_to_back"]

        stored = client.get("/league/1", params={"date": DAY}).json()["matches"]
        assert [m["id"] for m in stored] == [m["id"] for m in confirmed["matches"]]
        # the stored schedule is the one that was shown, in the same play order
        assert [team_players(m) for m in stored] == [team_players(m) for m in preview["matches"]]

    def test_round_robin_repeat_count(self, client):
        create_league(client)
        ids = list(player_ids(client).values())
        preview = client.post("/league/1/matches/generate", data={
            "mode": "round_robin", "date": DAY, "player_ids": ids,
        }).json()
        assert preview["count"] == 2
        assert preview["back_to_back"] == 1

    def test_round_robin_confirm_needs_seed(self, client):
        create_league(client)
        ids = list(player_ids(client).values())
        resp = client.post("/league/1/matches/generate", data={
            "mode": "round_robin", "date": DAY, "player_ids": ids, "confirm": "true",
        })
        assert resp.status_code == 400
        assert client.get("/league/1").json()["matches"] == []


class TestMvpAndShare:
    def test_award_once(self, client):
        create_league(client)
        play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)

        mvp = client.get("/league/1/mvp", params={"date": DAY}).json()
        assert mvp["male"]["name"] == "Alex"
        assert mvp["female"]["name"] == "Cara"
        assert mvp["awarded"] is False

        resp = client.post("/league/1/mvp/award", data={"date": DAY})
        assert resp.status_code == 200
        assert resp.json()["finished_dates"] == [DAY]
        assert client.post("/league/1/mvp/award", data={"date": DAY}).status_code == 409

        stats = {s["name"]: s for s in client.get("/league/1/ranking").json()}
        assert stats["Alex"]["total_points"] == 4
        assert stats["Ben"]["total_points"] == 1

    def test_award_without_matches(self, client):
        create_league(client)
        assert client.post("/league/1/mvp/award", data={"date": DAY}).status_code == 400

    def test_award_when_only_guests_played(self, client):
        create_league(client)
        resp = client.post("/league/1/matches/generate", data={
            "mode": "manual", "date": DAY, "player_ids": ["guest-male", "guest-female"],
        })
        [match] = resp.json()["matches"]
        client.post(f"/league/1/matches/{match['id']}/score", data={"score_a": 6, "score_b": 1})

        resp = client.post("/league/1/mvp/award", data={"date": DAY})
        assert resp.status_code == 400
        assert "No eligible players" in resp.json()["detail"]

    def test_ranking_for_a_day_marks_mvp(self, client):
        create_league(client)
        play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2, date="2026-10-12")
        play_manual(client, ["Ben", "Dana", "Alex", "Cara"], 6, 0)
        play_manual(client, ["Ben", "Dana", "Alex", "Cara"], 6, 1)

        ranking = {s["name"]: s for s in client.get("/league/1/ranking", params={"date": DAY}).json()}
        assert ranking["Ben"]["current_rank"] == 1
        assert ranking["Ben"]["previous_rank"] == 3
        assert ranking["Ben"]["rank_change"] == 2
        assert ranking["Ben"]["daily_bonus"] is True
        assert ranking["Alex"]["daily_bonus"] is False

    def test_player_form(self, client):
        create_league(client)
        play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 4)
        alex = player_ids(client)["Alex"]
        form = client.get(f"/league/1/players/{alex}/form").json()
        assert form["win_streak"] == 2
        assert form["avg_score"] == 6.0
        assert [r["my_score"] for r in form["recent"]] == [6, 6]
        assert [r["opp_score"] for r in form["recent"]] == [4, 2]

    def test_player_form_average(self, client):
        create_league(client)
        play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        play_manual(client, ["Ben", "Dana", "Alex", "Cara"], 6, 3)
        alex = player_ids(client)["Alex"]
        form = client.get(f"/league/1/players/{alex}/form").json()
        assert form["avg_score"] == 4.5
        assert form["win_streak"] == 0

    def test_share_text(self, client):
        create_league(client)
        play_manual(client, ["Alex", "Cara", "Ben", "Dana"], 6, 2)
        resp = client.get("/league/1/share", params={"date": DAY})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "GAME 1: Alex & Cara vs Ben & Dana" in resp.text

    def test_invalid_date(self, client):
        create_league(client)
        assert client.get("/league/1/mvp", params={"date": "19/10/2026"}).status_code == 422


def test_date_error_does_not_chain_the_parse_error():
    from league.router import _parse_date

    with pytest.raises(HTTPException) as info:
        _parse_date("2026-13-40")
    assert info.value.status_code == 422
    assert info.value.__cause__ is None
    assert info.value.__suppress_context__
