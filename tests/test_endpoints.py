"""
Integration tests for the read and progression endpoints using SQLite.
"""
from datetime import date, timedelta

D0 = date(2093, 4, 2)


def _day(offset: int) -> str:
    return (D0 + timedelta(days=offset)).isoformat()


def _checkin_days(client, email, offsets):
    for offset in offsets:
        r = client.post(
            f"/users/{email}/momentum/checkins",
            json={
                "date": _day(offset),
                "behaviorRatings": {"Protein": "solid", "Sleep": "elite"},
                "exerciseDeclared": True,
            },
        )
        assert r.status_code == 201, r.text


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestSummary:
    def test_summary_after_a_week(self, client, email):
        _checkin_days(client, email, range(7))
        r = client.get(f"/users/{email}/momentum/summary", params={"reference_date": _day(7)})
        assert r.status_code == 200
        s = r.json()
        assert s["checkedInToday"] is False
        assert s["today"] is None
        assert s["currentStreak"] == 7
        assert s["lifetimeCheckIns"] == 7
        assert s["consistency"] == 100
        assert s["accountAgeDays"] == 8
        assert s["commitmentState"] == "expired"
        assert s["showCommitment"] is True
        assert s["anchorMissing"] is False

    def test_summary_reports_missed_day(self, client, email):
        _checkin_days(client, email, [0, 1])
        s = client.get(
            f"/users/{email}/momentum/summary", params={"reference_date": _day(3)}
        ).json()
        assert s["currentStreak"] == 0
        assert "You missed yesterday" in s["missedMessage"]

    def test_summary_without_anchor_falls_back(self, client, email):
        client.post(f"/users/{email}/sessions", json={"date": _day(0), "durationMin": 15})
        r = client.get(f"/users/{email}/momentum/summary", params={"reference_date": _day(0)})
        assert r.status_code == 200
        s = r.json()
        assert s["anchorMissing"] is True
        assert s["consistency"] == 0
        assert s["toast"]["type"] == "info"

    def test_unknown_user(self, client, email):
        r = client.get(f"/users/{email}/momentum/summary")
        assert r.status_code == 404
        assert r.json()["code"] == "USER_NOT_FOUND"


class TestHistoryAndRecords:
    def test_history_newest_first(self, client, email):
        _checkin_days(client, email, range(3))
        r = client.get(
            f"/users/{email}/momentum/history",
            params={"days": 2, "reference_date": _day(2)},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 2
        assert [i["date"] for i in body["items"]] == [_day(2), _day(1)]

    def test_single_record(self, client, email):
        _checkin_days(client, email, [0])
        r = client.get(f"/users/{email}/momentum/{_day(0)}")
        assert r.status_code == 200
        record = r.json()
        assert record["behaviorRatings"] == {"Protein": "solid", "Sleep": "elite"}
        assert record["behaviorGrades"] == [
            {"name": "Protein", "grade": 80},
            {"name": "Sleep", "grade": 100},
        ]
        assert record["dailyScore"] == 90

    def test_missing_record(self, client, email):
        _checkin_days(client, email, [0])
        r = client.get(f"/users/{email}/momentum/{_day(5)}")
        assert r.status_code == 404
        assert r.json()["code"] == "RECORD_NOT_FOUND"


class TestConsistency:
    def test_consistency(self, client, email):
        _checkin_days(client, email, range(7))
        r = client.get(
            f"/users/{email}/momentum/consistency", params={"reference_date": _day(6)}
        )
        assert r.status_code == 200
        body = r.json()
        assert body["consistency"] == 100
        assert body["accountAgeDays"] == 7
        assert body["currentStreak"] == 7

    def test_missing_anchor(self, client, email):
        client.post(f"/users/{email}/sessions", json={"date": _day(0), "durationMin": 15})
        r = client.get(f"/users/{email}/momentum/consistency")
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "MISSING_ANCHOR"
        assert body["toast"]["message"] == "Complete your first check-in to unlock your stats."


class TestFocus:
    def test_no_focus_yet(self, client, email):
        client.post(f"/users/{email}/sessions", json={"date": _day(0), "durationMin": 15})
        body = client.get(f"/users/{email}/focus").json()
        assert body["focus"] is None
        assert body["toast"]["type"] == "info"

    def test_select_focus(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(
            f"/users/{email}/focus",
            params={"reference_date": _day(1)},
            json={"habitKey": "sleep"},
        )
        assert r.status_code == 200
        focus = r.json()["focus"]
        assert focus["habitKey"] == "sleep"
        assert focus["habitKind"] == "sleep"
        assert focus["target"] is None
        assert focus["startedAt"] == _day(1)

    def test_blank_habit_key_rejected(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(f"/users/{email}/focus", json={"habitKey": ""})
        assert r.status_code == 422


class TestCommitmentEndpoints:
    def test_offer_rejected_while_active(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(f"/users/{email}/commitment/offer", params={"reference_date": _day(2)})
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_COMMITMENT_TRANSITION"

    def test_offer_decline_alternative_accept(self, client, email):
        _checkin_days(client, email, [0])
        ref = {"reference_date": _day(8)}

        r = client.post(f"/users/{email}/commitment/offer", params=ref)
        assert r.status_code == 200
        assert r.json()["commitment"]["state"] == "offered"
        assert r.json()["commitment"]["showCommitment"] is True

        r = client.post(
            f"/users/{email}/commitment/decline",
            params=ref,
            json={"reason": "busy week", "wantAlternative": True},
        )
        assert r.status_code == 200
        c = r.json()["commitment"]
        assert c["state"] == "alternative_offered"
        assert c["alternativeTarget"] == 5
        assert c["alternativeOffered"] == "Walk 5 minutes"

        r = client.post(f"/users/{email}/commitment/alternative/accept", params=ref)
        assert r.status_code == 200
        c = r.json()["commitment"]
        assert c["state"] == "active"
        assert c["habitKey"] == "walk_5min"
        assert c["expiresAt"] == _day(15)

        focus = client.get(f"/users/{email}/focus").json()["focus"]
        assert focus["target"] == 5

    def test_decline_to_terminal(self, client, email):
        _checkin_days(client, email, [0])
        ref = {"reference_date": _day(8)}
        client.post(f"/users/{email}/commitment/offer", params=ref)
        r = client.post(
            f"/users/{email}/commitment/decline", params=ref, json={"reason": "not now"}
        )
        c = r.json()["commitment"]
        assert c["state"] == "terminal"
        assert c["showCommitment"] is False
        assert c["declineReason"] == "not now"

    def test_accept_without_offer(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(f"/users/{email}/commitment/accept", params={"reference_date": _day(1)})
        assert r.status_code == 409


class TestLevelUpEndpoints:
    def test_eligibility_for_new_account(self, client, email):
        _checkin_days(client, email, [0])
        r = client.get(
            f"/users/{email}/level-up/eligibility", params={"reference_date": _day(0)}
        )
        assert r.status_code == 200
        body = r.json()
        assert body["decision"]["reason"] == "account_too_new"
        assert body["decision"]["daysRemaining"] == 6
        assert body["prompt"] is None

    def test_eligibility_without_anchor(self, client, email):
        client.post(f"/users/{email}/sessions", json={"date": _day(0), "durationMin": 15})
        r = client.get(f"/users/{email}/level-up/eligibility")
        assert r.status_code == 409
        assert r.json()["code"] == "MISSING_ANCHOR"

    def test_accept_without_pending_prompt(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(f"/users/{email}/level-up/accept")
        assert r.status_code == 409
        assert r.json()["code"] == "LEVEL_UP_NOT_PENDING"

    def test_adjust_target(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(
            f"/users/{email}/level-up/adjust",
            params={"reference_date": _day(1)},
            json={"minutes": 20},
        )
        assert r.status_code == 200
        body = r.json()
        assert body["focus"]["target"] == 20
        assert body["focus"]["habitKey"] == "walk_20min"
        assert body["reward"]["event"] == "level_up"
        assert body["commitment"]["state"] == "active"

    def test_adjust_rejects_unoffered_target(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(f"/users/{email}/level-up/adjust", json={"minutes": 11})
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_TARGET"

    def test_decline_try_different_moves_habit_to_stack(self, client, email):
        _checkin_days(client, email, range(7))
        r = client.post(
            f"/users/{email}/level-up/decline",
            params={"reference_date": _day(6)},
            json={"reason": "want variety", "nextStep": "try_different"},
        )
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["focus"] is None
        assert body["movedToStack"]["habitKey"] == "walk_10min"
        assert body["prompt"]["timesDeclined"] == 1

        stack = client.get(f"/users/{email}/habits/stack").json()
        assert stack["total"] == 1
        assert stack["items"][0]["position"] == 1
        assert client.get(f"/users/{email}/focus").json()["focus"] is None

    def test_decline_rejects_unknown_next_step(self, client, email):
        _checkin_days(client, email, [0])
        r = client.post(f"/users/{email}/level-up/decline", json={"nextStep": "quit"})
        assert r.status_code == 422


class TestHabitEvents:
    def test_timeline(self, client, email):
        _checkin_days(client, email, [0])
        client.post(
            f"/users/{email}/level-up/adjust",
            params={"reference_date": _day(1)},
            json={"minutes": 15},
        )
        body = client.get(f"/users/{email}/habits/events").json()
        assert body["total"] == 2
        latest = body["items"][0]
        assert latest["eventType"] == "level_up"
        assert latest["description"] == "Leveled up to 15 min walk"
        assert latest["metadata"]["fromTarget"] == 10

    def test_filter_by_type(self, client, email):
        _checkin_days(client, email, [0])
        body = client.get(
            f"/users/{email}/habits/events", params={"event_type": "new_primary"}
        ).json()
        assert body["total"] == 1
        assert body["items"][0]["description"] == "Started Walk 10 minutes as primary focus"

    def test_unknown_type_rejected(self, client, email):
        _checkin_days(client, email, [0])
        r = client.get(f"/users/{email}/habits/events", params={"event_type": "party"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"
