"""Tests for the HTTP surface.

Test Strategy:
1. Validation trigger: default body, paging fields, body validation
2. Validation status and stats
3. Manual result entry, record listings and stats breakdowns
4. Reconciliation: happy path, dry run, unknown action
5. Parlay settlement trigger and stats
6. Root, health and metrics endpoints

Predictions in these tests reference games that do not exist, or games
still in play, so the sweep never reaches a stat provider.
"""
from datetime import datetime

# The endpoints use the real clock
FAR_FUTURE = datetime(2100, 1, 1)


class TestValidationCheck:
    """POST/GET /api/v1/validation/check"""

    def test_trigger_without_body(self, test_client, make_prediction):
        make_prediction(game_id_ref="unknown-game")

        response = test_client.post("/api/v1/validation/check")

        assert response.status_code == 200
        data = response.json()
        assert data["updated"] == 1
        assert data["total_pending"] == 1
        assert data["current_batch"] == 0
        assert data["has_more_batches"] is False

    def test_trigger_with_paging(self, test_client, make_game, make_prediction):
        make_game(espn_game_id="401559500", status="scheduled", game_date=FAR_FUTURE)
        for _ in range(3):
            make_prediction()

        response = test_client.post("/api/v1/validation/check", json={"batch": 0, "page_size": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["batch_size"] == 2
        assert data["has_more_batches"] is True
        assert data["next_batch"] == 1

    def test_rejects_negative_batch(self, test_client):
        response = test_client.post("/api/v1/validation/check", json={"batch": -1})
        assert response.status_code == 422

    def test_rejects_oversized_page(self, test_client):
        response = test_client.post("/api/v1/validation/check", json={"page_size": 10000})
        assert response.status_code == 422

    def test_status(self, test_client, make_prediction):
        make_prediction()
        make_prediction(status="completed", result="correct", actual_value=1.0)

        response = test_client.get("/api/v1/validation/check")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["pending"] == 1
        assert data["completed"] == 1
        assert data["accuracy"] == 1.0


class TestValidationStats:
    """GET /api/v1/validation/stats"""

    def test_stats(self, test_client, make_prediction):
        make_prediction(status="completed", result="correct", actual_value=1.0)
        make_prediction(status="completed", result="incorrect", actual_value=0.0, sport="mlb", prop_type="hits")

        response = test_client.get("/api/v1/validation/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["accuracy"] == 0.5
        assert set(data["by_prop_type"]) == {"NHL - goals", "MLB - hits"}

    def test_stats_filtered(self, test_client, make_prediction):
        make_prediction(status="completed", result="correct", actual_value=1.0)
        make_prediction(status="completed", result="incorrect", actual_value=0.0, sport="mlb", prop_type="hits")

        response = test_client.get("/api/v1/validation/stats", params={"sport": "nhl"})

        assert response.json()["total"] == 1


class TestUpdateResult:
    """POST/GET /api/v1/validation/update-result"""

    def test_manual_result(self, test_client, db_session, make_prediction):
        prediction = make_prediction(prop_id="prop-42", threshold=0.5, prediction="over")

        response = test_client.post(
            "/api/v1/validation/update-result",
            json={"prop_id": "prop-42", "actual_value": 2},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Result updated successfully"
        assert data["data"]["id"] == prediction.id
        assert data["data"]["status"] == "completed"
        assert data["data"]["result"] == "correct"
        assert data["data"]["actual_value"] == 2.0

    def test_unknown_prop(self, test_client):
        response = test_client.post(
            "/api/v1/validation/update-result",
            json={"prop_id": "missing", "actual_value": 1},
        )
        assert response.status_code == 404

    def test_already_completed(self, test_client, make_prediction):
        prediction = make_prediction(status="completed", result="correct", actual_value=1.0)

        response = test_client.post(
            "/api/v1/validation/update-result",
            json={"prop_id": prediction.id, "actual_value": 0},
        )

        assert response.status_code == 409

    def test_missing_actual_value(self, test_client):
        response = test_client.post("/api/v1/validation/update-result", json={"prop_id": "prop-42"})
        assert response.status_code == 422

    def test_pending_props_for_game(self, test_client, make_prediction):
        wanted = make_prediction(game_id_ref="game-7", edge=0.04)
        make_prediction(game_id_ref="game-7", status="completed", result="correct", actual_value=1.0)
        make_prediction(game_id_ref="game-8")

        response = test_client.get("/api/v1/validation/update-result", params={"game_id": "game-7"})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["props"][0]["id"] == wanted.id
        assert data["props"][0]["player_name"] == "Auston Matthews"
        assert data["props"][0]["edge"] == 0.04

    def test_pending_props_requires_game(self, test_client):
        response = test_client.get("/api/v1/validation/update-result")
        assert response.status_code == 400


class TestValidationListings:
    """GET /api/v1/validation/records and the stats breakdowns"""

    def test_records(self, test_client, make_prediction):
        make_prediction(status="completed", result="correct", actual_value=1.0)
        make_prediction(status="completed", result="incorrect", actual_value=0.0)
        make_prediction()

        response = test_client.get("/api/v1/validation/records", params={"status": "completed", "result": "correct"})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["records"][0]["result"] == "correct"

    def test_records_limit_validated(self, test_client):
        response = test_client.get("/api/v1/validation/records", params={"limit": 0})
        assert response.status_code == 422

    def test_accuracy_by_edge(self, test_client, make_prediction):
        make_prediction(status="completed", result="correct", actual_value=1.0, edge=0.015)

        response = test_client.get("/api/v1/validation/stats/by-edge")

        assert response.status_code == 200
        assert response.json()["1-2%"] == {"correct": 1, "total": 1, "accuracy": 1.0}

    def test_top_prop_types(self, test_client, make_prediction):
        for _ in range(2):
            make_prediction(status="completed", result="correct", actual_value=1.0)

        response = test_client.get(
            "/api/v1/validation/stats/top-prop-types",
            params={"rank_by": "roi", "min_samples": 2},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["rank_by"] == "roi"
        assert [row["type"] for row in data["prop_types"]] == ["NHL - goals"]
        assert data["prop_types"][0]["roi"] == 0.91

    def test_top_prop_types_rejects_unknown_metric(self, test_client):
        response = test_client.get("/api/v1/validation/stats/top-prop-types", params={"rank_by": "vibes"})
        assert response.status_code == 422


class TestReconcile:
    """POST /api/v1/validation/reconcile"""

    def test_close_missing(self, test_client, make_prediction):
        make_prediction(game_id_ref="unknown-game", status="needs_review")

        response = test_client.post("/api/v1/validation/reconcile", json={"action": "close_missing"})

        assert response.status_code == 200
        assert response.json() == {"processed": 1, "updated": 1, "skipped": 0, "missing_game": 0, "not_final": 0}

    def test_dry_run(self, test_client, db_session, make_prediction):
        prediction = make_prediction(game_id_ref="unknown-game", status="needs_review")

        response = test_client.post(
            "/api/v1/validation/reconcile",
            json={"action": "close_missing", "dry_run": True},
        )

        assert response.json()["updated"] == 1
        db_session.expire_all()
        assert db_session.get(type(prediction), prediction.id).status == "needs_review"

    def test_unknown_action(self, test_client):
        response = test_client.post("/api/v1/validation/reconcile", json={"action": "purge"})

        assert response.status_code == 400
        assert "Unknown reconciliation action" in response.json()["detail"]

    def test_missing_action(self, test_client):
        response = test_client.post("/api/v1/validation/reconcile", json={})
        assert response.status_code == 422


class TestParlays:
    """POST/GET /api/v1/parlays/validate"""

    def test_validate(self, test_client, make_parlay, make_prediction):
        parlay = make_parlay([{"player_name": "Auston Matthews", "prop_type": "goals", "threshold": 0.5}])
        make_prediction(parlay_id=parlay.id, status="completed", result="correct", actual_value=1.0)
        make_parlay([{"player_name": "Mitch Marner", "prop_type": "assists", "threshold": 0.5}])

        response = test_client.post("/api/v1/parlays/validate")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["validated"] == 1
        assert data["won"] == 1
        assert data["pending"] == 1
        assert data["message"] == "Validated 1 parlays (1 won, 0 lost, 1 pending)"

    def test_stats(self, test_client, make_parlay):
        make_parlay([], status="lost", outcome="lost")
        make_parlay([])

        response = test_client.get("/api/v1/parlays/validate")

        assert response.status_code == 200
        assert response.json() == {"success": True, "stats": {"total": 2, "pending": 1, "won": 0, "lost": 1}}


class TestServiceEndpoints:
    """Root, health and metrics."""

    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert data["endpoints"]["validation"]["check"] == "/api/v1/validation/check"

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["scheduler"]["status"] == "stopped"
        assert data["components"]["scheduler"]["jobs"] == []
        assert "espn_api" in data["components"]["stat_providers"]

    def test_correlation_id_echoed(self, test_client):
        response = test_client.get("/", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_metrics(self, test_client):
        test_client.get("/")

        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert "scheduler_running" in response.text
