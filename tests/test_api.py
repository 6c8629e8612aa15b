"""
Tests for the FastAPI server
"""
import pytest

from core.errors import StorageUnavailable
from storage import InMemoryPostingStore


class UnreachableStore(InMemoryPostingStore):
    """In-memory store that fails every call the way a dead Redis would."""

    def _fail(self, *args, **kwargs):
        raise StorageUnavailable("Redis PING failed: Connection refused")

    ping = transaction = hgetall = union_store = _fail


@pytest.fixture
def unavailable_client(settings):
    from fastapi.testclient import TestClient
    from api.app import create_app
    from matching.service import MatchingService, get_matching_service

    service = MatchingService(UnreachableStore(), settings)
    app = create_app()
    app.dependency_overrides[get_matching_service] = lambda: service
    return TestClient(app)


class TestHealthEndpoint:
    """Tests for health check endpoints"""

    def test_health_check(self, client):
        """Test health endpoint returns 200"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed_health(self, client):
        data = client.get("/health/detailed").json()
        assert data["status"] == "healthy"
        assert data["checks"]["store"]["status"] == "connected"
        assert data["checks"]["store"]["backend"] == "in_memory"

    def test_detailed_health_degraded(self, unavailable_client):
        data = unavailable_client.get("/health/detailed").json()
        assert data["status"] == "degraded"
        assert data["checks"]["store"]["status"] == "error"

    def test_probes(self, client, unavailable_client):
        assert client.get("/live").json() == {"status": "alive"}
        assert client.get("/ready").json() == {"status": "ready"}
        assert unavailable_client.get("/ready").json()["status"] == "not_ready"

    def test_request_id_headers(self, client):
        """Test that tracing headers are set and a caller's request id is echoed"""
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["X-Response-Time"].endswith("ms")


class TestMemberEndpoints:
    """Tests for attribute and interest ingestion"""

    def test_add_attributes(self, client):
        response = client.post(
            "/api/members/131523112/attributes",
            json={"attributes": ["orientation:straight", "gender:f", "gender:f"]},
        )
        assert response.status_code == 200
        assert response.json() == {
            "member_id": "131523112",
            "attributes": ["orientation:straight", "gender:f"],
        }

    def test_record_interest(self, client):
        client.post("/api/members/5/interests",
                    json={"delta": 1.0, "attributes": ["orientation:straight", "gender:f"]})
        response = client.post("/api/members/5/interests", json={"attributes": ["orientation:straight"]})

        data = response.json()
        assert response.status_code == 200
        assert data["published"] is True
        assert data["normalized_interest"] == pytest.approx(
            {"orientation:straight": 2 / 3, "gender:f": 1 / 3}
        )

    def test_zero_interest_not_published(self, client):
        data = client.post("/api/members/5/interests", json={"delta": 0, "attributes": ["a"]}).json()
        assert data == {"member_id": "5", "normalized_interest": {}, "published": False}

    def test_get_member(self, client):
        client.post("/api/members/7/attributes", json={"attributes": ["b", "a"]})
        client.post("/api/members/7/interests", json={"attributes": ["gender:m"]})

        data = client.get("/api/members/7").json()
        assert data["attributes"] == ["a", "b"]
        assert data["raw_interest"] == {"gender:m": 1.0}
        assert data["normalized_interest"] == {"gender:m": 1.0}

    def test_empty_attributes_rejected(self, client):
        response = client.post("/api/members/5/attributes", json={"attributes": []})
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidArgument"

    def test_negative_delta_rejected(self, client):
        response = client.post("/api/members/5/interests", json={"delta": -1, "attributes": ["a"]})
        assert response.status_code == 400

    def test_malformed_body(self, client):
        response = client.post("/api/members/5/attributes", json={"attrs": ["a"]})
        assert response.status_code == 422

    def test_storage_failure_is_503(self, unavailable_client):
        response = unavailable_client.post("/api/members/5/attributes", json={"attributes": ["a"]})
        assert response.status_code == 503
        assert response.json()["error"] == "StorageUnavailable"


class TestRecommendEndpoints:
    """Tests for recommendation endpoints"""

    @pytest.fixture
    def seeded_client(self, seeded_service, client):
        return client

    def test_recommend_explicit_query(self, seeded_client):
        response = seeded_client.post("/api/recommend", json={
            "cardinality": 5,
            "or_filters": ["gender:m"],
            "my_attributes": ["gender:f", "orientation:straight"],
            "my_interests": {"gender:m": 0.5, "orientation:straight": 0.5},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["matches"][0]["member_id"] == "bob"
        assert data["matches"][0]["score"] == pytest.approx(1.0)

    def test_omitted_cardinality_uses_setting(self, store):
        """Test that both recommend routes fall back to default_cardinality"""
        from fastapi.testclient import TestClient
        from api.app import create_app
        from config.settings import get_settings_for_testing
        from matching.service import MatchingService, get_matching_service

        service = MatchingService(store, get_settings_for_testing(default_cardinality=1))
        service.add_attributes("alice", ["gender:f"])
        service.record_interest("alice", 1.0, ["gender:m"])
        for man in ("bob", "carl", "dave"):
            service.add_attributes(man, ["gender:m"])
            service.record_interest(man, 1.0, ["gender:f"])

        app = create_app()
        app.dependency_overrides[get_matching_service] = lambda: service
        client = TestClient(app)

        explicit = client.post("/api/recommend", json={
            "or_filters": ["gender:m"],
            "my_attributes": ["gender:f"],
            "my_interests": {"gender:m": 1.0},
        }).json()
        stored = client.post("/api/members/alice/recommend", json={"or_filters": ["gender:m"]}).json()

        assert explicit["count"] == 1
        assert stored["count"] == 1
        assert explicit["matches"] == stored["matches"] == [{"member_id": "bob", "score": 1.0}]

    def test_recommend_for_member(self, seeded_client):
        data = seeded_client.post("/api/members/bob/recommend", json={"or_filters": ["gender:f"]}).json()
        assert [m["member_id"] for m in data["matches"]] == ["alice"]

    def test_recommend_for_member_empty_pool(self, seeded_client):
        response = seeded_client.post("/api/members/bob/recommend", json={"or_filters": []})
        assert response.status_code == 200
        assert response.json() == {"matches": [], "count": 0}

    def test_recommend_from_args(self, seeded_client):
        response = seeded_client.post("/api/recommend/args", json={"args": [
            "5", "1", "gender:m", "0",
            "2", "gender:f", "orientation:straight",
            "2", "gender:m", "0.5", "orientation:straight", "0.5",
        ]})
        assert [m["member_id"] for m in response.json()["matches"]] == ["bob"]

    @pytest.mark.parametrize("body", [
        {"cardinality": 10_000, "or_filters": ["gender:m"]},
        {"cardinality": 5, "or_filters": ["gender:m"], "my_interests": {"gender:m": -1}},
    ])
    def test_invalid_query(self, seeded_client, body):
        response = seeded_client.post("/api/recommend", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidQuery"

    def test_negative_cardinality_rejected_by_schema(self, seeded_client):
        response = seeded_client.post("/api/recommend", json={"cardinality": -1, "or_filters": ["gender:m"]})
        assert response.status_code == 422

    def test_invalid_args(self, seeded_client):
        response = seeded_client.post("/api/recommend/args", json={"args": ["5", "3", "a"]})
        assert response.status_code == 400
        assert "only 1 arguments remain" in response.json()["detail"]
