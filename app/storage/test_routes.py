import pytest
from fastapi.testclient import TestClient

from app.storage.routes import get_store
from app.storage.store import BrowserStore


@pytest.fixture
def client(server_app, tmp_path):
    store = BrowserStore(tmp_path / "browser.db")
    server_app.dependency_overrides[get_store] = lambda: store
    return TestClient(server_app)


class TestHistoryRoutes:
    def test_record_and_list(self, client):
        first = client.post(
            "/api/history", json={"url": "https://a.example", "title": "A"}
        )
        client.post("/api/history", json={"url": "https://b.example"})

        response = client.get("/api/history")

        assert first.status_code == 201
        assert first.json()["title"] == "A"
        assert response.status_code == 200
        assert [entry["url"] for entry in response.json()] == [
            "https://b.example",
            "https://a.example",
        ]

    def test_list_is_capped(self, client):
        for n in range(105):
            client.post("/api/history", json={"url": f"https://e.com/{n}"})

        response = client.get("/api/history")

        assert len(response.json()) == 100
        assert response.json()[0]["url"] == "https://e.com/104"

    def test_missing_url_is_rejected(self, client):
        response = client.post("/api/history", json={"title": "no url"})

        assert response.status_code == 422
        assert "detail" in response.json()


class TestDownloadRoutes:
    def test_create_and_update(self, client):
        created = client.post(
            "/api/downloads",
            json={"filename": "a.zip", "url": "https://e.com/a.zip"},
        )
        download_id = created.json()["id"]

        updated = client.patch(
            f"/api/downloads/{download_id}",
            json={"status": "completed", "progress": 100},
        )

        assert created.status_code == 201
        assert created.json()["status"] == "pending"
        assert updated.status_code == 200
        assert updated.json()["status"] == "completed"
        assert updated.json()["progress"] == 100
        assert client.get("/api/downloads").json() == [updated.json()]

    def test_update_unknown_download(self, client):
        response = client.patch("/api/downloads/999", json={"status": "failed"})

        assert response.status_code == 404
        assert response.json() == {"detail": "Download not found"}

    @pytest.mark.parametrize(
        "body",
        [
            {"status": "exploded"},
            {"status": "downloading", "progress": 101},
            {},
        ],
    )
    def test_invalid_update_is_rejected(self, client, body):
        created = client.post(
            "/api/downloads", json={"filename": "a", "url": "https://e.com/a"}
        )

        response = client.patch(f"/api/downloads/{created.json()['id']}", json=body)

        assert response.status_code == 422
        assert "detail" in response.json()


class TestFeedbackRoutes:
    def test_submit_feedback(self, client):
        response = client.post("/api/feedback", json={"message": "Great", "rating": 5})

        assert response.status_code == 201
        assert response.json()["message"] == "Great"
        assert response.json()["id"] >= 1

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, client, rating):
        response = client.post("/api/feedback", json={"message": "x", "rating": rating})

        assert response.status_code == 422
