"""
Integration tests for upload API endpoints.
Tests the full request/response cycle including routes, dependencies, and exception handlers.
"""
import asyncio
import time
import pytest
from fastapi.testclient import TestClient
from uploader.core.dependencies import get_upload_service
from uploader.core.exceptions import TransportException
from uploader.api.routes import upload_routes
from uploader.main import app
from uploader.services.upload_service import UploadService


def _wait_until_settled(client: TestClient, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get("/v1/api/uploads").json()
        if not data["any_pending"]:
            return data
        time.sleep(0.01)
    raise AssertionError("Uploads did not settle in time")


class TestUploadAPI:
    """Integration test suite for upload endpoints."""

    @pytest.fixture
    def storage(self, make_storage):
        return make_storage()

    @pytest.fixture
    def client(self, storage):
        service = UploadService(storage_client=storage)
        app.dependency_overrides[get_upload_service] = lambda: service
        with TestClient(app) as test_client:
            yield test_client
        app.dependency_overrides.clear()

    def test_health_check(self, client):
        response = client.get("/v1/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "Upload Orchestrator API"

    def test_list_uploads_empty(self, client):
        response = client.get("/v1/api/uploads")

        assert response.status_code == 200
        assert response.json() == {
            "uploads": [],
            "count": 0,
            "any_pending": False,
            "global_percentage": 100
        }

    def test_submit_uploads_accepts_files(self, client, storage):
        response = client.post(
            "/v1/api/uploads",
            files=[
                ("files", ("a.txt", b"a" * 100, "text/plain")),
                ("files", ("b.txt", b"b" * 200, "text/plain")),
                ("files", ("c.txt", b"c" * 300, "text/plain")),
            ]
        )

        assert response.status_code == 202
        upload_ids = response.json()["upload_ids"]
        assert len(upload_ids) == 3

        data = _wait_until_settled(client)
        assert data["count"] == 3
        assert data["global_percentage"] == 100
        assert [upload["name"] for upload in data["uploads"]] == ["a.txt", "b.txt", "c.txt"]
        assert all(upload["status"] == "success" for upload in data["uploads"])
        assert len({upload["remote_url"] for upload in data["uploads"]}) == 3
        assert [upload["compressed_size_bytes"] for upload in data["uploads"]] == [100, 200, 300]

    def test_get_upload_by_id(self, client):
        upload_id = client.post(
            "/v1/api/uploads",
            files=[("files", ("a.txt", b"a" * 10, "text/plain"))]
        ).json()["upload_ids"][0]
        _wait_until_settled(client)

        response = client.get(f"/v1/api/uploads/{upload_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["upload_id"] == upload_id
        assert data["status"] == "success"
        assert data["original_size_in_bytes"] == 10
        assert data["attempts"] == 1
        assert "cancel_token" not in data
        assert "file" not in data

    def test_get_unknown_upload_returns_404(self, client):
        response = client.get("/v1/api/uploads/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_progress_endpoint(self, client):
        response = client.get("/v1/api/uploads/progress")

        assert response.status_code == 200
        assert response.json() == {"any_pending": False, "global_percentage": 100}

    def test_submit_empty_file_rejected(self, client):
        response = client.post(
            "/v1/api/uploads",
            files=[("files", ("empty.txt", b"", "text/plain"))]
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation Error"
        assert client.get("/v1/api/uploads").json()["count"] == 0

    def test_submit_oversize_file_rejected(self, client, monkeypatch):
        from uploader.core import config
        monkeypatch.setattr(config.settings, "max_file_size_mb", 1)

        response = client.post(
            "/v1/api/uploads",
            files=[("files", ("big.bin", b"x" * (1024 * 1024 + 1), "application/octet-stream"))]
        )

        assert response.status_code == 413
        assert "exceeds maximum" in response.json()["detail"]

    def test_submit_without_files_rejected(self, client):
        response = client.post("/v1/api/uploads")

        assert response.status_code == 422

    def test_retry_failed_upload(self, client, storage):
        storage.fail_with = TransportException("Storage unavailable")
        upload_id = client.post(
            "/v1/api/uploads",
            files=[("files", ("a.txt", b"a" * 10, "text/plain"))]
        ).json()["upload_ids"][0]
        data = _wait_until_settled(client)
        assert data["uploads"][0]["status"] == "error"
        assert data["uploads"][0]["error_message"] == "Storage unavailable"

        storage.fail_with = None
        response = client.post(f"/v1/api/uploads/{upload_id}/retry")

        assert response.status_code == 202
        data = _wait_until_settled(client)
        assert data["uploads"][0]["status"] == "success"
        assert data["uploads"][0]["attempts"] == 2
        assert data["uploads"][0]["error_message"] is None

    def test_cancel_in_flight_upload(self, make_storage):
        gated = make_storage(gated=True)
        service = UploadService(storage_client=gated)
        app.dependency_overrides[get_upload_service] = lambda: service
        try:
            with TestClient(app) as client:
                upload_id = client.post(
                    "/v1/api/uploads",
                    files=[("files", ("a.txt", b"a" * 10, "text/plain"))]
                ).json()["upload_ids"][0]

                response = client.post(f"/v1/api/uploads/{upload_id}/cancel")

                assert response.status_code == 202
                data = _wait_until_settled(client)
                assert data["uploads"][0]["status"] == "canceled"
                assert data["uploads"][0]["remote_url"] is None
        finally:
            app.dependency_overrides.clear()

    def test_retry_and_cancel_unknown_ids_are_ignored(self, client):
        assert client.post("/v1/api/uploads/missing/retry").status_code == 202
        assert client.post("/v1/api/uploads/missing/cancel").status_code == 202
        assert client.get("/v1/api/uploads").json()["count"] == 0


class TestUploadEventStream:
    """Test suite for the Server-Sent Events stream."""

    @pytest.mark.asyncio
    async def test_stream_emits_snapshot_per_change(self, make_file, make_storage):
        service = UploadService(storage_client=make_storage())
        stream = upload_routes._event_stream(service)

        first = await stream.__anext__()
        assert first.startswith("event: progress\ndata: ")
        assert '"count":0' in first

        service.add_uploads([make_file("a.txt", 100)])
        await service.wait_until_idle()

        events = []
        while True:
            event = await asyncio.wait_for(stream.__anext__(), timeout=1)
            events.append(event)
            if '"any_pending":false' in event:
                break
        await stream.aclose()

        assert any('"global_percentage":50' in event for event in events)
        assert '"status":"success"' in events[-1]
        assert all(event.endswith("\n\n") for event in events)

    @pytest.mark.asyncio
    async def test_stream_sends_keepalive_when_idle(self, monkeypatch, make_storage):
        monkeypatch.setattr(upload_routes, "KEEPALIVE_SECONDS", 0.01)
        service = UploadService(storage_client=make_storage())
        stream = upload_routes._event_stream(service)

        await stream.__anext__()
        keepalive = await asyncio.wait_for(stream.__anext__(), timeout=1)
        await stream.aclose()

        assert keepalive == ": keepalive\n\n"
        assert service.registry._listeners == []
