"""변환 API (upload, transform, job-status, delete, health, config) 테스트. 목 모드."""

import time

from conftest import make_png, upload, wait_for_terminal


class TestUpload:
    def test_upload_photo(self, client):
        """이미지 업로드 → 200 + imageId 반환."""
        resp = client.post(
            "/api/upload-photo",
            files={"photo": ("test.png", make_png(), "image/png")},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["imageId"]
        assert data["message"] == "Photo uploaded successfully"

    def test_upload_without_file(self, client):
        """photo 필드 없음 → 400 INVALID_UPLOAD."""
        resp = client.post("/api/upload-photo")
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "INVALID_UPLOAD"

    def test_upload_non_image(self, client):
        """이미지가 아닌 파일 → 400."""
        resp = client.post(
            "/api/upload-photo",
            files={"photo": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "INVALID_UPLOAD"

    def test_upload_too_large(self, client, monkeypatch):
        """크기 제한 초과 → 400."""
        monkeypatch.setattr(client.app.state.settings, "MAX_UPLOAD_BYTES", 10)
        resp = client.post(
            "/api/upload-photo",
            files={"photo": ("big.png", make_png(), "image/png")},
        )
        assert resp.status_code == 400

    def test_upload_at_limit_accepted_one_over_rejected(self, client, monkeypatch):
        """정확히 한도 크기는 허용, 1바이트 초과는 400."""
        png = make_png()
        monkeypatch.setattr(client.app.state.settings, "MAX_UPLOAD_BYTES", len(png))
        ok = client.post("/api/upload-photo", files={"photo": ("a.png", png, "image/png")})
        assert ok.status_code == 200

        monkeypatch.setattr(client.app.state.settings, "MAX_UPLOAD_BYTES", len(png) - 1)
        resp = client.post("/api/upload-photo", files={"photo": ("a.png", png, "image/png")})
        assert resp.status_code == 400
        assert resp.json()["message"] == f"File too large (max {len(png) - 1} bytes)"

    def test_unused_upload_expires(self, short_ttl_client):
        """변환 요청 없이 남은 업로드도 TTL 후 메모리에서 사라진다."""
        service = short_ttl_client.app.state.transform_service
        image_id = upload(short_ttl_client)
        assert service.blobs.get(image_id) is not None

        time.sleep(0.5)

        assert service.blobs.get(image_id) is None
        resp = short_ttl_client.post("/api/transform", json={"imageId": image_id})
        assert resp.status_code == 400


class TestTransform:
    def test_transform_unknown_image(self, client, service):
        """업로드한 적 없는 imageId → 400, 작업 생성 안 됨."""
        resp = client.post("/api/transform", json={"imageId": "does-not-exist"})
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "INVALID_IMAGE_ID"
        assert len(service.jobs) == 0

    def test_transform_missing_image_id(self, client):
        resp = client.post("/api/transform", json={})
        assert resp.status_code == 400

    def test_transform_returns_job_immediately(self, client):
        """작업 생성 직후 응답 → 아직 processing."""
        image_id = upload(client)
        resp = client.post("/api/transform", json={"imageId": image_id})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["message"] == "Transformation started"

        status = client.get(f"/api/job-status/{data['jobId']}").json()
        assert status["status"] == "processing"

    def test_defaults_applied(self, client, service):
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]

        job = service.get(job_id)
        assert job.transformation_type == "weight-loss"
        assert job.amount == 20

    def test_mock_job_completes_with_original(self, client):
        """목 모드: completed + resultUrl == originalUrl."""
        image_id = upload(client)
        job_id = client.post(
            "/api/transform",
            json={"imageId": image_id, "transformationType": "weight-loss", "amount": 35},
        ).json()["jobId"]

        final = wait_for_terminal(client, job_id)[-1]
        assert final["status"] == "completed"
        assert final["progress"] == 100
        assert final["error"] is None
        assert final["originalUrl"].startswith("data:image/png;base64,")
        assert final["resultUrl"] == final["originalUrl"]

    def test_progress_is_monotonic(self, client):
        """폴링 중 progress는 감소하지 않고, 100은 completed에서만 나온다."""
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]

        seen = wait_for_terminal(client, job_id)
        progress = [s["progress"] for s in seen]
        assert progress == sorted(progress)
        for s in seen:
            if s["progress"] == 100:
                assert s["status"] == "completed"

    def test_completed_job_is_scheduled_for_retention(self, client, service):
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]
        wait_for_terminal(client, job_id)

        assert service.retention.is_scheduled(job_id)


class TestJobStatus:
    def test_unknown_job(self, client):
        resp = client.get("/api/job-status/nope")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "JOB_NOT_FOUND"


class TestDelete:
    def test_delete_job(self, client, service):
        """삭제 → 204, 이후 조회 404, 원본 이미지와 타이머도 제거."""
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]
        wait_for_terminal(client, job_id)

        resp = client.delete(f"/api/job/{job_id}")
        assert resp.status_code == 204

        assert client.get(f"/api/job-status/{job_id}").status_code == 404
        assert service.blobs.get(image_id) is None
        assert not service.retention.is_scheduled(job_id)

    def test_delete_is_idempotent(self, client):
        assert client.delete("/api/job/unknown").status_code == 204
        assert client.delete("/api/job/unknown").status_code == 204

    def test_delete_while_processing(self, client, service):
        """처리 중 삭제 → 이후 쓰기는 무시되고 작업은 다시 생기지 않는다."""
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]

        assert client.delete(f"/api/job/{job_id}").status_code == 204
        time.sleep(0.1)

        assert client.get(f"/api/job-status/{job_id}").status_code == 404
        assert not service.retention.is_scheduled(job_id)

    def test_delete_prevents_ttl_cleanup(self, short_ttl_client, log_messages):
        """삭제 후에는 TTL 정리 로그가 남지 않는다."""
        client = short_ttl_client
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]
        wait_for_terminal(client, job_id)

        client.delete(f"/api/job/{job_id}")
        time.sleep(0.4)

        assert any(f"Explicit cleanup for job {job_id}" in m for m in log_messages)
        assert not any(f"Cleaned up job {job_id}" in m for m in log_messages)

    def test_deleting_one_job_leaves_other(self, client, service):
        """서로 다른 업로드의 작업은 간섭하지 않는다."""
        first = client.post("/api/transform", json={"imageId": upload(client, "red")}).json()["jobId"]
        second = client.post("/api/transform", json={"imageId": upload(client, "green")}).json()["jobId"]
        wait_for_terminal(client, first)
        wait_for_terminal(client, second)

        client.delete(f"/api/job/{first}")

        status = client.get(f"/api/job-status/{second}").json()
        assert status["status"] == "completed"
        assert service.retention.is_scheduled(second)


class TestRetention:
    def test_ttl_expiry_removes_job_and_image(self, short_ttl_client, log_messages):
        client = short_ttl_client
        service = client.app.state.transform_service
        image_id = upload(client)
        job_id = client.post("/api/transform", json={"imageId": image_id}).json()["jobId"]
        wait_for_terminal(client, job_id)

        time.sleep(0.4)

        assert client.get(f"/api/job-status/{job_id}").status_code == 404
        assert service.blobs.get(image_id) is None
        cleanup = [m for m in log_messages if f"Cleaned up job {job_id}" in m]
        assert len(cleanup) == 1


class TestMeta:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "timestamp" in data

    def test_config(self, client):
        data = client.get("/api/config").json()
        assert data["mock"] is True
        assert data["storage"] == "memory"
        assert data["ttl_ms"] == client.app.state.settings.JOB_TTL_MS
        assert data["model"] == "google/gemini-2.5-flash-image-preview"
