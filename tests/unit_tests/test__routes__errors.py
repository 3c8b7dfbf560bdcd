import shutil

from fastapi import status
from fastapi.testclient import TestClient

from upload_server.adapters.storage import MAX_UPLOAD_COUNT, StorageController


def test_download_missing_file(client: TestClient):
    response = client.get("/download", params={"filename": "missing.txt"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.text == "File 'missing.txt' not found on the server!"


def test_download_traversal_is_not_found(client: TestClient, tmp_path):
    (tmp_path / "secret").write_bytes(b"top secret")

    for name in ["../secret", str(tmp_path / "secret"), "C:secret", ""]:
        response = client.get("/download", params={"filename": name})
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert b"top secret" not in response.content


def test_download_lock_marker_is_not_found(client: TestClient):
    response = client.get("/download", params={"filename": ".lock"})

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_download_requires_filename(client: TestClient):
    response = client.get("/download")

    assert response.status_code == 422


def test_upload_without_body(client: TestClient, controller: StorageController):
    response = client.post("/upload")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.text == "Expected a multipart/form-data upload"
    assert controller.upload_count == 0


def test_upload_rejects_urlencoded_form(client: TestClient, controller: StorageController):
    response = client.post(
        "/upload",
        content=b"note=hello",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.text == "Expected a multipart/form-data upload"
    assert controller.upload_count == 0
    assert list(controller.storage_path.iterdir()) == [controller.storage_path / ".lock"]


def test_upload_malformed_multipart(client: TestClient, controller: StorageController):
    response = client.post(
        "/upload",
        content=b"not really multipart",
        headers={"Content-Type": "multipart/form-data"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.text == "Malformed upload!"
    assert controller.upload_count == 0


def test_upload_reserved_name(client: TestClient, controller: StorageController):
    response = client.post("/upload", files={"file": (".lock", b"evil", "text/plain")})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.text == "File name '.lock' is reserved"
    assert controller.instance_lock.held


def test_upload_counter_exhausted(client: TestClient, controller: StorageController):
    controller._upload_count = MAX_UPLOAD_COUNT

    response = client.post("/upload", files={"file": ("a.txt", b"a", "text/plain")})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.text == "Upload counter exhausted!"


def test_upload_write_failure(client: TestClient, controller: StorageController):
    (controller.storage_path / "taken").mkdir()

    response = client.post("/upload", files={"file": ("taken", b"a", "text/plain")})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.text == "File upload failed!"
    assert controller.upload_count == 1


def test_list_failure(client: TestClient, controller: StorageController):
    shutil.rmtree(controller.storage_path)

    response = client.get("/v1/files")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.text == "Could not list stored files!"

    response = client.get("/health")
    assert response.json()["status"] == "degraded"


def test_unknown_route_serves_not_found_page(client: TestClient):
    response = client.get("/no/such/page")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.headers["Content-Type"].startswith("text/html")
    assert "404" in response.text
