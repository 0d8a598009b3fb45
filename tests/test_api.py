import time

import pytest
from fastapi.testclient import TestClient

from imgbatch_service.api import create_app


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
    app.state.engine.pipeline.close()


def wait_for_terminal(client, request_id, timeout=10.0):
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/status/{request_id}").json()
        if body["status"] != "processing" or time.monotonic() > deadline:
            return body
        time.sleep(0.05)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_upload_and_poll(client, settings, make_image):
    image = make_image("sofa.png", size=(900, 600))
    table = f'S.No,Product Name,Input Image Urls\n1,Sofa,"{image},{image.parent}/missing.png"\n'

    resp = client.post("/upload", files={"file": ("sofa.csv", table.encode(), "text/csv")})
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "File uploaded successfully. Processing in progress."
    assert (settings.uploads_dir / "sofa.csv").exists()

    status = wait_for_terminal(client, body["requestId"])
    assert status == {
        "requestId": body["requestId"],
        "status": "completed",
        "processedFile": str(settings.processed_dir / "processed-sofa.csv"),
    }
    # Status reads are stable once terminal.
    assert client.get(f"/status/{body['requestId']}").json() == status

    download = client.get(f"/download/{body['requestId']}")
    assert download.status_code == 200
    assert "Error processing image" in download.text


def test_header_only_upload_errors(client):
    resp = client.post(
        "/upload",
        files={"file": ("empty.csv", b"S.No,Product Name,Input Image Urls\n", "text/csv")},
    )
    request_id = resp.json()["requestId"]

    status = wait_for_terminal(client, request_id)
    assert status["status"] == "error"
    assert status["processedFile"] is None
    assert client.get(f"/download/{request_id}").status_code == 404


def test_upload_without_file(client):
    resp = client.post("/upload")
    assert resp.status_code == 400
    assert resp.json() == {"detail": "No file uploaded."}


def test_unknown_request_id(client):
    resp = client.get("/status/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Invalid request ID"}
    assert client.get("/download/does-not-exist").status_code == 404
