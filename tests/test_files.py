import io

from PIL import Image

from app.utils import image_storage


def _jpeg_bytes(size=(1600, 1200)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(10, 120, 200)).save(buffer, format="JPEG")
    return buffer.getvalue()


def test_upload_car_image_and_serve_it(client, upload_dir):
    response = client.post(
        "/api/v1/files/upload",
        files={"file": ("truck.jpg", _jpeg_bytes(), "image/jpeg")},
        data={"type": "car"},
    )
    assert response.status_code == 200, response.text
    url = response.json()["url"]
    assert url.startswith("/uploads/car/car_")

    with Image.open(upload_dir / url[len("/uploads/"):]) as image:
        assert image.size == (800, 600)

    served = client.get("/api/v1/files/serve-image", params={"path": url})
    assert served.status_code == 200
    assert served.headers["content-type"] == "image/jpeg"
    assert served.headers["cache-control"] == "public, max-age=31536000"


def test_upload_rejects_bad_type_and_size(client, upload_dir, monkeypatch):
    response = client.post(
        "/api/v1/files/upload",
        files={"file": ("truck.jpg", _jpeg_bytes(), "image/jpeg")},
        data={"type": "boat"},
    )
    assert response.status_code == 400

    response = client.post(
        "/api/v1/files/upload",
        files={"file": ("truck.gif", b"GIF89a", "image/gif")},
        data={"type": "car"},
    )
    assert response.status_code == 400

    monkeypatch.setattr(image_storage.settings, "MAX_UPLOAD_SIZE", 10)
    response = client.post(
        "/api/v1/files/upload",
        files={"file": ("truck.jpg", _jpeg_bytes(), "image/jpeg")},
        data={"type": "car"},
    )
    assert response.status_code == 400


def test_serve_image_rejects_traversal(client, upload_dir):
    assert client.get("/api/v1/files/serve-image", params={"path": "/uploads/../secret.txt"}).status_code == 400
    assert client.get("/api/v1/files/serve-image", params={"path": "/etc/passwd"}).status_code == 400
    assert client.get("/api/v1/files/serve-image", params={"path": "/uploads/car/missing.jpg"}).status_code == 404


def test_delete_image_ignores_foreign_paths(upload_dir):
    assert image_storage.delete_image(None) is False
    assert image_storage.delete_image("/etc/passwd") is False
    assert image_storage.delete_image("/uploads/car/missing.jpg") is False
