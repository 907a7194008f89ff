"""JSON API tests: /api/customers."""
import io

import pytest

from app.custbook import create_app
from app.custbook.constants import MAX_IMAGE_BYTES
from app.custbook.db import session_scope
from app.custbook.models import Base, CustomerRecord
from app.custbook.storage import LocalStorage, StorageError


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_PUBLIC_BASE_URL", "http://testserver/uploads")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "PAGE_TOKEN_MAX_AGE"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    return app.test_client()


def _record_count(client) -> int:
    with session_scope(client.application) as s:
        return s.query(CustomerRecord).count()


def test_example_lifecycle(client):
    r = client.post("/api/customers", json={"name": "Acme"})
    assert r.status_code == 201
    created = r.json
    assert created["name"] == "Acme"
    cid = created["id"]

    r = client.get("/api/customers")
    assert r.status_code == 200
    assert r.json == {"items": [{"id": cid, "name": "Acme"}]}

    r = client.get(f"/api/customers/{cid}")
    assert r.status_code == 200
    assert r.json == created

    r = client.delete(f"/api/customers/{cid}")
    assert r.status_code == 200
    assert r.data == b"OK"

    r = client.get(f"/api/customers/{cid}")
    assert r.status_code == 404
    assert r.json["error"] == "not_found"


def test_list_empty(client):
    r = client.get("/api/customers")
    assert r.status_code == 200
    assert r.json == {"items": []}


def test_list_pages_through_everything(client):
    ids = [client.post("/api/customers", json={"n": i}).json["id"] for i in range(23)]

    seen, token, pages = [], None, 0
    while True:
        r = client.get("/api/customers", query_string={"pageToken": token} if token else None)
        assert r.status_code == 200
        assert len(r.json["items"]) <= 10
        seen.extend(c["id"] for c in r.json["items"])
        pages += 1
        token = r.json.get("nextPageToken")
        if not token:
            break
    assert pages == 3
    assert seen == ids


def test_list_same_token_is_repeatable(client):
    for i in range(12):
        client.post("/api/customers", json={"n": i})
    token = client.get("/api/customers").json["nextPageToken"]
    a = client.get("/api/customers", query_string={"pageToken": token}).json
    b = client.get("/api/customers", query_string={"pageToken": token}).json
    assert a == b
    assert [c["n"] for c in a["items"]] == [10, 11]


def test_list_invalid_token_400(client):
    r = client.get("/api/customers", query_string={"pageToken": "definitely-not-valid"})
    assert r.status_code == 400
    assert r.json["error"] == "invalid_cursor"


def test_create_with_image_multipart(client):
    r = client.post(
        "/api/customers",
        data={
            "name": "Acme",
            "imageUrl": "https://elsewhere.example.com/old.png",
            "image": (io.BytesIO(b"png-bytes"), "logo.png", "image/png"),
        },
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    url = r.json["imageUrl"]
    assert url.startswith("http://testserver/uploads/customers/")
    assert url.endswith("-logo.png")

    # Local backend serves the uploaded object back
    r = client.get(url.replace("http://testserver", ""))
    assert r.status_code == 200
    assert r.data == b"png-bytes"
    assert r.mimetype == "image/png"


def test_create_multipart_without_file_has_no_image(client):
    r = client.post(
        "/api/customers",
        data={"name": "Acme", "image": (io.BytesIO(b""), "")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    assert "imageUrl" not in r.json


def test_upload_failure_creates_nothing(client, monkeypatch):
    def _fail(self, key, data, *, content_type=None):
        raise StorageError("disk full")

    monkeypatch.setattr(LocalStorage, "put_bytes", _fail)
    r = client.post(
        "/api/customers",
        data={"name": "Acme", "image": (io.BytesIO(b"png-bytes"), "logo.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 502
    assert r.json["error"] == "upload_failed"
    assert _record_count(client) == 0


def test_create_invalid_payload_400(client):
    r = client.post("/api/customers", json={"name": "Acme", "tags": ["a"]})
    assert r.status_code == 400
    assert r.json["error"] == "invalid_payload"
    assert "tags" in r.json["fields"]
    assert _record_count(client) == 0


def test_create_oversized_image_400(client):
    r = client.post(
        "/api/customers",
        data={"name": "Acme", "image": (io.BytesIO(b"x" * (MAX_IMAGE_BYTES + 1)), "big.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 400
    assert r.json["error"] == "invalid_image"
    assert _record_count(client) == 0


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_create_non_finite_number_400(client, literal):
    r = client.post(
        "/api/customers",
        data='{"name": "Acme", "score": %s}' % literal,
        content_type="application/json",
    )
    assert r.status_code == 400
    assert r.json["error"] == "invalid_payload"
    assert "score" in r.json["fields"]
    assert _record_count(client) == 0


def test_create_non_object_json_400(client):
    r = client.post("/api/customers", json=["Acme"])
    assert r.status_code == 400
    assert r.json["error"] == "invalid_payload"


def test_update_replaces_record(client):
    cid = client.post("/api/customers", json={"name": "Acme", "phone": "555-0100"}).json["id"]
    r = client.put(f"/api/customers/{cid}", json={"id": "other", "name": "Acme Corp"})
    assert r.status_code == 200
    assert r.json == {"id": cid, "name": "Acme Corp"}
    assert client.get(f"/api/customers/{cid}").json == {"id": cid, "name": "Acme Corp"}


def test_update_with_image(client):
    cid = client.post("/api/customers", json={"name": "Acme"}).json["id"]
    r = client.put(
        f"/api/customers/{cid}",
        data={"name": "Acme", "image": (io.BytesIO(b"new"), "new.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 200
    assert r.json["imageUrl"].endswith("-new.png")


def test_update_missing_404_without_upload(client, monkeypatch):
    calls = []
    monkeypatch.setattr(LocalStorage, "put_bytes", lambda self, *a, **kw: calls.append(a))
    r = client.put(
        "/api/customers/missing",
        data={"name": "Acme", "image": (io.BytesIO(b"png-bytes"), "logo.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 404
    assert calls == []


def test_delete_missing_404(client):
    r = client.delete("/api/customers/missing")
    assert r.status_code == 404
    assert r.json["error"] == "not_found"


def test_uploads_missing_file_404(client):
    assert client.get("/uploads/customers/nope.png").status_code == 404


def test_uploads_path_escape_404(client):
    assert client.get("/uploads/..%2F..%2Fetc%2Fpasswd").status_code == 404


def test_uploads_backend_error_404(client, monkeypatch):
    def _unreachable(self, key):
        raise StorageError("endpoint unreachable")

    monkeypatch.setattr(LocalStorage, "exists", _unreachable)
    assert client.get("/uploads/customers/a.png").status_code == 404
