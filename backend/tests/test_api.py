import asyncio, io, os, tempfile, threading, time, zipfile
from fastapi import UploadFile
from fastapi.testclient import TestClient

os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="t360_")
os.environ.pop("STORE_ROOT", None)
os.environ["GENERATOR"] = "sweeper_api.services.mock_generator:generate"

from sweeper_api.main import app
from sweeper_api.deps import get_generator, get_store
from sweeper_api.routes.upload import upload_kml
from sweeper_api.services.storage import ProjectStore, RetentionPolicy
from sweeper_api.settings import settings

client = TestClient(app)

KML = b'<?xml version="1.0"?><kml xmlns="http://www.opengis.net/kml/2.2"><Document/></kml>'
PROJECT = {
    "ProjectName": "Alpha Recon!!",
    "Target": {"name": "Bravo", "latitude": 48.85, "longitude": 2.35},
    "Sweeper": {"count": 10, "radius": 500, "altitude": 300},
}


def test_health():
    r = client.get("/health")
    assert r.status_code == 200


def test_upload_kml_and_download():
    files = {"file": ("area.kml", KML, "application/octet-stream")}
    r = client.post("/api/kml/upload", files=files)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["name"] == "area.kml"
    assert data["url"].startswith("/downloads/area_kml_")
    assert data["url"].endswith("/area.kml")

    r2 = client.get(data["url"])
    assert r2.status_code == 200
    assert r2.content == KML


def test_upload_accepts_kml_mime_with_other_extension():
    files = {"file": ("export.xml", KML, "application/vnd.google-earth.kml+xml")}
    r = client.post("/api/kml/upload", files=files)
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "export.xml"


def test_upload_legacy_route():
    files = {"file": ("legacy.kml", KML, "application/vnd.google-earth.kml+xml")}
    r = client.post("/api/upload-kml", files=files)
    assert r.status_code == 200, r.text
    assert "/legacy_kml_" in r.json()["url"]


def test_upload_rejects_non_kml():
    files = {"file": ("notes.txt", b"hello", "text/plain")}
    r = client.post("/api/kml/upload", files=files)
    assert r.status_code == 400
    assert r.json()["detail"] == "Only KML files are allowed."


def test_upload_without_file():
    r = client.post("/api/kml/upload")
    assert r.status_code == 400
    assert r.json()["detail"] == "No file uploaded."


def test_upload_too_large(monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    files = {"file": ("big.kml", KML, "application/vnd.google-earth.kml+xml")}
    r = client.post("/api/kml/upload", files=files)
    assert r.status_code == 400
    assert "too large" in r.json()["detail"]


def test_generate_project():
    r = client.post("/api/kml/generate", json=PROJECT)
    assert r.status_code == 200, r.text
    data = r.json()
    for key in ("kmlUrl", "csvUrl", "kmzUrl"):
        assert data[key].startswith("/downloads/Alpha_Recon___")
    assert data["kmlUrl"].endswith("/Alpha_Recon__.kml")
    assert len(data["files"]) == 3
    assert data["summary"]["projectName"] == "Alpha Recon!!"

    kml = client.get(data["kmlUrl"])
    assert kml.status_code == 200
    assert b"<Placemark>" in kml.content
    assert b"2.35,48.85,0" in kml.content

    kmz = client.get(data["kmzUrl"])
    assert kmz.status_code == 200
    with zipfile.ZipFile(io.BytesIO(kmz.content)) as zf:
        assert zf.namelist() == ["doc.kml"]


def test_generate_legacy_route_and_default_name():
    r = client.post("/api/generate", json={"Target": {"latitude": 1, "longitude": 2}})
    assert r.status_code == 200, r.text
    assert "/downloads/project_" in r.json()["kmlUrl"]


def test_generate_failure_is_500():
    def broken(request):
        raise RuntimeError("bad target")

    app.dependency_overrides[get_generator] = lambda: broken
    try:
        r = client.post("/api/kml/generate", json=PROJECT)
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500
    assert "bad target" in r.json()["detail"]


def test_storage_failure_is_500(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    app.dependency_overrides[get_store] = lambda: ProjectStore(blocker)
    try:
        files = {"file": ("area.kml", KML, "application/vnd.google-earth.kml+xml")}
        r = client.post("/api/kml/upload", files=files)
        r2 = client.post("/api/kml/generate", json=PROJECT)
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to store uploaded file"
    assert r2.status_code == 500


def test_uploads_respect_count_limit(tmp_path):
    store = ProjectStore(tmp_path / "projects", policy=RetentionPolicy(max_count=2))
    app.dependency_overrides[get_store] = lambda: store
    try:
        for i in range(5):
            files = {"file": (f"f{i}.kml", KML, "application/vnd.google-earth.kml+xml")}
            assert client.post("/api/kml/upload", files=files).status_code == 200
    finally:
        app.dependency_overrides.clear()
    # после прохода очистки остаётся max_count, плюс только что созданная папка
    assert len([p for p in store.root.iterdir() if p.is_dir()]) == 3


def test_static_rejects_traversal():
    secret = os.path.join(os.environ["DATA_DIR"], "secret.txt")
    with open(secret, "w", encoding="utf-8") as f:
        f.write("nope")
    r = client.get("/downloads/..%2Fsecret.txt")
    assert r.status_code == 404
    r2 = client.get("/downloads/missing_1_abcdef/none.kml")
    assert r2.status_code == 404


def test_generator_bad_file_name_is_500():
    def sneaky(request):
        return {"files": {"../escape.kml": b"<kml/>"}, "summary": {}}

    app.dependency_overrides[get_generator] = lambda: sneaky
    try:
        r = client.post("/api/kml/generate", json=PROJECT)
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500
    assert "Bad file name" in r.json()["detail"]


def test_upload_waits_for_store_off_the_event_loop(tmp_path):
    store = ProjectStore(tmp_path / "projects")
    locked = threading.Event()

    def hold_store_lock():
        # параллельная генерация держит лок хранилища
        with store._lock:
            locked.set()
            time.sleep(0.5)

    holder = threading.Thread(target=hold_store_lock)
    holder.start()
    locked.wait()

    async def scenario():
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.05)
                ticks += 1

        task = asyncio.create_task(ticker())
        upload = UploadFile(file=io.BytesIO(KML), filename="area.kml")
        resp = await upload_kml(file=upload, store=store)
        task.cancel()
        return resp, ticks

    resp, ticks = asyncio.run(scenario())
    holder.join()

    assert resp.name == "area.kml"
    # пока upload ждал лок, цикл продолжал крутиться
    assert ticks >= 4
