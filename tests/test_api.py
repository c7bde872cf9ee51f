import io

import pytest

from propviz.app import create_app
from propviz.config.settings import settings
from propviz.services.geocoding_client import Location
from propviz.services.image_storage import StoredObject
from propviz.services.report_generator import ReportGenerator
from propviz.services.visualizer import VisualizationResult
from propviz.utils.exceptions import ConflictError, GenerationError, GeocodingError, NotFoundError

SQUARE = [
    {"lat": 0.0, "lng": 0.0},
    {"lat": 0.0, "lng": 0.001},
    {"lat": 0.001, "lng": 0.001},
    {"lat": 0.001, "lng": 0.0},
]

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32

class FakeService:
    closed = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        type(self).closed += 1

class FakeDirectory(FakeService):
    users = {}
    created = []

    def create_user(self, user_id, email, name):
        if user_id in self.users:
            raise ConflictError(f"User already exists: {user_id}")
        self.created.append((user_id, email, name))

    def list_users(self):
        return list(self.users.values())

    def approve_user(self, user_id):
        if user_id not in self.users:
            raise NotFoundError(f"User not found: {user_id}")
        return dict(self.users[user_id], approved=True)

    def delete_user(self, user_id):
        if user_id not in self.users:
            raise NotFoundError(f"User not found: {user_id}")

@pytest.fixture
def directory(monkeypatch):
    FakeDirectory.users = {
        "u1": {
            "id": "u1",
            "email": "pat@example.com",
            "name": "Pat",
            "approved": False,
            "is_admin": False,
            "created_at": "2024-05-01T12:00:00",
        }
    }
    FakeDirectory.created = []
    FakeDirectory.closed = 0
    monkeypatch.setattr("propviz.api.routes.users.UserDirectory", FakeDirectory)
    return FakeDirectory

@pytest.fixture
def uploads(monkeypatch):
    stored = []

    class FakeStorage(FakeService):
        def put(self, data, content_type, folder="uploads"):
            stored.append((data, content_type, folder))
            return StoredObject(path="uploads/1-abcdef.jpeg", url="https://cdn.test/uploads/1-abcdef.jpeg")

    monkeypatch.setattr("propviz.api.routes.uploads.ImageStorage", FakeStorage)
    return stored

def test_config(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "maps-key")

    response = client.get("/api/config")

    assert response.status_code == 200
    data = response.get_json()
    assert data["mapsApiKey"] == "maps-key"
    assert data["visualizationTypes"] == ["paint", "fence", "roof", "flooring"]
    assert data["historyLimit"] == 20
    assert data["maxUploadBytes"] == 10 * 1024 * 1024

def test_geocode_requires_address(client):
    response = client.get("/api/geocode")

    assert response.status_code == 400
    assert response.get_json() == {"error": "ValidationError", "message": "Address is required"}

def test_geocode_proxies_vendor_response(client, monkeypatch):
    vendor = {"status": "OK", "results": [{"geometry": {"location": {"lat": 1.0, "lng": 2.0}}}]}

    class FakeGeocoder(FakeService):
        def geocode(self, address):
            assert address == "12 Elm St"
            return vendor

    monkeypatch.setattr("propviz.api.routes.geocode.GeocodingClient", FakeGeocoder)

    response = client.get("/api/geocode", query_string={"address": " 12 Elm St "})

    assert response.status_code == 200
    assert response.get_json() == vendor

def test_signup(client, directory):
    response = client.post("/api/signup", json={"userId": "u2", "email": "sam@example.com", "name": "Sam"})

    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    assert directory.created == [("u2", "sam@example.com", "Sam")]
    assert directory.closed == 1

def test_signup_missing_fields(client, directory):
    response = client.post("/api/signup", json={"userId": "u2", "email": "sam@example.com"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Missing required fields"

def test_signup_existing_user(client, directory):
    response = client.post("/api/signup", json={"userId": "u1", "email": "pat@example.com", "name": "Pat"})
    assert response.status_code == 409

def test_admin_list_users(client, directory):
    response = client.get("/api/admin/users")

    assert response.status_code == 200
    users = response.get_json()
    assert [u["email"] for u in users] == ["pat@example.com"]

def test_admin_approve(client, directory):
    response = client.post("/api/admin/approve/u1")

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is True
    assert data["user"]["approved"] is True

def test_admin_approve_unknown_user(client, directory):
    response = client.post("/api/admin/approve/nobody")

    assert response.status_code == 404
    assert response.get_json()["error"] == "NotFoundError"

def test_admin_delete(client, directory):
    assert client.delete("/api/admin/users/u1").get_json() == {"success": True}
    assert client.delete("/api/admin/users/nobody").status_code == 404

def test_admin_key_enforced_when_configured(client, directory, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "secret")

    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/users", headers={"X-Admin-Key": "wrong"}).status_code == 401
    assert client.get("/api/admin/users", headers={"X-Admin-Key": "secret"}).status_code == 200

def test_upload_image(client, uploads):
    response = client.post(
        "/api/upload-image",
        data={"image": (io.BytesIO(JPEG_BYTES), "house.jpg", "image/jpeg")},
        content_type="multipart/form-data"
    )

    assert response.status_code == 200
    assert response.get_json() == {
        "success": True,
        "url": "https://cdn.test/uploads/1-abcdef.jpeg",
        "path": "uploads/1-abcdef.jpeg"
    }
    assert uploads == [(JPEG_BYTES, "image/jpeg", "uploads")]

def test_upload_without_file(client, uploads):
    response = client.post("/api/upload-image", data={}, content_type="multipart/form-data")

    assert response.status_code == 400
    assert response.get_json()["message"] == "No image file provided"

def test_upload_rejects_non_images(client, uploads):
    response = client.post(
        "/api/upload-image",
        data={"image": (io.BytesIO(b"hello"), "notes.txt", "text/plain")},
        content_type="multipart/form-data"
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Only image files are allowed"
    assert uploads == []

def test_upload_rejects_large_images(client, uploads):
    oversized = JPEG_BYTES + b"\x00" * settings.MAX_UPLOAD_BYTES

    response = client.post(
        "/api/upload-image",
        data={"image": (io.BytesIO(oversized), "huge.jpg", "image/jpeg")},
        content_type="multipart/form-data"
    )

    assert response.status_code == 413
    assert uploads == []

def test_upload_body_over_request_limit(uploads):
    app = create_app({"TESTING": True, "RATELIMIT_ENABLED": False, "MAX_CONTENT_LENGTH": 1024})

    response = app.test_client().post(
        "/api/upload-image",
        data={"image": (io.BytesIO(JPEG_BYTES + b"\x00" * 4096), "huge.jpg", "image/jpeg")},
        content_type="multipart/form-data"
    )

    assert response.status_code == 413
    assert response.get_json() == {
        "error": "PayloadTooLargeError",
        "message": "Image exceeds the 10MB limit",
    }
    assert uploads == []

def test_visualize_missing_fields(client):
    response = client.post("/api/visualize", json={"imageUrl": "https://cdn.test/a.jpg", "type": "paint"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Missing required fields: imageUrl, type, options"

def test_visualize_invalid_type(client, monkeypatch):
    monkeypatch.setattr(settings, "VISUALIZER_PROVIDERS", [])

    response = client.post(
        "/api/visualize",
        json={"imageUrl": "https://cdn.test/a.jpg", "type": "siding", "options": {"color": "red"}}
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid visualization type. Use: paint, fence, roof, flooring"

def test_visualize(client, monkeypatch):
    class FakeVisualizer(FakeService):
        def visualize(self, image_url, viz_type, options):
            return VisualizationResult(
                original_url=image_url,
                generated_url="https://cdn.test/generated/1-abcdef.png",
                temporary=False,
                provider="huggingface",
                instruction="Change the house exterior paint color to white",
            )

    monkeypatch.setattr("propviz.api.routes.visualize.Visualizer", FakeVisualizer)

    response = client.post(
        "/api/visualize",
        json={"imageUrl": "https://cdn.test/a.jpg", "type": "paint", "options": {"color": "white"}}
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is True
    assert data["originalUrl"] == "https://cdn.test/a.jpg"
    assert data["generatedUrl"] == "https://cdn.test/generated/1-abcdef.png"
    assert data["provider"] == "huggingface"

def test_visualize_all_providers_failed(client, monkeypatch):
    class FailingVisualizer(FakeService):
        def visualize(self, image_url, viz_type, options):
            raise GenerationError("All image providers failed: quota")

    monkeypatch.setattr("propviz.api.routes.visualize.Visualizer", FailingVisualizer)

    response = client.post(
        "/api/visualize",
        json={"imageUrl": "https://cdn.test/a.jpg", "type": "paint", "options": {"color": "white"}}
    )

    assert response.status_code == 502
    assert response.get_json()["error"] == "GenerationError"
    assert FailingVisualizer.closed == 1

def test_measure(client):
    response = client.post("/api/measurements", json={
        "roofPitch": "12/12",
        "shapes": [
            {"kind": "land", "points": SQUARE},
            {"kind": "roof", "points": SQUARE},
            {"kind": "fence", "points": SQUARE[:2]},
        ]
    })

    assert response.status_code == 200
    summary = response.get_json()["summary"]
    assert summary["land"]["count"] == 1
    assert summary["land"]["area_m2"] == pytest.approx(12392.0, rel=1e-3)
    assert summary["roof"]["pitch_multiplier"] == 1.414
    assert summary["roof"]["adjusted_area_m2"] == pytest.approx(summary["roof"]["area_m2"] * 1.414, abs=0.02)
    assert summary["fence"]["length_m"] == pytest.approx(111.32, abs=0.01)

def test_measure_needs_shapes(client):
    response = client.post("/api/measurements", json={"shapes": []})

    assert response.status_code == 400
    assert response.get_json()["message"] == "At least one shape is required"

def test_measure_invalid_shape(client):
    response = client.post("/api/measurements", json={"shapes": [{"kind": "land", "points": SQUARE[:2]}]})
    assert response.status_code == 400

def test_measure_malformed_geojson(client):
    response = client.post("/api/measurements", json={
        "geojson": {
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "geometry": {"type": "Polygon", "coordinates": []}}]
        }
    })

    assert response.status_code == 400
    assert response.get_json()["error"] == "ValidationError"

def test_pitches(client):
    pitches = client.get("/api/measurements/pitches").get_json()["pitches"]
    assert {"pitch": "6/12", "multiplier": 1.118} in pitches

def test_measurement_report(client):
    response = client.post("/api/measurements/report", json={
        "address": "12 Elm St",
        "includeHistory": True,
        "shapes": [{"kind": "land", "points": SQUARE}]
    })

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")

@pytest.fixture
def report_configs(monkeypatch):
    configs = []

    class RecordingGenerator(ReportGenerator):
        def generate_report(self, session, config=None):
            configs.append(config)
            return super().generate_report(session, config)

    monkeypatch.setattr("propviz.api.routes.measurements.ReportGenerator", RecordingGenerator)
    return configs

def test_measurement_report_geocodes_address(client, monkeypatch, report_configs):
    class FakeLocator(FakeService):
        def locate(self, address):
            return Location(lat=29.7604, lng=-95.3698, formatted_address="12 Elm St, Houston, TX 77002, USA")

    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "maps-key")
    monkeypatch.setattr("propviz.api.routes.measurements.GeocodingClient", FakeLocator)

    response = client.post("/api/measurements/report", json={
        "address": "12 Elm St",
        "shapes": [{"kind": "land", "points": SQUARE}]
    })

    assert response.status_code == 200
    assert report_configs[0].address == "12 Elm St"
    assert report_configs[0].location.formatted_address == "12 Elm St, Houston, TX 77002, USA"
    assert FakeLocator.closed == 1

def test_measurement_report_keeps_address_when_geocoding_fails(client, monkeypatch, report_configs):
    class FailingLocator(FakeService):
        def locate(self, address):
            raise GeocodingError("Geocoding API error: 500")

    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "maps-key")
    monkeypatch.setattr("propviz.api.routes.measurements.GeocodingClient", FailingLocator)

    response = client.post("/api/measurements/report", json={
        "address": "12 Elm St",
        "shapes": [{"kind": "land", "points": SQUARE}]
    })

    assert response.status_code == 200
    assert report_configs[0].address == "12 Elm St"
    assert report_configs[0].location is None

def test_history_lifecycle(client):
    payload = {
        "type": "fence",
        "options": {"material": "cedar", "style": "picket"},
        "originalUrl": "https://cdn.test/uploads/a.jpg",
        "generatedUrl": "https://cdn.test/generated/b.png"
    }

    created = client.post("/api/history", json=payload)
    assert created.status_code == 201
    record = created.get_json()
    assert record["option"] == "cedar picket"

    listed = client.get("/api/history").get_json()
    assert [r["id"] for r in listed] == [record["id"]]

    assert client.delete(f"/api/history/{record['id']}").get_json() == {"success": True}
    assert client.delete(f"/api/history/{record['id']}").status_code == 404
    assert client.get("/api/history").get_json() == []

def test_history_with_unexpected_file_contents(client):
    with open(settings.HISTORY_PATH, "w", encoding="utf-8") as f:
        f.write('{"records": [1, 2, 3]}')

    response = client.get("/api/history")

    assert response.status_code == 200
    assert response.get_json() == []

def test_history_keeps_twenty(client):
    for n in range(21):
        client.post("/api/history", json={
            "type": "paint",
            "options": {"color": f"shade {n}"},
            "originalUrl": "https://cdn.test/uploads/a.jpg",
            "generatedUrl": f"https://cdn.test/generated/{n}.png"
        })

    listed = client.get("/api/history").get_json()
    assert len(listed) == 20
    assert listed[0]["option"] == "shade 20"
    assert listed[-1]["option"] == "shade 1"

    cleared = client.delete("/api/history").get_json()
    assert cleared == {"success": True, "removed": 20}

def test_history_rejects_incomplete_entries(client):
    response = client.post("/api/history", json={"type": "paint", "options": {"color": "red"}})

    assert response.status_code == 400
    assert "originalUrl" in response.get_json()["message"]

def test_health_reports_missing_keys(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "")

    response = client.get("/health")

    assert response.status_code == 503
    data = response.get_json()
    assert data["status"] == "degraded"
    assert data["services"]["geocoding"]["status"] == "missing_key"

def test_health_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "maps-key")
    monkeypatch.setattr(settings, "SUPABASE_URL", "https://project.supabase.test")
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "service-role")
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://localhost/propviz")
    monkeypatch.setattr(settings, "VISUALIZER_PROVIDERS", ["openai"])
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")

    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["services"]["image_generation"]["providers"] == ["openai"]

def test_performance_metrics(client):
    client.get("/api/config")

    response = client.get("/metrics/performance")

    assert response.status_code == 200
    report = response.get_json()
    assert "caches" in report
    assert "vendors" in report
    assert "X-Response-Time" in response.headers
