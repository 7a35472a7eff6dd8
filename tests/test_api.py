import pytest
from fastapi.testclient import TestClient

from slicerlens.core.config import Settings
from slicerlens.core.dependencies import get_analysis_service
from slicerlens.main import create_app
from tests.mocks.archive_factory import build_3mf, build_gcode, gzip_text
from tests.mocks.catalog_server import PROFILE_ROOT
from tests.mocks.mock_llm_client import TROUBLESHOOTING_PAYLOAD, MockLLMClient
from tests.mocks.service_factory import make_service

PROJECT_SETTINGS = {
    "print_settings_id": "0.20mm Standard @BBL X1C",
    "filament_settings_id": ["Bambu PETG Basic @BBL X1C"],
    "different_settings_to_system": ["layer_height;brim_width", "nozzle_temperature"],
    "layer_height": "0.28",
    "brim_width": "5",
    "nozzle_temperature": ["245"],
}


def make_settings(**overrides) -> Settings:
    values = {"OPENAI_API_KEY": None, "PROFILE_ROOT": PROFILE_ROOT, "FETCH_RETRY_DELAY_S": 0}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client(service):
    app = create_app(make_settings())
    app.dependency_overrides[get_analysis_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "project": "SlicerLens"}


def test_analyze_endpoint(client):
    response = client.post(
        "/api/analyze",
        files={"file": ("bracket.3mf", build_3mf(PROJECT_SETTINGS), "application/octet-stream")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["filename"] == "bracket.3mf"
    assert body["analysis"]["overall_purpose"] == "Stronger functional parts"
    assert body["profile_description"].startswith("Filament Preset: Bambu PETG Basic @BBL X1C\n")

    comparison = {item["key"]: item for item in body["comparison"]}
    assert comparison["layer_height"] == {
        "key": "layer_height",
        "original_value": "0.2",
        "changed_value": "0.28",
        "found": True,
        "source": "print",
    }
    # brim_width is not in the print preset: original_value must be absent, not null
    assert "original_value" not in comparison["brim_width"]
    assert comparison["brim_width"]["found"] is False
    assert comparison["nozzle_temperature"]["original_value"] == "255"


def test_analyze_endpoint_rejects_non_3mf(client):
    response = client.post("/api/analyze", files={"file": ("bracket.stl", b"solid x", "model/stl")})

    assert response.status_code == 400
    assert response.json()["detail"] == "File must be a .3mf file"


def test_analyze_endpoint_missing_project_settings(client):
    response = client.post("/api/analyze", files={"file": ("empty.3mf", build_3mf(None), "application/octet-stream")})

    assert response.status_code == 422
    assert "No project settings found" in response.json()["detail"]


def test_analyze_endpoint_malformed_project_settings(client):
    payload = build_3mf("{not json")

    response = client.post("/api/analyze", files={"file": ("bad.3mf", payload, "application/octet-stream")})

    assert response.status_code == 422
    assert response.json()["detail"]["raw_excerpt"] == "{not json"


def test_analyze_text_endpoint(client):
    response = client.post("/api/analyze-text", json={"profile_description": "Filament Preset: PLA\n"})

    assert response.status_code == 200
    assert response.json()["is_fallback"] is False


def test_analyze_text_endpoint_requires_description(client):
    response = client.post("/api/analyze-text", json={"profile_description": ""})

    assert response.status_code == 422


def test_troubleshooting_endpoint(catalog_server):
    service = make_service(catalog_server, MockLLMClient(payload=TROUBLESHOOTING_PAYLOAD))
    app = create_app(make_settings())
    app.dependency_overrides[get_analysis_service] = lambda: service

    with TestClient(app) as client:
        response = client.post(
            "/api/troubleshooting",
            files={"file": ("benchy.gcode.gz", gzip_text(build_gcode({"retraction_length": "0.4"})), "application/gzip")},
            data={"problem_description": "Stringing"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["filename"] == "benchy.gcode"
    assert body["config_key_count"] == 1
    assert body["advice"]["suggested_changes"][0]["parameter"] == "retraction_length"


def test_troubleshooting_endpoint_without_config_block(client):
    response = client.post(
        "/api/troubleshooting",
        files={"file": ("plain.gcode.gz", gzip_text("G28\n"), "application/gzip")},
        data={"problem_description": "Warping"},
    )

    assert response.status_code == 422


def test_missing_api_key_returns_503(catalog_server):
    app = create_app(make_settings())

    with TestClient(app) as client:
        response = client.post("/api/analyze-text", json={"profile_description": "x"})

    assert response.status_code == 503
    assert "OPENAI_API_KEY" in response.json()["detail"]


def env_check(app_settings: Settings) -> dict:
    with TestClient(create_app(app_settings)) as client:
        response = client.get("/api/system/env-check")
    assert response.status_code == 200
    return response.json()


def test_env_check_never_returns_key():
    body = env_check(make_settings(OPENAI_API_KEY="sk-secret-value-1234"))

    assert body["variables"] == {"OPENAI_API_KEY": "Present", "PROFILE_ROOT": "Present"}
    assert "sk-secret-value-1234" not in str(body)


def test_env_check_reads_profile_root_from_dotenv(monkeypatch, tmp_path):
    monkeypatch.delenv("PROFILE_ROOT", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("PROFILE_ROOT=https://mirror.test/profiles\n", encoding="utf-8")

    body = env_check(Settings())

    assert body["variables"] == {"OPENAI_API_KEY": "Not found", "PROFILE_ROOT": "Present"}
    assert body["profile_root"] == "https://mirror.test/profiles/"


def test_env_check_default_profile_root_is_not_found(monkeypatch, tmp_path):
    monkeypatch.delenv("PROFILE_ROOT", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)

    body = env_check(Settings())

    assert body["variables"]["PROFILE_ROOT"] == "Not found"
    assert body["profile_root"] == "https://obico-public.s3.amazonaws.com/slicer-profiles/"
