import pytest

from slicerlens.services.analysis_service import ProjectAnalysisService
from tests.mocks.catalog_server import CatalogServer
from tests.mocks.mock_llm_client import ANALYSIS_PAYLOAD, TROUBLESHOOTING_PAYLOAD, MockLLMClient
from tests.mocks.service_factory import make_service

PRINT_PRESET_NAME = "0.20mm Standard @BBL X1C"
FILAMENT_PRESET_NAME = "Bambu PETG Basic @BBL X1C"


@pytest.fixture
def catalog_server() -> CatalogServer:
    return CatalogServer({
        "presets.json": [
            {"name": PRINT_PRESET_NAME, "sub_path": "BBL/process/0.20mm Standard @BBL X1C.json"},
            {"name": FILAMENT_PRESET_NAME, "sub_path": "BBL/filament/Bambu PETG Basic @BBL X1C.json"},
        ],
        "BBL/process/0.20mm Standard @BBL X1C.json": {
            "layer_height": "0.2",
            "wall_loops": "2",
            "sparse_infill_density": "15%",
        },
        "BBL/filament/Bambu PETG Basic @BBL X1C.json": {
            "nozzle_temperature": ["255"],
            "fan_max_speed": ["90"],
        },
    })


@pytest.fixture
def llm_client() -> MockLLMClient:
    return MockLLMClient(payload=ANALYSIS_PAYLOAD)


@pytest.fixture
def troubleshooting_llm_client() -> MockLLMClient:
    return MockLLMClient(payload=TROUBLESHOOTING_PAYLOAD)


@pytest.fixture
def service(catalog_server, llm_client) -> ProjectAnalysisService:
    return make_service(catalog_server, llm_client)
