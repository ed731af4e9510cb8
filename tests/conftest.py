"""Shared fixtures for all tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest

import app.audit_log as audit_mod
import app.draft_store as draft_mod
import app.record_store as record_mod
import shared.config_store as config_mod
from app.archive_client import ApiResponse
from app.errors import PersistenceError
from app.form_definitions import build_default_registry
from app.schema import ROLE_CLIENT, ROLE_INSPECTOR, InspectionFormState

SIGNATURE_IMAGE = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture(autouse=True)
def _isolate_data_dirs(tmp_path):
    """Every file-backed store writes under tmp_path."""
    with patch.object(config_mod, "CONFIG_DIR", tmp_path / "config"), \
         patch.object(draft_mod, "DATA_DIR", tmp_path / "drafts"), \
         patch.object(draft_mod, "CACHE_DIR", tmp_path / "session"), \
         patch.object(record_mod, "DATA_DIR", tmp_path / "records"), \
         patch.object(audit_mod, "DATA_DIR", tmp_path / "audit"):
        yield tmp_path


@pytest.fixture(scope="session")
def registry():
    return build_default_registry()


def sign(state: InspectionFormState, inspector: str = "Carlos Souza", client: str = "Ana Lima") -> None:
    """Complete both signature blocks."""
    for role, name in ((ROLE_INSPECTOR, inspector), (ROLE_CLIENT, client)):
        block = state.signature(role)
        block.signer_name = name
        block.signature_image = SIGNATURE_IMAGE


@pytest.fixture()
def weekly_pump_state():
    """A weekly pump form with every required field filled and signed."""
    state = InspectionFormState(schema_id="weekly-pump", values={
        "propertyName": "Depósito Central",
        "propertyAddress": "Rua X, 100",
        "inspector": "Carlos Souza",
        "date": "15/03/2024",
        "pumphouse_temperature": "sim",
        "pumphouse_temperature_value": "45",
        "pump_condition": "nao",
    })
    sign(state)
    return state


class FakeRecordsClient:
    """Records client double that answers from a queue of responses."""

    def __init__(self, *responses: ApiResponse | Exception) -> None:
        self.responses = list(responses)
        self.posts: list[tuple[str, dict]] = []
        self.patches: list[tuple[str, dict]] = []
        self.created: list[dict] = []
        self.invalidations = 0
        self.fail_patches = False

    def post(self, path: str, payload: dict) -> ApiResponse:
        self.posts.append((path, payload))
        response = self.responses.pop(0) if self.responses else ApiResponse(201, {"already": False, "id": "r-1"})
        if isinstance(response, Exception):
            raise response
        return response

    def create_inspection(self, data: dict) -> dict:
        self.created.append(data)
        return {**data, "id": f"insp-{len(self.created)}"}

    def patch_inspection(self, inspection_id: str, data: dict) -> dict:
        if self.fail_patches:
            raise PersistenceError("Servidor indisponível", code="unavailable", status_code=503)
        self.patches.append((inspection_id, data))
        return {"id": inspection_id, **data}

    def invalidate_archived_reports(self) -> None:
        self.invalidations += 1


@pytest.fixture()
def fake_client():
    return FakeRecordsClient()


@pytest.fixture()
def signer():
    return sign
