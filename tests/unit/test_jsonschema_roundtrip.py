"""Test JSON schema export for the models shared with UI collaborators."""

import importlib.util
import json
from pathlib import Path

import pytest

from ragchat.models import IngestionOutcome, MinedResponse, VisualizationPayload

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "export_schemas.py"


@pytest.fixture
def schemas_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the export script inside a temporary working directory."""
    spec = importlib.util.spec_from_file_location("export_schemas", SCRIPT)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    monkeypatch.chdir(tmp_path)
    module.main()
    return tmp_path / "docs" / "schemas"


def test_schemas_exist(schemas_dir: Path) -> None:
    """Every exported model gets a schema file."""
    names = sorted(p.name for p in schemas_dir.iterdir())

    assert names == [
        "AssembledContext.schema.json",
        "IngestionOutcome.schema.json",
        "MinedResponse.schema.json",
        "ProgressEvent.schema.json",
    ]


def test_outcome_schema_lists_statuses(schemas_dir: Path) -> None:
    with open(schemas_dir / "IngestionOutcome.schema.json") as f:
        schema = json.load(f)

    assert schema["title"] == "IngestionOutcome"
    assert schema["properties"]["status"]["enum"] == ["completed", "error", "timeout"]


def test_mined_response_roundtrip() -> None:
    """A mined response survives JSON serialization unchanged."""
    mined = MinedResponse(
        visualization=VisualizationPayload(type="table", data=[{"mes": "jan", "valor": 10}], source="markdown_table")
    )

    assert MinedResponse.model_validate_json(mined.model_dump_json()) == mined


def test_outcome_json_excludes_properties() -> None:
    outcome = IngestionOutcome(success=False, status="timeout", document_id="d1", attempts=3)

    assert "timed_out" not in json.loads(outcome.model_dump_json())
