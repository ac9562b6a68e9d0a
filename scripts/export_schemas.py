"""Export JSON schemas for the models exposed to UI collaborators."""

import json
from pathlib import Path

from ragchat.models import AssembledContext, IngestionOutcome, MinedResponse, ProgressEvent

EXPORTED_MODELS = (AssembledContext, IngestionOutcome, MinedResponse, ProgressEvent)


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for model in EXPORTED_MODELS:
        schema = model.model_json_schema()
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(schema, f, indent=2)
        print(f"Exported {model.__name__} schema to {path}")


if __name__ == "__main__":
    main()
