import json
from pathlib import Path


def write_workspace(tmp_path: Path, data, filename: str = "workspace.json") -> Path:
    path = tmp_path / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
