from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from bindgen.artifacts import find_artifact, read_artifact, read_artifacts, stale_outputs, write_outputs
from bindgen.errors import ArtifactNotFound


def test_prefers_foundry_layout(artifacts_dir: Path) -> None:
    stray = artifacts_dir / "aaa" / "ContentRegistry.json"
    stray.parent.mkdir()
    stray.write_text("[]", encoding="utf-8")
    found = find_artifact(artifacts_dir, "ContentRegistry")
    assert found == artifacts_dir / "ContentRegistry.sol" / "ContentRegistry.json"


def test_falls_back_to_any_json(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    for sub in ("b", "a"):
        (tmp_path / sub).mkdir()
        (tmp_path / sub / "Token.json").write_text("[]", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="bindgen.artifacts"):
        found = find_artifact(tmp_path, "Token")
    assert found == tmp_path / "a" / "Token.json"
    assert "2 candidates" in caplog.text


def test_missing(tmp_path: Path) -> None:
    assert find_artifact(tmp_path, "Nope") is None
    assert find_artifact(tmp_path / "absent", "Nope") is None


def test_read_artifacts_skips_missing(artifacts_dir: Path) -> None:
    raw = read_artifacts(artifacts_dir, ["ContentRegistry", "MultiWebAuthNRecoveryAction", "ContentRegistry"])
    assert list(raw) == ["ContentRegistry"]
    assert raw["ContentRegistry"]["abi"][0]["name"] == "getMetadata"


def test_undecodable_artifact(tmp_path: Path) -> None:
    bad = tmp_path / "Bad.sol" / "Bad.json"
    bad.parent.mkdir()
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ArtifactNotFound) as ei:
        read_artifacts(tmp_path, ["Bad"])
    assert ei.value.context["contract"] == "Bad"
    with pytest.raises(ArtifactNotFound):
        read_artifact(tmp_path / "Gone.json")


def test_write_and_check_outputs(tmp_path: Path) -> None:
    outputs = {tmp_path / "abi" / "a.ts": "export const a = 1\n", tmp_path / "b.json": json.dumps({}) + "\n"}
    assert stale_outputs(outputs) == list(outputs)
    assert write_outputs(outputs) == list(outputs)
    assert (tmp_path / "abi" / "a.ts").read_text(encoding="utf-8") == "export const a = 1\n"
    assert stale_outputs(outputs) == []
    # unchanged files are not rewritten
    assert write_outputs(outputs) == []
