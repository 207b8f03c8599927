"""
tests/test_config_store.py
JSON documents, supervisor settings, and config backups.
"""

import json
import os

import pytest

from core import config_backup
from core.config_store import (
    SupervisorSettings,
    load_api_key,
    read_document,
    save_api_key,
    write_document,
)
from core.errors import CorruptDocument


class TestDocuments:

    def test_missing_is_none(self, tmp_path):
        assert read_document(str(tmp_path / "nope.json")) is None

    def test_write_creates_parents_atomically(self, tmp_path):
        path = str(tmp_path / "a" / "b" / "doc.json")
        write_document(path, {"k": "v", "n": [1, 2]})
        assert read_document(path) == {"k": "v", "n": [1, 2]}
        assert os.listdir(tmp_path / "a" / "b") == ["doc.json"]
        with open(path) as f:
            assert f.read().endswith("}\n")

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '"str"', ""])
    def test_corrupt(self, tmp_path, content):
        path = tmp_path / "doc.json"
        path.write_text(content)
        with pytest.raises(CorruptDocument) as exc:
            read_document(str(path))
        assert str(path) in str(exc.value)


class TestSupervisorSettings:

    def test_defaults_when_missing(self, paths):
        assert load_api_key(paths) == ""

    def test_save_strips(self, paths):
        save_api_key(paths, "  sk-abc \n")
        assert load_api_key(paths) == "sk-abc"
        with open(paths.settings_file) as f:
            assert json.load(f) == {"api_key": "sk-abc"}

    def test_non_string_key_ignored(self, paths):
        write_document(paths.settings_file, {"api_key": 123})
        assert SupervisorSettings.load(paths).api_key == ""


# ══════════════════════════════════════════════════════════════════════════════
#  BACKUPS
# ══════════════════════════════════════════════════════════════════════════════

class TestConfigBackup:

    def test_snapshot_missing_file(self, tmp_path):
        assert config_backup.snapshot(str(tmp_path / "bk"), str(tmp_path / "x.json")) is None

    def test_unchanged_file_not_duplicated(self, tmp_path):
        cfg = tmp_path / "openclaw.json"
        cfg.write_text('{"a": 1}')
        bk = str(tmp_path / "bk")
        assert config_backup.snapshot(bk, str(cfg), reason="first")
        assert config_backup.snapshot(bk, str(cfg), reason="again") is None
        assert len(config_backup.history(bk, str(cfg))) == 1

    def test_rollback_restores_and_is_undoable(self, tmp_path):
        cfg = tmp_path / "openclaw.json"
        bk = str(tmp_path / "bk")
        cfg.write_text('{"v": 1}')
        config_backup.snapshot(bk, str(cfg))
        cfg.write_text('{"v": 2}')

        assert config_backup.rollback(bk, str(cfg)) is True
        assert json.loads(cfg.read_text()) == {"v": 1}

        reasons = [e["reason"] for e in config_backup.history(bk, str(cfg))]
        assert reasons[-1].startswith("pre-rollback")
        assert config_backup.rollback(bk, str(cfg)) is True
        assert json.loads(cfg.read_text()) == {"v": 2}

    def test_rollback_out_of_range(self, tmp_path):
        cfg = tmp_path / "openclaw.json"
        bk = str(tmp_path / "bk")
        assert config_backup.rollback(bk, str(cfg)) is False
        cfg.write_text("{}")
        config_backup.snapshot(bk, str(cfg))
        assert config_backup.rollback(bk, str(cfg), version=-5) is False

    def test_prunes_old_backups(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_backup, "MAX_BACKUPS", 3)
        cfg = tmp_path / "openclaw.json"
        bk = str(tmp_path / "bk")
        for i in range(5):
            cfg.write_text(json.dumps({"v": i}))
            config_backup.snapshot(bk, str(cfg))

        entries = config_backup.history(bk, str(cfg))
        assert len(entries) == 3
        backup_dir = os.path.join(bk, "openclaw_json")
        files = sorted(f for f in os.listdir(backup_dir) if f != "manifest.json")
        assert files == sorted(e["file"] for e in entries)

    def test_rollback_target_pruned_by_its_own_snapshot(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_backup, "MAX_BACKUPS", 2)
        cfg = tmp_path / "openclaw.json"
        bk = str(tmp_path / "bk")
        for i in range(2):
            cfg.write_text(json.dumps({"v": i}))
            config_backup.snapshot(bk, str(cfg))
        cfg.write_text(json.dumps({"v": 2}))

        assert config_backup.rollback(bk, str(cfg), version=0) is True
        assert json.loads(cfg.read_text()) == {"v": 0}
        assert len(config_backup.history(bk, str(cfg))) == 2

    def test_corrupt_manifest_starts_over(self, tmp_path):
        cfg = tmp_path / "openclaw.json"
        bk = tmp_path / "bk"
        (bk / "openclaw_json").mkdir(parents=True)
        (bk / "openclaw_json" / "manifest.json").write_text("{nope")
        cfg.write_text("{}")
        assert config_backup.snapshot(str(bk), str(cfg)) is not None
        assert len(config_backup.history(str(bk), str(cfg))) == 1
