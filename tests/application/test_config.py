from pathlib import Path

import pytest

from quizbox.application.config import AppConfig, resolve_config
from quizbox.domain.cards import LeitnerMergePolicy


@pytest.fixture
def toml_file(tmp_path, monkeypatch):
    path = tmp_path / "quizbox.toml"
    monkeypatch.setattr("quizbox.application.config.CONFIG_FILES", [path])
    return path


def test_defaults(tmp_path):
    config = resolve_config({"data_dir": tmp_path})
    assert config.data_dir == tmp_path
    assert config.backup_dir == tmp_path / "backups"
    assert config.merge_policy == LeitnerMergePolicy.PREFER_HIGHER_LEVEL
    assert config.merge_on_startup is False
    assert config.merge_dir is None
    assert config.backup_before_merge is True
    assert config.verbose == 1


def test_default_data_dir_is_under_home():
    config = AppConfig()
    assert config.data_dir == Path.home() / ".local/share/quizbox"


def test_none_overrides_are_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("QUIZBOX_DATA_DIR", str(tmp_path / "from-env"))
    config = resolve_config({"data_dir": None})
    assert config.data_dir == tmp_path / "from-env"


def test_environment_variables(monkeypatch, tmp_path):
    monkeypatch.setenv("QUIZBOX_MERGE_POLICY", "prefer-newer")
    monkeypatch.setenv("QUIZBOX_MERGE_ON_STARTUP", "true")
    monkeypatch.setenv("QUIZBOX_MERGE_DIR", str(tmp_path / "inbox"))
    config = resolve_config()
    assert config.merge_policy == LeitnerMergePolicy.PREFER_NEWER
    assert config.merge_on_startup is True
    assert config.merge_dir == tmp_path / "inbox"


def test_toml_file_is_read(toml_file, tmp_path):
    toml_file.write_text(
        f'data_dir = "{tmp_path.as_posix()}/toml-data"\n'
        'merge_policy = "PREFER_EXISTING"\n'
        "backup_before_merge = false\n"
        "verbose = 2\n",
        encoding="utf-8",
    )
    config = resolve_config()
    assert config.data_dir == tmp_path / "toml-data"
    assert config.backup_dir == tmp_path / "toml-data" / "backups"
    assert config.merge_policy == LeitnerMergePolicy.PREFER_EXISTING
    assert config.backup_before_merge is False
    assert config.verbose == 2


def test_precedence_overrides_then_env_then_toml(toml_file, monkeypatch, tmp_path):
    toml_file.write_text('merge_policy = "PREFER_EXISTING"\nverbose = 2\n', encoding="utf-8")
    monkeypatch.setenv("QUIZBOX_MERGE_POLICY", "PREFER_INCOMING")

    config = resolve_config()
    assert config.merge_policy == LeitnerMergePolicy.PREFER_INCOMING
    assert config.verbose == 2

    config = resolve_config({"merge_policy": LeitnerMergePolicy.PREFER_NEWER})
    assert config.merge_policy == LeitnerMergePolicy.PREFER_NEWER
