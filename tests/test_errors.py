"""Tests des cas d'erreur."""

import sys
from pathlib import Path

import pytest

from dedoublon.config import ConfigFileError, DedupeConfig


def test_config_load_file_not_found(tmp_path: Path) -> None:
    """DedupeConfig.load() lève ConfigFileError si le fichier n'existe pas."""
    missing = tmp_path / "inexistant.json"
    with pytest.raises(ConfigFileError, match="introuvable"):
        DedupeConfig.load(missing)


def test_config_load_invalid_json(tmp_path: Path) -> None:
    """DedupeConfig.load() lève ConfigFileError si le JSON est invalide."""
    bad_json = tmp_path / "config.json"
    bad_json.write_text("{ invalid json }", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="JSON invalide"):
        DedupeConfig.load(bad_json)


def test_config_load_not_dict(tmp_path: Path) -> None:
    """DedupeConfig.load() lève ConfigFileError si le JSON n'est pas un objet."""
    bad_config = tmp_path / "config.json"
    bad_config.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="objet JSON"):
        DedupeConfig.load(bad_config)


def test_cli_config_error_exit_code(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    """La CLI retourne 1 et affiche un message en cas d'erreur."""
    from dedoublon.cli import main

    monkeypatch.setattr("dedoublon.cli.configure", lambda level: None)

    old_argv = sys.argv
    try:
        sys.argv = ["dedoublon", "run", "--config", "/chemin/inexistant.json", "--input", "x.csv"]
        exit_code = main()
        assert exit_code == 1
    finally:
        sys.argv = old_argv
    assert "Erreur" in capsys.readouterr().out
