import re
import pytest
from pathlib import Path
from pydantic import ValidationError
from jpegid.config.loader import load_config_data
from jpegid.config.models import RenameOptions, RunConfig

def test_config_defaults():
    config = RunConfig()
    assert config.workers == 8
    assert config.recursive is False
    assert config.dry_run is False
    assert config.replace_if_exists is False
    assert config.exiftool == ["exiftool"]
    assert config.shutdown_grace_s == 10.0
    assert [p.pattern for p in config.file_patterns] == [r"(?i)\.jpe?g$"]

def test_string_patterns_are_compiled():
    config = RunConfig(file_patterns=[".jpg", "IMG_.*.png"])
    assert all(isinstance(p, re.Pattern) for p in config.file_patterns)
    assert [p.pattern for p in config.file_patterns] == [r"\.jpg", r"IMG_.*\.png"]

def test_single_pattern_string_is_accepted():
    config = RunConfig(file_patterns=".heic")
    assert [p.pattern for p in config.file_patterns] == [r"\.heic"]

def test_invalid_pattern_rejected():
    with pytest.raises(ValidationError) as exc_info:
        RunConfig(file_patterns=["(.jpg"])
    assert "Invalid file pattern" in str(exc_info.value)

def test_empty_pattern_list_rejected():
    with pytest.raises(ValidationError):
        RunConfig(file_patterns=[])

def test_invalid_workers():
    with pytest.raises(ValidationError):
        RunConfig(workers=0)

def test_negative_grace_rejected():
    with pytest.raises(ValidationError):
        RunConfig(shutdown_grace_s=-1)

def test_exiftool_string_becomes_command_list():
    assert RunConfig(exiftool="/opt/bin/exiftool").exiftool == ["/opt/bin/exiftool"]

def test_empty_exiftool_rejected():
    with pytest.raises(ValidationError):
        RunConfig(exiftool=[])

def test_rename_options_view():
    options = RunConfig(dry_run=True, replace_if_exists=True).rename_options
    assert options == RenameOptions(dry_run=True, replace_if_exists=True)
    with pytest.raises(ValidationError):
        options.dry_run = False

def test_load_config_from_yaml(config_yaml_path):
    config = RunConfig(**load_config_data(config_yaml_path))
    assert config.workers == 3
    assert config.recursive is True
    assert config.shutdown_grace_s == 2.5
    assert [p.pattern for p in config.file_patterns] == [r"\.jpg", r"\.heic"]

def test_load_config_data_maps_file_key(config_yaml_path):
    data = load_config_data(config_yaml_path)
    assert "file" not in data
    assert data["file_patterns"] == [".jpg", ".heic"]

def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config_data(tmp_path / "missing.yaml")

def test_load_config_empty_file(tmp_path):
    conf = tmp_path / "empty.yaml"
    conf.write_text("")
    assert RunConfig(**load_config_data(conf)).workers == 8

def test_load_config_rejects_non_mapping(tmp_path):
    conf = tmp_path / "list.yaml"
    conf.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        load_config_data(conf)

def test_roots_are_paths():
    config = RunConfig(roots=["/tmp/a", Path("/tmp/b")])
    assert config.roots == [Path("/tmp/a"), Path("/tmp/b")]
