import json
import sys
import pytest
import yaml
from pathlib import Path
from jpegid.config.models import RunConfig
from jpegid.infrastructure.event_bus import EventBus
from jpegid.infrastructure.output import OutputSink

FAKE_EXIFTOOL = Path(__file__).resolve().parent / "fakes" / "fake_exiftool.py"

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config(tmp_path, fake_exiftool_command):
    """Returns a small RunConfig wired to the fake exiftool."""
    return RunConfig(
        roots=[tmp_path],
        workers=2,
        exiftool=fake_exiftool_command,
        shutdown_grace_s=0.5,
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "jpegid.yaml"

    content = {
        'workers': 3,
        'recursive': True,
        'dry_run': False,
        'replace_if_exists': False,
        'file': ['.jpg', '.heic'],
        'shutdown_grace_s': 2.5,
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus / Output Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

class CapturingSink(OutputSink):
    """OutputSink that records lines instead of printing them."""

    def __init__(self):
        super().__init__()
        self.lines = []

    def write_line(self, text):
        with self._lock:
            self.lines.append(text)

@pytest.fixture
def output_sink():
    return CapturingSink()

@pytest.fixture
def diagnostics_sink():
    return CapturingSink()

# ============================================================================
# Fake ExifTool Fixtures
# ============================================================================

@pytest.fixture
def fake_exiftool_command():
    """Command that runs the stay-open protocol emulator under this interpreter."""
    return [sys.executable, str(FAKE_EXIFTOOL)]

@pytest.fixture
def make_photo():
    """Writes a fake photo whose content is the metadata the fake exiftool reports."""
    def _make(directory: Path, name: str, **tags) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(json.dumps(tags), encoding="utf-8")
        return path
    return _make

@pytest.fixture
def photo_dir(tmp_path, make_photo):
    """Directory with a few photos covering both timestamp sources."""
    photos = tmp_path / "photos"
    make_photo(photos, "a.jpg", SubSecDateTimeOriginal="2023:05:01 10:00:00.25+00:00")
    make_photo(photos, "b.JPEG", SubSecDateTimeOriginal="2023:05:01 10:00:01.5+02:00")
    make_photo(photos, "c.jpg", CreateDate="2023:05:01 10:00:02", TimeZone="+00:00")
    make_photo(photos, "notes.txt", SubSecDateTimeOriginal="2023:05:01 10:00:03.0+00:00")
    return photos


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that start the fake exiftool subprocess"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
