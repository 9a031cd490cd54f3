import sys
from pathlib import Path

import pytest

# Ensure the repository root is on the import path so tests can import collected modules.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ims_fixtures import make_channels, write_imaris_tiff  # noqa: E402

COMMENT = (
    "[Section]\n"
    "Description=Nuclei\n"
    "LSMEmissionWavelength=520\n"
    "LSMEmissionWavelength=605\n"
    "LSMExcitationWavelength=488\n"
    "LSMExcitationWavelength=561\n"
    "Name=GFP\n"
    "Name=mCherry\n"
    "RecordingDate=2011-06-15 10:45:22.314\n"
)


@pytest.fixture()
def comment() -> str:
    return COMMENT


@pytest.fixture()
def two_channel_file(tmp_path: Path) -> Path:
    """Two channels of three 256x256 uint16 planes, no comment."""
    channels = make_channels(2, 3, size_y=256, size_x=256)
    return write_imaris_tiff(tmp_path / "two_channel.ims", channels)


@pytest.fixture()
def commented_file(tmp_path: Path) -> Path:
    channels = make_channels(2, 3)
    return write_imaris_tiff(tmp_path / "commented.ims", channels, description=COMMENT)
