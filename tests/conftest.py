import pytest
from support import FOLDER_A, FOLDER_B, files

from drivesync.collaborators import MemoryDrive, MemoryIndex


@pytest.fixture
def drive():
    d = MemoryDrive()
    d.set_files(FOLDER_A, files(("1", "alpha report"), ("2", "beta notes")))
    d.set_files(FOLDER_B, files(("9", "globex memo")))
    return d


@pytest.fixture
def index():
    return MemoryIndex()
