import pytest

from log_config import setup_logging


@pytest.fixture(autouse=True)
def quiet_logging():
    setup_logging("WARNING")
