import pytest

from lms_driver import LMS1xx
from simulated_lms import SimulatedLMS


@pytest.fixture
def device():
    lms = SimulatedLMS().start()
    yield lms
    lms.stop()


@pytest.fixture
def scanner(device):
    lms = LMS1xx("127.0.0.1", device.port, receive_timeout=0.5, send_timeout=0.5)
    yield lms
    lms.disconnect()
