import pytest

from precachegen.reporting import SilentReporter, set_reporter, set_verbosity


@pytest.fixture(autouse=True)
def _quiet_reporter():
    # CLI tests swap the process-wide reporter; start each test from silence.
    set_reporter(SilentReporter())
    set_verbosity(0)
    yield
    set_reporter(SilentReporter())
