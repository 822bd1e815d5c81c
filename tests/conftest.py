import pytest

from autoweb import AutoWebSession, Settings

from .fakes import NO_WAIT, FakeActuator, FakeChannel, FakePage


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def channel(page):
    return FakeChannel(page)


@pytest.fixture
def actuator(page):
    return FakeActuator(page)


@pytest.fixture
def session(channel, actuator):
    return AutoWebSession(channel, actuator, Settings(timings=NO_WAIT))
