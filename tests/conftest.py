import pytest

from rehab_survey.config import IMMEDIATE
from rehab_survey.messages import MessageRenderer
from rehab_survey.replay import SAMPLE_SCENARIO, load_scenario


@pytest.fixture
def timing():
    return IMMEDIATE


@pytest.fixture(scope="session")
def renderer():
    return MessageRenderer()


@pytest.fixture(scope="session")
def sample_scenario():
    return load_scenario(SAMPLE_SCENARIO)
