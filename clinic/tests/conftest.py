import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _fresh_throttle_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def env(db):
    from clinic.tests.helpers import make_clinic

    return make_clinic()
