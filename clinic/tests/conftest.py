import pytest
from django.core.cache import cache

from clinic.realtime.presence import registry

from .factories import make_admin, make_doctor, make_patient


@pytest.fixture(autouse=True)
def _isolate_process_state():
    """Throttle counters and the presence map live for the whole process."""
    cache.clear()
    registry.clear()
    yield
    registry.clear()


@pytest.fixture
def doctor(db):
    return make_doctor()


@pytest.fixture
def patient(db):
    return make_patient()


@pytest.fixture
def admin_user(db):
    return make_admin()
