import pytest

from lumina.repositories.base import MemoryCollectionStore
from lumina.services.session_service import SessionService
from lumina.utils.helpers import generate_id


@pytest.fixture
def store():
    """每个测试独立的内存集合存储"""
    return MemoryCollectionStore(namespace=f"test-{generate_id()}")


@pytest.fixture
def sessions(store):
    return SessionService(store)


@pytest.fixture
def student(sessions):
    return sessions.signup({
        "name": "Charlie Brown",
        "secret_code": "kite",
        "year_group": "Year 5",
        "target_grade": "Exceeding",
    })
