"""
Pytest configuration and shared fixtures for the matching engine tests.
"""
import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


# ============================================================================
# Fixtures: Storage and Settings
# ============================================================================

@pytest.fixture
def settings():
    """Settings for an in-memory deployment."""
    from config.settings import get_settings_for_testing
    return get_settings_for_testing()


@pytest.fixture
def store():
    """Fresh in-memory posting-list store."""
    from storage import InMemoryPostingStore
    return InMemoryPostingStore()


@pytest.fixture
def keys():
    """Default storage key layout."""
    from config.constants import DEFAULT_KEY_SPACE
    return DEFAULT_KEY_SPACE


@pytest.fixture
def attribute_index(store):
    from matching.attribute_index import AttributeIndex
    return AttributeIndex(store)


@pytest.fixture
def interest_index(store):
    from matching.interest_index import InterestIndex
    return InterestIndex(store)


@pytest.fixture
def engine(store):
    from matching.engine import RecommendationEngine
    return RecommendationEngine(store)


@pytest.fixture
def service(store, settings):
    """Matching service over the in-memory store."""
    from matching.service import MatchingService
    return MatchingService(store, settings)


# ============================================================================
# Fixtures: Test Data
# ============================================================================

@pytest.fixture
def seeded_service(service):
    """
    Small population with mutual and one-sided interest.

    - alice (f, straight) likes men
    - bob (m, straight) likes women
    - carl (m, straight) likes nobody in particular (interest in 'hobby:chess')
    - dave (m, gay) likes men
    """
    service.add_attributes("alice", ["gender:f", "orientation:straight", "age:30"])
    service.add_attributes("bob", ["gender:m", "orientation:straight", "age:31"])
    service.add_attributes("carl", ["gender:m", "orientation:straight", "age:45"])
    service.add_attributes("dave", ["gender:m", "orientation:gay", "age:30"])

    service.record_interest("alice", 1.0, ["gender:m", "orientation:straight"])
    service.record_interest("bob", 1.0, ["gender:f", "orientation:straight"])
    service.record_interest("carl", 1.0, ["hobby:chess"])
    service.record_interest("dave", 1.0, ["gender:m", "orientation:gay"])
    return service


# ============================================================================
# Fixtures: FastAPI Test Client
# ============================================================================

@pytest.fixture
def client(service):
    """TestClient whose routes use the in-memory service fixture."""
    from fastapi.testclient import TestClient
    from api.app import create_app
    from matching.service import get_matching_service

    app = create_app()
    app.dependency_overrides[get_matching_service] = lambda: service
    # Not used as a context manager: the lifespan would connect the real store
    return TestClient(app)


# ============================================================================
# Markers auto-use
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "redis: marks tests that require a running Redis")


# ============================================================================
# Skip conditions
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Auto-skip Redis tests if no REDIS_URL is configured."""
    skip_redis = pytest.mark.skip(reason="Redis tests require REDIS_URL")

    redis_url = os.getenv("REDIS_URL")

    for item in items:
        if item.get_closest_marker("redis") and not redis_url:
            item.add_marker(skip_redis)
