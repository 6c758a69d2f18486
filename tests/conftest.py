import pytest

from onboarding_engine.content import YamlContentStore


@pytest.fixture(scope="session")
def yaml_store():
    """Load the bundled v1/ content once for the entire test session."""
    s = YamlContentStore()
    s.load()
    return s
