import pathlib
import site

import pytest
from assetdb.cache import Registry

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_registry():
    """Drop cached engines and statements before and after each test to ensure test isolation."""
    Registry.get_instance().dispose()
    yield
    Registry.get_instance().dispose()


pytest_plugins = [
    'tests.fixtures.sqlite',
    'tests.fixtures.discovery',
]
