import pytest

from aquadose.utils import clear_dataset_cache


@pytest.fixture(autouse=True)
def reset_dataset_caches():
    """Reload datasets for every test so env overrides do not leak."""
    clear_dataset_cache()
    yield
    clear_dataset_cache()
