import pytest
import sys

@pytest.fixture(autouse=True)
def clean_ocnphys_imports():
    yield
    keys_to_delete = {key for key in sys.modules if key == "ocnphys" or key.startswith("ocnphys.")}
    for key in keys_to_delete:
        del sys.modules[key]
