import os

import pytest

from depdoctor.config import reset_config

ENV_VARS = (
    "DEPDOCTOR_IGNORE",
    "DEPDOCTOR_RESPECT_GITIGNORE",
    "DEPDOCTOR_PACKAGE_MANAGER",
    "DEPDOCTOR_WORKERS",
    "DEPDOCTOR_INSTALL_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_environment():
    """Isolate every test from DEPDOCTOR_* variables and the cached Config.

    Values written by load_dotenv bypass monkeypatch, so the variables are
    snapshotted and restored here.
    """
    saved = {name: os.environ.pop(name, None) for name in ENV_VARS}
    reset_config()
    yield
    for name, value in saved.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value
    reset_config()
