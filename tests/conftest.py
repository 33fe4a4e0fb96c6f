import logging

import pytest

import redistest
from redistest import Cleanup, DockerUnavailableError

logger = logging.getLogger(__name__)


def pytest_addoption(parser):
    parser.addoption(
        "--docker",
        action="store_true",
        default=False,
        help="run tests against a redis server on docker",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "docker: test needs a docker daemon")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--docker"):
        return
    skip_docker = pytest.mark.skip(reason="need --docker option to run")
    for item in items:
        if "docker" in item.keywords:
            item.add_marker(skip_docker)


@pytest.fixture(scope="session")
def redis_server():
    try:
        cleanup: Cleanup = redistest.start_sync()
    except DockerUnavailableError as e:
        # Nothing can run without docker
        pytest.exit(str(e), returncode=1)

    yield redistest.default_provisioner()

    try:
        cleanup()
    except redistest.CleanupError as e:
        logger.error(e)
