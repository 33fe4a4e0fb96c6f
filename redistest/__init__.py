import logging
import threading

from redis.asyncio import Redis

from .backoff import BackoffPolicy, ExponentialBackoff
from .connect import (
    AddressNotPublished,
    ProbeSequence,
    ProbeState,
    RedisConnectError,
    RedisConnector,
    new_client,
)
from .docker import DockerRuntime, DockerStartupError, DockerUnavailableError
from .log import stream_handler
from .parse import RedisTestConfig, parse_yaml
from .provision import Cleanup, CleanupError, ProvisionError, Provisioner
from .server import DEFAULT_IMAGE_TAG, ImageRef, ServiceInstance, State

logger = logging.getLogger(__name__)
logger.addHandler(stream_handler())

_default_lock = threading.Lock()
_default: Provisioner | None = None


def default_provisioner() -> Provisioner:
    """
    Process-wide Provisioner behind the module functions.
    """
    global _default
    with _default_lock:
        if _default is None:
            _default = Provisioner()
        return _default


def set_image_tag(tag: str) -> None:
    """
    Set the redis image tag, before the first start().
    See https://hub.docker.com/_/redis/tags for available tags.
    """
    default_provisioner().set_image_tag(tag)


async def start() -> Cleanup:
    """
    Start a redis server on docker, once per process.

    Call the returned cleanup explicitly before the process exits.
    """
    return await default_provisioner().start()


def start_sync() -> Cleanup:
    return default_provisioner().start_sync()


async def address(grace: float | None = None) -> str:
    """
    Address of the redis server. e.g: localhost:6379

    "" when it isn't published within the grace period.
    """
    return await default_provisioner().address(grace)


async def client(policy: BackoffPolicy | None = None) -> Redis:
    """
    Redis client connected to the redis server.
    This will block until the connection is established.
    """
    return await RedisConnector(default_provisioner(), policy=policy).client()


__all__ = [
    "DEFAULT_IMAGE_TAG",
    "AddressNotPublished",
    "BackoffPolicy",
    "Cleanup",
    "CleanupError",
    "DockerRuntime",
    "DockerStartupError",
    "DockerUnavailableError",
    "ExponentialBackoff",
    "ImageRef",
    "ProbeSequence",
    "ProbeState",
    "ProvisionError",
    "Provisioner",
    "RedisConnectError",
    "RedisConnector",
    "RedisTestConfig",
    "ServiceInstance",
    "State",
    "address",
    "client",
    "default_provisioner",
    "new_client",
    "parse_yaml",
    "set_image_tag",
    "start",
    "start_sync",
]
