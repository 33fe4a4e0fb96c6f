from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_REPOSITORY = "redis"
# See https://hub.docker.com/_/redis/tags for available tags.
DEFAULT_IMAGE_TAG = "7.4.1-alpine"
LOCALHOST = "localhost"


class State(str, Enum):
    Unstarted = "unstarted"
    Starting = "starting"
    Running = "running"
    Stopped = "stopped"


@dataclass
class ImageRef:
    repository: str = DEFAULT_REPOSITORY
    tag: str = DEFAULT_IMAGE_TAG

    @property
    def reference(self) -> str:
        return "%s:%s" % (self.repository, self.tag)


@dataclass
class ServiceInstance:
    image: ImageRef
    address: str = ""
    state: State = State.Unstarted
    container: Any | None = field(default=None, repr=False)

    @property
    def is_running(self) -> bool:
        return self.state is State.Running


def address_format(host: str, port: int | str) -> str:
    return "%s:%s" % (host, port)


def parse_address(address: str) -> tuple[str, int]:
    host, _, port = address.rpartition(":")
    if not host or not port:
        raise ValueError("Invalid address: %r" % (address))
    return host, int(port)
