from dataclasses import dataclass, field
from typing import Any

import yaml
from dacite import Config, from_dict

from .backoff import BackoffPolicy
from .server import ImageRef

REDIS_CONTAINER_PORT = "6379/tcp"
# seconds
DEFAULT_MAX_WAIT = 60.0
ADDRESS_GRACE = 3.0
# per connect or command of the redis client
SOCKET_TIMEOUT = 5.0


@dataclass
class RedisTestConfig:
    image: ImageRef = field(default_factory=ImageRef)
    container_port: str = REDIS_CONTAINER_PORT
    max_wait: float = DEFAULT_MAX_WAIT
    address_grace: float = ADDRESS_GRACE
    db: int = 0
    password: str | None = None
    socket_timeout: float = SOCKET_TIMEOUT
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)


# Unquoted tags like 7.10 are floats to YAML and come back as "7.1",
# quote them in the file.
def _parse_yaml(obj: dict[str, Any] | None) -> RedisTestConfig:
    config = Config(
        type_hooks={
            float: float,
            str: str,
        },
    )
    rtc: RedisTestConfig = from_dict(
        data_class=RedisTestConfig,
        data=obj or {},
        config=config,
    )
    return rtc


def parse_yaml(pathname: str) -> RedisTestConfig:
    with open(pathname, "r") as file:
        obj = yaml.safe_load(file)
        result: RedisTestConfig = _parse_yaml(obj)
        return result
