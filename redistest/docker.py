import logging
import time

from python_on_whales import Container, DockerClient, docker
from python_on_whales.exceptions import DockerException, NoSuchContainer

from .server import ImageRef

PORT_POLL_INTERVAL = 0.1

logger: logging.Logger = logging.getLogger(__name__)


class DockerStartupError(RuntimeError):
    pass


class DockerUnavailableError(DockerStartupError):
    """
    Docker daemon can't be reached. No test can run without it.
    """


class DockerRuntime:
    def __init__(
        self,
        client: DockerClient = docker,
        port_poll_interval: float = PORT_POLL_INTERVAL,
    ):
        self._client: DockerClient = client
        self._port_poll_interval: float = port_poll_interval

    def ping(self) -> None:
        try:
            info = self._client.system.info()
            logger.debug("Docker server version: %s" % (info.server_version))
        except DockerException as e:
            raise DockerUnavailableError("Could not connect to Docker: %s" % (e)) from e

    def run(self, image: ImageRef) -> Container:
        logger.debug("Run container from %s" % (image.reference))
        container = self._client.run(
            image.reference,
            detach=True,
            publish_all=True,
            pull="missing",
        )
        logger.debug("Container %s is up" % (container.id[:12]))
        return container

    def _host_port(self, container: Container, container_port: str) -> str | None:
        container.reload()
        ports = container.network_settings.ports or {}
        bindings = ports.get(container_port) or []
        for binding in bindings:
            if binding.host_port:
                return binding.host_port
        return None

    def resolved_port(
        self,
        container: Container,
        container_port: str,
        max_wait: float,
    ) -> str:
        deadline = time.monotonic() + max_wait
        while True:
            port = self._host_port(container, container_port)
            if port is not None:
                return port
            if time.monotonic() >= deadline:
                raise DockerStartupError(
                    "Port %s of container %s was not published within %.1fs"
                    % (container_port, container.id[:12], max_wait)
                )
            time.sleep(self._port_poll_interval)

    def purge(self, container: Container) -> None:
        logger.debug("Purge container %s" % (container.id[:12]))
        self._client.container.remove(container, force=True, volumes=True)

    def exists(self, container: Container) -> bool:
        try:
            return self._client.container.exists(container.id)
        except NoSuchContainer:
            return False
