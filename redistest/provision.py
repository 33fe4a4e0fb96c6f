import asyncio
import copy
import logging
import threading
from typing import Callable

from python_on_whales.exceptions import DockerException

from .docker import DockerRuntime, DockerStartupError
from .once import Once
from .parse import RedisTestConfig
from .server import LOCALHOST, ServiceInstance, State, address_format

Cleanup = Callable[[], None]

ADDRESS_POLL_INTERVAL = 0.05

logger: logging.Logger = logging.getLogger(__name__)


class ProvisionError(RuntimeError):
    pass


class CleanupError(RuntimeError):
    pass


class Provisioner:
    """
    Owns the single Redis container of a test process.

    start() launches the container on the first call only; every other
    call, concurrent or later, gets the outcome of that launch. address()
    is a best-effort wait for the published address. It does not tell
    whether Redis accepts connections, use RedisConnector for that.
    """

    def __init__(
        self,
        config: RedisTestConfig | None = None,
        runtime: DockerRuntime | None = None,
    ):
        self._config: RedisTestConfig = config if config is not None else RedisTestConfig()
        self._runtime: DockerRuntime = runtime if runtime is not None else DockerRuntime()
        self._instance: ServiceInstance = ServiceInstance(
            image=copy.copy(self._config.image),
        )
        self._once: Once[Cleanup] = Once()
        self._lock = threading.Lock()
        self._purge_lock = threading.Lock()
        self._published = threading.Event()
        self._cleanup: Cleanup | None = None

    @property
    def config(self) -> RedisTestConfig:
        return self._config

    @property
    def instance(self) -> ServiceInstance:
        with self._lock:
            return copy.copy(self._instance)

    @property
    def state(self) -> State:
        with self._lock:
            return self._instance.state

    def set_image_tag(self, tag: str) -> None:
        with self._lock:
            if self._instance.state is not State.Unstarted:
                raise RuntimeError(
                    "Image tag can't be changed after start (state: %s)"
                    % (self._instance.state.value)
                )
            self._instance.image.tag = tag

    def _set_state(self, state: State) -> None:
        with self._lock:
            self._instance.state = state

    def _launch(self) -> Cleanup:
        try:
            self._set_state(State.Starting)
            self._runtime.ping()

            image = self._instance.image
            try:
                container = self._runtime.run(image)
            except DockerException as e:
                raise ProvisionError(
                    "Can't start redis server (%s): %s" % (image.reference, e)
                ) from e

            try:
                port: str = self._runtime.resolved_port(
                    container,
                    self._config.container_port,
                    self._config.max_wait,
                )
            except (DockerException, DockerStartupError) as e:
                logger.error("Port of %s is unknown, purge container" % (image.reference))
                try:
                    self._runtime.purge(container)
                except DockerException as purge_error:
                    logger.exception(purge_error)
                raise ProvisionError(
                    "Can't resolve redis server port (%s): %s" % (image.reference, e)
                ) from e

            addr = address_format(LOCALHOST, port)
            with self._lock:
                self._instance.container = container
                self._instance.address = addr
                self._instance.state = State.Running
            logger.debug("redis server started: %s" % (addr))

            self._cleanup = self._purge
            return self._cleanup
        except Exception:
            self._set_state(State.Stopped)
            raise
        finally:
            self._published.set()

    def _purge(self) -> None:
        # Stays Running until the container is gone
        with self._purge_lock:
            with self._lock:
                if self._instance.state is not State.Running:
                    logger.warning(
                        "Cleanup skipped, redis server is %s"
                        % (self._instance.state.value)
                    )
                    return
                container = self._instance.container
                addr = self._instance.address

            try:
                self._runtime.purge(container)
            except DockerException as e:
                raise CleanupError(
                    "Can't purge redis server %s: %s" % (addr, e)
                ) from e

            with self._lock:
                self._instance.container = None
                self._instance.state = State.Stopped
        logger.debug("redis server purged: %s" % (addr))

    def start_sync(self) -> Cleanup:
        return self._once.do(self._launch)

    async def start(self) -> Cleanup:
        if self._once.done:
            return self.start_sync()
        return await asyncio.to_thread(self.start_sync)

    @property
    def published_address(self) -> str:
        """
        Address now, "" if not published or if the start failed.
        """
        if not self._published.is_set():
            return ""
        with self._lock:
            return self._instance.address

    async def address(self, grace: float | None = None) -> str:
        if self._published.is_set():
            return self.published_address

        if grace is None:
            grace = self._config.address_grace
        # Polled on the loop, no executor thread per waiter
        loop = asyncio.get_running_loop()
        deadline = loop.time() + grace
        while not self._published.is_set():
            left = deadline - loop.time()
            if left <= 0:
                break
            await asyncio.sleep(min(ADDRESS_POLL_INTERVAL, left))
        return self.published_address
