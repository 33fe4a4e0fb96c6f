import asyncio
import logging
import random
import time
from enum import Enum
from typing import Awaitable, Callable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .backoff import BackoffPolicy, Clock, ExponentialBackoff
from .provision import Provisioner
from .server import parse_address

logger: logging.Logger = logging.getLogger(__name__)


class ProbeState(str, Enum):
    Idle = "idle"
    Probing = "probing"
    Connected = "connected"
    Exhausted = "exhausted"
    Cancelled = "cancelled"
    Failed = "failed"


class AddressNotPublished(RuntimeError):
    pass


class RedisConnectError(ConnectionError):
    """
    Redis never answered PING within the backoff budget.

    The last probe failure is chained as __cause__.
    """


ClientFactory = Callable[..., Redis]
Sleep = Callable[[float], Awaitable[None]]

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    RedisError,
    OSError,
    asyncio.TimeoutError,
    AddressNotPublished,
)


def new_client(
    address: str,
    password: str | None = None,
    db: int = 0,
    socket_timeout: float | None = None,
) -> Redis:
    host, port = parse_address(address)
    return Redis(
        host=host,
        port=port,
        password=password,
        db=db,
        socket_connect_timeout=socket_timeout,
        socket_timeout=socket_timeout,
    )


class ProbeSequence:
    """
    One attempt sequence: Idle -> Probing -> Connected | Exhausted | Cancelled.

    Each attempt is bounded by the time left in the backoff budget. An
    error that is not a connection failure ends the sequence as Failed.
    """

    def __init__(
        self,
        provisioner: Provisioner,
        backoff: ExponentialBackoff,
        sleep: Sleep,
        client_factory: ClientFactory,
    ):
        self._provisioner: Provisioner = provisioner
        self._backoff: ExponentialBackoff = backoff
        self._sleep: Sleep = sleep
        self._client_factory: ClientFactory = client_factory
        self._client: Redis | None = None
        self.state: ProbeState = ProbeState.Idle
        self.attempts: int = 0
        self.last_error: BaseException | None = None

    async def _client_for_address(self) -> Redis:
        if self._client is not None:
            return self._client

        # Grace wait only before the first attempt
        if self.attempts == 1:
            addr = await self._provisioner.address()
        else:
            addr = self._provisioner.published_address
        if not addr:
            raise AddressNotPublished("redis server address is not published yet")

        config = self._provisioner.config
        self._client = self._client_factory(
            addr,
            password=config.password,
            db=config.db,
            socket_timeout=config.socket_timeout,
        )
        return self._client

    async def _probe(self) -> Redis:
        client = await self._client_for_address()
        await client.ping()
        return client

    async def _close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.debug("Close error: %s" % (e))
        self._client = None

    async def run(self) -> Redis:
        if self.state is not ProbeState.Idle:
            raise RuntimeError("Probe sequence already ran (state: %s)" % (self.state.value))

        self.state = ProbeState.Probing
        self._backoff.reset()
        try:
            while True:
                self.attempts += 1
                try:
                    client = await asyncio.wait_for(
                        self._probe(),
                        timeout=self._backoff.remaining,
                    )
                    self.state = ProbeState.Connected
                    logger.debug("PING passed after %d try" % (self.attempts))
                    return client
                except TRANSIENT_ERRORS as e:
                    self.last_error = e
                    logger.debug("%d try: PING error: %r" % (self.attempts, e))

                interval = self._backoff.next_interval()
                if interval is None:
                    self.state = ProbeState.Exhausted
                    logger.error(
                        "Give up connecting to redis server after %d try (%.1fs)"
                        % (self.attempts, self._backoff.elapsed)
                    )
                    await self._close()
                    raise RedisConnectError(
                        "[redistest] failed to connect to redis server: %s"
                        % (self.last_error)
                    ) from self.last_error

                await self._sleep(interval)
        except asyncio.CancelledError:
            self.state = ProbeState.Cancelled
            await self._close()
            raise
        except RedisConnectError:
            raise
        except Exception:
            self.state = ProbeState.Failed
            await self._close()
            raise


class RedisConnector:
    def __init__(
        self,
        provisioner: Provisioner,
        policy: BackoffPolicy | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        client_factory: ClientFactory = new_client,
        rand: Callable[[], float] = random.random,
    ):
        self._provisioner: Provisioner = provisioner
        self._policy: BackoffPolicy = (
            policy if policy is not None else provisioner.config.backoff
        )
        self._clock: Clock = clock
        self._sleep: Sleep = sleep
        self._client_factory: ClientFactory = client_factory
        self._rand = rand

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    def probe(self) -> ProbeSequence:
        return ProbeSequence(
            provisioner=self._provisioner,
            backoff=ExponentialBackoff(
                self._policy,
                clock=self._clock,
                rand=self._rand,
            ),
            sleep=self._sleep,
            client_factory=self._client_factory,
        )

    async def client(self) -> Redis:
        """
        Connected client, blocks until redis server answers PING.
        """
        return await self.probe().run()
