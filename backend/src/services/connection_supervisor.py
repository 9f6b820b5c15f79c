"""Queue connection outage tracking for the report worker."""

import errno
import threading
from typing import Callable, Optional

import redis
from redis.exceptions import RedisError

from src.utils.logger import get_logger

log = get_logger(__name__)


def is_connection_refused(exc: BaseException) -> bool:
    """Whether ``exc`` (or anything in its cause chain) is a refused connection."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        if isinstance(current, OSError) and current.errno == errno.ECONNREFUSED:
            return True
        if "connection refused" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False


class ConnectionSupervisor:
    """
    Owns the down/up state of one connection.

    The first refused-connection error while up flips the state to down and
    fires ``on_lost`` once; further errors while down are suppressed. The
    next ``ready`` while down flips it back and fires ``on_restored`` once.
    Other errors are only logged.
    """

    def __init__(
        self,
        name: str,
        on_lost: Callable[[BaseException], object],
        on_restored: Callable[[], object],
    ):
        self.name = name
        self.on_lost = on_lost
        self.on_restored = on_restored
        self._down = False
        self._lock = threading.Lock()

    @property
    def is_down(self) -> bool:
        return self._down

    def on_error(self, exc: BaseException) -> None:
        if not is_connection_refused(exc):
            log.error("connection error", connection=self.name, error=str(exc))
            return

        with self._lock:
            if self._down:
                return
            self._down = True

        log.error("connection lost", connection=self.name, error=str(exc))
        self.on_lost(exc)

    def on_ready(self) -> None:
        with self._lock:
            if not self._down:
                return
            self._down = False

        log.info("connection restored", connection=self.name)
        self.on_restored()


class RedisConnectionWatcher(threading.Thread):
    """Pings Redis on an interval and feeds the results to a supervisor."""

    def __init__(
        self,
        url: str,
        supervisor: ConnectionSupervisor,
        interval: float = 5.0,
        client: Optional[redis.Redis] = None,
    ):
        super().__init__(name="redis-connection-watcher", daemon=True)
        self.supervisor = supervisor
        self.interval = interval
        self._client = client or redis.Redis.from_url(
            url, socket_connect_timeout=interval, socket_timeout=interval
        )
        self._stop_event = threading.Event()

    def check_once(self) -> bool:
        """Ping once and report the outcome. Returns whether Redis answered."""
        try:
            self._client.ping()
        except (RedisError, OSError) as e:
            self.supervisor.on_error(e)
            return False
        self.supervisor.on_ready()
        return True

    def run(self) -> None:
        log.info("connection watcher started", connection=self.supervisor.name)
        while not self._stop_event.is_set():
            self.check_once()
            self._stop_event.wait(self.interval)
        self._client.close()
        log.info("connection watcher stopped", connection=self.supervisor.name)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout)
