"""
Server lifecycle: listening socket, connection workers, the three periodic jobs,
and the idempotent shutdown sequence.

Usage (example from CLI):
    from hotelier.config import get_settings
    from hotelier.orchestrator import ScheduleOrchestrator, ServerContext

    server = ScheduleOrchestrator(ServerContext.from_settings(get_settings()))
    server.install_signal_handlers()
    server.serve_forever()

Threads:
- the calling thread runs the accept loop only;
- one daemon thread per accepted connection;
- one thread per periodic job (account flush, catalog reconcile, idle watchdog).
"""

from __future__ import annotations

import itertools
import signal
import socket
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set, Tuple

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from hotelier.config import Settings
from hotelier.domain.errors import (
    ConnectionClosed,
    NetworkError,
    PersistenceError,
    ProtocolError,
)
from hotelier.domain.models import Account, Venue
from hotelier.infrastructure.record_store import RecordStore
from hotelier.protocol.session import LineChannel, SessionProtocol
from hotelier.services.catalog import CatalogStore
from hotelier.services.credentials import CredentialStore
from hotelier.services.notifier import NotificationPublisher
from hotelier.utils.logging import get_logger

log = get_logger(__name__)

Address = Tuple[str, int]


@dataclass
class ServerContext:
    """Everything a server instance shares between its threads."""

    settings: Settings
    credentials: CredentialStore
    catalog: CatalogStore
    publisher: NotificationPublisher

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServerContext":
        publisher = NotificationPublisher(
            settings.multicast_group, settings.multicast_port, ttl=settings.multicast_ttl
        )
        accounts = RecordStore(settings.accounts_path, Account, atomic=settings.atomic_writes)
        venues = RecordStore(settings.venues_path, Venue, atomic=settings.atomic_writes)
        return cls(
            settings=settings,
            credentials=CredentialStore(accounts),
            catalog=CatalogStore(venues, publisher=publisher),
            publisher=publisher,
        )


class PeriodicJob:
    """
    Runs `action` on its own thread every `interval` seconds until cancelled.

    Fixed delay measures the interval from the end of one run to the start of
    the next; fixed rate schedules runs at `start + n * interval`. Cancelling
    never interrupts a run in progress. An exception raised by the action is
    logged and the schedule continues.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], object],
        interval: float,
        initial_delay: Optional[float] = None,
        fixed_rate: bool = False,
    ) -> None:
        self.name = name
        self.interval = interval
        self.initial_delay = interval if initial_delay is None else initial_delay
        self.fixed_rate = fixed_rate
        self.runs = 0
        self._action = action
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the job thread; returns True once it has ended."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def run_once(self) -> None:
        try:
            self._action()
        except Exception:  # noqa: BLE001 - a failed run must not end the schedule
            log.exception(f"[JOB FAILED] {self.name}", extra={"job": self.name})
        self.runs += 1

    def _loop(self) -> None:
        next_run = time.monotonic() + self.initial_delay
        while not self._cancelled.wait(max(0.0, next_run - time.monotonic())):
            self.run_once()
            if self.fixed_rate:
                next_run += self.interval
            else:
                next_run = time.monotonic() + self.interval
        log.debug("Job stopped", extra={"job": self.name, "runs": self.runs})


class JobRunner:
    def __init__(self, jobs: Iterable[PeriodicJob]) -> None:
        self.jobs: List[PeriodicJob] = list(jobs)

    def start(self) -> None:
        for job in self.jobs:
            job.start()
        log.info(
            "Periodic jobs started",
            extra={"jobs": {job.name: job.interval for job in self.jobs}},
        )

    def cancel_all(self) -> None:
        for job in self.jobs:
            job.cancel()

    def join(self, timeout: float) -> bool:
        """Wait for every job within one shared deadline; the caller's own job is skipped."""
        deadline = time.monotonic() + timeout
        drained = True
        for job in self.jobs:
            drained = job.join(max(0.0, deadline - time.monotonic())) and drained
        return drained


class ConnectionWorkers:
    """Unbounded pool: one daemon thread per connection."""

    def __init__(self, handler: Callable[[socket.socket, Address], None]) -> None:
        self._handler = handler
        self._lock = threading.Lock()
        self._threads: Set[threading.Thread] = set()
        self._ids = itertools.count(1)

    def submit(self, conn: socket.socket, address: Address) -> threading.Thread:
        thread = threading.Thread(
            target=self._run,
            args=(conn, address),
            name=f"conn-{next(self._ids)}",
            daemon=True,
        )
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return thread

    def _run(self, conn: socket.socket, address: Address) -> None:
        try:
            self._handler(conn, address)
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())

    def active_count(self) -> int:
        with self._lock:
            return len(self._threads)

    def shutdown(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        with self._lock:
            pending = list(self._threads)
        for thread in pending:
            thread.join(max(0.0, deadline - time.monotonic()))
        return self.active_count() == 0


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(0.5),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)
def _open_listener(host: str, port: int, backlog: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    return sock


class ScheduleOrchestrator:
    def __init__(
        self,
        context: ServerContext,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.context = context
        self.settings = context.settings
        self._clock = clock
        self._listener: Optional[socket.socket] = None
        self._last_accept = clock()
        self._stop = threading.Event()
        self._finished = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._shut_down = False

        self.workers = ConnectionWorkers(self._serve_connection)
        self.jobs = JobRunner(
            [
                PeriodicJob(
                    "account-flush",
                    self._flush_accounts,
                    self.settings.credential_flush_interval,
                ),
                PeriodicJob(
                    "catalog-reconcile",
                    self._reconcile_catalog,
                    self.settings.catalog_flush_interval,
                ),
                PeriodicJob(
                    "idle-watchdog",
                    self.check_idle,
                    self.settings.watchdog_interval,
                    fixed_rate=True,
                ),
            ]
        )

    @property
    def address(self) -> Address:
        if self._listener is not None:
            host, port = self._listener.getsockname()[:2]
            return host, port
        return self.settings.host, self.settings.port

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def bind(self) -> Address:
        try:
            self._listener = _open_listener(
                self.settings.host, self.settings.port, self.settings.accept_backlog
            )
        except OSError as exc:
            raise NetworkError(
                f"Cannot listen on {self.settings.host}:{self.settings.port}: {exc}"
            ) from exc
        self._listener.settimeout(self.settings.accept_poll_interval)
        log.info(
            "Listening",
            extra={"host": self.address[0], "port": self.address[1], "env": self.settings.app_env},
        )
        return self.address

    def serve_forever(self) -> None:
        """
        Accept connections on the calling thread until shutdown.

        Returns only after the shutdown sequence has completed, whichever
        thread triggered it.
        """
        if self._listener is None:
            self.bind()
        listener = self._listener
        self._last_accept = self._clock()
        self.jobs.start()

        while not self._stop.is_set():
            try:
                conn, address = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._stop.is_set():
                    break
                log.exception("Accept failed; listener closed")
                break
            # Held so an idle shutdown cannot start between the accept and the submit.
            with self._shutdown_lock:
                if self._shut_down:
                    conn.close()
                    break
                self._last_accept = self._clock()
                conn.settimeout(None)
                self.workers.submit(conn, address)

        self.shutdown(force=True)
        self._finished.wait()

    def _serve_connection(self, conn: socket.socket, address: Address) -> None:
        peer = f"{address[0]}:{address[1]}"
        log.info("Connection accepted", extra={"peer": peer})
        try:
            with conn, conn.makefile(
                "r", encoding="utf-8", errors="replace", newline="\n"
            ) as reader, conn.makefile("w", encoding="utf-8", newline="\n") as writer:
                session = SessionProtocol(
                    LineChannel(reader, writer),
                    self.context.credentials,
                    self.context.catalog,
                    peer=peer,
                )
                session.run()
        except ConnectionClosed:
            log.info("Client disconnected", extra={"peer": peer})
        except ProtocolError as exc:
            log.warning("Closing connection on protocol error", extra={"peer": peer, "error": str(exc)})
        except (NetworkError, OSError) as exc:
            log.warning("Connection failed", extra={"peer": peer, "error": str(exc)})
        else:
            log.info("Client exited", extra={"peer": peer})

    def _flush_accounts(self) -> None:
        try:
            self.context.credentials.flush()
        except PersistenceError:
            log.exception("Account flush failed; pending accounts kept for the next cycle")

    def _reconcile_catalog(self) -> None:
        try:
            self.context.catalog.reconcile_and_rank()
        except PersistenceError:
            log.exception("Catalog reconcile failed; pending venues kept for the next cycle")

    def check_idle(self) -> bool:
        """Shut down when nothing was accepted for `idle_timeout_seconds` and no connection is open."""
        idle_for = self._clock() - self._last_accept
        if idle_for <= self.settings.idle_timeout_seconds:
            return False
        if self.workers.active_count() > 0:
            return False
        log.info("Idle timeout reached", extra={"idle_seconds": round(idle_for, 1)})
        return self.shutdown(idle_timeout=self.settings.idle_timeout_seconds)

    def shutdown(self, force: bool = False, idle_timeout: Optional[float] = None) -> bool:
        """
        Run the shutdown sequence once.

        Returns True for the call that performed it and False for every other
        call, including unforced calls refused because connections are still
        active. With `idle_timeout`, an unforced call is also refused when a
        connection was accepted within that many seconds. Operator signals use
        force=True.
        """
        with self._shutdown_lock:
            if self._shut_down:
                return False
            active = self.workers.active_count()
            if not force and active > 0:
                log.info("Shutdown refused: connections active", extra={"active": active})
                return False
            if not force and idle_timeout is not None:
                if self._clock() - self._last_accept <= idle_timeout:
                    log.info("Shutdown refused: recent connection")
                    return False
            self._shut_down = True

        log.info("[SHUTDOWN START]", extra={"forced": force, "active": active})
        try:
            self._teardown()
        finally:
            self._finished.set()
        log.info("[SHUTDOWN COMPLETE]")
        return True

    def _teardown(self) -> None:
        self._stop.set()
        self._close_listener()
        self.jobs.cancel_all()

        wait = self.settings.shutdown_wait_seconds
        if not self.jobs.join(wait):
            log.warning("Periodic jobs still running after shutdown wait", extra={"wait": wait})
        if not self.workers.shutdown(wait):
            log.warning(
                "Connections still open after shutdown wait",
                extra={"wait": wait, "active": self.workers.active_count()},
            )
        if self.settings.final_flush:
            self.final_flush()

    def _close_listener(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None:
            return
        try:
            listener.close()
        except OSError as exc:
            log.warning("Closing listener failed", extra={"error": str(exc)})

    def final_flush(self) -> None:
        staged = self.context.credentials.stage_open_sessions()
        if staged:
            log.info("Staged open sessions for the final flush", extra={"sessions": staged})
        self._flush_accounts()
        self._reconcile_catalog()

    def handle_signal(self, signum: int, frame: object) -> None:
        """Stop the accept loop; it then runs a forced shutdown on the main thread."""
        del frame
        log.info("Signal received", extra={"signal": signal.Signals(signum).name})
        self._stop.set()

    def install_signal_handlers(self) -> None:
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, self.handle_signal)


__all__ = [
    "ConnectionWorkers",
    "JobRunner",
    "PeriodicJob",
    "ScheduleOrchestrator",
    "ServerContext",
]
