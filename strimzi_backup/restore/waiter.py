"""Condition waiter.

Blocks until a watched resource satisfies a predicate or a deadline elapses.
The watch runs in a daemon listener thread that completes a Future; the caller
waits on the Future with the timeout, so the deadline is honoured with
sub-second precision even though watch streams only time out in whole seconds.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from ..errors import PlatformAPIError, WaitCancelledError, WaitTimeoutError
from ..models.reconciliation import is_ready, is_reconciliation_paused
from ..models.resource_kind import KAFKA, ResourceKind
from ..platform.client import PlatformClient, ResourceWatch

logger = logging.getLogger(__name__)

Predicate = Callable[[dict[str, Any]], bool]


class _Wait:
    """State of one in-flight wait, shared with its listener thread."""

    def __init__(self, description: str) -> None:
        self.description = description
        self.future: Future = Future()
        self.lock = threading.Lock()
        self.watch: Optional[ResourceWatch] = None
        self.stopped = False

    def finish(self, result: Optional[dict[str, Any]] = None, error: Optional[BaseException] = None) -> None:
        # First outcome wins; a later timeout, cancel or event is ignored
        try:
            if error is not None:
                self.future.set_exception(error)
            else:
                self.future.set_result(result)
        except InvalidStateError:
            pass

    def attach(self, resource_watch: ResourceWatch) -> bool:
        with self.lock:
            if self.stopped:
                return False
            self.watch = resource_watch
            return True

    def stop(self) -> None:
        with self.lock:
            self.stopped = True
            resource_watch, self.watch = self.watch, None
        if resource_watch is not None:
            resource_watch.stop()


class ConditionWaiter:
    """Waits for a single named resource to reach a condition.

    Attributes:
        client: Platform client handle used to open watches
    """

    def __init__(self, client: PlatformClient) -> None:
        self.client = client
        self._lock = threading.Lock()
        self._active: set[_Wait] = set()

    def wait_until(
        self,
        predicate: Predicate,
        kind: ResourceKind,
        namespace: str,
        name: str,
        timeout_ms: int,
    ) -> dict[str, Any]:
        """Wait until the predicate holds for the named resource.

        Args:
            predicate: Called with every ADDED or MODIFIED resource
            kind: Resource kind to watch
            namespace: Namespace of the resource
            name: Name of the resource
            timeout_ms: Deadline in milliseconds

        Returns:
            The first resource satisfying the predicate

        Raises:
            WaitTimeoutError: If the deadline elapses first
            WaitCancelledError: If cancel() is called during the wait
            PlatformAPIError: If the watch reports an error
        """
        wait = _Wait(f"{kind} {name} in namespace {namespace}")
        # Server side timeout only bounds each stream; the deadline is enforced below
        watch_timeout = max(1, math.ceil(timeout_ms / 1000))

        listener = threading.Thread(
            target=self._listen,
            args=(wait, predicate, kind, namespace, name, watch_timeout),
            name=f"watch-{kind.plural}-{name}",
            daemon=True,
        )

        with self._lock:
            self._active.add(wait)
        try:
            listener.start()
            try:
                return wait.future.result(timeout=timeout_ms / 1000)
            except FutureTimeoutError:
                error = WaitTimeoutError(
                    f"Timed out after {timeout_ms} ms waiting for {wait.description}", timeout_ms=timeout_ms
                )
                wait.finish(error=error)
                # The listener may have finished in the meantime
                return wait.future.result(timeout=0)
        finally:
            wait.stop()
            with self._lock:
                self._active.discard(wait)

    def wait_until_paused(self, namespace: str, name: str, timeout_ms: int) -> dict[str, Any]:
        """Wait for the operator to confirm the paused reconciliation of a Kafka."""
        logger.info(f"Waiting for reconciliation of Kafka {name} to be paused")
        return self.wait_until(is_reconciliation_paused, KAFKA, namespace, name, timeout_ms)

    def wait_until_ready(self, namespace: str, name: str, timeout_ms: int) -> dict[str, Any]:
        """Wait for a Kafka to be Ready with an up-to-date status."""
        logger.info(f"Waiting for Kafka {name} to get ready")
        return self.wait_until(is_ready, KAFKA, namespace, name, timeout_ms)

    def cancel(self) -> None:
        """Abort every in-flight wait with WaitCancelledError."""
        with self._lock:
            active = list(self._active)
        for wait in active:
            wait.finish(error=WaitCancelledError(f"Wait for {wait.description} was cancelled"))
            wait.stop()

    def _listen(
        self,
        wait: _Wait,
        predicate: Predicate,
        kind: ResourceKind,
        namespace: str,
        name: str,
        watch_timeout: int,
    ) -> None:
        try:
            while not wait.future.done():
                resource_watch = self.client.watch(kind, namespace, name, timeout_seconds=watch_timeout)
                if not wait.attach(resource_watch):
                    resource_watch.stop()
                    return

                for event_type, resource in resource_watch:
                    if wait.future.done():
                        return
                    if event_type in ("ADDED", "MODIFIED"):
                        if predicate(resource):
                            wait.finish(result=resource)
                            return
                    elif event_type == "ERROR":
                        message = resource.get("message") or "unknown error"
                        wait.finish(
                            error=PlatformAPIError(
                                f"Watch of {wait.description} failed: {message}",
                                status=resource.get("code"),
                                reason=resource.get("reason"),
                            )
                        )
                        return

                logger.debug(f"Watch of {wait.description} ended, reopening")
        except Exception as e:
            wait.finish(error=e)
