"""Secret watch loop.

Every (re)connect opens a fresh watch without a resource version. The API
server then replays current secrets as ADDED events, which the idempotent
create path tolerates. Deletions that happen while disconnected are lost.
"""

import logging
import random
import threading
from typing import Optional

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from .dispatcher import EventDispatcher

logger = logging.getLogger(__name__)


class SecretWatcher:
    """Feeds secret events from one namespace to the dispatcher."""

    def __init__(
        self,
        v1: client.CoreV1Api,
        namespace: str,
        dispatcher: EventDispatcher,
        max_backoff: float = 30,
    ):
        self.v1 = v1
        self.namespace = namespace
        self.dispatcher = dispatcher
        self.max_backoff = max_backoff
        self._stop = threading.Event()
        self._active: Optional[watch.Watch] = None
        self._lock = threading.Lock()

    def stop(self) -> None:
        """Stop the loop and interrupt the open watch stream, if any."""
        self._stop.set()
        with self._lock:
            active = self._active
        if active is not None:
            active.stop()

    def watch_once(self) -> int:
        """Consume one watch stream until it closes. Returns events handled."""
        watcher = watch.Watch()
        with self._lock:
            self._active = watcher
        handled = 0
        try:
            for event in watcher.stream(
                self.v1.list_namespaced_secret, namespace=self.namespace
            ):
                if self._stop.is_set():
                    break
                self.dispatcher.dispatch(event)
                handled += 1
        finally:
            with self._lock:
                self._active = None
        return handled

    def run_forever(self) -> None:
        """
        Watch until stop() is called.

        Closed streams are reopened at once; failed ones after a jittered
        exponential backoff. 401/403 end the loop since retrying cannot fix
        RBAC or credentials.
        """
        logger.info(f"Entering watch loop for namespace {self.namespace}")
        backoff = 1.0
        while not self._stop.is_set():
            try:
                handled = self.watch_once()
                logger.info(f"Watch closed after {handled} events, reconnecting")
                backoff = 1.0
                continue
            except ApiException as e:
                if e.status in (401, 403):
                    logger.error(
                        f"Access to secrets in {self.namespace} denied (status {e.status}). "
                        "Check the service account permissions."
                    )
                    return
                logger.warning(f"Watch failed: {e.status} {e.reason}")
            except Exception as e:
                # Connection resets surface as urllib3/OSError subclasses
                logger.warning(f"Watch failed: {e}")

            delay = backoff * (0.5 + random.random())
            logger.info(f"Reconnecting watch in {delay:.1f}s")
            self._stop.wait(timeout=delay)
            backoff = min(backoff * 2, self.max_backoff)

        logger.info("Watch loop stopped")
