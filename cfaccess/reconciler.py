from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from threading import Lock

from .alerts import Notifier
from .policy import PolicyFetchFailure, PolicyStore, PolicyUpdateFailure
from .resolver import AddressResolver, ResolutionFailure

logger = logging.getLogger(__name__)


class TickState(str, enum.Enum):
    RESOLVING = "resolving"
    FETCHING = "fetching"
    COMPARING = "comparing"
    NOOP = "noop"
    CREATING = "creating"
    UPDATING = "updating"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


class Action(str, enum.Enum):
    NOOP = "noop"
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class TickOutcome:
    action: Action
    address: str | None = None
    previous: str | None = None
    failed_at: str | None = None  # address resolution | policy fetch | policy update
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.action is not Action.FAILED


class Reconciler:
    """Brings the Access Group include rule in line with the current public IP.

    Every run starts from scratch: the remote group is the only record of what
    was configured last, so nothing is carried between runs.
    """

    def __init__(self, resolver: AddressResolver, store: PolicyStore, notifier: Notifier):
        self.resolver = resolver
        self.store = store
        self.notifier = notifier
        # State of the current or most recent run, for diagnostics only. Each run
        # overwrites it on entry and never reads it back.
        self.state: TickState | None = None
        self._lock = Lock()

    def run(self) -> TickOutcome | None:
        """Run one reconciliation unless another is already in flight.

        Returns None when skipped.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Previous IP check still running, skipping this run")
            return None
        try:
            return self._reconcile()
        finally:
            self._lock.release()

    def _enter(self, state: TickState) -> None:
        self.state = state
        logger.debug("Reconciler state: %s", state.value)

    def _fail(self, failed_at: str, err: Exception, message: str, address: str | None = None, previous: str | None = None) -> TickOutcome:
        self._enter(TickState.FAILED)
        self.notifier.notify_safely(message)
        return TickOutcome(Action.FAILED, address=address, previous=previous, failed_at=failed_at, error=str(err))

    def _reconcile(self) -> TickOutcome:
        logger.info("Checking if IP update is needed...")

        self._enter(TickState.RESOLVING)
        try:
            current_ip = self.resolver.resolve().address.strip()
        except ResolutionFailure as e:
            logger.error("Error getting current IP: %s", e)
            return self._fail("address resolution", e, f"❌ Error getting current IP: {e}")
        logger.info("Current public IP: %s", current_ip)

        self._enter(TickState.FETCHING)
        try:
            group = self.store.fetch()
        except PolicyFetchFailure as e:
            logger.error("Error getting Cloudflare Access Group: %s", e)
            return self._fail("policy fetch", e, f"❌ Error getting Cloudflare Access Group: {e}", address=current_ip)

        self._enter(TickState.COMPARING)
        stored = group.current_ip()
        if not stored:
            logger.info("No IP found in Cloudflare Access Group, updating...")
            return self._create(current_ip)

        previous = stored.removesuffix("/32")
        logger.info("Cloudflare Access Group IP: %s", previous)
        if previous == current_ip:
            self._enter(TickState.NOOP)
            logger.info("IP is already up to date, no action needed")
            self._enter(TickState.DONE)
            return TickOutcome(Action.NOOP, address=current_ip, previous=previous)

        logger.info("IP mismatch detected. Updating Cloudflare Access Group from %s to %s", previous, current_ip)
        return self._update(previous, current_ip)

    def _create(self, current_ip: str) -> TickOutcome:
        self._enter(TickState.CREATING)
        try:
            self.store.replace(current_ip)
        except PolicyUpdateFailure as e:
            logger.error("Error updating Cloudflare Access Group: %s", e)
            return self._fail("policy update", e, f"❌ Error updating Cloudflare Access Group: {e}", address=current_ip)

        logger.info("Successfully updated Cloudflare Access Group with IP: %s", current_ip)
        self._enter(TickState.NOTIFYING)
        self.notifier.notify_safely(f"✅ Initial IP set in Cloudflare Access Group: {current_ip}")
        self._enter(TickState.DONE)
        return TickOutcome(Action.CREATED, address=current_ip)

    def _update(self, previous: str, current_ip: str) -> TickOutcome:
        self._enter(TickState.UPDATING)
        try:
            self.store.replace(current_ip)
        except PolicyUpdateFailure as e:
            logger.error("Error updating Cloudflare Access Group: %s", e)
            return self._fail(
                "policy update",
                e,
                f"❌ Failed to update IP from {previous} to {current_ip}: {e}",
                address=current_ip,
                previous=previous,
            )

        logger.info("Successfully updated Cloudflare Access Group with IP: %s", current_ip)
        self._enter(TickState.NOTIFYING)
        self.notifier.notify_safely(f"🔄 IP address changed from {previous} to {current_ip}")
        self._enter(TickState.DONE)
        return TickOutcome(Action.UPDATED, address=current_ip, previous=previous)
