"""
Entry Store Adapter

Turns the raw "entries" collection into what the ledger view shows:
typed entries for one date, sorted by date, kept up to date.

LIVE SUBSCRIPTIONS:
A subscription is an explicit callback registration. The first
result is delivered before subscribe() returns; after that a daemon
thread re-reads the collection every poll interval, and any write
made through this adapter wakes it immediately. The callback only
fires when the visible result actually changed.

Callbacks run on the subscription's thread, not the caller's.
"""

import asyncio
import inspect
import threading
import weakref
from datetime import date
from typing import Any, Callable, Iterable, Optional

import structlog
from pydantic import ValidationError

from ledgerlite.models.audit import AuditEventBuilder
from ledgerlite.models.entry import EntryDraft, LedgerEntry
from ledgerlite.services.storage import EntryStorageInterface, StorageError


EntriesCallback = Callable[[list[LedgerEntry]], None]

DEFAULT_POLL_INTERVAL_SECONDS = 5.0

logger = structlog.get_logger("ledgerlite.store")


def map_records(records: Iterable[dict[str, Any]]) -> list[LedgerEntry]:
    """Map raw records to entries, skipping the ones that don't parse."""
    entries = []
    for record in records:
        try:
            entries.append(LedgerEntry.from_record(record))
        except ValidationError as e:
            logger.warning(
                "malformed_entry_skipped",
                entry_id=str(record.get("id", "")),
                errors=e.error_count(),
            )
    return entries


def filter_by_date(
    entries: Iterable[LedgerEntry],
    selected_date: Optional[date],
) -> list[LedgerEntry]:
    """Keep entries on the selected date; None keeps everything."""
    if selected_date is None:
        return list(entries)
    return [entry for entry in entries if entry.date == selected_date]


def sort_by_date(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    """Order by the stored date string; ties keep storage order."""
    return sorted(entries, key=lambda entry: entry.date_key)


def build_view(
    records: Iterable[dict[str, Any]],
    selected_date: Optional[date],
) -> list[LedgerEntry]:
    """map -> filter -> sort, as one subscription update does it."""
    return sort_by_date(filter_by_date(map_records(records), selected_date))


class Subscription:
    """
    A live query over the entries collection for one date.

    A callback given as a bound method is held weakly: once its owner
    is garbage collected the subscription closes itself on the next
    poll.
    """

    def __init__(
        self,
        store: "EntryStore",
        selected_date: Optional[date],
        callback: EntriesCallback,
        poll_interval_seconds: float,
    ):
        self._store = store
        self._selected_date = selected_date
        if inspect.ismethod(callback):
            self._callback_ref = weakref.WeakMethod(callback)
        else:
            self._callback_ref = lambda: callback
        self._poll_interval = poll_interval_seconds

        # Reentrant so a callback may unsubscribe
        self._lock = threading.RLock()
        self._wake = threading.Event()
        self._stopped = threading.Event()
        self._last_delivered: Optional[list[LedgerEntry]] = None
        self._next_fetch = 0
        self._latest_fetch = -1
        self._thread = threading.Thread(
            target=self._run,
            name=f"ledgerlite-subscription-{selected_date or 'all'}",
            daemon=True,
        )

    @property
    def selected_date(self) -> Optional[date]:
        return self._selected_date

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    @property
    def entries(self) -> list[LedgerEntry]:
        """The last result delivered to the callback."""
        with self._lock:
            return list(self._last_delivered or [])

    def _start(self) -> None:
        self.refresh()
        self._thread.start()

    def refresh(self) -> bool:
        """
        Re-read the collection now and notify if the result changed.

        Must not be called from inside a running event loop.
        Returns True if the callback fired. A read that finishes after
        a newer one is discarded.
        """
        with self._lock:
            if not self.active:
                return False
            fetch_number = self._next_fetch
            self._next_fetch += 1

        try:
            records = asyncio.run(self._store.storage.fetch_records())
        except StorageError as e:
            logger.warning(
                "subscription_refresh_failed",
                selected_date=str(self._selected_date),
                error=str(e),
            )
            return False

        entries = build_view(records, self._selected_date)

        with self._lock:
            if not self.active or fetch_number < self._latest_fetch:
                return False
            self._latest_fetch = fetch_number
            if entries == self._last_delivered:
                return False

            callback = self._callback_ref()
            if callback is None:
                self.unsubscribe()
                return False

            self._last_delivered = entries
            try:
                callback(list(entries))
            except Exception:
                logger.exception(
                    "subscription_callback_failed",
                    selected_date=str(self._selected_date),
                )
            return True

    def wake(self) -> None:
        """Ask the polling thread for an update without waiting a full interval."""
        self._wake.set()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the polling thread to exit (after unsubscribe)."""
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._wake.wait(self._poll_interval)
            self._wake.clear()
            if self._stopped.is_set():
                break
            if self._callback_ref() is None:
                logger.debug(
                    "subscription_owner_gone",
                    selected_date=str(self._selected_date),
                )
                self.unsubscribe()
                break
            self.refresh()

    def unsubscribe(self) -> None:
        """
        Stop updates. Safe to call more than once.

        Waits for a callback already in progress; none runs after this
        returns.
        """
        with self._lock:
            if self._stopped.is_set():
                return
            self._stopped.set()
        self._wake.set()
        self._store._forget(self)


class EntryStore:
    """
    Adapter over one storage handle.

    Create it once per process with the shared storage backend;
    subscriptions, creates and deletes all go through it.
    """

    def __init__(
        self,
        storage: EntryStorageInterface,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self._storage = storage
        self._poll_interval = poll_interval_seconds
        self._subscriptions: set[Subscription] = set()
        self._lock = threading.Lock()

    @property
    def storage(self) -> EntryStorageInterface:
        return self._storage

    @property
    def subscriptions(self) -> list[Subscription]:
        with self._lock:
            return list(self._subscriptions)

    def subscribe(
        self,
        selected_date: Optional[date],
        callback: EntriesCallback,
    ) -> Subscription:
        """Open a live query for one date (None watches every entry)."""
        subscription = Subscription(
            store=self,
            selected_date=selected_date,
            callback=callback,
            poll_interval_seconds=self._poll_interval,
        )
        with self._lock:
            self._subscriptions.add(subscription)

        date_label = selected_date.isoformat() if selected_date else None
        logger.debug(
            "audit_event",
            **AuditEventBuilder.subscription_opened(date_label).to_log_dict(),
        )
        subscription._start()
        return subscription

    def _forget(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.discard(subscription)

        selected_date = subscription.selected_date
        date_label = selected_date.isoformat() if selected_date else None
        logger.debug(
            "audit_event",
            **AuditEventBuilder.subscription_closed(date_label).to_log_dict(),
        )

    def _notify(self) -> None:
        for subscription in self.subscriptions:
            subscription.wake()

    async def create_entry(self, draft: EntryDraft) -> LedgerEntry:
        """
        Append a record built from a validated draft.

        Raises:
            StorageError: If the backend write fails
        """
        record = draft.to_record()
        entry_id = await self._storage.add_record(record)
        self._notify()
        return LedgerEntry.from_record({**record, "id": entry_id})

    async def delete_entry(self, entry_id: str) -> bool:
        """
        Remove the record with this identifier.

        Raises:
            StorageError: If the backend delete fails
        """
        deleted = await self._storage.delete_record(entry_id)
        if deleted:
            self._notify()
        return deleted

    def close(self) -> None:
        """Unsubscribe everything still open."""
        for subscription in self.subscriptions:
            subscription.unsubscribe()
