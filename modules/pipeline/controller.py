# Archivo: modules/pipeline/controller.py
"""
Board State Controller.

Holds the client-side list of deals for the Kanban board and is the only
code allowed to mutate it. Moves are applied optimistically and tracked as
PendingMutation records (pending -> confirmed | rolled_back); every failure
is caught here, turned into a user-visible `error`, and followed by a full
refresh from the store.

The store is anything exposing the deal store contract as coroutines:
list_deals(), create_deal(fields), update_deal(id, fields, expected_version),
delete_deal(id). Both DealStore (in-process) and PipelineApiClient (HTTP)
qualify.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from core.config import settings
from core.errors import StoreError
from core.tasks import run_periodically
from .schemas import Deal
from .stages import STAGE_REGISTRY, StageRegistry, group_by_stage

logger = logging.getLogger("BoardController")


class MutationState(Enum):
    """Lifecycle of one optimistic move."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class PendingMutation:
    """One optimistic stage change waiting for the store."""
    deal_id: str
    from_stage: str
    to_stage: str
    state: MutationState = MutationState.PENDING
    error: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    resolved_at: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.state == MutationState.PENDING

    def _resolve(self, state: MutationState, error: Optional[str] = None) -> bool:
        if not self.is_pending:
            return False
        self.state = state
        self.error = error
        self.resolved_at = datetime.now(timezone.utc).isoformat()
        return True

    def confirm(self) -> bool:
        return self._resolve(MutationState.CONFIRMED)

    def rollback(self, reason: str) -> bool:
        return self._resolve(MutationState.ROLLED_BACK, reason)


class BoardStateController:
    """Owns Board State; the view only reads `deals` and sends intents."""

    # Resolved mutations kept for inspection; pending ones are never dropped
    max_resolved_mutations = 50

    def __init__(self, store, registry: StageRegistry = STAGE_REGISTRY):
        self.store = store
        self.registry = registry

        self.deals: List[Deal] = []
        self.loading = True
        self.error: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self.mutations: List[PendingMutation] = []

        self._subscribers: Dict[str, List[Callable]] = {}
        # FIFO: writes reach the store in the order they were issued
        self._write_lock = asyncio.Lock()
        self._generation = 0
        self._closed = False
        self._refresh_task: Optional[asyncio.Task] = None

    # --- Eventos ---

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for `deals_changed` or `error`."""
        self._subscribers.setdefault(event_type, []).append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        for callback in self._subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

    def _set_error(self, message: str, category: str = "unknown") -> None:
        self.error = message
        self._emit("error", message=message, category=category)

    # --- Lecturas ---

    def _index_of(self, deal_id: str) -> Optional[int]:
        for i, deal in enumerate(self.deals):
            if deal.id == deal_id:
                return i
        return None

    def get_deal(self, deal_id: str) -> Optional[Deal]:
        index = self._index_of(deal_id)
        return self.deals[index] if index is not None else None

    @property
    def pending_mutations(self) -> List[PendingMutation]:
        return [m for m in self.mutations if m.is_pending]

    def grouped(self) -> Dict[str, List[Deal]]:
        return group_by_stage(self.deals, self.registry)

    def _overlay_pending(self, deals: List[Deal]) -> List[Deal]:
        """Keeps in-flight moves visible on top of freshly fetched rows."""
        pending = {m.deal_id: m.to_stage for m in self.pending_mutations}
        if not pending:
            return deals
        return [
            d.model_copy(update={"stage": pending[d.id]}) if d.id in pending else d
            for d in deals
        ]

    async def refresh(self) -> bool:
        """
        Replaces Board State with the store's rows.

        Returns False when the result was not applied: the fetch failed, a
        newer refresh was issued meanwhile, or the controller was closed.
        """
        self._generation += 1
        generation = self._generation
        try:
            deals = await self.store.list_deals()
        except StoreError as e:
            if generation != self._generation or self._closed:
                return False
            logger.warning(f"Refresh falló: {e.message}")
            self.loading = False
            self._set_error(e.message, e.category)
            return False

        if generation != self._generation or self._closed:
            logger.debug("Refresh descartado (superado o controlador cerrado)")
            return False

        self.deals = self._overlay_pending(list(deals))
        self.loading = False
        self.error = None
        self.last_updated = datetime.now()
        self._emit("deals_changed", deals=self.deals)
        return True

    # --- Ciclo de vida ---

    async def mount(self, interval_seconds: Optional[float] = None) -> None:
        """Initial load plus the periodic refresh. Also reopens a closed controller."""
        self._closed = False
        await self.refresh()
        self.start_auto_refresh(interval_seconds)

    def start_auto_refresh(self, interval_seconds: Optional[float] = None) -> asyncio.Task:
        if self._refresh_task is None or self._refresh_task.done():
            interval = interval_seconds or settings.BOARD_REFRESH_SECONDS
            self._refresh_task = asyncio.create_task(
                run_periodically(self.refresh, interval, name="board-refresh")
            )
        return self._refresh_task

    async def close(self) -> None:
        """Stops the timer; refreshes still in flight will discard their result."""
        self._closed = True
        self._generation += 1
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._refresh_task
            self._refresh_task = None

    # --- Mutaciones ---

    def _revert(self, mutation: PendingMutation) -> None:
        index = self._index_of(mutation.deal_id)
        if index is not None and self.deals[index].stage == mutation.to_stage:
            self.deals[index] = self.deals[index].model_copy(update={"stage": mutation.from_stage})
            self._emit("deals_changed", deals=self.deals)

    def _apply_saved(self, deal_id: str, saved: Optional[Deal]) -> None:
        index = self._index_of(deal_id)
        if index is None:
            return
        current = self.deals[index]
        if isinstance(saved, Deal):
            updated = saved
        else:
            # The HTTP API only acknowledges; mirror the store's version bump
            updated = current.model_copy(update={"version": current.version + 1})
        # A later move of the same deal may still be waiting for the store
        self.deals[index] = self._overlay_pending([updated])[0]

    def _prune_mutations(self) -> None:
        resolved = [m for m in self.mutations if not m.is_pending]
        excess = len(resolved) - self.max_resolved_mutations
        if excess > 0:
            dropped = {id(m) for m in resolved[:excess]}
            self.mutations = [m for m in self.mutations if id(m) not in dropped]

    async def move_deal(self, deal_id: str, target_stage: str) -> Optional[PendingMutation]:
        """
        Optimistic drag-and-drop move.

        No-op (returns None) when the deal is not on the board, the target is
        not a catalog stage, or the deal already sits there, so repeating a
        move is harmless.
        """
        if not self.registry.is_known(target_stage):
            logger.warning(f"Move ignorado: stage destino desconocido '{target_stage}'")
            return None
        target = self.registry.canonicalize(target_stage)

        index = self._index_of(deal_id)
        if index is None:
            return None
        current = self.deals[index]
        if current.stage == target:
            return None

        mutation = PendingMutation(deal_id=deal_id, from_stage=current.stage, to_stage=target)
        self.mutations.append(mutation)
        self.deals[index] = current.model_copy(update={"stage": target})
        self._emit("deals_changed", deals=self.deals)

        async with self._write_lock:
            # Earlier queued writes may have bumped the version meanwhile
            latest = self.get_deal(deal_id) or current
            fields = latest.model_dump(exclude={"id", "version"})
            fields["stage"] = target
            try:
                saved = await self.store.update_deal(deal_id, fields, expected_version=latest.version)
            except StoreError as e:
                mutation.rollback(e.message)
                logger.warning(
                    f"Move {deal_id} {mutation.from_stage} -> {target} revertido: {e.message}"
                )
                self._revert(mutation)
                self._prune_mutations()
                await self.refresh()
                self._set_error(f"Could not move {current.firm_name}: {e.message}", e.category)
                return mutation

            mutation.confirm()
            self._apply_saved(deal_id, saved)
            self._prune_mutations()
            return mutation

    async def create_deal(self, fields: Any) -> Optional[Deal]:
        """Store first, then refresh; nothing is inserted locally beforehand."""
        if isinstance(fields, BaseModel):
            fields = fields.model_dump()
        async with self._write_lock:
            try:
                deal = await self.store.create_deal(fields)
            except StoreError as e:
                logger.warning(f"Alta de deal falló: {e.message}")
                self._set_error(f"Could not create deal: {e.message}", e.category)
                return None
        await self.refresh()
        return deal

    async def delete_deal(self, deal_id: str) -> bool:
        """Removes the card right away; a failed delete is undone by the refresh."""
        index = self._index_of(deal_id)
        if index is not None:
            del self.deals[index]
            self._emit("deals_changed", deals=self.deals)

        async with self._write_lock:
            try:
                await self.store.delete_deal(deal_id)
            except StoreError as e:
                logger.warning(f"Borrado de deal {deal_id} falló: {e.message}")
                await self.refresh()
                self._set_error(f"Could not delete deal: {e.message}", e.category)
                return False
        await self.refresh()
        return True
