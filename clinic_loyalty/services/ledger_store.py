"""
Ledger Store
============

Holds the authoritative collections for this process and runs one engine
operation at a time against them:

    rehydrate engine from snapshot -> run one operation -> adopt new snapshot

The lock is the single-writer guarantee the engine relies on. A failed
operation never replaces the stored snapshot.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from clinic_loyalty.services.ledger.ledger_engine import LedgerEngine
from clinic_loyalty.services.ledger.loyalty_policy import LoyaltyPolicy
from clinic_loyalty.services.ledger.models import LedgerSnapshot, OperationResult
from clinic_loyalty.services.ledger.seed import demo_snapshot
from clinic_loyalty.settings import settings

log = logging.getLogger("clinic_loyalty.store")


class LedgerStore:
    def __init__(
        self,
        snapshot: Optional[LedgerSnapshot] = None,
        *,
        policy: Optional[LoyaltyPolicy] = None,
        **engine_kwargs,
    ) -> None:
        self._snapshot = (snapshot or LedgerSnapshot()).copy()
        self.policy = policy or LoyaltyPolicy()
        self._engine_kwargs = engine_kwargs
        self._lock = threading.Lock()

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return self._snapshot.copy()

    def engine(self) -> LedgerEngine:
        """A throwaway engine for read-only queries."""
        with self._lock:
            return self._build_engine()

    def run(self, operation: Callable[[LedgerEngine], OperationResult]) -> OperationResult:
        with self._lock:
            result = operation(self._build_engine())
            if result.success and result.snapshot is not None:
                self._snapshot = result.snapshot.copy()
            return result

    def replace(self, snapshot: LedgerSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot.copy()

    def _build_engine(self) -> LedgerEngine:
        return LedgerEngine.from_snapshot(
            self._snapshot, policy=self.policy, **self._engine_kwargs
        )


_store: Optional[LedgerStore] = None
_store_lock = threading.Lock()


def default_policy() -> LoyaltyPolicy:
    return replace(LoyaltyPolicy(), currency_symbol=settings.LEDGER_CURRENCY_SYMBOL)


def get_store() -> LedgerStore:
    global _store
    if _store is not None:
        return _store
    with _store_lock:
        if _store is None:
            seed = demo_snapshot() if settings.LEDGER_SEED_DEMO_DATA else LedgerSnapshot()
            _store = LedgerStore(seed, policy=default_policy())
            log.info(
                "ledger store initialised users=%s wallets=%s transactions=%s",
                len(seed.users), len(seed.wallets), len(seed.transactions),
            )
    return _store
