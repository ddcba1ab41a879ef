"""
colony_backend/counters.py

Colony plot counters: totalPlots, availablePlots, soldPlots, blockedPlots.

The counters are a denormalized snapshot of the colony's live plot set and are
written only here. Each recompute reloads every plot of the colony and writes
the full tally back; there is no incremental delta and no lock.

Known behavior, kept on purpose:
- Reserved plots count toward totalPlots only, so
  available + sold + blocked <= total.
- Two plot writes racing on the same colony each write their own snapshot;
  whichever recompute lands last wins.
- Callers trigger a recompute after plot create/delete, not after ordinary
  plot updates, so a status change leaves the counters stale until the next
  create/delete (or an explicit recompute).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from colony_backend.config import IS_DEV
from colony_backend.errors import RecomputeFailure

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("totalPlots", "availablePlots", "soldPlots", "blockedPlots")


class PlotQuery(Protocol):
    def find(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]: ...


class ColonyWriter(Protocol):
    def get(self, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def update(self, doc_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...


def empty_counters() -> Dict[str, int]:
    return {field: 0 for field in COUNTER_FIELDS}


def tally(plots: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts = empty_counters()
    for plot in plots:
        counts["totalPlots"] += 1
        status = plot.get("status")
        if status == "available":
            counts["availablePlots"] += 1
        elif status == "sold":
            counts["soldPlots"] += 1
        elif status == "blocked":
            counts["blockedPlots"] += 1
    return counts


class ColonyCounters:
    """Recomputes a colony's counters from an injected plot query interface."""

    def __init__(self, plots: PlotQuery, colonies: ColonyWriter):
        self.plots = plots
        self.colonies = colonies

    def recompute(self, colony_id: str) -> Optional[Dict[str, int]]:
        """Reload the colony's plots and persist the tally. None if the colony is gone."""
        colony = self.colonies.get(colony_id)
        if colony is None:
            return None
        counts = tally(self.plots.find({"colony": colony_id}))
        self.colonies.update(colony_id, counts)
        if IS_DEV:
            logger.debug("[COUNTERS] colony=%s %s", colony_id, counts)
        return counts

    def recompute_quietly(self, colony_id: str) -> Optional[Dict[str, int]]:
        """Best-effort follow-up to a plot write: failures are logged, never raised."""
        try:
            return self.recompute(colony_id)
        except Exception as e:
            failure = RecomputeFailure(colony_id, e)
            logger.error("[COUNTERS] %s", failure, exc_info=e)
            return None
