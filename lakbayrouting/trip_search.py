"""
TripSearch: bounded-transfer enumeration over ride segments

Direct, one-transfer and two-transfer combinations are enumerated exhaustively
(O(n), O(n^2), O(n^3) in segment count). That is fine for community networks of
tens to a few hundred segments; a city-wide network would need a proper
shortest-path formulation instead.

Scores are lower-is-better: summed ride cost in the chosen metric plus total
walked km times a fixed per-metric penalty. One running best is kept across
all tiers, and only a strictly lower score replaces it, so the earliest
enumerated candidate wins ties.
"""

import logging
from typing import List, Optional, Sequence

from .models.network import Coordinate
from .models.trip import CandidatePath, CostMetric, PathType, SearchConfig, Segment
from .utils.geo_utils import distance_matrix, distances_from

logger = logging.getLogger(__name__)


def score(ride_cost: float, walk_km: float, metric: CostMetric) -> float:
    return ride_cost + walk_km * metric.walk_penalty


class TripSearch:
    """Single-request search state: precomputed walk distances and the running best"""

    def __init__(self, origin: Coordinate, destination: Coordinate,
                 segments: Sequence[Segment], config: SearchConfig):
        self.origin = origin
        self.destination = destination
        self.segments = list(segments)
        self.config = config
        self.best: Optional[CandidatePath] = None
        self.counts = {kind: 0 for kind in PathType}

        starts = [s.start for s in self.segments]
        ends = [s.end for s in self.segments]
        self._walk_in = [float(d) for d in distances_from(origin, starts)]
        self._walk_out = [float(d) for d in distances_from(destination, ends)]
        self._transfer = distance_matrix(ends, starts).tolist() if self.segments else []
        self._costs = [s.cost(config.cost_metric) for s in self.segments]

    def _offer(self, kind: PathType, indices: Sequence[int], walk_legs: Sequence[float]):
        walk_km = sum(walk_legs)
        if walk_km > self.config.max_walk_km:
            return
        self.counts[kind] += 1
        ride_cost = sum(self._costs[i] for i in indices)
        self._accept(kind, indices, walk_legs, score(ride_cost, walk_km, self.config.cost_metric))

    def _accept(self, kind: PathType, indices: Sequence[int], walk_legs: Sequence[float], value: float):
        if self.best is None or value < self.best.score:
            self.best = self._candidate(kind, indices, walk_legs, value)

    def _candidate(self, kind, indices, walk_legs, value) -> CandidatePath:
        return CandidatePath(
            kind=kind,
            segments=tuple(self.segments[i] for i in indices),
            walk_legs=tuple(walk_legs),
            score=value,
        )

    def _search_direct(self):
        for i in range(len(self.segments)):
            self._offer(PathType.DIRECT, (i,), (self._walk_in[i], self._walk_out[i]))

    def _search_one_transfer(self):
        limit = self.config.max_walk_km
        n = len(self.segments)
        for i in range(n):
            walk_in = self._walk_in[i]
            if walk_in > limit:
                continue
            for j in range(n):
                if self.segments[i].key == self.segments[j].key:
                    continue
                partial = walk_in + self._transfer[i][j]
                if partial > limit:
                    continue
                self._offer(PathType.ONE_TRANSFER, (i, j),
                            (walk_in, self._transfer[i][j], self._walk_out[j]))

    def _search_two_transfer(self):
        limit = self.config.max_walk_km
        n = len(self.segments)
        keys = [s.key for s in self.segments]
        for i in range(n):
            walk_in = self._walk_in[i]
            if walk_in > limit:
                continue
            for j in range(n):
                if keys[j] == keys[i]:
                    continue
                first_transfer = self._transfer[i][j]
                if walk_in + first_transfer > limit:
                    continue
                for k in range(n):
                    if keys[k] == keys[i] or keys[k] == keys[j]:
                        continue
                    second_transfer = self._transfer[j][k]
                    if walk_in + first_transfer + second_transfer > limit:
                        continue
                    self._offer(PathType.TWO_TRANSFER, (i, j, k),
                                (walk_in, first_transfer, second_transfer, self._walk_out[k]))

    def run(self) -> Optional[CandidatePath]:
        self._search_direct()
        if self.config.effective_transfers >= 1:
            self._search_one_transfer()
        if self.config.effective_transfers >= 2:
            self._search_two_transfer()
        logger.debug(f"Candidates within walk budget: "
                     f"{ {k.value: v for k, v in self.counts.items()} }")
        return self.best


def search(origin: Coordinate, destination: Coordinate, segments: Sequence[Segment],
           config: SearchConfig) -> Optional[CandidatePath]:
    """Best candidate path, or None when nothing satisfies the walk budget"""
    best = TripSearch(origin, destination, segments, config).run()
    if best is None:
        logger.info(f"No candidate within {config.max_walk_km:.2f} km walk "
                    f"over {len(segments)} segments")
    else:
        logger.info(f"Best candidate: {best.kind.value}, score={best.score:.2f}, "
                    f"routes={[s.route_id for s in best.segments]}")
    return best


def enumerate_candidates(origin: Coordinate, destination: Coordinate, segments: Sequence[Segment],
                         config: SearchConfig) -> List[CandidatePath]:
    """Every admissible candidate in enumeration order (for diagnostics and tests)"""
    collected: List[CandidatePath] = []

    class _Collector(TripSearch):
        def _accept(self, kind, indices, walk_legs, value):
            collected.append(self._candidate(kind, indices, walk_legs, value))

    _Collector(origin, destination, segments, config).run()
    return collected
