import logging
import random
import time
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, List, Optional, Sequence, Tuple

from roster_manager.exceptions import InsufficientStaff, Unsatisfiable
from roster_manager.models.physician import Physician
from roster_manager.models.roster import (
    AFTERNOON, GENERAL, ICU, MORNING, NIGHT, MonthConfig, MonthRoster, build_month_roster,
)
from roster_manager.utils.date_helper import holiday_flags

logger = logging.getLogger(__name__)

CRITERIA = ("rest", "total", "holiday")


@dataclass
class RankingPolicy:
    """
    Soft ordering of candidates plus the optional hard rest rule.
    - criteria: precedence of the per-physician ranking, physician list order breaks ties
    - balance_wards: pick the ward orientation that evens out ICU/General counts
    - rest_window: 'rest' penalises anyone who worked within this many previous days
    - min_rest_days: hard rule, 0 = off
    - seed: shuffle the physician order once before ranking (reproducible)
    """
    criteria: Tuple[str, ...] = CRITERIA
    balance_wards: bool = True
    rest_window: int = 1
    min_rest_days: int = 0
    seed: Optional[int] = None
    max_steps: int = 200_000

    def __post_init__(self):
        self.criteria = tuple(self.criteria)
        unknown = [c for c in self.criteria if c not in CRITERIA]
        if unknown:
            raise ValueError(f"unknown ranking criteria: {unknown}")
        if self.rest_window < 0 or self.min_rest_days < 0:
            raise ValueError("rest windows must be >= 0")


# slot deltas (general, icu) for the two sides of a pick
#   weekday: first -> General A+N, second -> ICU A+N
#   holiday: first -> General M + ICU A+N, second -> ICU M + General A+N
_WEEKDAY_DELTA = ((2, 0), (0, 2))
_HOLIDAY_DELTA = ((1, 2), (2, 1))


class _Tally:
    def __init__(self, n: int):
        self.total = [0] * n
        self.holiday = [0] * n
        self.general = [0] * n
        self.icu = [0] * n
        self.worked = [[] for _ in range(n)]   # day indexes, ascending

    def apply(self, day_idx: int, is_holiday: bool, pick: Tuple[int, int], sign: int):
        deltas = _HOLIDAY_DELTA if is_holiday else _WEEKDAY_DELTA
        for who, (g, i) in zip(pick, deltas):
            self.general[who] += sign * g
            self.icu[who] += sign * i
            self.total[who] += sign * (g + i)
            if is_holiday:
                self.holiday[who] += sign * (g + i)
            if sign > 0:
                self.worked[who].append(day_idx)
            else:
                self.worked[who].pop()

    def worked_within(self, who: int, day_idx: int, window: int) -> bool:
        days = self.worked[who]
        return window > 0 and bool(days) and day_idx - days[-1] <= window


class _Search:
    def __init__(self, pool: List[Physician], days, policy: RankingPolicy):
        self.pool = pool
        self.days = days                       # [(key, is_holiday, name)]
        self.policy = policy
        self.tally = _Tally(len(pool))
        self.eligible = [
            [i for i, p in enumerate(pool) if p.is_available(key)]
            for key, _, _ in days
        ]

    def _rank_key(self, who: int, day_idx: int, is_holiday: bool):
        t = self.tally
        key = []
        for c in self.policy.criteria:
            if c == "rest":
                key.append(1 if t.worked_within(who, day_idx, self.policy.rest_window) else 0)
            elif c == "total":
                key.append(t.total[who])
            elif c == "holiday":
                key.append(t.holiday[who] if is_holiday else 0)
        key.append(who)
        return tuple(key)

    def _orient(self, p: int, q: int, is_holiday: bool) -> Tuple[int, int]:
        if not self.policy.balance_wards:
            return p, q
        deltas = _HOLIDAY_DELTA if is_holiday else _WEEKDAY_DELTA
        t = self.tally

        def cost(first, second):
            out = 0
            for who, (g, i) in zip((first, second), deltas):
                out += abs((t.icu[who] + i) - (t.general[who] + g))
            return out

        return (q, p) if cost(q, p) < cost(p, q) else (p, q)

    def candidates(self, day_idx: int) -> List[Tuple[int, int]]:
        _, is_holiday, _ = self.days[day_idx]
        hard = self.policy.min_rest_days
        pool = [i for i in self.eligible[day_idx]
                if not self.tally.worked_within(i, day_idx, hard)]
        ranked = sorted(pool, key=lambda i: self._rank_key(i, day_idx, is_holiday))
        pairs = sorted(combinations(range(len(ranked)), 2), key=lambda ab: (ab[0] + ab[1], ab[0]))
        return [self._orient(ranked[a], ranked[b], is_holiday) for a, b in pairs]

    def run(self) -> List[Tuple[int, int]]:
        picks: List[Tuple[int, int]] = []
        frames: List[list] = []        # per day: [candidates, next position]
        blocked = 0
        steps = 0
        i = 0
        while i < len(self.days):
            if len(frames) == i:
                frames.append([self.candidates(i), 0])
            cands, pos = frames[i]
            if pos < len(cands):
                frames[i][1] = pos + 1
                pick = cands[pos]
                self.tally.apply(i, self.days[i][1], pick, +1)
                picks.append(pick)
                i += 1
                continue

            # nothing left for day i: step back and try the previous day's next pair
            frames.pop()
            blocked = max(blocked, i)
            if i == 0:
                raise Unsatisfiable(self.days[blocked][0], "search exhausted")
            steps += 1
            if steps > self.policy.max_steps:
                raise Unsatisfiable(self.days[blocked][0],
                                    f"gave up after {self.policy.max_steps} backtracks")
            i -= 1
            self.tally.apply(i, self.days[i][1], picks.pop(), -1)
            logger.debug("backtrack to %s (blocked at %s)", self.days[i][0], self.days[blocked][0])
        return picks


def generate(physicians: Iterable[Physician], config: MonthConfig,
             policy: Optional[RankingPolicy] = None) -> MonthRoster:
    """
    Build a complete month from scratch.
    Raises InsufficientStaff (< 2 active physicians) or Unsatisfiable(date).
    """
    policy = policy or RankingPolicy()
    pool = [p for p in physicians if p.active]
    if len(pool) < 2:
        raise InsufficientStaff(len(pool))
    if policy.seed is not None:
        random.Random(policy.seed).shuffle(pool)

    days = holiday_flags(config.year, config.month, config.holiday_names())
    for key, _, _ in days:
        available = [p for p in pool if p.is_available(key)]
        if len(available) < 2:
            raise Unsatisfiable(key, f"only {len(available)} eligible physician(s)")

    logger.info("generating %04d-%02d for %d physician(s)", config.year, config.month, len(pool))
    start = time.perf_counter()
    picks = _Search(pool, days, policy).run()

    roster = build_month_roster(config)
    for (key, is_holiday, _), (a, b) in zip(days, picks):
        _fill_day(roster, key, is_holiday, pool[a].id, pool[b].id)
    logger.info("generated %04d-%02d in %.3fs", config.year, config.month,
                time.perf_counter() - start)
    return roster


def _fill_day(roster: MonthRoster, key: str, is_holiday: bool, first: str, second: str):
    day = roster.day(key)
    if is_holiday:
        day.set(MORNING, GENERAL, first)
        day.set(AFTERNOON, ICU, first)
        day.set(NIGHT, ICU, first)
        day.set(MORNING, ICU, second)
        day.set(AFTERNOON, GENERAL, second)
        day.set(NIGHT, GENERAL, second)
    else:
        day.set(AFTERNOON, GENERAL, first)
        day.set(NIGHT, GENERAL, first)
        day.set(AFTERNOON, ICU, second)
        day.set(NIGHT, ICU, second)


def generate_into(roster: MonthRoster, physicians: Sequence[Physician], config: MonthConfig,
                  policy: Optional[RankingPolicy] = None) -> MonthRoster:
    """Regenerate the month and copy the result into an existing roster in place."""
    generated = generate(physicians, config, policy)
    roster.clear()
    roster.apply_config(config)
    roster.copy_shifts_from(generated)
    return roster
