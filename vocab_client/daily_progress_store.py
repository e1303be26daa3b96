"""
Words-learned-per-day counter.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Union

from vocab_client.storage import NamespacedStore

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

DailyMap = Dict[str, int]


def date_key(day: Union[date, datetime, str]) -> str:
    """Normalize a day to ``yyyy-MM-dd``; strings are validated strictly."""
    if isinstance(day, datetime):
        return day.date().strftime(DATE_FORMAT)
    if isinstance(day, date):
        return day.strftime(DATE_FORMAT)
    parsed = datetime.strptime(day, DATE_FORMAT)
    if parsed.strftime(DATE_FORMAT) != day:
        raise ValueError(f"Invalid date: {day}")
    return day


class DailyProgressStore(NamespacedStore[DailyMap]):
    """
    Daily learned-word totals.

    Counts accumulate locally; sync pushes the running total for each day
    and the server stores it as-is.
    """

    base_key = "DailyProgressStore.v1"

    def _empty(self) -> DailyMap:
        return {}

    def _decode(self, raw: Any) -> DailyMap:
        return {date_key(day): max(0, int(count)) for day, count in dict(raw).items()}

    def _encode(self, state: DailyMap) -> Dict[str, int]:
        return dict(state)

    def words_learned(self, day: Union[date, datetime, str]) -> int:
        return self._state.get(date_key(day), 0)

    def record_learned(self, day: Union[date, datetime, str], count: int) -> int:
        """Add ``count`` words to the day's total; returns the new total."""
        if count <= 0:
            return self.words_learned(day)
        key = date_key(day)

        def _add(state: DailyMap) -> int:
            state[key] = state.get(key, 0) + count
            return state[key]

        return self.mutate(_add)

    def records(self) -> DailyMap:
        return dict(sorted(self._state.items()))

    def total(self) -> int:
        return sum(self._state.values())

    def merge_remote(self, records: DailyMap) -> None:
        """Keep the larger of the local and remote totals for each day."""
        changes = {
            date_key(day): count
            for day, count in records.items()
            if count > self._state.get(date_key(day), 0)
        }
        if not changes:
            return
        self.mutate(lambda state: state.update(changes))

    def replace_all(self, records: DailyMap) -> None:
        cleaned = {date_key(day): max(0, int(count)) for day, count in records.items()}

        def _replace(state: DailyMap) -> None:
            state.clear()
            state.update(cleaned)

        self.mutate(_replace)
