from __future__ import annotations

from datetime import datetime
import logging

from bloc_client.models import CounterModel
from bloc_client.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

COUNTER_VALUE_KEY = "counter_value"
COUNTER_UPDATED_KEY = "counter_last_updated"


class CounterLocalDataSource:
    """Persists the demo counter as two preference entries."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def get_counter(self) -> CounterModel:
        raw_value = self._store.get(COUNTER_VALUE_KEY)
        if raw_value is None:
            return CounterModel(value=0, last_updated=datetime.now())

        raw_updated = self._store.get(COUNTER_UPDATED_KEY)
        try:
            return CounterModel.from_json(
                {
                    "value": raw_value,
                    "lastUpdated": raw_updated or datetime.now().isoformat(),
                }
            )
        except ValueError as error:
            raise StorageError("Failed to load counter from cache") from error

    def cache_counter(self, counter: CounterModel) -> None:
        self._store.set(COUNTER_VALUE_KEY, str(counter.value))
        self._store.set(COUNTER_UPDATED_KEY, counter.last_updated.isoformat())
        logger.debug("Cached counter value %d", counter.value)

    def clear_counter(self) -> None:
        self._store.remove(COUNTER_VALUE_KEY)
        self._store.remove(COUNTER_UPDATED_KEY)
