"""Current/history partition of a customer's orders.

An order is current until it is delivered and history from then on. The
stateful :class:`OrderHistory` remembers which orders it has seen delivered,
so a delivered order moves across exactly once and never comes back, even if
a later record reports an earlier status.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from ordering.store.records import OrderRecord

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _newest_first(records):
    return sorted(records, key=lambda record: record.ordered_at or _EPOCH, reverse=True)


@dataclass
class OrderPartition:
    current: list[OrderRecord] = field(default_factory=list)
    history: list[OrderRecord] = field(default_factory=list)


def partition_orders(records) -> OrderPartition:
    partition = OrderPartition()
    for record in records:
        if record.is_terminal:
            partition.history.append(record)
        else:
            partition.current.append(record)
    return partition


class OrderHistory:
    def __init__(self, records=()):
        self._records: dict[str, OrderRecord] = {}
        self._delivered: set[str] = set()
        self.update(records)

    def apply(self, record: OrderRecord) -> bool:
        """Take in a fresh record; returns True when it moved into history."""
        if record.id in self._delivered:
            # Later details (feedback) are kept, regressions are not
            if record.is_terminal:
                self._records[record.id] = record
            return False

        self._records[record.id] = record
        if record.is_terminal:
            self._delivered.add(record.id)
            return True
        return False

    def update(self, records) -> list[OrderRecord]:
        """Apply many records and return the ones that moved into history."""
        return [record for record in records if self.apply(record)]

    @property
    def current(self) -> list[OrderRecord]:
        return _newest_first(r for order_id, r in self._records.items() if order_id not in self._delivered)

    @property
    def history(self) -> list[OrderRecord]:
        return _newest_first(r for order_id, r in self._records.items() if order_id in self._delivered)

    def partition(self) -> OrderPartition:
        return OrderPartition(current=self.current, history=self.history)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, order_id) -> bool:
        return str(order_id) in self._records
