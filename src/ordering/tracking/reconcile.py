"""Optimistic local order vs. server record.

Right after checkout the guest sees the locally assembled order. As soon as
the server record has been fetched it replaces the local copy wholesale;
values are never mixed field by field.
"""

from dataclasses import dataclass
from enum import Enum

from ordering.store.records import OrderRecord, PlacedOrder


class OrderSource(Enum):
    LOCAL = "local"
    SERVER = "server"


@dataclass(frozen=True)
class OrderView:
    record: OrderRecord
    source: OrderSource
    estimated_time: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.source is OrderSource.LOCAL


def reconcile(local: PlacedOrder | None, server: OrderRecord | None) -> OrderView | None:
    """Pick the record to display: the server's once fetched, else the local copy."""
    if local is not None and server is not None and server.id != local.order_id:
        raise ValueError(f"Cannot reconcile order {local.order_id} with server order {server.id}")

    estimated_time = local.estimated_time if local is not None else None
    if server is not None:
        return OrderView(record=server, source=OrderSource.SERVER, estimated_time=estimated_time)
    if local is not None:
        return OrderView(record=local.record, source=OrderSource.LOCAL, estimated_time=estimated_time)
    return None
