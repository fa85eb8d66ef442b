"""
Reconciliation policies.

A policy decides the cart that results from a device copy and an existing
remote copy. The storefront default is last-writer-wins: a successful
remote fetch replaces the device copy wholesale. Concurrent edits on two
devices can therefore overwrite each other; that is accepted behavior.
"""
from abc import ABC, abstractmethod

from .models import Cart


class ReconciliationPolicy(ABC):
    name = "abstract"

    @abstractmethod
    def reconcile(self, local: Cart, remote: Cart) -> Cart:
        ...


class LastWriterWins(ReconciliationPolicy):
    """Remote replaces local; no per-product merge."""
    name = "last_writer_wins"

    def reconcile(self, local: Cart, remote: Cart) -> Cart:
        return remote.copy()


class AdditiveMerge(ReconciliationPolicy):
    """Sum quantities of products present in either copy."""
    name = "additive_merge"

    def reconcile(self, local: Cart, remote: Cart) -> Cart:
        items = dict(remote.items)
        for product_id, quantity in local.items.items():
            items[product_id] = items.get(product_id, 0) + quantity
        return Cart(items)


POLICIES = {
    LastWriterWins.name: LastWriterWins,
    AdditiveMerge.name: AdditiveMerge,
}


def get_policy(name: str) -> ReconciliationPolicy:
    """Look up a policy by name; unknown names raise ValueError."""
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown reconciliation policy: {name}")
