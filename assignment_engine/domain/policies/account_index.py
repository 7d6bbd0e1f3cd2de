"""AccountIndex — flat account table keyed by id plus a children index.

Hierarchies are at most two levels deep. Children are found through the
secondary index on ``ultimate_parent_id`` instead of object references, so a
child never walks past its own ultimate parent.
"""

from __future__ import annotations

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.errors import AccountNotFoundError
from assignment_engine.domain.value_objects.enums import HierarchyRole


class AccountIndex:
    def __init__(self, accounts: list[Account]):
        self._by_id: dict[str, Account] = {}
        for account in accounts:
            self._by_id[account.account_id] = account

        self._children: dict[str, list[str]] = {}
        for account in self._by_id.values():
            parent_id = account.ultimate_parent_id
            if not parent_id or parent_id == account.account_id:
                continue
            if parent_id not in self._by_id:
                continue  # orphan: parent is not part of this build
            self._children.setdefault(parent_id, []).append(account.account_id)
        for ids in self._children.values():
            ids.sort()

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._by_id

    def get(self, account_id: str) -> Account:
        try:
            return self._by_id[account_id]
        except KeyError:
            raise AccountNotFoundError(account_id) from None

    def all(self) -> list[Account]:
        """Accounts ordered by id for reproducible iteration."""
        return [self._by_id[k] for k in sorted(self._by_id)]

    def children_of(self, parent_id: str) -> list[Account]:
        return [self._by_id[c] for c in self._children.get(parent_id, [])]

    def has_children(self, account_id: str) -> bool:
        return bool(self._children.get(account_id))

    def parent_of(self, account: Account) -> Account | None:
        parent_id = account.ultimate_parent_id
        if not parent_id or parent_id == account.account_id:
            return None
        return self._by_id.get(parent_id)

    def role_of(self, account: Account) -> HierarchyRole:
        if self.has_children(account.account_id):
            return HierarchyRole.PARENT
        if self.parent_of(account) is not None:
            return HierarchyRole.CHILD
        return HierarchyRole.STANDALONE

    def top_of(self, account: Account) -> Account:
        """The account heading the hierarchy *account* belongs to."""
        return self.parent_of(account) or account

    def parents(self) -> list[Account]:
        return [self._by_id[p] for p in sorted(self._children)]
