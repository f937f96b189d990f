"""
Instance registry: in-process instance id -> deployed owner contract.

Keys are 64-bit instance identifiers (typically the address of a tracked
pointer or scope). Every key present maps to a contract that was deployed and
confirmed; an absent key resolves to the session's default account.

Not synchronized: callers apply events one at a time.
"""

from __future__ import annotations

from typing import Dict, Generic, Iterator, Optional, Protocol, TypeVar

from .errors import InstanceIdError

U64_MAX = (1 << 64) - 1


class HasAddress(Protocol):
    @property
    def address(self) -> str: ...


C = TypeVar("C", bound=HasAddress)


def check_id(instance_id: int) -> int:
    i = int(instance_id)
    if not 0 <= i <= U64_MAX:
        raise InstanceIdError(f"instance id out of u64 range: {instance_id!r}")
    return i


class InstanceRegistry(Generic[C]):
    def __init__(self) -> None:
        self._contracts: Dict[int, C] = {}

    def register(self, instance_id: int, contract: C) -> Optional[C]:
        """
        Map `instance_id` to `contract`. An existing entry is replaced without
        complaint; the replaced contract (if any) is returned.
        """
        key = check_id(instance_id)
        previous = self._contracts.get(key)
        self._contracts[key] = contract
        return previous

    def unregister(self, instance_id: int) -> Optional[C]:
        """Drop the entry; the on-chain contract is left alone. Unknown ids are ignored."""
        return self._contracts.pop(check_id(instance_id), None)

    def get(self, instance_id: int) -> Optional[C]:
        return self._contracts.get(check_id(instance_id))

    def resolve(self, instance_id: int, default: str) -> str:
        """Contract address for `instance_id`, or `default` when unregistered."""
        contract = self.get(instance_id)
        if contract is None:
            return default
        return contract.address

    def __contains__(self, instance_id: object) -> bool:
        return isinstance(instance_id, int) and instance_id in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)

    def __iter__(self) -> Iterator[int]:
        return iter(self._contracts)


__all__ = ["InstanceRegistry", "U64_MAX", "check_id"]
