"""Events emitted by accepted ledger operations."""

from dataclasses import asdict, dataclass
from typing import Any, Dict


class LedgerEvent:
    """Base class for ledger events."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class Issued(LedgerEvent):
    """The public token was issued to its owner."""

    owner: str
    total: int


@dataclass(frozen=True)
class Transferred(LedgerEvent):
    """Public tokens moved between accounts."""

    sender: str
    target: str
    amount: int


@dataclass(frozen=True)
class Minted(LedgerEvent):
    """A public amount was deposited into the pool as a new coin."""

    who: str
    amount: int


@dataclass(frozen=True)
class PrivateTransferred(LedgerEvent):
    """Two coins were spent into two new coins."""

    who: str


@dataclass(frozen=True)
class Reclaimed(LedgerEvent):
    """A public amount was withdrawn from the pool."""

    who: str
    amount: int
