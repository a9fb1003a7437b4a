"""Terminal outcomes of state-changing operations.

An operation ends in exactly one of ``Success`` or ``Failure``. ``Failure``
wraps the classified ``ProtocolError`` so callers can branch on
``outcome.ok`` or re-raise with ``outcome.unwrap()``.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from confidential_cards.errors import ProtocolError


@dataclass(frozen=True)
class Success:
    reference: str
    block_height: Optional[int] = None
    value: Any = None

    ok = True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: ProtocolError

    ok = False

    @property
    def classification(self) -> str:
        return self.error.classification

    @property
    def reason(self) -> str:
        return str(self.error)

    def unwrap(self) -> Any:
        raise self.error


Outcome = Union[Success, Failure]
