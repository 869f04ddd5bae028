from abc import ABC, abstractmethod
from typing import Iterable, Self


class Domain[V](ABC):
    """
    Abstract superclass for any finite-width Abstract Domain for concrete value V.
    """

    @classmethod
    @abstractmethod
    def top(cls, width: int) -> Self: ...

    @classmethod
    @abstractmethod
    def abstract(cls, elems: Iterable[V], width: int) -> Self: ...

    @abstractmethod
    def concretize(self) -> list[V]: ...

    @abstractmethod
    def __contains__(self, member: V) -> bool: ...

    @abstractmethod
    def __le__(self, other: Self) -> bool: ...
