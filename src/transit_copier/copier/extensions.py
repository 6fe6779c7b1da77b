# use annotations to type hint a method with the type of the enclosing class
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from transit_copier.copier.copier import Copier


class Extension(ABC):
    """
    Hook invoked once after every base GTFS file has been copied

    extensions use copier.copy_entity to write additional entities so the
    entity map, marker and result are shared with the base copy
    """

    @abstractmethod
    def copy(self, copier: Copier) -> None:
        """copy additional entities"""
