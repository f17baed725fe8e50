"""
base.py - Operations the cleaning pass needs from a topology engine.

Every editing operation returns the number of primitives it modified.
Areas are numbered from 1 after build_areas().
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple


class TopologyEngine(ABC):

    @abstractmethod
    def snap(self, threshold: float) -> int:
        """Snap boundary vertices to each other within threshold."""

    @abstractmethod
    def break_polygons(self) -> int:
        ...

    @abstractmethod
    def remove_duplicates(self, mask: int) -> int:
        ...

    @abstractmethod
    def break_lines(self) -> int:
        ...

    @abstractmethod
    def clean_small_angles(self) -> int:
        ...

    @abstractmethod
    def merge_lines(self) -> int:
        ...

    @abstractmethod
    def chtype_dangles(self) -> int:
        ...

    @abstractmethod
    def remove_dangles(self) -> int:
        ...

    @abstractmethod
    def build_areas(self) -> int:
        """Build areas from the boundaries, return the number of areas."""

    @abstractmethod
    def chtype_bridges(self) -> int:
        ...

    @abstractmethod
    def remove_bridges(self) -> int:
        ...

    @abstractmethod
    def num_areas(self) -> int:
        ...

    @abstractmethod
    def point_in_area(self, area_id: int) -> Optional[Tuple[float, float]]:
        """Interior point of an area, None if it can not be computed."""

    @abstractmethod
    def area_area(self, area_id: int) -> float:
        """Size of an area without its isles."""

    @abstractmethod
    def num_primitives(self, mask: int) -> int:
        ...
