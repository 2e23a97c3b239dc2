#!/usr/bin/env python3
"""
Record Store Abstract Interface - Separates the export pipeline from the health record backend
"""
from abc import ABC, abstractmethod
from typing import List, Set

from ..records import Record, RecordKind
from ..window import TimeWindow


class RecordStore(ABC):
    """Health record store abstract base class"""

    @abstractmethod
    def list_granted_capabilities(self) -> Set[str]:
        """Read permissions currently granted to the exporter"""
        pass

    @abstractmethod
    def query(self, kind: RecordKind, window: TimeWindow) -> List[Record]:
        """Read every record of ``kind`` inside ``window``; may raise per call"""
        pass

    def close(self) -> None:
        """Release backend resources"""
        pass
