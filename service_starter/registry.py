"""
Service Starter - Unit Registry.

============================================================
RESPONSIBILITY
============================================================
Ordered, unique-name registry of units.

- Registration order is the startup order
- Reverse registration order is the shutdown order
- Duplicate names are rejected before anything is modified

============================================================
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from starter_core.exceptions import DuplicateRegistrationError
from starter_core.status import RunningStatus

from .unit import Unit


class UnitRegistry:
    """Insertion-ordered mapping of unit name to unit."""

    def __init__(self):
        self._units: Dict[str, Unit] = {}
        self._logger = logging.getLogger(__name__)

    # --------------------------------------------------------
    # Registration
    # --------------------------------------------------------

    def check_available(self, name: str) -> None:
        """
        Raise if a unit with this name is registered.

        Raises:
            DuplicateRegistrationError: If the name is taken
        """
        if name in self._units:
            raise DuplicateRegistrationError(name)

    def add(self, unit: Unit) -> None:
        """Append a unit."""
        self.check_available(unit.name)
        self._units[unit.name] = unit
        self._logger.debug(f"Registered unit: {unit.name}")

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    def get(self, name: str) -> Optional[Unit]:
        """Get a unit by name."""
        return self._units.get(name)

    def names(self) -> List[str]:
        """Get unit names in startup order."""
        return list(self._units)

    def startup_order(self) -> List[Unit]:
        """Get units in registration order."""
        return list(self._units.values())

    def shutdown_order(self) -> List[Unit]:
        """Get units in reverse registration order."""
        return list(reversed(self._units.values()))

    def get_status_summary(self) -> Dict[str, Any]:
        """Get summary of all unit statuses."""
        status_counts = {status.value: 0 for status in RunningStatus}
        for unit in self._units.values():
            status_counts[unit.status.value] += 1

        return {
            "total_registered": len(self._units),
            "status_counts": status_counts,
            "units": {name: unit.status.value for name, unit in self._units.items()},
        }

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __iter__(self) -> Iterator[Unit]:
        return iter(list(self._units.values()))

    def __len__(self) -> int:
        return len(self._units)


__all__ = [
    "UnitRegistry",
]
