"""Table suggestion engine"""

from datetime import datetime
from itertools import groupby
from typing import List, Optional, Sequence

import structlog

from app.models.table import Table
from app.repositories.tables import TableRepository
from app.schemas.table import TableSuggestion
from app.services.availability import AvailabilityIndex

logger = structlog.get_logger()


def _area(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def rank_tables(tables: Sequence[Table], preferred_area: Optional[str] = None) -> List[Table]:
    """Order tables: requested area first, then least spare seats, then table number"""
    area = _area(preferred_area)
    return sorted(
        tables,
        key=lambda table: (
            0 if area and _area(table.location) == area else 1,
            table.capacity,
            table.table_number,
        ),
    )


def combine_tables(
    free_tables: Sequence[Table],
    number_of_guests: int,
    preferred_area: Optional[str] = None,
) -> Optional[List[Table]]:
    """Seat a party too large for any single free table by joining tables.

    Tables are only joined within one location. For each location the largest
    tables are taken first until the party fits; among the locations that can
    seat the party, the requested area wins, then the fewest spare seats, then
    the fewest tables. Returns None when no location can seat the party.
    """
    area = _area(preferred_area)
    options = []
    by_location = sorted(free_tables, key=lambda table: _area(table.location))
    for location, group in groupby(by_location, key=lambda table: _area(table.location)):
        picked = []
        seats = 0
        for table in sorted(group, key=lambda t: (-t.capacity, t.table_number)):
            if seats >= number_of_guests:
                break
            picked.append(table)
            seats += table.capacity
        if seats >= number_of_guests:
            options.append((0 if area and location == area else 1, seats - number_of_guests, len(picked), picked))

    if not options:
        return None
    options.sort(key=lambda option: option[:3])
    return sorted(options[0][3], key=lambda table: table.table_number)


class TableSuggestionEngine:
    """Ranks free tables for a party size, time and optional area.

    Read-only and unlocked: the answer is advisory and re-checked when the
    reservation is created.
    """

    def __init__(self, tables: TableRepository, availability: AvailabilityIndex):
        self.tables = tables
        self.availability = availability

    async def free_tables(
        self,
        reservation_time: datetime,
        min_capacity: int = 1,
        duration_minutes: Optional[int] = None,
    ) -> List[Table]:
        candidates = await self.tables.candidates(min_capacity)
        free = await self.availability.find_free(
            [table.id for table in candidates], reservation_time, duration_minutes
        )
        return [table for table in candidates if table.id in free]

    async def rank(
        self,
        number_of_guests: int,
        reservation_time: datetime,
        preferred_area: Optional[str] = None,
        duration_minutes: Optional[int] = None,
    ) -> List[Table]:
        free = await self.free_tables(reservation_time, number_of_guests, duration_minutes)
        return rank_tables(free, preferred_area)

    async def suggest(
        self,
        number_of_guests: int,
        reservation_time: datetime,
        preferred_area: Optional[str] = None,
    ) -> List[TableSuggestion]:
        ranked = await self.rank(number_of_guests, reservation_time, preferred_area)
        logger.debug(
            "Tables suggested",
            guests=number_of_guests,
            reservation_time=reservation_time.isoformat(),
            preferred_area=preferred_area,
            table_ids=[table.id for table in ranked],
        )
        return [TableSuggestion.from_table(table) for table in ranked]
