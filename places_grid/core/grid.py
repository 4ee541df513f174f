"""Grid planning around a resolved center.

The planner lays an ``n x n`` lattice of overlapping search circles over the
area, where ``n = ceil(max(1, sqrt(result_cap / per_cell_max)))``. Cells are
returned in row-major order (latitude rows outer, longitude columns inner);
that order decides which cell keeps an entity found by more than one cell.

Grid sampling is a heuristic. A fixed angular step does not cover large or
irregularly shaped cities completely.
"""

import math
from typing import List

from places_grid.core.config import EngineConfig
from places_grid.models import Coordinate, GridCell


def grid_size(result_cap: int, per_cell_max: int = 60) -> int:
    """Number of cells along each axis for ``result_cap`` results."""
    return math.ceil(max(1.0, math.sqrt(result_cap / per_cell_max)))


class GridPlanner:
    def __init__(self, config: EngineConfig) -> None:
        self._config = config

    def plan(self, center: Coordinate, result_cap: int) -> List[GridCell]:
        radius = self._config.search_radius_meters
        if self._config.mode == "single":
            return [GridCell(index=0, center=center, radius_meters=radius)]

        n = grid_size(result_cap, self._config.per_cell_max)
        step = self._config.grid_step_degrees
        start_lat = center.latitude - (step * n) / 2
        start_lng = center.longitude - (step * n) / 2

        cells = []
        for i in range(n):
            for j in range(n):
                cell_center = Coordinate(
                    latitude=round(start_lat + i * step, 7),
                    longitude=round(start_lng + j * step, 7),
                )
                cells.append(GridCell(index=len(cells), center=cell_center, radius_meters=radius))
        return cells
