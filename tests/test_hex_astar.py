from collections import deque

import pytest

from game.config import PathfinderSettings
from game.systems.pathfinding.hex_astar import (
    HexPathfinder,
    SearchContext,
    apply_steps,
    coords_to_steps,
    find_path,
)
from game.world.hex_coords import HexCoordinate, HexDirection, hex_distance, hex_neighbors
from game_rng import coord_unit

BOUND = 8


def _open(_coord):
    return True


def _make_maze(seed, wall_ratio=0.3):
    """Bounded board with hashed walls; start and goal corners stay open."""
    keep_open = {(-BOUND, -BOUND), (BOUND, BOUND), (0, 0)}

    def walkable(coord):
        x, y = coord
        if abs(x) > BOUND or abs(y) > BOUND:
            return False
        if (x, y) in keep_open:
            return True
        return coord_unit(seed, x, y) >= wall_ratio

    return walkable


def _bfs_length(start, goal, walkable):
    seen = {start: 0}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if current == goal:
            return seen[current]
        for n in hex_neighbors(current):
            if n not in seen and walkable(n):
                seen[n] = seen[current] + 1
                queue.append(n)
    return None


def test_straight_line_east():
    assert find_path((0, 0), (2, 0), _open) == [HexDirection.EAST, HexDirection.EAST]


def test_start_equals_goal_is_empty():
    assert HexPathfinder().find_path((4, 4), (4, 4), _open) == []


def test_unwalkable_goal_is_empty():
    walkable = lambda c: c != (5, 5)
    assert HexPathfinder().find_path((0, 0), (5, 5), walkable) == []


def test_enclosed_goal_exhausts_and_returns_empty():
    goal = HexCoordinate(6, 0)
    walkable = lambda c: hex_distance(c, goal) != 1
    pathfinder = HexPathfinder(max_iterations=200)
    assert pathfinder.find_path((0, 0), goal, walkable) == []
    assert pathfinder.last_iterations == 200


def test_disconnected_bounded_region_exhausts_frontier():
    walkable = lambda c: abs(c[0]) <= 2 and abs(c[1]) <= 2
    pathfinder = HexPathfinder(max_iterations=1000)
    assert pathfinder.find_path((0, 0), (10, 0), lambda c: walkable(c) or c == (10, 0)) == []
    assert pathfinder.last_iterations < 1000


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_paths_are_optimal_and_valid(seed):
    walkable = _make_maze(seed)
    start, goal = HexCoordinate(-BOUND, -BOUND), HexCoordinate(BOUND, BOUND)
    expected = _bfs_length(start, goal, walkable)
    steps = HexPathfinder(max_iterations=10_000).find_path(start, goal, walkable)
    if expected is None:
        assert steps == []
        return
    assert len(steps) == expected
    visited = apply_steps(start, steps)
    assert visited[-1] == goal
    assert all(walkable(c) for c in visited[1:])


def test_heuristic_equals_open_grid_path_length():
    for goal in [(5, -2), (-4, 7), (0, 6), (3, 3)]:
        steps = find_path((0, 0), goal, _open)
        assert len(steps) == hex_distance((0, 0), goal)


def test_iteration_budget_truncates_search():
    pathfinder = HexPathfinder()
    assert pathfinder.find_path((0, 0), (5, 0), _open, max_iterations=1) == []
    assert len(pathfinder.find_path((0, 0), (5, 0), _open)) == 5


def test_non_positive_budget_raises():
    with pytest.raises(ValueError):
        HexPathfinder(max_iterations=0)
    with pytest.raises(ValueError):
        HexPathfinder().find_path((0, 0), (1, 0), _open, max_iterations=-3)


def test_find_path_coords_includes_endpoints():
    coords = HexPathfinder().find_path_coords((0, 0), (0, 3), _open)
    assert coords[0] == (0, 0)
    assert coords[-1] == (0, 3)
    assert len(coords) == 4


def test_oracle_is_only_asked_about_neighbours_and_goal():
    asked = []

    def walkable(coord):
        asked.append(coord)
        return True

    HexPathfinder().find_path((0, 0), (3, -1), walkable)
    assert asked[0] == (3, -1)
    assert all(hex_distance((0, 0), c) <= 4 for c in asked)


def test_search_context_pops_equal_scores_in_insertion_order():
    ctx = SearchContext(goal=HexCoordinate(0, 0))
    ctx.push(HexCoordinate(1, 0), 0, None)
    ctx.push(HexCoordinate(0, 1), 0, None)
    assert ctx.pop() == (1, 0)
    assert ctx.pop() == (0, 1)
    assert ctx.pop() is None


def test_search_context_skips_superseded_entries():
    ctx = SearchContext(goal=HexCoordinate(0, 0))
    ctx.push(HexCoordinate(2, 0), 5, None)
    ctx.push(HexCoordinate(2, 0), 1, None)
    assert ctx.pop() == (2, 0)
    assert ctx.pop() is None


def test_coords_to_steps_rejects_jumps():
    with pytest.raises(ValueError):
        coords_to_steps([HexCoordinate(0, 0), HexCoordinate(2, 0)])


def test_apply_steps_replays_route():
    visited = apply_steps((1, 1), [HexDirection.NORTH, HexDirection.SOUTH_WEST])
    assert visited == [(1, 1), (1, 0), (0, 1)]


def test_pathfinder_from_settings():
    pathfinder = HexPathfinder.from_settings(PathfinderSettings(max_iterations=42))
    assert pathfinder.max_iterations == 42
