import numpy as np
import pytest

from conftest import brute_force_assignment
from voronoifps.fps.decomposer import VoronoiDecomposer


def test_initial_cell(line_points):
    voronoi = VoronoiDecomposer(line_points, 0)
    cells = voronoi.cells()

    assert len(cells) == 1
    assert cells[0].center == 0
    assert cells[0].radius2 == 121.0
    assert cells[0].farthest == 4
    assert voronoi.n_centers == 1
    assert voronoi.is_center(0)
    assert not voronoi.is_center(4)


def test_add_point_updates_cells(line_points):
    voronoi = VoronoiDecomposer(line_points, 0)
    voronoi.add_point(1)

    cells = voronoi.cells()
    np.testing.assert_array_equal(cells.centers, [0, 1])
    np.testing.assert_array_equal(cells.radius2, [0.0, 100.0])
    np.testing.assert_array_equal(cells.farthest, [0, 4])

    nearest, dist2 = voronoi.assignment()
    np.testing.assert_array_equal(nearest, [0, 1, 1, 1, 1])
    np.testing.assert_array_equal(dist2, [0.0, 0.0, 1.0, 81.0, 100.0])


def test_add_point_splits_cells(line_points):
    voronoi = VoronoiDecomposer(line_points, 0)
    voronoi.add_point(1)
    voronoi.add_point(4)

    cells = voronoi.cells()
    np.testing.assert_array_equal(cells.radius2, [0.0, 1.0, 1.0])
    np.testing.assert_array_equal(cells.farthest, [0, 2, 3])


def test_farthest_ties_go_to_lowest_index():
    points = np.array([[0.0], [-1.0], [1.0], [-1.0]])
    voronoi = VoronoiDecomposer(points, 0)
    assert voronoi.cells()[0].farthest == 1


def test_singleton_cell_has_zero_radius():
    voronoi = VoronoiDecomposer(np.array([[0.0, 0.0]]), 0)
    assert voronoi.cells()[0] == (0, 0.0, 0)


def test_add_point_preconditions(line_points):
    voronoi = VoronoiDecomposer(line_points, 0)
    voronoi.add_point(3)

    with pytest.raises(ValueError):
        voronoi.add_point(3)
    with pytest.raises(ValueError):
        voronoi.add_point(0)
    with pytest.raises(IndexError):
        voronoi.add_point(5)
    with pytest.raises(IndexError):
        voronoi.add_point(-1)
    with pytest.raises(TypeError):
        voronoi.add_point(1.5)

    assert voronoi.n_centers == 2


@pytest.mark.parametrize("points", [
    np.zeros((0, 3)),
    np.zeros(4),
    np.array([[0.0, 1.0], [np.nan, 0.0]]),
    np.array([[0.0, 1.0], [np.inf, 0.0]]),
])
def test_invalid_points(points):
    with pytest.raises(ValueError):
        VoronoiDecomposer(points, 0)


def test_invalid_initial(line_points):
    with pytest.raises(IndexError):
        VoronoiDecomposer(line_points, 5)


def test_overflowing_distances_are_reported():
    points = np.array([[0.0], [1e200], [-1e200]])
    with pytest.raises(FloatingPointError):
        VoronoiDecomposer(points, 1)


def test_points_are_read_only_copy(line_points):
    voronoi = VoronoiDecomposer(line_points, 0)
    line_points[0, 0] = 100.0

    assert voronoi.points[0, 0] == 0.0
    with pytest.raises(ValueError):
        voronoi.points[0, 0] = 1.0


def test_snapshot_is_idempotent(clustered_points):
    voronoi = VoronoiDecomposer(clustered_points, 0)
    for index in (10, 200, 57):
        voronoi.add_point(index)

    first = voronoi.cells()
    second = voronoi.cells()
    np.testing.assert_array_equal(first.radius2, second.radius2)
    np.testing.assert_array_equal(first.farthest, second.farthest)
    np.testing.assert_array_equal(first.centers, second.centers)

    with pytest.raises(ValueError):
        first.radius2[0] = 0.0


def test_snapshot_follows_add_point(line_points):
    voronoi = VoronoiDecomposer(line_points, 0)
    before = voronoi.cells()
    voronoi.add_point(4)

    assert len(before) == 1
    assert len(voronoi.cells()) == 2


def _fps_sequence(voronoi: VoronoiDecomposer, steps: int) -> list[int]:
    added = []
    for _ in range(steps):
        cells = voronoi.cells()
        point = int(cells.farthest[np.argmax(cells.radius2)])
        voronoi.add_point(point)
        added.append(point)
    return added


def test_radius_never_increases(clustered_points):
    voronoi = VoronoiDecomposer(clustered_points, 0)
    previous = voronoi.cells().radius2.copy()
    for _ in range(40):
        cells = voronoi.cells()
        voronoi.add_point(int(cells.farthest[np.argmax(cells.radius2)]))
        current = voronoi.cells().radius2
        assert np.all(current[:previous.size] <= previous)
        previous = current.copy()


def test_pruning_matches_full_scan(clustered_points):
    pruned = VoronoiDecomposer(clustered_points, 3, prune=True)
    full = VoronoiDecomposer(clustered_points, 3, prune=False)

    added = _fps_sequence(pruned, 50)
    for point in added:
        full.add_point(point)

    nearest_pruned, dist2_pruned = pruned.assignment()
    nearest_full, dist2_full = full.assignment()
    np.testing.assert_array_equal(nearest_pruned, nearest_full)
    np.testing.assert_array_equal(dist2_pruned, dist2_full)
    np.testing.assert_array_equal(pruned.cells().radius2, full.cells().radius2)
    np.testing.assert_array_equal(pruned.cells().farthest, full.cells().farthest)

    assert pruned.n_distance_evaluations < full.n_distance_evaluations


def test_pruning_matches_brute_force_on_arbitrary_order():
    rng = np.random.default_rng(3)
    points = rng.normal(size=(200, 3))
    order = rng.permutation(200)

    voronoi = VoronoiDecomposer(points, int(order[0]))
    for index in order[1:30]:
        voronoi.add_point(int(index))

    nearest, dist2 = voronoi.assignment()
    expected_nearest, expected_dist2 = brute_force_assignment(points, [int(i) for i in order[:30]])
    np.testing.assert_array_equal(nearest, expected_nearest)
    np.testing.assert_allclose(dist2, expected_dist2, rtol=1e-12, atol=1e-12)


def test_cell_statistics_match_assignment(clustered_points):
    voronoi = VoronoiDecomposer(clustered_points, 0)
    _fps_sequence(voronoi, 25)

    nearest, dist2 = voronoi.assignment()
    cells = voronoi.cells()
    for cell in cells:
        mask = (nearest == cell.center)
        mask[cell.center] = False
        if mask.any():
            assert cell.radius2 == dist2[mask].max()
            assert nearest[cell.farthest] == cell.center
            assert dist2[cell.farthest] == cell.radius2
        else:
            assert cell.radius2 == 0.0
            assert cell.farthest == cell.center


def test_duplicate_points_keep_earlier_center():
    points = np.array([[0.0, 0.0], [0.0, 0.0], [5.0, 0.0], [0.0, 0.0]])
    voronoi = VoronoiDecomposer(points, 0)
    voronoi.add_point(1)

    nearest, dist2 = voronoi.assignment()
    np.testing.assert_array_equal(nearest, [0, 1, 0, 0])
    assert dist2[3] == 0.0
    assert voronoi.cells()[1] == (1, 0.0, 1)
    assert voronoi.cells()[0].farthest == 2


def test_every_point_can_become_a_center(line_points):
    voronoi = VoronoiDecomposer(line_points, 2)
    for index in (0, 4, 1, 3):
        voronoi.add_point(index)

    assert voronoi.n_centers == 5
    np.testing.assert_array_equal(voronoi.cells().radius2, np.zeros(5))
    np.testing.assert_array_equal(voronoi.cells().farthest, voronoi.centers)


def _assignments(points: np.ndarray, initial: int, added: list[int]):
    results = []
    for prune in (True, False):
        voronoi = VoronoiDecomposer(points, initial, prune=prune)
        for index in added:
            voronoi.add_point(index)
        results.append(voronoi.assignment())
    return results


def test_point_equidistant_from_two_centers_stays_with_the_first():
    points = np.array([[0.0, 0.0], [2.0, 0.0], [1.0, 0.0], [1.0, 5.0]])

    (nearest_pruned, dist2_pruned), (nearest_full, dist2_full) = _assignments(points, 0, [1])

    np.testing.assert_array_equal(nearest_pruned, [0, 1, 0, 0])
    np.testing.assert_array_equal(nearest_full, [0, 1, 0, 0])
    np.testing.assert_array_equal(dist2_pruned, dist2_full)


def test_points_around_the_bisector_match_full_scan():
    rng = np.random.default_rng(11)
    steps = np.arange(-6, 7)
    for dimension in (1, 2, 3):
        for _ in range(40):
            first, second = rng.uniform(-10.0, 10.0, size=(2, dimension))
            middle = (first + second) / 2.0
            # rounded midpoint moved by a few ulps along every axis
            offsets = np.stack(np.meshgrid(*[steps] * dimension), axis=-1).reshape(-1, dimension)
            near = middle + offsets * np.spacing(np.abs(middle) + 1.0)
            points = np.vstack([first, second, middle, near])

            (nearest_pruned, dist2_pruned), (nearest_full, dist2_full) = _assignments(points, 0, [1])

            np.testing.assert_array_equal(nearest_pruned, nearest_full)
            np.testing.assert_array_equal(dist2_pruned, dist2_full)


def test_float_midpoint_of_two_centers():
    first = np.array([-1.3375, -7.7350])
    second = np.array([7.5128, -9.3076])
    points = np.vstack([first, second, (first + second) / 2.0])

    (nearest_pruned, _), (nearest_full, _) = _assignments(points, 0, [1])

    np.testing.assert_array_equal(nearest_pruned, nearest_full)
