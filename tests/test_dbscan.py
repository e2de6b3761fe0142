import pytest

from clusterstep import dbscan
from clusterstep.datasets import generate
from clusterstep.dbscan import DBSCANEngine, DBSCANState, Phase
from clusterstep.exceptions import ConfigurationError
from clusterstep.geometry import NOISE, Point


def run_steps(dataset, epsilon, min_points):
    """All snapshots of a full pass, starting with the initialized one."""
    dataset, state = dbscan.initialize(dataset)
    snapshots = [(dataset, state)]
    while not dbscan.is_done(state):
        dataset, state = dbscan.step(dataset, state, epsilon, min_points)
        snapshots.append((dataset, state))
        assert len(snapshots) < 10 * len(dataset) + 10, "pass did not terminate"
    return snapshots


class TestInitialize:
    def test_resets_points_and_state(self):
        pts = (Point(1, 2, cluster_id=3, visited=True), Point(4, 5, cluster_id=NOISE, visited=True))
        dataset, state = dbscan.initialize(pts)

        assert all(p.cluster_id is None and not p.visited for p in dataset)
        assert [(p.x, p.y) for p in dataset] == [(1, 2), (4, 5)]
        assert state == DBSCANState(cursor=0, cluster_counter=0, queue=(), phase=Phase.FIND_UNVISITED)
        assert not dbscan.is_done(state)


class TestScenarios:
    def test_three_separated_clusters(self, three_clusters):
        dataset, state = dbscan.run_to_completion(three_clusters, epsilon=50, min_points=4)

        assert state.cluster_counter == 3
        assert not any(p.cluster_id == NOISE for p in dataset)
        # each tight group ends up with a single id of its own
        groups = [{p.cluster_id for p in dataset[i:i + 10]} for i in (0, 10, 20)]
        assert all(len(g) == 1 for g in groups)
        assert set().union(*groups) == {1, 2, 3}

    def test_epsilon_too_small_gives_all_noise(self, sparse_pentagon):
        dataset, state = dbscan.run_to_completion(sparse_pentagon, epsilon=5, min_points=4)

        assert state.cluster_counter == 0
        assert [p.cluster_id for p in dataset] == [NOISE] * 5

    def test_fewer_points_than_min_points(self, three_clusters):
        small = three_clusters[:3]
        dataset, state = dbscan.run_to_completion(small, epsilon=50, min_points=4)

        assert state.cluster_counter == 0
        assert all(p.cluster_id == NOISE and p.visited for p in dataset)

    def test_distance_equal_to_epsilon_is_not_a_neighbor(self):
        pts = (Point(0, 0), Point(3, 4))   # exactly 5 apart
        dataset, state = dbscan.run_to_completion(pts, epsilon=5, min_points=2)
        assert state.cluster_counter == 0

        dataset, state = dbscan.run_to_completion(pts, epsilon=5.01, min_points=2)
        assert state.cluster_counter == 1
        assert [p.cluster_id for p in dataset] == [1, 1]


class TestPhases:
    def test_finding_a_point_does_not_classify_it(self, three_clusters):
        dataset, state = dbscan.initialize(three_clusters)
        dataset, state = dbscan.step(dataset, state, 50, 4)

        assert state.phase == Phase.CHECK_NEIGHBORS
        assert state.focus == 0 and state.cursor == 0
        assert all(p.cluster_id is None and not p.visited for p in dataset)

    def test_core_point_opens_cluster_and_queues_neighbors(self, three_clusters):
        dataset, state = dbscan.initialize(three_clusters)
        for _ in range(2):
            dataset, state = dbscan.step(dataset, state, 50, 4)

        assert state.phase == Phase.EXPAND_CLUSTER
        assert state.cluster_counter == 1
        assert dataset[0].visited and dataset[0].cluster_id == 1
        assert state.queue == tuple(range(1, 10))
        assert all(p.cluster_id == 1 for p in dataset[:10])
        assert all(p.cluster_id is None for p in dataset[10:])

    def test_noise_point_advances_cursor(self, sparse_pentagon):
        dataset, state = dbscan.initialize(sparse_pentagon)
        dataset, state = dbscan.step(dataset, state, 5, 4)
        dataset, state = dbscan.step(dataset, state, 5, 4)

        assert dataset[0].cluster_id == NOISE and dataset[0].visited
        assert state.phase == Phase.FIND_UNVISITED
        assert state.cursor == 1

    def test_empty_queue_returns_to_scan(self):
        pts = (Point(0, 0), Point(1, 0))
        dataset, state = dbscan.initialize(pts)
        state = DBSCANState(cursor=0, cluster_counter=1, queue=(), phase=Phase.EXPAND_CLUSTER)

        dataset, state = dbscan.step(dataset, state, 5, 2)

        assert state.phase == Phase.FIND_UNVISITED
        assert state.cursor == 1

    def test_done_is_terminal(self, three_clusters):
        dataset, state = dbscan.run_to_completion(three_clusters, 50, 4)
        again, same = dbscan.step(dataset, state, 50, 4)

        assert dbscan.is_done(same)
        assert same == state
        assert again == dataset

    def test_step_does_not_touch_its_inputs(self, three_clusters):
        dataset, state = dbscan.initialize(three_clusters)
        before = (dataset, state)
        for _ in range(3):
            dbscan.step(dataset, state, 50, 4)
        assert (dataset, state) == before

    def test_noise_is_reclaimed_during_expansion(self):
        # A is checked first and has a single neighbour (B), so it starts as noise.
        # X1 is core and queues B; B turns out to be core too and pulls A in.
        a, x1, b, x2, x3 = Point(0, 0), Point(7, 0), Point(3.5, 0), Point(8, 0), Point(9, 0)
        snapshots = run_steps((a, x1, b, x2, x3), epsilon=4, min_points=3)

        history = [ds[0].cluster_id for ds, _ in snapshots]
        assert NOISE in history
        first_claim = history.index(1)
        _, claim_state = snapshots[first_claim]
        assert claim_state.focus == 2   # B, popped from the queue
        assert all(cid == 1 for cid in history[first_claim:])


@pytest.mark.parametrize("shape", ["blobs", "circles", "moons"])
@pytest.mark.parametrize("min_points", [1, 3, 6])
class TestPassProperties:
    @pytest.fixture
    def points(self, shape, rng):
        return generate(shape, 90, rng)

    def test_every_point_visited_exactly_once(self, points, min_points):
        snapshots = run_steps(points, epsilon=30, min_points=min_points)

        flips = [0] * len(points)
        for (before, _), (after, _) in zip(snapshots, snapshots[1:]):
            for i, (p, q) in enumerate(zip(before, after)):
                assert not (p.visited and not q.visited)
                flips[i] += int(q.visited and not p.visited)
        assert flips == [1] * len(points)

    def test_cluster_ids_are_contiguous(self, points, min_points):
        dataset, state = run_steps(points, epsilon=30, min_points=min_points)[-1]
        ids = {p.cluster_id for p in dataset if p.cluster_id != NOISE}
        assert None not in ids
        assert ids == set(range(1, state.cluster_counter + 1))

    def test_queue_holds_unique_unvisited_points(self, points, min_points):
        for dataset, state in run_steps(points, epsilon=30, min_points=min_points):
            assert len(set(state.queue)) == len(state.queue)
            assert all(not dataset[i].visited for i in state.queue)
            if state.phase != Phase.EXPAND_CLUSTER:
                assert state.queue == ()

    def test_cluster_counter_never_decreases(self, points, min_points):
        counters = [s.cluster_counter for _, s in run_steps(points, epsilon=30, min_points=min_points)]
        assert all(b - a in (0, 1) for a, b in zip(counters, counters[1:]))

    def test_deterministic(self, points, min_points):
        first, _ = dbscan.run_to_completion(points, 30, min_points)
        second, _ = dbscan.run_to_completion(points, 30, min_points)
        assert [p.cluster_id for p in first] == [p.cluster_id for p in second]


class TestEngine:
    def test_rejects_bad_configuration(self):
        with pytest.raises(ConfigurationError):
            DBSCANEngine(epsilon=0, min_points=4)
        with pytest.raises(ConfigurationError):
            DBSCANEngine(epsilon=-1, min_points=4)
        with pytest.raises(ConfigurationError):
            DBSCANEngine(epsilon=10, min_points=0)
        with pytest.raises(ConfigurationError):
            DBSCANEngine(epsilon=10, min_points=2).initialize(())

    def test_reuses_neighbor_index_until_points_change(self, three_clusters):
        engine = DBSCANEngine(50, 4)
        dataset, state = engine.initialize(three_clusters)
        index = engine.neighbor_index(dataset)

        for _ in range(5):
            dataset, state = engine.step(dataset, state)
        assert engine.neighbor_index(dataset) is index

        grown = dataset + (Point(100, 101),)
        assert engine.neighbor_index(grown) is not index
        assert len(engine.neighbor_index(grown)) == len(grown)

    def test_matches_functional_pass(self, three_clusters):
        engine = DBSCANEngine(50, 4)
        dataset, state = engine.initialize(three_clusters)
        while not engine.is_done(state):
            dataset, state = engine.step(dataset, state)

        expected, expected_state = dbscan.run_to_completion(three_clusters, 50, 4)
        assert dataset == expected
        assert engine.clusters_found(state) == expected_state.cluster_counter == 3
        assert engine.focus(state) is None


class TestResume:
    def test_reopens_finished_pass_at_first_new_point(self, three_clusters):
        dataset, state = dbscan.run_to_completion(three_clusters, 50, 4)
        grown = dataset + (Point(700, 350), Point(702, 351))

        resumed = dbscan.resume(state, len(dataset))

        assert resumed.phase == Phase.FIND_UNVISITED
        assert resumed.cursor == len(dataset)
        assert resumed.focus is None
        assert resumed.cluster_counter == state.cluster_counter

        while not dbscan.is_done(resumed):
            grown, resumed = dbscan.step(grown, resumed, 50, 4)
        assert all(p.visited for p in grown)
        assert grown[:len(dataset)] == dataset
        assert [p.cluster_id for p in grown[len(dataset):]] == [NOISE, NOISE]

    def test_unfinished_state_is_left_alone(self, three_clusters):
        dataset, state = dbscan.initialize(three_clusters)
        for _ in range(3):
            dataset, state = dbscan.step(dataset, state, 50, 4)
        assert dbscan.resume(state, len(dataset)) is state

    def test_engine_hook(self, three_clusters):
        engine = DBSCANEngine(50, 4)
        dataset, state = engine.initialize(three_clusters)
        while not engine.is_done(state):
            dataset, state = engine.step(dataset, state)
        assert not engine.is_done(engine.points_added(state, len(dataset)))
