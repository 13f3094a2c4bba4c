import random

from randgames import FullGame, LengthTable, StubGame


def stub(seed, length):
    return StubGame(seed=seed, length=length)


def test_targets_are_selected_independently():
    table = LengthTable([10, 25])
    table.consider(stub(0, 30))
    table.consider(stub(1, 12))

    assert table.best(10).seed == 1
    assert table.distance(10) == 2
    assert table.best(25).seed == 0
    assert table.distance(25) == 5


def test_first_record_fills_every_target():
    table = LengthTable([10, 500])
    table.consider(stub(0, 80))
    assert [(t, g.seed) for t, g in table.items()] == [(10, 0), (500, 0)]


def test_ties_keep_earliest_record():
    table = LengthTable([20])
    table.consider(stub(0, 18))
    table.consider(stub(1, 22))
    table.consider(stub(2, 18))
    assert table.best(20).seed == 0

    table.consider(stub(3, 21))
    assert table.best(20).seed == 3


def test_empty_table():
    table = LengthTable([750, 10, 10])
    assert len(table) == 2
    assert table.targets == [10, 750]
    assert table.best(10) is None
    assert table.distance(10) is None
    assert table.items() == []


def test_mixes_stubs_and_full_games():
    table = LengthTable([3])
    table.consider(stub(0, 9))
    table.consider(FullGame(seed=1, moves=("e4", "e5", "Qh5"), status="in_progress"))
    assert table.best(3).seed == 1
    assert table.distance(3) == 0


def test_best_is_minimal_distance_first_seen():
    rnd = random.Random(1234)
    lengths = [rnd.randrange(0, 400) for _ in range(300)]
    targets = [1, 10, 25, 50, 100, 250, 500]

    table = LengthTable(targets)
    for seed, length in enumerate(lengths):
        table.consider(stub(seed, length))

    for target in targets:
        distances = [abs(length - target) for length in lengths]
        expected_seed = distances.index(min(distances))
        assert table.best(target).seed == expected_seed
        assert table.distance(target) == min(distances)
