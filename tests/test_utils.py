# tests/test_utils.py
import json

import numpy as np
import pytest

from flowlines import utils


def test_shuffle_is_permutation():
    ixs = np.arange(500, dtype=np.int64)
    out = utils.shuffle_indices(ixs, utils.make_rng(0))
    assert out is ixs
    assert sorted(ixs.tolist()) == list(range(500))
    assert not np.array_equal(ixs, np.arange(500))


def test_shuffle_is_deterministic_per_seed():
    a = utils.shuffle_indices(np.arange(200, dtype=np.int64), utils.make_rng(11))
    b = utils.shuffle_indices(np.arange(200, dtype=np.int64), utils.make_rng(11))
    c = utils.shuffle_indices(np.arange(200, dtype=np.int64), utils.make_rng(12))
    assert np.array_equal(a, b)
    assert not np.array_equal(a, c)


def test_shuffle_small_inputs():
    empty = np.zeros(0, dtype=np.int64)
    assert utils.shuffle_indices(empty, utils.make_rng(0)).size == 0
    one = np.array([7], dtype=np.int64)
    assert utils.shuffle_indices(one, utils.make_rng(0)).tolist() == [7]


def test_shuffle_is_roughly_uniform():
    """Each value lands in position 0 about equally often."""
    rng = utils.make_rng(5)
    counts = np.zeros(4, dtype=np.int64)
    for _ in range(4000):
        ixs = utils.shuffle_indices(np.arange(4, dtype=np.int64), rng)
        counts[ixs[0]] += 1
    assert np.all(np.abs(counts - 1000) < 150)


def test_flowlines_result_layout():
    lines = [np.array([[0.0, 0.0], [1.0, 0.0]]), np.array([[2.0, 2.0], [2.0, 3.0], [2.0, 4.0]])]
    res = utils.FlowLinesResult.from_arrays(lines, [1.0, 2.0], meta={"model": "flowlines"})
    assert res.num_lines == 2
    assert res.offsets.tolist() == [0, 2, 5]
    assert res.points.shape == (5, 2)
    split = res.lines()
    assert np.array_equal(split[1], lines[1])

    empty = utils.FlowLinesResult.from_arrays([], [])
    assert empty.num_lines == 0
    assert empty.points.shape == (0, 2)


def test_save_and_load_flowlines(tmp_path):
    lines = [np.array([[0.0, 0.0], [3.0, 4.0]])]
    res = utils.FlowLinesResult.from_arrays(lines, [5.0], meta={"seed": 3, "width": 10.0})
    path = tmp_path / "out" / "lines.npz"
    utils.save_flowlines(path, res)
    loaded = utils.load_flowlines(path)
    assert loaded.num_lines == 1
    assert np.array_equal(loaded.lines()[0], lines[0])
    assert loaded.lengths.tolist() == [5.0]
    assert loaded.meta["seed"] == 3

    with pytest.raises(FileExistsError):
        utils.save_flowlines(path, res, overwrite=False)


def test_load_params(tmp_path):
    jpath = tmp_path / "p.json"
    jpath.write_text(json.dumps({"width": 200, "level_count": 3}))
    assert utils.load_params(jpath) == {"width": 200, "level_count": 3}

    tpath = tmp_path / "p.toml"
    tpath.write_text("width = 300\nlogarithmic = true\n")
    if utils.tomllib is not None:
        assert utils.load_params(tpath) == {"width": 300, "logarithmic": True}

    bad = tmp_path / "p.yaml"
    bad.write_text("width: 1\n")
    with pytest.raises(ValueError):
        utils.load_params(bad)


def test_load_params_rejects_non_table(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(ValueError, match="FlowConfig"):
        utils.load_params(path)
