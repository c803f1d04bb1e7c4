import numpy as onp
import pytest

import jaxmarginals
from jaxmarginals import Symbol, linear

x1, l1, l2 = Symbol("x", 1), Symbol("l", 1), Symbol("l", 2)


@pytest.fixture
def joint() -> jaxmarginals.JointMarginal:
    layout = linear.StorageLayout.make([l2, x1], {x1: 3, l2: 2})
    return jaxmarginals.JointMarginal(
        matrix=onp.arange(25, dtype=onp.float64).reshape((5, 5)), layout=layout
    )


def test_layout(joint: jaxmarginals.JointMarginal):
    assert joint.get_keys() == [l2, x1]
    assert joint.layout.index_from_key == {l2: 0, x1: 2}
    assert joint.layout.dim == 5
    assert joint.layout.get_slice(x1) == slice(2, 5)


def test_blocks(joint: jaxmarginals.JointMarginal):
    onp.testing.assert_array_equal(joint.block(l2, l2), joint.matrix[0:2, 0:2])
    onp.testing.assert_array_equal(joint.block(l2, x1), joint.matrix[0:2, 2:5])
    onp.testing.assert_array_equal(joint[x1, l2], joint.matrix[2:5, 0:2])
    assert joint[x1, x1].shape == (3, 3)


def test_blocks_are_copies(joint: jaxmarginals.JointMarginal):
    block = joint.block(x1, x1)
    block[:] = -1.0
    assert joint.matrix[2, 2] == 12.0


def test_read_only(joint: jaxmarginals.JointMarginal):
    with pytest.raises(ValueError):
        joint.matrix[0, 0] = 1.0


def test_source_array_untouched():
    source = onp.eye(3)
    joint = jaxmarginals.JointMarginal(
        matrix=source, layout=linear.StorageLayout.make([x1], {x1: 3})
    )
    assert source.flags.writeable
    source[0, 0] = 5.0
    assert joint.matrix[0, 0] == 1.0


def test_unknown_key(joint: jaxmarginals.JointMarginal):
    with pytest.raises(jaxmarginals.UnknownVariableError):
        joint.block(x1, l1)
    with pytest.raises(jaxmarginals.UnknownVariableError):
        joint[l1, l1]


def test_shape_mismatch():
    layout = linear.StorageLayout.make([x1], {x1: 3})
    with pytest.raises(AssertionError):
        jaxmarginals.JointMarginal(matrix=onp.zeros((2, 2)), layout=layout)
