"""Tests for the matrix engine."""
from decimal import Decimal

import numpy as np
import pytest
from scipy.linalg import LinAlgError

import symcalc
from symcalc import SingularMatrixError, matrix, parse_matrix, set_precision, vector
from symcalc.matrix import characteristic_polynomial, determinant, echelon, inverse, is_echelon, row_reduce
from symcalc.term import Numeric, Symbolic


@pytest.fixture
def m():
    return matrix.from_rows([1, 3, 5], [8, 30, 2], [1, 89, 2])


def test_construction(m):
    assert m.shape == [3, 3]
    assert m.pos(1, 1) == 30
    assert m.row(2) == [1, 89, 2]
    assert m.col(0) == [1, 8, 1]
    assert m.is_square


def test_columns_must_match():
    with pytest.raises(ValueError):
        matrix([1, 2], [3])
    with pytest.raises(ValueError):
        matrix.from_rows([1, 2], [3])


def test_identity():
    assert matrix.id(2).rows() == [[1, 0], [0, 1]]
    with pytest.raises(ValueError):
        matrix.id(0)


def test_transpose():
    t = matrix.from_rows([1, 2, 3], [4, 5, 6]).transp()
    assert t.shape == [3, 2]
    assert t.rows() == [[1, 4], [2, 5], [3, 6]]


def test_multiplication():
    a = matrix.from_rows([1, 2], [3, 4])
    assert (a * matrix.id(2)).rows() == a.rows()
    assert (a * a).rows() == [[7, 10], [15, 22]]
    assert (2 * a).rows() == [[2, 4], [6, 8]]
    assert a * vector(1, 1) == [3, 7]
    with pytest.raises(LinAlgError):
        a * matrix.from_rows([1, 2, 3])


def test_vector():
    v = vector(1, 2, 3)
    assert v.dot(vector(1, 0, 1)) == 4
    assert str(v * 2) == '<2, 4, 6>'
    with pytest.raises(LinAlgError):
        v.dot(vector(1, 2))


def test_format():
    a = matrix.from_rows([1, 0.5], [1 / 3, 2])
    assert str(a) == '[1 0.5][0.33333 2]'
    assert a.format(2) == '[1 0.5][0.33 2]'


def test_numpy_round_trip(m):
    arr = m.to_numpy()
    assert arr.shape == (3, 3)
    assert matrix.from_numpy(arr).rows() == m.rows()
    with pytest.raises(LinAlgError):
        matrix.from_numpy(np.zeros(3))


def test_row_reduce(m):
    assert row_reduce(m).close_to(matrix.id(3))


def test_row_reduce_singular():
    rref = row_reduce(matrix.from_rows([1, 2], [2, 4]))
    assert rref.rows() == [[1, 2], [0, 0]]


def test_echelon_swaps_rows():
    original = matrix.from_rows([0, 2], [1, 1])
    result = echelon(original)
    assert result.rows() == [[1, 1], [0, 2]]
    assert is_echelon(result)
    assert not is_echelon(original)
    # Input is not modified
    assert original.rows() == [[0, 2], [1, 1]]


def test_inverse(m):
    inv = inverse(m)
    assert (m * inv).close_to(matrix.id(3))
    assert inverse(matrix.from_rows([2, 1], [1, 1])).close_to(matrix.from_rows([1, -1], [-1, 2]))
    assert inverse(inv).close_to(m, 1e-4)


def test_inverse_singular():
    with pytest.raises(SingularMatrixError):
        inverse(matrix.from_rows([1, 2], [2, 4]))


def test_singular_is_linalg_error():
    assert issubclass(SingularMatrixError, LinAlgError)


@pytest.mark.parametrize('f', [determinant, inverse, characteristic_polynomial])
def test_square_only(f):
    with pytest.raises(LinAlgError):
        f(matrix.from_rows([1, 2, 3], [4, 5, 6]))


def test_determinant(m):
    assert determinant(m) == Numeric(3250)


@pytest.mark.parametrize('rows, det', [
    ([[0, 1], [1, 0]], -1),
    ([[1, 2], [2, 4]], 0),
    ([[2]], 2),
    ([[0, 0, 1], [0, 1, 0], [1, 0, 0]], -1),
])
def test_determinant_small(rows, det):
    assert determinant(matrix.from_rows(*rows)) == Numeric(det)


def test_characteristic_polynomial():
    a = matrix.from_rows([1, 2], [3, 4])
    assert characteristic_polynomial(a) == Symbolic('x^2-5x-2')
    assert str(characteristic_polynomial(a, 't')) == 't^2-5t-2'
    assert str(characteristic_polynomial(matrix.id(2))) == 'x^2-2x+1'


def test_parse_matrix(ctx):
    m = parse_matrix(ctx, '[1 3 5][8 30 2][1 89 2]')
    assert m.shape == [3, 3]
    assert m.pos(2, 1) == 89


def test_parse_matrix_single_row(ctx):
    m = parse_matrix(ctx, '[1 2 3]')
    assert m.shape == [1, 3]


def test_parse_matrix_expressions(ctx):
    m = parse_matrix(ctx, '[1+1 2^3][sqrt(4) -1]')
    assert m.rows() == [[2, 8], [2, -1]]


@pytest.mark.parametrize('text', ['1+2', '[x 1]'])
def test_parse_matrix_errors(ctx, text):
    with pytest.raises(ValueError):
        parse_matrix(ctx, text)


def test_inverse_large_entries():
    m = matrix.from_rows([1e6, 0], [0, 1e6])
    inv = inverse(m)
    assert inv.pos(0, 0) == pytest.approx(1e-6)
    assert (m * inv).close_to(matrix.id(2))


def test_inverse_mixed_magnitudes():
    m = matrix.from_rows([2e5, 1], [0, 4])
    assert (m * inverse(m)).close_to(matrix.id(2))


def test_row_reduce_keeps_small_entries():
    rref = row_reduce(matrix.from_rows([1, 0, 1e-7], [0, 1, 0]))
    assert rref.pos(0, 2) == pytest.approx(1e-7)


def test_determinant_small_but_non_zero():
    det = determinant(matrix.from_rows([1e-3, 0], [0, 1e-3]))
    assert det.value == Decimal('0.000001')


def test_context_determinant_uses_precision(ctx):
    m = parse_matrix(ctx, '[1/3 0][0 1]')
    assert symcalc.determinant(ctx, m) == Numeric(Decimal('0.3333333333'))
    set_precision(ctx, 3)
    assert symcalc.determinant(ctx, m) == Numeric(Decimal('0.333'))


def test_context_characteristic_polynomial_uses_display_places(ctx):
    m = parse_matrix(ctx, '[1/3 0][0 1]')
    assert str(symcalc.characteristic_polynomial(ctx, m)) == 'x^2-1.33333x+0.33333'
    ctx.params.display_places = 2
    assert str(symcalc.characteristic_polynomial(ctx, m, 't')) == 't^2-1.33t+0.33'


def test_context_matrix_functions(ctx):
    m = parse_matrix(ctx, '[1 3 5][8 30 2][1 89 2]')
    assert symcalc.row_reduce(ctx, m).close_to(matrix.id(3))
    assert symcalc.echelon(ctx, m).rows()[0] == [1, 3, 5]
    assert (m * symcalc.inverse(ctx, m)).close_to(matrix.id(3))
    with pytest.raises(SingularMatrixError):
        symcalc.inverse(ctx, parse_matrix(ctx, '[1 2][2 4]'))
