"""
Dense small-matrix linear algebra. A ``matrix`` is a list of column ``vector``s of floats; every routine here works
on a copy of its input and returns a new matrix.

Elimination treats entries with a magnitude below ``Params.matrix_epsilon`` as zero when choosing pivots. Stored
values are never rounded or cleaned; display rounds to ``Params.display_places`` without touching the stored values.
"""
import logging
from decimal import Decimal
from typing import List

import numpy as np
from scipy.linalg import LinAlgError

from .context import Params
from .term import Numeric, Symbolic, normalize, round_decimal

__all__ = [
    'vector',
    'matrix',
    'SingularMatrixError',
    'echelon',
    'row_reduce',
    'determinant',
    'inverse',
    'characteristic_polynomial',
    'is_echelon',
]

logger = logging.getLogger(__name__)


class SingularMatrixError(LinAlgError):
    pass


class vector(list):
    def __init__(self, *v):
        super().__init__()
        for item in v:
            if isinstance(item, list):
                self.extend(float(x) for x in item)
            else:
                self.append(float(item))

    def __mul__(self, other):
        if isinstance(other, (int, float)):
            return vector(*(x * other for x in self))
        raise TypeError("unsupported operand type(s) for *: '{}' and '{}'"
                        .format(type(self).__name__, type(other).__name__))

    __rmul__ = __mul__

    def dot(self, v):
        """ Returns the dot product of this vector and v """
        if len(self) == len(v):
            return sum(a * b for a, b in zip(self, v))
        raise LinAlgError('vectors must be the same dimension')

    @staticmethod
    def zero(d):
        """ Returns a d-dimensional zero vector """
        return vector(*(0.0 for _ in range(d)))

    def copy(self):
        """ Return a copy of the vector """
        return vector(*self)

    def __round__(self, n=None):
        """ Return a rounded copy of the vector """
        return vector(*(round(x, n) for x in self))

    def __str__(self):
        return '<{}>'.format(', '.join(map(_format_entry, self)))

    def __repr__(self):
        return '{}({})'.format(type(self).__name__, ', '.join(map(repr, self)))


class matrix(list):
    """
    A matrix stored as a list of equal-length column vectors. Use ``matrix.from_rows`` to build one row by row, the
    way matrix literals are written: ``[1 2][3 4]`` is ``matrix.from_rows([1, 2], [3, 4])``.
    """

    def __init__(self, *columns):
        super().__init__()
        for column in columns:
            if not isinstance(column, list):
                raise TypeError("matrix column must be a list or vector, not '{}'".format(type(column).__name__))
            if len(column) != len(columns[0]):
                raise ValueError('matrix columns must all have the same length')
            self.append(vector(*column))

        self.shape = [
            len(columns[0]) if len(columns) > 0 else 0,
            len(columns),
        ]

    @staticmethod
    def from_rows(*rows):
        """ Build a matrix from its row lists """
        for row in rows:
            if len(row) != len(rows[0]):
                raise ValueError('matrix rows must all have the same length')
        n_cols = len(rows[0]) if rows else 0
        return matrix(*([row[c] for row in rows] for c in range(n_cols)))

    @staticmethod
    def zero(rows, cols):
        """ Returns a rows x cols matrix of all zeros """
        return matrix(*(vector.zero(rows) for _ in range(cols)))

    @staticmethod
    def id(n):
        """ Returns an n by n identity matrix """
        if n > 0:
            return matrix.from_rows(*(
                [1.0 if r == c else 0.0 for c in range(n)]
                for r in range(n)
            ))
        raise ValueError('n must be at least 1')

    @staticmethod
    def from_numpy(arr):
        """ Convert a 2d np.ndarray to matrix """
        arr = np.asarray(arr, dtype=float)
        if arr.ndim == 2:
            return matrix.from_rows(*arr.tolist())
        raise LinAlgError('incompatible shape for matrix')

    def to_numpy(self):
        """ Convert to a 2d np.ndarray of floats """
        return np.array(self.rows(), dtype=float).reshape(self.shape)

    def rows(self) -> List[List[float]]:
        """ The entries of the matrix as a list of row lists """
        return [self.row(r) for r in range(self.shape[0])]

    def row(self, r):
        """ Returns the rth row vector of the matrix """
        return vector(*(column[r] for column in self))

    def col(self, c):
        """ Returns the cth column vector of the matrix """
        return self[c]

    def pos(self, r, c):
        """ Returns the value at row r and column c """
        return self[c][r]

    @property
    def is_square(self):
        return self.shape[0] == self.shape[1]

    def transp(self):
        """ Returns the transpose of the matrix """
        return matrix.from_rows(*(list(column) for column in self))

    def __mul__(self, other):
        # matrix-scalar multiplication
        if isinstance(other, (int, float)):
            return matrix(*(column * other for column in self))

        # matrix-matrix multiplication
        elif isinstance(other, matrix):
            if self.shape[1] == other.shape[0]:
                rows = self.rows()
                return matrix(*(
                    [vector(*row).dot(column) for row in rows]
                    for column in other
                ))
            raise LinAlgError('incompatible shapes for matrix multiplication')

        # matrix-vector multiplication
        elif isinstance(other, vector):
            if len(other) == self.shape[1]:
                return vector(*(self.row(r).dot(other) for r in range(self.shape[0])))
            raise LinAlgError('incompatible shapes for matrix-vector multiplication')

        raise TypeError("unsupported operand type(s) for *: '{}' and '{}'"
                        .format(type(self).__name__, type(other).__name__))

    def __rmul__(self, other):
        if isinstance(other, (int, float)):
            return self.__mul__(other)
        raise TypeError("unsupported operand type(s) for *: '{}' and '{}'"
                        .format(type(other).__name__, type(self).__name__))

    def copy(self):
        """ Return a copy of the matrix """
        m = matrix(*(column.copy() for column in self))
        m.shape = self.shape.copy()
        return m

    def __round__(self, n=None):
        """ Return a copy with every entry rounded to `n` places """
        m = matrix(*(round(column, n) for column in self))
        m.shape = self.shape.copy()
        return m

    def close_to(self, other: 'matrix', epsilon=Params.matrix_epsilon):
        """ True if both matrices have the same shape and every pair of entries differs by less than `epsilon` """
        if self.shape != other.shape:
            return False
        return all(
            abs(a - b) < epsilon
            for x, y in zip(self, other)
            for a, b in zip(x, y)
        )

    def format(self, places=Params.display_places):
        """ Render as a matrix literal with each entry rounded to `places`, Ex. [1 0.5][0 1] """
        return ''.join(
            '[' + ' '.join(_format_entry(round(x, places)) for x in row) + ']'
            for row in self.rows()
        )

    def __str__(self):
        return self.format()

    def __repr__(self):
        return '{}.from_rows({})'.format(type(self).__name__, ', '.join(repr(list(row)) for row in self.rows()))


def _format_entry(x: float):
    if x == 0:
        # Also covers -0.0
        return '0'
    if x % 1 == 0:
        return str(int(x))
    return repr(x)


# --- Elimination --- #

def _is_zero(x, epsilon):
    return abs(x) < epsilon


def _find_pivot(rows, start, col, epsilon):
    """ Index of the first row at or below `start` with a non-zero entry in `col`, or None """
    for r in range(start, len(rows)):
        if not _is_zero(rows[r][col], epsilon):
            return r
    return None


def _eliminate(m: matrix, epsilon, reduced):
    """
    Gaussian elimination on a copy of the rows of `m`. Pivots are the first non-zero entry in each column scanning
    downward; rows are swapped to bring them up. If `reduced`, each pivot row is scaled so the pivot is 1 and the
    column is cleared above the pivot too.

    :return: (rows, number of row swaps, list of (row, col) pivot positions)
    """
    rows = [list(row) for row in m.rows()]
    n_rows, n_cols = m.shape
    swaps = 0
    pivots = []

    pivot_row = 0
    for col in range(n_cols):
        if pivot_row >= n_rows:
            break
        r = _find_pivot(rows, pivot_row, col, epsilon)
        if r is None:
            continue
        if r != pivot_row:
            rows[r], rows[pivot_row] = rows[pivot_row], rows[r]
            swaps += 1
        logger.debug('Pivot %s at row %d, column %d', rows[pivot_row][col], pivot_row, col)

        pivot = rows[pivot_row]
        if reduced:
            scale = pivot[col]
            pivot = rows[pivot_row] = [x / scale for x in pivot]
            targets = (i for i in range(n_rows) if i != pivot_row)
        else:
            targets = range(pivot_row + 1, n_rows)

        for i in targets:
            factor = rows[i][col] / pivot[col]
            if factor != 0:
                rows[i] = [a - factor * b for a, b in zip(rows[i], pivot)]
            # The pivot column is exactly zero outside the pivot row
            rows[i][col] = 0.0

        pivots.append((pivot_row, col))
        pivot_row += 1

    return rows, swaps, pivots


def _epsilon(params):
    return (params or Params).matrix_epsilon


def echelon(m: matrix, params: Params = None):
    """ Returns the row echelon form of `m`. Leading entries are not scaled to 1. """
    rows, swaps, pivots = _eliminate(m, _epsilon(params), reduced=False)
    return matrix.from_rows(*rows)


def row_reduce(m: matrix, params: Params = None):
    """ Returns the reduced row echelon form of `m` """
    rows, swaps, pivots = _eliminate(m, _epsilon(params), reduced=True)
    return matrix.from_rows(*rows)


def is_echelon(m: matrix, params: Params = None):
    """
    True if `m` is in row echelon form: zero rows are at the bottom, and each leading entry is strictly to the right
    of the leading entry of the row above.
    """
    epsilon = _epsilon(params)
    previous = -1
    seen_zero_row = False
    for row in m.rows():
        leading = next((c for c, x in enumerate(row) if not _is_zero(x, epsilon)), None)
        if leading is None:
            seen_zero_row = True
            continue
        if seen_zero_row or leading <= previous:
            return False
        previous = leading
    return True


def determinant(m: matrix, params: Params = None):
    """
    Determinant by triangularization: the product of the echelon diagonal, negated once per row swap. Returns a
    Numeric rounded to the configured precision.

    :raises LinAlgError: if `m` is not square
    """
    if not m.is_square:
        raise LinAlgError('determinant requires a square matrix, got {}x{}'.format(*m.shape))
    params = params or Params
    n = m.shape[0]

    rows, swaps, pivots = _eliminate(m, params.matrix_epsilon, reduced=False)
    if len(pivots) < n:
        return Numeric(0)

    det = -1.0 if swaps % 2 else 1.0
    for i in range(n):
        det *= rows[i][i]
    return Numeric(round_decimal(Decimal(repr(det)), params.precision))


def inverse(m: matrix, params: Params = None):
    """
    Inverse by row reducing ``[m | I]``.

    :raises LinAlgError: if `m` is not square
    :raises SingularMatrixError: if `m` has no inverse
    """
    if not m.is_square:
        raise LinAlgError('only square matrices have an inverse, got {}x{}'.format(*m.shape))
    n = m.shape[0]

    augmented = matrix(*(m.copy() + matrix.id(n)))
    rows, swaps, pivots = _eliminate(augmented, _epsilon(params), reduced=True)
    if [c for r, c in pivots] != list(range(n)):
        raise SingularMatrixError('matrix is singular')
    return matrix.from_rows(*(row[n:] for row in rows))


def characteristic_polynomial(m: matrix, variable='x', params: Params = None):
    """
    The characteristic polynomial ``det(xI - m)`` by the Faddeev-LeVerrier recurrence, rendered as a symbolic term in
    `variable`, Ex. ``x^2-5x-2`` for ``[1 2][3 4]``. Coefficients are rounded to ``display_places``.

    :raises LinAlgError: if `m` is not square
    """
    if not m.is_square:
        raise LinAlgError('characteristic polynomial requires a square matrix, got {}x{}'.format(*m.shape))
    params = params or Params
    n = m.shape[0]

    a = m.to_numpy()
    identity = np.eye(n)
    # coefficients[k] multiplies x^k
    coefficients = [0.0] * (n + 1)
    coefficients[n] = 1.0
    mk = np.zeros((n, n))
    for k in range(1, n + 1):
        mk = a @ mk + coefficients[n - k + 1] * identity
        coefficients[n - k] = -np.trace(a @ mk) / k

    return Symbolic(_polynomial_text(coefficients, variable, params))


def _polynomial_text(coefficients, variable, params):
    """ Render coefficients (lowest degree first) as a polynomial in `variable`, highest degree first """
    text = ''
    for degree in range(len(coefficients) - 1, -1, -1):
        c = round(float(coefficients[degree]), params.display_places)
        if _is_zero(c, params.matrix_epsilon):
            continue

        magnitude = normalize(Decimal(repr(abs(c))))
        if degree == 0:
            term = magnitude
        else:
            term = '' if magnitude == '1' else magnitude
            term += variable
            if degree > 1:
                term += '^{}'.format(degree)

        if c < 0:
            text += '-' + term
        else:
            text += ('+' if text else '') + term
    return text or '0'
