"""Tests for derivatives, antiderivatives, root finding and series."""
from decimal import Decimal

import pytest

from symcalc import ConvergenceError, define_function, differentiate, evaluate, find_roots, integrate
from symcalc.calculus import depends_on, inline_functions, polynomial_degree
from symcalc.parser import parse


def close(term, expected, tolerance=Decimal('1e-6')):
    return term.is_numeric and abs(term.value - Decimal(expected)) < tolerance


# --- Derivatives --- #

@pytest.mark.parametrize('expression, expected', [
    ('x^2', '2x'),
    ('x^3', '3x^2'),
    ('sin(x)', 'cos(x)'),
    ('sin(2x)', '2cos(2x)'),
    ('5', '0'),
    ('y', '0'),
])
def test_derivative(ctx, expression, expected):
    assert str(differentiate(ctx, expression, 'x')) == expected


@pytest.mark.parametrize('expression, x, expected', [
    ('x^2', 3, '6'),
    ('sin(x)', 0, '1'),
    ('x*sin(x)', 1, '1.3817732907'),
    ('1/x', 2, '-0.25'),
    ('2^x', 0, '0.6931471806'),
    ('x^2 + 3x - 7', 1, '5'),
    ('(x+1)(x-1)', 4, '8'),
])
def test_derivative_value(ctx, expression, x, expected):
    d = differentiate(ctx, expression, 'x')
    assert close(evaluate(ctx, str(d), {'x': x}), expected)


def test_derivative_of_user_function(ctx):
    define_function(ctx, 'f(x) = x^3')
    assert str(differentiate(ctx, 'f(t)', 't')) == '3t^2'


def test_derivative_other_variable(ctx):
    d = differentiate(ctx, 'x*y^2', 'y')
    assert close(evaluate(ctx, str(d), {'x': 2, 'y': 3}), '12')


@pytest.mark.parametrize('expression', ['sqrt(x)', 'ln(x)', 'x > 1'])
def test_derivative_not_implemented(ctx, expression):
    with pytest.raises(NotImplementedError):
        differentiate(ctx, expression, 'x')


# --- Antiderivatives --- #

@pytest.mark.parametrize('expression, expected', [
    ('x^2', 'x^3/3'),
    ('3', '3x'),
    ('1/x', 'ln(abs(x))'),
    ('cos(x)', 'sin(x)'),
])
def test_integrate(ctx, expression, expected):
    assert str(integrate(ctx, expression, 'x')) == expected


@pytest.mark.parametrize('expression, x, expected', [
    ('x', 4, '8'),
    ('2x+1', 3, '12'),
    ('x^3', 2, '4'),
    ('sin(x)', 0, '-1'),
    ('-x^3', 2, '-4'),
])
def test_integrate_value(ctx, expression, x, expected):
    antiderivative = integrate(ctx, expression, 'x')
    assert close(evaluate(ctx, str(antiderivative), {'x': x}), expected)


@pytest.mark.parametrize('expression', ['x*sin(x)', 'x/(x+1)', 'sqrt(x)'])
def test_integrate_not_implemented(ctx, expression):
    with pytest.raises(NotImplementedError):
        integrate(ctx, expression, 'x')


# --- Structure helpers --- #

def test_inline_functions(ctx):
    define_function(ctx, 'f(x) = x + 1')
    define_function(ctx, 'g(x) = 2f(x)')
    inlined = inline_functions(parse(ctx, 'g(y)'), ctx)
    assert 'f' not in str(inlined)
    assert close(evaluate(ctx, inlined, {'y': 3}), '8')


def test_depends_on(ctx):
    assert depends_on(parse(ctx, 'x^2+y'), 'y')
    assert not depends_on(parse(ctx, 'x^2+1'), 'y')


@pytest.mark.parametrize('expression, degree', [
    ('x^2-4', 2),
    ('x^3 - x', 3),
    ('x+1', 1),
    ('sin(x)', 1),
    ('5', 0),
])
def test_polynomial_degree(ctx, expression, degree):
    assert polynomial_degree(parse(ctx, expression)) == degree


# --- Roots --- #

@pytest.mark.parametrize('expression, roots', [
    ('x^2-4', [-2, 2]),
    ('x^2-2', [Decimal('-1.414214'), Decimal('1.414214')]),
    ('x^3 - x', [-1, 0, 1]),
    ('x-3', [3]),
    ('sin(x)', [0]),
    ('x^3-6x^2+11x-6', [1, 2, 3]),
    ('(x-3)(x-5)', [3, 5]),
    ('x^2-3x', [0, 3]),
    ('2x+7', [Decimal('-3.5')]),
])
def test_find_roots(ctx, expression, roots):
    assert find_roots(ctx, expression) == roots


def test_find_roots_explicit_variable(ctx):
    assert find_roots(ctx, 't^2-9', 't') == [-3, 3]


def test_find_roots_user_function(ctx):
    define_function(ctx, 'f(x) = x^2 - 1')
    assert find_roots(ctx, 'f(x)') == [-1, 1]


def test_find_roots_plain_notation(ctx):
    roots = find_roots(ctx, 'x-100000')
    assert roots == [100000]
    assert str(roots[0]) == '100000'


def test_find_roots_no_root(ctx):
    with pytest.raises(ConvergenceError):
        find_roots(ctx, 'x^2+1')


@pytest.mark.parametrize('expression', ['x+y', '5'])
def test_find_roots_needs_one_variable(ctx, expression):
    with pytest.raises(ValueError):
        find_roots(ctx, expression)


def test_find_roots_leaves_no_helpers(ctx):
    before = set(ctx.function_names())
    find_roots(ctx, 'x^2-4')
    assert set(ctx.function_names()) == before


# --- Series --- #

def test_sum_geometric(ctx):
    assert close(evaluate(ctx, 'sum(1/2^n)'), '2')


def test_sum_exponential(ctx):
    assert close(evaluate(ctx, 'sum(1/fac(n))'), '2.718281828')


def test_sum_two_variables(ctx):
    with pytest.raises(ValueError):
        evaluate(ctx, 'sum(x*n)')


def test_sum_diverges(ctx):
    ctx.params.max_iterations = 50
    with pytest.raises(ConvergenceError):
        evaluate(ctx, 'sum(n)')
