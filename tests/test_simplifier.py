"""Tests for additive folding and factoring of syntax trees."""
from decimal import Decimal

import pytest

from symcalc import simplify
from symcalc.parser import LiteralNode, parse
from symcalc.simplifier import Monomial, factor, flatten_sum, numeric_value
from symcalc.term import Numeric


@pytest.mark.parametrize('expression, expected', [
    ('(x+1)(x-1)', 'x^2-1'),
    ('x+2x', '3x'),
    ('x+1+2', 'x+3'),
    ('x-x', '0'),
    ('3+x', 'x+3'),
    ('x*x', 'x^2'),
    ('2x*3', '6x'),
    ('sin(x)+sin(x)', '2sin(x)'),
    ('10-4-3', '3'),
])
def test_simplify(ctx, expression, expected):
    assert str(simplify(ctx, expression)) == expected


def test_simplify_keeps_unknown_shapes(ctx):
    assert str(simplify(ctx, 'sin(x)')) == 'sin(x)'
    assert str(simplify(ctx, 'x/y')) == 'x/y'


def test_simplify_does_not_mutate(ctx):
    root = parse(ctx, 'x+2x')
    simplify(ctx, root)
    assert str(root) == 'x+2x'


def test_factor_only_expands_products(ctx):
    root = factor(parse(ctx, '2(x+1)'), ctx)
    assert str(root) == '2x+2'
    root = factor(parse(ctx, 'x+x'), ctx)
    assert str(root) == 'x+x'


def test_flatten_sum(ctx):
    terms = flatten_sum(parse(ctx, 'a-(b-c)'))
    assert [(sign, str(node)) for sign, node in terms] == [(1, 'a'), (-1, 'b'), (1, 'c')]


def test_flatten_sum_unary(ctx):
    terms = flatten_sum(parse(ctx, '-(x+y)'))
    assert [(sign, str(node)) for sign, node in terms] == [(-1, 'x'), (-1, 'y')]


def test_numeric_value(ctx):
    assert numeric_value(parse(ctx, '2*3+1'), ctx) == 7
    assert numeric_value(parse(ctx, 'x+1'), ctx) is None
    assert numeric_value(parse(ctx, 'sin(0)'), ctx) is None


def test_numeric_value_bound(ctx):
    with ctx.with_scope():
        ctx.bind('x', Numeric(4))
        assert numeric_value(parse(ctx, 'x+1'), ctx) == 5


def test_monomial_product():
    x = Monomial(powers={'x': Decimal(1)})
    product = Monomial(Decimal(3)) * x * x
    assert product.coefficient == 3
    assert product.key == ((('x', Decimal(2)),), ())
    assert str(product.to_node()) == '3x^2'
    assert product.negate().coefficient == -3


def test_monomial_constant():
    assert Monomial(Decimal(5)).is_constant
    assert isinstance(Monomial(Decimal(5)).to_node(), LiteralNode)
    assert not Monomial(powers={'x': Decimal(1)}).is_constant
