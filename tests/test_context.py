"""Tests for the evaluation context."""
import logging

import pytest

from symcalc import create_default_context
from symcalc.context import Context, ContextError, DefinitionError, Params, UnknownIdentifierError
from symcalc.definitions import AngleMode, ArityError, FunctionDefinition
from symcalc.parser import parse
from symcalc.term import Numeric
from symcalc.tokenizer import ExpressionSyntaxError


def test_default_context_contents(ctx):
    assert ctx.is_constant('pi')
    assert ctx.is_constant('e')
    for name in ['sin', 'cos', 'tan', 'cot', 'sec', 'csc', 'sinh', 'cosh', 'tanh', 'asin', 'acos', 'atan',
                 'acot', 'asec', 'acsc', 'arcsin', 'arccos', 'arctan', 'cbrt', 'sqrt', 'abs', 'ln', 'log',
                 'fac', 'perm', 'comb', 'mod', 'div', 'sum', 'gcf']:
        assert ctx.is_native(name), name
    assert ctx.get_native('arcsin').derivative == ctx.get_native('asin').derivative


def test_default_params():
    params = Params()
    assert params.precision == 10
    assert params.angle_mode is AngleMode.RADIANS
    assert params.matrix_epsilon == 1e-5
    assert params.simplify


def test_add_function(ctx):
    definition = ctx.add_function('f(x, y) = x^2 + y')
    assert isinstance(definition, FunctionDefinition)
    assert ctx.lookup_function('f') is definition
    assert ctx.is_function('f')
    assert 'f' in ctx.function_names()
    assert ctx.call_function('f', [Numeric(2), Numeric(3)]) == Numeric(7)


def test_add_function_rejects_expressions(ctx):
    with pytest.raises(ExpressionSyntaxError):
        ctx.add_function('2+3')


def test_name_clashes(ctx):
    ctx.add_function('f(x) = x')
    with pytest.raises(DefinitionError):
        ctx.add_function('f(y) = y')
    with pytest.raises(DefinitionError):
        ctx.add_function('sin(x) = x')
    with pytest.raises(DefinitionError):
        ctx.add_function('pi(x) = x')


def test_arity(ctx):
    ctx.add_function('f(x, y) = x+y')
    with pytest.raises(ArityError):
        ctx.call_function('f', [Numeric(1)])
    with pytest.raises(ArityError):
        ctx.call_native('sqrt', [])
    assert issubclass(ArityError, TypeError)


def test_remove_function(ctx):
    ctx.add_function('f(x) = x')
    assert ctx.remove_function('f').name == 'f'
    assert ctx.lookup_function('f') is None
    with pytest.raises(UnknownIdentifierError):
        ctx.remove_function('f')


def test_unknown_names(ctx):
    with pytest.raises(UnknownIdentifierError):
        ctx.call_function('nope', [])
    with pytest.raises(UnknownIdentifierError):
        ctx.get_native('nope')
    with pytest.raises(UnknownIdentifierError):
        ctx.get_constant('nope')


def test_scopes_hold_bindings(ctx):
    with ctx.with_scope():
        ctx.bind('x', Numeric(1))
        assert ctx.lookup_variable('x') == Numeric(1)
        assert len(ctx) == 2
    assert ctx.lookup_variable('x') is None
    assert len(ctx) == 1


def test_variable_lookup_skips_caller_scopes(ctx):
    ctx.bind('g', Numeric(9))
    with ctx.with_scope():
        ctx.bind('x', Numeric(1))
        with ctx.with_scope():
            assert ctx.lookup_variable('x') is None
            assert ctx.lookup_variable('g') == Numeric(9)


def test_functions_defined_in_a_scope_vanish(ctx):
    with ctx.with_scope():
        ctx.add_function('h(x) = x')
        assert ctx.is_function('h')
    assert not ctx.is_function('h')


def test_function_bodies_see_their_parameters(ctx):
    ctx.add_function('f(x) = x+1')
    with ctx.with_scope():
        ctx.bind('x', Numeric(100))
        assert ctx.call_function('f', [Numeric(1)]) == Numeric(2)


def test_cannot_pop_global_scope():
    with pytest.raises(ContextError):
        Context().pop_scope()


def test_with_params_is_a_snapshot(ctx):
    with ctx.with_params() as params:
        params.precision = 50
        assert ctx.params.precision == 50
    assert ctx.params.precision == 10


def test_generate_name_counts_and_skips_taken_names():
    ctx = create_default_context()
    assert ctx.generate_name() == '_a'
    ctx.add_function('_c(x) = x')
    assert ctx.generate_name() == '_b'
    assert ctx.generate_name() == '_d'


def test_definitions_are_logged(ctx, caplog):
    caplog.set_level(logging.DEBUG, logger='symcalc.context')
    ctx.add_function('f(x) = x+1')
    assert 'Defined f(x) = x+1' in caplog.text


def test_parse_needs_the_context_for_bound_names(ctx):
    with ctx.with_scope():
        ctx.bind('ab', Numeric(2))
        assert str(parse(ctx, 'ab')) == 'ab'
        assert parse(ctx, 'ab').node_type.value == 'variable'
