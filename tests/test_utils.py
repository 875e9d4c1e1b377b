"""Tests for the configuration helpers, tree display and console."""
import builtins

import pytest

from symcalc import AngleMode, create_default_context, set_angle_mode, set_precision, tree, console, evaluate
from symcalc.term import Numeric


def test_set_precision(ctx):
    set_precision(ctx, 3)
    assert ctx.params.precision == 3
    assert evaluate(ctx, '2/3') == Numeric('0.667')
    with pytest.raises(ValueError):
        set_precision(ctx, 0)


def test_set_angle_mode(ctx):
    set_angle_mode(ctx, 'deg')
    assert ctx.params.angle_mode is AngleMode.DEGREES
    set_angle_mode(ctx, AngleMode.RADIANS)
    assert ctx.params.angle_mode is AngleMode.RADIANS


def test_contexts_are_independent():
    a = create_default_context()
    b = create_default_context()
    set_precision(a, 3)
    a.add_function('f(x) = x')
    assert b.params.precision == 10
    assert not b.is_function('f')


def test_tree(ctx, capsys):
    tree(ctx, '2x+1')
    out = capsys.readouterr().out
    assert 'Expression 2x+1' in out
    assert 'BinaryNode(+)' in out
    assert 'VariableNode(x)' in out


def test_tree_definition(ctx, capsys):
    tree(ctx, 'f(x) = x+1')
    out = capsys.readouterr().out
    assert out.startswith('Definition ')


def run_console(ctx, monkeypatch, capsys, lines, **kwargs):
    inputs = iter(lines)
    monkeypatch.setattr(builtins, 'input', lambda prompt='': next(inputs))
    console(ctx, **kwargs)
    return capsys.readouterr().out


def test_console(ctx, monkeypatch, capsys):
    out = run_console(ctx, monkeypatch, capsys, ['1+2', 'f(x)=x^2', 'f(3)', '1/0', 'exit'])
    assert '3' in out
    assert 'Added f(x) to context.' in out
    assert '9' in out
    assert 'DivisionError' in out
    assert ctx.is_function('f')


def test_console_matrix(ctx, monkeypatch, capsys):
    out = run_console(ctx, monkeypatch, capsys, ['[1 2][3 4]', 'exit'])
    assert '[1 2][3 4]' in out


def test_console_echo(ctx, monkeypatch, capsys):
    out = run_console(ctx, monkeypatch, capsys, ['3*x', 'exit'], echo=True, show_time=True)
    assert '3*x' in out
    assert '3x' in out
    assert 'ms' in out
