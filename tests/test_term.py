"""Tests for Terms and their arithmetic."""
from decimal import Decimal

import pytest

from symcalc.context import Params
from symcalc.definitions import Operator, UnarySymbol
from symcalc.term import DivisionError, Numeric, Symbolic, Term, combine_terms, is_wrapped, normalize


def test_numeric_rendering():
    assert str(Numeric(Decimal('2.50'))) == '2.5'
    assert str(Numeric(0)) == '0'
    assert str(Numeric(Decimal('1E+3'))) == '1000'
    assert str(Numeric(Decimal('-0.0005'))) == '-0.0005'


def test_normalize_rounds_half_up():
    assert normalize(Decimal('2.345'), 3) == '2.35'
    assert normalize(Decimal('0.00'), 3) == '0'


def test_floats_are_read_exactly():
    assert Numeric(0.1).value == Decimal('0.1')


def test_exact_arithmetic():
    assert Numeric(Decimal('0.1')).operation(Numeric(Decimal('0.2')), Operator.PLUS) == Numeric(Decimal('0.3'))
    assert Numeric(2).operation(Numeric(3), Operator.MINUS) == Numeric(-1)
    assert Numeric(4).operation(Numeric(Decimal('2.5')), Operator.MULT) == Numeric(10)


def test_division_uses_guard_digits():
    result = Numeric(1).operation(Numeric(3), Operator.DIV, Params())
    assert result.rounded(10) == Numeric(Decimal('0.3333333333'))
    assert len(result.value.as_tuple().digits) > 10


def test_division_by_zero():
    with pytest.raises(DivisionError):
        Numeric(1).operation(Numeric(0), Operator.DIV, Params())
    assert issubclass(DivisionError, ZeroDivisionError)


def test_powers():
    params = Params()
    assert Numeric(2).operation(Numeric(10), Operator.EXP, params) == Numeric(1024)
    assert Numeric(2).operation(Numeric(-1), Operator.EXP, params) == Numeric(Decimal('0.5'))
    assert Numeric(9).operation(Numeric(Decimal('0.5')), Operator.EXP, params) == Numeric(3)
    with pytest.raises(ValueError):
        Numeric(-8).operation(Numeric(Decimal('0.5')), Operator.EXP, params)
    with pytest.raises(DivisionError):
        Numeric(0).operation(Numeric(-1), Operator.EXP, params)


def test_comparisons_give_one_or_zero():
    assert Numeric(3).operation(Numeric(2), Operator.GT) == Numeric(1)
    assert Numeric(3).operation(Numeric(2), Operator.LTE) == Numeric(0)
    assert Numeric(2).operation(Numeric(2), Operator.EQUAL) == Numeric(1)
    assert Numeric(2).operation(Numeric(2), Operator.NEQ) == Numeric(0)


def test_plus_equal_adds():
    assert Numeric(2).operation(Numeric(3), Operator.PEQUAL) == Numeric(5)


def test_symbolic_operations():
    x = Symbolic('x')
    assert x.operation(Numeric(2), Operator.PLUS) == Symbolic('x+2')
    assert Symbolic('x+1').operation(Symbolic('y'), Operator.MINUS) == Symbolic('x+1-y')
    assert Symbolic('x').operation(Symbolic('a-b'), Operator.MINUS) == Symbolic('x-(a-b)')
    assert Symbolic('x+1').operation(Numeric(2), Operator.EXP) == Symbolic('(x+1)^2')
    assert Symbolic('x').operation(Numeric(-3), Operator.MINUS) == Symbolic('x-(-3)')


def test_products_with_variables_are_implicit():
    assert combine_terms(Numeric(3), Symbolic('x'), Operator.MULT) == Symbolic('3x')
    assert combine_terms(Symbolic('x'), Numeric(3), Operator.MULT) == Symbolic('3x')
    assert combine_terms(Numeric(2), Symbolic('x+1'), Operator.MULT) == Symbolic('2(x+1)')
    assert combine_terms(Symbolic('x'), Symbolic('y'), Operator.MULT) == Symbolic('x*y')


def test_implicit_product_identities():
    assert combine_terms(Numeric(1), Symbolic('x'), Operator.MULT) == Symbolic('x')
    assert combine_terms(Numeric(0), Symbolic('x'), Operator.MULT) == Numeric(0)
    assert combine_terms(Numeric(-1), Symbolic('x'), Operator.MULT) == Symbolic('-x')


def test_numeric_products_are_computed():
    assert combine_terms(Numeric(3), Numeric(4), Operator.MULT) == Numeric(12)


def test_sign_and_negate():
    assert Symbolic('-x').sign is UnarySymbol.NEGATIVE
    assert Numeric(5).sign is UnarySymbol.POSITIVE
    assert Symbolic('-x').negate() == Symbolic('x')
    assert Symbolic('x+1').negate() == Symbolic('-(x+1)')
    assert Numeric(5).negate() == Numeric(-5)


def test_find_variable_and_exponent():
    assert Symbolic('3x^2').find_variable() == 'x'
    assert Symbolic('3x^2').find_exponent() == '2'
    assert Symbolic('3x').find_exponent() == '1'
    assert Numeric(5).find_variable() is None


def test_parenthesis_helpers():
    assert is_wrapped('(x+1)')
    assert not is_wrapped('(x)+(1)')
    assert Symbolic('x+1').add_parenthesis() == Symbolic('(x+1)')
    assert Symbolic('(x+1)').add_parenthesis() == Symbolic('(x+1)')
    assert Symbolic('(x)').force_parenthesis() == Symbolic('((x))')
    assert Symbolic('((x+1))').remove_parenthesis() == Symbolic('x+1')
    assert Symbolic('(x)+(y)').remove_parenthesis() == Symbolic('(x)+(y)')
    assert Symbolic('(5)').remove_parenthesis() == Numeric(5)


def test_from_text():
    assert Term.from_text('2.5') == Numeric(Decimal('2.5'))
    assert Term.from_text('2x') == Symbolic('2x')


def test_equality_is_by_kind():
    assert Numeric(1) != Symbolic('1')
    assert hash(Numeric(Decimal('1.0'))) == hash(Numeric(1))
