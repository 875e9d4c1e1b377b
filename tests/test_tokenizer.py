"""Tests for the tokenizer."""
from decimal import Decimal

import pytest

from symcalc.definitions import Operator
from symcalc.tokenizer import ExpressionSyntaxError, LexicalError, TokenType, tokenize


def test_numbers_identifiers_and_operators():
    tokens = tokenize('3.5x+12')
    assert [tok.type for tok in tokens] == [
        TokenType.NUMBER, TokenType.IDENTIFIER, TokenType.OPERATOR, TokenType.NUMBER
    ]
    assert tokens[0].value == Decimal('3.5')
    assert tokens[1].value == 'x'
    assert tokens[2].value is Operator.PLUS
    assert tokens[3].value == Decimal(12)


def test_leading_decimal_point():
    tokens = tokenize('.5')
    assert len(tokens) == 1
    assert tokens[0].value == Decimal('0.5')


def test_digits_end_identifiers():
    tokens = tokenize('x2')
    assert [tok.type for tok in tokens] == [TokenType.IDENTIFIER, TokenType.NUMBER]


def test_two_character_operators_first():
    tokens = tokenize('a>=b')
    assert len(tokens) == 3
    assert tokens[1].value is Operator.GTE

    tokens = tokenize('a+=b')
    assert tokens[1].value is Operator.PEQUAL


def test_equals_is_punctuation():
    tokens = tokenize('f(x)=x')
    assert [tok.type for tok in tokens] == [
        TokenType.IDENTIFIER, TokenType.LPAREN, TokenType.IDENTIFIER, TokenType.RPAREN,
        TokenType.EQUALS, TokenType.IDENTIFIER,
    ]


def test_whitespace_run_is_one_token():
    tokens = tokenize('1  2')
    assert [tok.type for tok in tokens] == [TokenType.NUMBER, TokenType.SPACE, TokenType.NUMBER]
    assert tokens[1].text == '  '


def test_token_positions():
    tokens = tokenize('abc + 1')
    assert tokens[0].i == 0
    assert tokens[0].end == 3
    assert tokens[2].i == 4


def test_unknown_character():
    with pytest.raises(LexicalError) as exc_info:
        tokenize('2 # 3')
    assert exc_info.value.i == 2
    assert str(exc_info.value).endswith('2 # 3\n  ^')


def test_lexical_error_is_syntax_error():
    assert issubclass(LexicalError, ExpressionSyntaxError)


@pytest.mark.parametrize('expression, i', [
    ('x²', 1),
    ('3٣', 1),
    ('½+1', 0),
])
def test_unicode_digits_are_not_numbers(expression, i):
    with pytest.raises(LexicalError) as exc_info:
        tokenize(expression)
    assert exc_info.value.i == i
