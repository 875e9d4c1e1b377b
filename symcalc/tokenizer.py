from collections import namedtuple
from decimal import Decimal
from enum import Enum

from .definitions import Operator


class ExpressionSyntaxError(Exception):
    def __init__(self, msg, expr, i, length=1):
        super().__init__(msg)
        self.i = i
        self.length = max(1, length)
        self.expr = expr

    def __str__(self):
        return super().__str__() + '\n{}\n{}{}'.format(
            self.expr,
            ' ' * self.i,
            '^' * self.length
        )


class LexicalError(ExpressionSyntaxError):
    """ Raised when the tokenizer meets a character that cannot start any token """
    pass


class TokenType(Enum):
    NUMBER = 'number'
    IDENTIFIER = 'identifier'
    OPERATOR = 'operator'
    EQUALS = '='
    COMMA = ','
    LPAREN = '('
    RPAREN = ')'
    LBRACKET = '['
    RBRACKET = ']'
    SPACE = 'space'


_DIGITS = frozenset('0123456789')

_PUNCTUATION = {
    '=': TokenType.EQUALS,
    ',': TokenType.COMMA,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
}


class Token(namedtuple('Token', ['type', 'text', 'value', 'i'])):
    """
    A single lexical unit of an expression. `text` is the exact source slice, `value` is the parsed payload (a
    Decimal for numbers, an Operator for operators, the text otherwise) and `i` is the index of the first character
    in the source expression.
    """
    __slots__ = ()

    @property
    def end(self):
        return self.i + len(self.text)

    def __repr__(self):
        return '<{} type={}, text={}>'.format(type(self).__name__, self.type.name, repr(self.text))


def is_digit(ch):
    """ ASCII digits only. Other unicode digits such as superscripts are not numbers. """
    return ch in _DIGITS


def is_identifier_char(ch):
    """ Identifier characters are letters (including greek letters like π) and underscores. Digits are not. """
    return ch.isalpha() or ch == '_'


def tokenize(expr: str):
    """
    Scan an expression into a list of tokens. Whitespace is kept as SPACE tokens because it separates elements of
    vector literals and keeps ``1 2`` from reading as ``12``.

    :param expr: Expression string
    :return: List[Token]
    """
    tokens = []
    operators = Operator.symbols()
    i = 0
    end = len(expr)

    while i < end:
        ch = expr[i]

        if ch.isspace():
            j = i
            while j < end and expr[j].isspace():
                j += 1
            tokens.append(Token(TokenType.SPACE, expr[i:j], ' ', i))
            i = j
            continue

        if is_digit(ch) or (ch == '.' and i + 1 < end and is_digit(expr[i + 1])):
            j = _scan_number(expr, i, end)
            text = expr[i:j]
            tokens.append(Token(TokenType.NUMBER, text, Decimal(text), i))
            i = j
            continue

        if is_identifier_char(ch):
            j = i
            while j < end and is_identifier_char(expr[j]):
                j += 1
            text = expr[i:j]
            tokens.append(Token(TokenType.IDENTIFIER, text, text, i))
            i = j
            continue

        # Longest match first so ">=" is not read as ">" followed by "="
        for symbol in operators:
            if expr.startswith(symbol, i):
                tokens.append(Token(TokenType.OPERATOR, symbol, Operator.from_symbol(symbol), i))
                i += len(symbol)
                break
        else:
            if ch in _PUNCTUATION:
                tokens.append(Token(_PUNCTUATION[ch], ch, ch, i))
                i += 1
            else:
                raise LexicalError("Unrecognized character '{}'".format(ch), expr, i)

    return tokens


def _scan_number(expr, i, end):
    """ Returns the end index of the number literal starting at `i`. Only one decimal point is eaten. """
    decimal = False
    j = i
    while j < end:
        ch = expr[j]
        if is_digit(ch):
            j += 1
        elif ch == '.' and not decimal:
            decimal = True
            j += 1
        else:
            break
    return j
