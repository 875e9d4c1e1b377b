from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

from .definitions import Associativity, Operator, UnarySymbol, ADDITIVE_PRECEDENCE, ATOM_PRECEDENCE, \
    COMPARISON_PRECEDENCE, EXPONENT_PRECEDENCE, MULTIPLICATIVE_PRECEDENCE, UNARY_PRECEDENCE

__all__ = [
    'Term',
    'Numeric',
    'Symbolic',
    'DivisionError',
    'combine_terms',
    'normalize',
    'round_decimal',
    'is_wrapped',
]

# Working precision for + - * and integer powers. Large enough that sums and products of realistic operands are
# exact; only division and fractional powers are rounded to the configured precision.
EXACT_DIGITS = 1000

# Extra digits carried by division and fractional powers so that rounding the final result to the configured
# precision does not expose the intermediate rounding (1/3*3 renders as 1).
GUARD_DIGITS = 5

DEFAULT_PRECISION = 10

_OPERATOR_CHARS = set('+-*/^<>=!')


class DivisionError(ZeroDivisionError):
    pass


def round_decimal(value: Decimal, precision: int):
    """ Round `value` to `precision` significant digits, half up """
    with localcontext() as c:
        c.prec = precision
        c.rounding = ROUND_HALF_UP
        return +value


def normalize(value: Decimal, precision=None):
    """
    Render a Decimal in plain notation (never scientific) with trailing zeros removed. If `precision` is given, the
    value is first rounded to that many significant digits.
    """
    if precision is not None:
        value = round_decimal(value, precision)
    if value.is_zero():
        return '0'
    with localcontext() as c:
        c.prec = EXACT_DIGITS
        value = value.normalize()
    return '{:f}'.format(value)


def is_wrapped(text):
    """ Returns True if `text` is enclosed by a single pair of parentheses, Ex. "(x+1)" but not "(x)+(1)" """
    if len(text) < 2 or text[0] != '(' or text[-1] != ')':
        return False

    depth = 0
    for i, ch in enumerate(text):
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0 and i < len(text) - 1:
                return False
    return depth == 0


def scan_precedence(text):
    """
    Returns the precedence of the loosest-binding operation at the top level (outside of any parentheses) of a
    rendered expression. Adjacent operands, Ex. "2x" or ")(", count as multiplication.
    """
    precedence = ATOM_PRECEDENCE
    depth = 0
    prev = None

    for ch in text:
        if depth == 0:
            if ch in '<>=!':
                precedence = min(precedence, COMPARISON_PRECEDENCE)
            elif ch in '+-':
                if prev is None:
                    precedence = min(precedence, UNARY_PRECEDENCE)
                elif prev not in _OPERATOR_CHARS:
                    precedence = min(precedence, ADDITIVE_PRECEDENCE)
            elif ch in '*/':
                precedence = min(precedence, MULTIPLICATIVE_PRECEDENCE)
            elif ch == '^':
                precedence = min(precedence, EXPONENT_PRECEDENCE)
            elif prev is not None and _is_implicit_product(prev, ch):
                precedence = min(precedence, MULTIPLICATIVE_PRECEDENCE)

        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
        prev = ch

    return precedence


def _is_implicit_product(prev, ch):
    ends_operand = prev.isdigit() or prev.isalpha() or prev in ').'
    starts_operand = ch.isdigit() or ch.isalpha() or ch in '(.'
    if not (ends_operand and starts_operand):
        return False
    if (prev.isdigit() or prev == '.') and (ch.isdigit() or ch == '.'):
        # Same number
        return False
    if prev.isalpha() and (ch.isalpha() or ch == '('):
        # Same identifier, or a function call
        return False
    return True


class Term:
    """
    The value produced by evaluation: either an exact decimal number (``Numeric``) or a symbolic expression kept as
    text (``Symbolic``). Terms are immutable; every operation returns a new Term.
    """
    precedence = ATOM_PRECEDENCE
    value = None

    @property
    def is_numeric(self):
        return False

    def render(self, precision=None):
        """ Rendering of the term. Numeric terms are rounded to `precision` significant digits if it is given. """
        raise NotImplementedError('{} does not implement render'.format(type(self).__name__))

    @staticmethod
    def from_text(text):
        """ Returns a Numeric term if `text` is a plain decimal number, otherwise a Symbolic term """
        try:
            return Numeric(Decimal(text))
        except (InvalidOperation, ValueError):
            return Symbolic(text)

    @staticmethod
    def zero():
        return Numeric(0)

    @property
    def sign(self):
        """ NEGATIVE if a minus sign appears in the rendering before the first digit """
        for ch in str(self):
            if ch == '-':
                return UnarySymbol.NEGATIVE
            if ch.isdigit():
                return UnarySymbol.POSITIVE
        return UnarySymbol.POSITIVE

    def find_variable(self):
        """ Returns the first character of the rendering that is not a digit, decimal point, operator or parenthesis """
        for ch in str(self):
            if ch.isdigit() or ch in _OPERATOR_CHARS or ch in '.()[], ':
                continue
            return ch
        return None

    def find_exponent(self):
        """ The character following the first '^' of the rendering, or "1" if there is no exponent """
        text = str(self)
        i = text.find('^')
        if i == -1 or i + 1 >= len(text):
            return '1'
        return text[i + 1]

    def add_parenthesis(self):
        """ Wrap the rendering in parentheses unless it is already wrapped by a single pair """
        text = str(self)
        if not text or is_wrapped(text):
            return self
        return Symbolic('(' + text + ')', ATOM_PRECEDENCE)

    def force_parenthesis(self):
        return Symbolic('(' + str(self) + ')', ATOM_PRECEDENCE)

    def remove_parenthesis(self):
        """ Strip every redundant pair of parentheses wrapping the whole rendering """
        text = str(self)
        if not is_wrapped(text):
            return self
        while is_wrapped(text):
            text = text[1:-1]
        return Term.from_text(text)

    def negate(self):
        raise NotImplementedError('{} does not implement negate'.format(type(self).__name__))

    def operation(self, other: 'Term', op: Operator, params=None):
        """
        Combine two terms with a binary operator. If both terms are numeric the result is computed with decimal
        arithmetic, otherwise the renderings are joined with the operator symbol, parenthesizing operands that bind
        more loosely than `op`.
        """
        precision = params.precision if params is not None else None
        if self.is_numeric and other.is_numeric:
            return Numeric(_arithmetic(self.value, other.value, op, precision))

        left = _operand_text(self, op, precision, Associativity.R_TO_L)
        right = _operand_text(other, op, precision, Associativity.L_TO_R)
        return Symbolic(left + op.symbol + right, op.precedence)

    def __str__(self):
        return self.render()

    def __eq__(self, other):
        if not isinstance(other, Term):
            return NotImplemented
        return type(self) == type(other) and self._key() == other._key()

    def __hash__(self):
        return hash((type(self).__name__, self._key()))

    def _key(self):
        raise NotImplementedError


class Numeric(Term):
    def __init__(self, value):
        if isinstance(value, float):
            value = Decimal(repr(value))
        elif not isinstance(value, Decimal):
            value = Decimal(value)
        self.value = value

    @property
    def is_numeric(self):
        return True

    @property
    def precedence(self):
        return UNARY_PRECEDENCE if self.value < 0 else ATOM_PRECEDENCE

    def render(self, precision=None):
        return normalize(self.value, precision)

    def negate(self):
        return Numeric(-self.value)

    def rounded(self, precision):
        """ Returns a copy rounded to `precision` significant digits """
        return Numeric(round_decimal(self.value, precision))

    def _key(self):
        return self.value

    def __repr__(self):
        return '{}({})'.format(type(self).__name__, repr(str(self)))


class Symbolic(Term):
    def __init__(self, text, precedence=None):
        self.text = text
        self._precedence = precedence

    @property
    def precedence(self):
        if self._precedence is None:
            self._precedence = scan_precedence(self.text)
        return self._precedence

    def render(self, precision=None):
        return self.text

    def negate(self):
        if self.text.startswith('-') and self.precedence == UNARY_PRECEDENCE:
            return Term.from_text(self.text[1:])
        if self.precedence < UNARY_PRECEDENCE:
            return Symbolic('-(' + self.text + ')', UNARY_PRECEDENCE)
        return Symbolic('-' + self.text, UNARY_PRECEDENCE)

    def _key(self):
        return self.text

    def __repr__(self):
        return '{}({})'.format(type(self).__name__, repr(self.text))


def combine_terms(left: Term, right: Term, op: Operator, params=None):
    """
    Combine the results of a binary node. A product where either side carries a free variable is written as an
    implicit multiplication ("3x") instead of going through ``Term.operation``.
    """
    if op is Operator.MULT and (left.find_variable() or right.find_variable()):
        return implicit_product(left, right, params)
    return left.operation(right, op, params)


def implicit_product(left: Term, right: Term, params=None):
    """ Write the product of two terms with the numeric coefficient first, omitting '*' where it is unambiguous """
    precision = params.precision if params is not None else None

    if right.is_numeric and not left.is_numeric:
        left, right = right, left
    if left.is_numeric:
        if left.value.is_zero():
            return Numeric(0)
        if left.value == 1:
            return right
        if left.value == -1:
            return right.negate()

    left_text = _operand_text(left, Operator.MULT, precision, Associativity.R_TO_L)
    right_text = _operand_text(right, Operator.MULT, precision, Associativity.L_TO_R)

    ends_operand = left_text[-1].isdigit() or left_text[-1] == ')'
    starts_operand = right_text[0].isalpha() or right_text[0] == '('
    if ends_operand and starts_operand:
        return Symbolic(left_text + right_text, MULTIPLICATIVE_PRECEDENCE)
    return Symbolic(left_text + '*' + right_text, MULTIPLICATIVE_PRECEDENCE)


def _operand_text(term: Term, op: Operator, precision, side):
    """
    Rendering of `term` as an operand of `op`. `side` is R_TO_L for the left operand (it is parenthesized at equal
    precedence only for right associative operators) and L_TO_R for the right operand.
    """
    text = term.render(precision)
    precedence = term.precedence

    if precedence < op.precedence:
        wrap = True
    elif precedence == op.precedence:
        wrap = op.associativity == side
    else:
        # A leading sign on the right operand reads badly after another operator, Ex. "x-(-3)"
        wrap = side == Associativity.L_TO_R and text.startswith('-')

    if wrap and not is_wrapped(text):
        return '(' + text + ')'
    return text


def _arithmetic(a: Decimal, b: Decimal, op: Operator, precision):
    precision = precision or DEFAULT_PRECISION

    with localcontext() as c:
        c.prec = EXACT_DIGITS
        c.rounding = ROUND_HALF_UP

        if op is Operator.PLUS or op is Operator.PEQUAL:
            return a + b
        if op is Operator.MINUS:
            return a - b
        if op is Operator.MULT:
            return a * b
        if op is Operator.DIV:
            if b.is_zero():
                raise DivisionError('division by zero')
            c.prec = precision + GUARD_DIGITS
            return a / b
        if op is Operator.EXP:
            return _power(a, b, precision)
        if op is Operator.GT:
            return Decimal(int(a > b))
        if op is Operator.LT:
            return Decimal(int(a < b))
        if op is Operator.GTE:
            return Decimal(int(a >= b))
        if op is Operator.LTE:
            return Decimal(int(a <= b))
        if op is Operator.NEQ:
            return Decimal(int(a != b))
        if op is Operator.EQUAL:
            return Decimal(int(a == b))

    raise ValueError("Unsupported operator '{}'".format(op))


def _power(base: Decimal, exponent: Decimal, precision):
    """ Integer exponents use repeated multiplication; fractional exponents are rounded to `precision` """
    if exponent == exponent.to_integral_value():
        n = int(exponent)
        if n == 0:
            return Decimal(1)
        if n > 0:
            return base ** n
        if base.is_zero():
            raise DivisionError('zero raised to a negative power')
        result = base ** -n
        with localcontext() as c:
            c.prec = precision + GUARD_DIGITS
            return Decimal(1) / result

    if base < 0:
        raise ValueError('negative base {} raised to non-integer power {}'.format(base, exponent))
    if base.is_zero():
        return Decimal(0)
    with localcontext() as c:
        c.prec = precision + GUARD_DIGITS
        return base ** exponent
