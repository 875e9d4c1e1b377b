from copy import copy
from enum import Enum


class Associativity(Enum):
    """
    Associativity defines the direction operators are evaluated when strung together
    without parentheses. For example, division is left-to-right associative, so
    2/3/4 = (2/3)/4 whereas exponentiation is right-to-left associative, so
    2^3^4 = 2^(3^4).
    """
    L_TO_R = 1
    R_TO_L = 2


# Precedence tiers shared by the parser and by Term rendering. Higher number = higher
# precedence.
COMPARISON_PRECEDENCE = 1
ADDITIVE_PRECEDENCE = 2
MULTIPLICATIVE_PRECEDENCE = 3
UNARY_PRECEDENCE = 4
EXPONENT_PRECEDENCE = 5
ATOM_PRECEDENCE = 9


class Operator(Enum):
    """
    The fixed set of binary operators. Each member carries its canonical rendering,
    its precedence tier and its associativity.
    """
    PLUS = ('+', ADDITIVE_PRECEDENCE, Associativity.L_TO_R)
    MINUS = ('-', ADDITIVE_PRECEDENCE, Associativity.L_TO_R)
    MULT = ('*', MULTIPLICATIVE_PRECEDENCE, Associativity.L_TO_R)
    DIV = ('/', MULTIPLICATIVE_PRECEDENCE, Associativity.L_TO_R)
    EXP = ('^', EXPONENT_PRECEDENCE, Associativity.R_TO_L)
    GT = ('>', COMPARISON_PRECEDENCE, Associativity.L_TO_R)
    LT = ('<', COMPARISON_PRECEDENCE, Associativity.L_TO_R)
    GTE = ('>=', COMPARISON_PRECEDENCE, Associativity.L_TO_R)
    LTE = ('<=', COMPARISON_PRECEDENCE, Associativity.L_TO_R)
    NEQ = ('!=', COMPARISON_PRECEDENCE, Associativity.L_TO_R)
    EQUAL = ('==', COMPARISON_PRECEDENCE, Associativity.L_TO_R)
    PEQUAL = ('+=', COMPARISON_PRECEDENCE, Associativity.L_TO_R)

    def __init__(self, symbol, precedence, associativity):
        self.symbol = symbol
        self.precedence = precedence
        self.associativity = associativity

    @classmethod
    def from_symbol(cls, symbol):
        """ Get an operator from its rendering, Ex. ``Operator.from_symbol('>=')``. Raises KeyError if unknown. """
        for op in cls:
            if op.symbol == symbol:
                return op
        raise KeyError(symbol)

    @classmethod
    def symbols(cls):
        """ All operator renderings, longest first so two-character operators are matched before one-character ones """
        return sorted((op.symbol for op in cls), key=len, reverse=True)

    @property
    def is_comparison(self):
        return self.precedence == COMPARISON_PRECEDENCE

    def __str__(self):
        return self.symbol


class UnarySymbol(Enum):
    POSITIVE = '+'
    NEGATIVE = '-'


class ArityError(TypeError):
    """ A function was called with the wrong number of arguments """
    pass


class Definition:
    """ Base class for named callables that can appear in a function call node. """

    def __init__(self, name, args, help_text=None):
        self.name = name
        self.args = list(args)
        self.help_text = help_text

    def copy(self):
        """ Make a shallow copy of this definition object """
        return copy(self)

    def check_inputs(self, n_inputs):
        """ Verify that the number of inputs `n_inputs` passed is allowed for this function. Raises ArityError if not. """
        expected = len(self.args)
        if n_inputs != expected:
            plural = '' if expected == 1 else 's'
            raise ArityError('{} expected {} argument{}, got {}'
                             .format(self.signature, expected, plural, n_inputs))

    @property
    def signature(self):
        """ The function signature, Ex. 'foo(a, b, c)'. """
        return '{}({})'.format(self.name, ', '.join(self.args))

    def __str__(self):
        return self.signature

    def __repr__(self):
        return '<{} name={}, args={}>'.format(
            type(self).__name__,
            repr(self.name),
            repr(self.args),
        )


class FunctionDefinition(Definition):
    """
    A user defined function, created from a definition expression such as ``f(x, y) = x^2 + y``. Function definitions
    are immutable once created: the body is a syntax tree that is never rewritten in place (calls substitute into a
    copy or bind arguments in a pushed scope).
    """

    def __init__(self, name, params, body, expression=None):
        if len(set(params)) != len(params):
            raise ArgumentError('Duplicate parameter name in {}({})'.format(name, ', '.join(params)))
        super().__init__(name, params)
        self.body = body
        self.expression = expression

    @property
    def params(self):
        return self.args

    def __str__(self):
        return '{} = {}'.format(self.signature, self.body)


class ArgumentError(ValueError):
    pass


class NativeFunction(Definition):
    def __init__(self, name, args, func, trigonometric=False, inverse=False, manual_eval=False,
                 derivative=None, help_text=None):
        """
        Define a built-in function.

        `func` receives already-evaluated ``decimal.Decimal`` inputs and returns a Decimal or a float. If any input is
        symbolic, `func` is not called and the symbolic call text ``name(args)`` is returned instead.

        `trigonometric` functions respect the angle mode: inputs of direct functions are converted from degrees, and
        outputs of `inverse` functions are converted to degrees, when the context is in degree mode.

        If `manual_eval` is True, inputs are not evaluated, and `func` is passed ``ctx, *nodes`` instead. This is used
        by functions such as ``sum`` that need to inspect their argument's syntax tree.

        :param name: Function name
        :param args: Argument names
        :param func: Function implementation
        :param trigonometric: Whether the function takes (or returns) an angle
        :param inverse: Whether the function returns an angle rather than taking one
        :param manual_eval: If True, pass unevaluated syntax tree nodes to `func`
        :param derivative: Derivative of the function in terms of `x`, Ex. "-sin(x)" for cos. Functions without one
            cannot be differentiated symbolically.
        :param help_text: Short description
        """
        super().__init__(name, args, help_text=help_text)
        self.func = func
        self.is_trigonometric = trigonometric
        self.is_inverse = inverse
        self.manual_eval = manual_eval
        self.derivative = derivative

    def __repr__(self):
        return '<{} name={}, args={}, func={}>'.format(
            type(self).__name__,
            repr(self.name),
            repr(self.args),
            repr(self.func),
        )


class Constant(Definition):
    """ A named numeric constant such as ``pi``. `value` is a ``decimal.Decimal``. """

    def __init__(self, name, value, help_text=None):
        super().__init__(name, [], help_text=help_text)
        self.value = value

    def __str__(self):
        return '{} = {}'.format(self.name, self.value)


class AngleMode(Enum):
    RADIANS = 'radians'
    DEGREES = 'degrees'

    @classmethod
    def from_name(cls, name):
        """ Get an angle mode from a name such as 'deg', 'degrees' or 'rad'. Raises ValueError if unknown. """
        if isinstance(name, AngleMode):
            return name
        key = str(name).strip().lower()
        for mode in cls:
            if mode.value.startswith(key[:3]) and len(key) >= 3:
                return mode
        raise ValueError("Unknown angle mode '{}'".format(name))
