"""
Implementations of the native functions. Every function receives ``decimal.Decimal`` inputs and runs inside a decimal
context whose precision is the configured precision plus guard digits. Trigonometric functions go through floats;
everything else stays in decimal arithmetic.
"""
import math
from decimal import Decimal, InvalidOperation, localcontext

from .definitions import AngleMode, NativeFunction
from .term import GUARD_DIGITS, DivisionError, Numeric, Symbolic

PI = Decimal('3.14159265358979323846264338327950288419716939937510')
E = Decimal('2.71828182845904523536028747135266249775724709369995')

# fac(n) multiplies n terms; anything above this is refused instead of looping for minutes
FACTORIAL_LIMIT = 10000


def apply_native(ctx, native: NativeFunction, inputs):
    """
    Invoke a native function on evaluated Terms (or on syntax tree nodes if it is manual_eval). If any input is
    symbolic, the result is the symbolic call ``name(args)``.
    """
    native.check_inputs(len(inputs))

    if native.manual_eval:
        return native.func(ctx, *inputs)

    if not all(term.is_numeric for term in inputs):
        return Symbolic('{}({})'.format(native.name, ', '.join(str(term) for term in inputs)))

    args = [term.value for term in inputs]
    degrees = ctx.params.angle_mode == AngleMode.DEGREES

    with localcontext() as c:
        c.prec = ctx.params.precision + GUARD_DIGITS

        if native.is_trigonometric and not native.is_inverse and degrees:
            args = [a * PI / 180 for a in args]

        result = native.func(*args)
        if isinstance(result, float):
            if math.isnan(result) or math.isinf(result):
                raise ValueError('{} is undefined at {}'.format(
                    native.name, ', '.join(str(term) for term in inputs)))
            result = Decimal(repr(result))
        elif isinstance(result, int):
            result = Decimal(result)

        if native.is_trigonometric and native.is_inverse and degrees:
            result = result * 180 / PI

        # Drop the float noise past the working precision
        result = +result

    return Numeric(result)


def _float_function(f):
    """ Wrap a math function taking floats """
    def wrapper(x):
        return f(float(x))
    wrapper.__name__ = f.__name__
    return wrapper


def _reciprocal(f, name):
    """ 1/f(x), raising DivisionError where f(x) is zero """
    def wrapper(x):
        denominator = f(float(x))
        if abs(denominator) < 1e-15:
            raise DivisionError('{} is undefined at {}'.format(name, x))
        return 1 / denominator
    wrapper.__name__ = name
    return wrapper


def _inverse_reciprocal(f, name):
    """ f(1/x), Ex. asec(x) = acos(1/x) """
    def wrapper(x):
        if x == 0:
            raise DivisionError('{} is undefined at 0'.format(name))
        return f(1 / float(x))
    wrapper.__name__ = name
    return wrapper


# --- Trigonometric --- #

sin = _float_function(math.sin)
cos = _float_function(math.cos)
tan = _float_function(math.tan)
cot = _reciprocal(math.tan, 'cot')
sec = _reciprocal(math.cos, 'sec')
csc = _reciprocal(math.sin, 'csc')

sinh = _float_function(math.sinh)
cosh = _float_function(math.cosh)
tanh = _float_function(math.tanh)

asin = _float_function(math.asin)
acos = _float_function(math.acos)
atan = _float_function(math.atan)
asec = _inverse_reciprocal(math.acos, 'asec')
acsc = _inverse_reciprocal(math.asin, 'acsc')


def acot(x):
    if x == 0:
        return math.pi / 2
    return math.atan(1 / float(x))


# Derivatives of the trigonometric family in terms of x. The chain rule is applied by the calculus engine.
DERIVATIVES = {
    'sin': 'cos(x)',
    'cos': '-sin(x)',
    'tan': 'sec(x)^2',
    'cot': '-csc(x)^2',
    'sec': 'sec(x)*tan(x)',
    'csc': '-csc(x)*cot(x)',
    'sinh': 'cosh(x)',
    'cosh': 'sinh(x)',
    'tanh': '1/cosh(x)^2',
    'asin': '1/sqrt(1-x^2)',
    'acos': '-1/sqrt(1-x^2)',
    'atan': '1/(x^2+1)',
    'acot': '-1/(x^2+1)',
    'asec': '1/(abs(x)*sqrt(x^2-1))',
    'acsc': '-1/(abs(x)*sqrt(x^2-1))',
}


# --- Algebraic --- #

def cbrt(x: Decimal):
    if x.is_zero():
        return Decimal(0)
    root = abs(x) ** (Decimal(1) / 3)
    return root if x > 0 else -root


def sqrt(x: Decimal):
    if x < 0:
        raise ValueError('sqrt of negative number {}'.format(x))
    return x.sqrt()


def absolute(x: Decimal):
    return abs(x)


def ln(x: Decimal):
    if x <= 0:
        raise ValueError('ln is undefined for {}'.format(x))
    return x.ln()


def log(x: Decimal):
    if x <= 0:
        raise ValueError('log is undefined for {}'.format(x))
    return x.log10()


def fac(n: Decimal):
    """
    Product n * (n-1) * (n-2) * ... of the terms that are still positive. For integers this is the factorial; zero and
    negative inputs give 1, and non-integers give the product of their descending chain, Ex. fac(2.5) = 2.5*1.5*0.5.
    """
    if n > FACTORIAL_LIMIT:
        raise OverflowError('fac({}) is too large'.format(n))
    result = Decimal(1)
    i = n
    while i > 0:
        result *= i
        i -= 1
    return result


def perm(n: Decimal, k: Decimal):
    """ Number of ordered selections of k items from n, n! / (n-k)! """
    return fac(n) / fac(n - k)


def comb(n: Decimal, k: Decimal):
    """ Number of unordered selections of k items from n, n! / ((n-k)! k!) """
    return perm(n, k) / fac(k)


def mod(a: Decimal, b: Decimal):
    """ Remainder of the truncated division, with the sign of `a` """
    if b.is_zero():
        raise DivisionError('mod by zero')
    try:
        return a % b
    except InvalidOperation:
        raise ValueError('mod({}, {}) is out of range'.format(a, b))


def div(a: Decimal, b: Decimal):
    """ Integer quotient, truncated toward zero """
    if b.is_zero():
        raise DivisionError('div by zero')
    try:
        return a // b
    except InvalidOperation:
        raise ValueError('div({}, {}) is out of range'.format(a, b))


def gcf(a: Decimal, b: Decimal):
    """ Greatest common factor by Euclid's algorithm """
    if b.is_zero():
        raise DivisionError('gcf({}, 0) is undefined'.format(a))
    while not b.is_zero():
        a, b = b, a % b
    return abs(a)
