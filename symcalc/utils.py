import time
from typing import Union

from . import natives
from .calculus import antiderivative, derivative, find_roots as _find_roots, inline_functions, series_sum
from .context import Context
from .definitions import AngleMode, Constant, NativeFunction
from .matrix import characteristic_polynomial as _characteristic_polynomial, determinant as _determinant, \
    echelon as _echelon, inverse as _inverse, matrix, row_reduce as _row_reduce
from .parser import FunctionDefinitionNode, MatrixNode, Node, SpaceNode, VectorNode, free_variables, \
    parse as _parse, substitute_constants
from .simplifier import factor, simplify as _simplify
from .term import Numeric, Term

__all__ = [
    'create_default_context',
    'parse',
    'evaluate',
    'define_function',
    'simplify',
    'differentiate',
    'integrate',
    'find_roots',
    'set_precision',
    'set_angle_mode',
    'parse_matrix',
    'row_reduce',
    'echelon',
    'determinant',
    'inverse',
    'characteristic_polynomial',
    'tree',
    'console',
]


# --- Calc base --- #

def parse(ctx: Context, expression: str):
    """ Parse an expression into a syntax tree """
    return _parse(ctx, expression)


def evaluate(ctx: Context, expression: Union[str, Node], bindings=None):
    """
    Evaluate an expression to a Term.

    The request runs on a snapshot of ``ctx.params``. `bindings` maps variable names to values (numbers, Terms or
    expressions) for this request only; they live in a scope that is discarded afterwards, together with any function
    defined while they are in effect.
    """
    if not bindings:
        return _evaluate(ctx, expression)

    with ctx.with_scope():
        for name, value in bindings.items():
            ctx.bind(name, _to_term(ctx, value))
        return _evaluate(ctx, expression)


def _evaluate(ctx: Context, expression):
    with ctx.with_params() as params:
        root = _parse(ctx, expression) if isinstance(expression, str) else expression
        if isinstance(root, SpaceNode):
            return Numeric(0)

        if params.substitute_constants:
            root = substitute_constants(root, ctx)
        if params.simplify and not isinstance(root, FunctionDefinitionNode):
            root = _simplify(factor(root, ctx), ctx)

        answer = root.evaluate(ctx)

        if answer.is_numeric:
            if abs(answer.value) < params.zero_epsilon:
                return Numeric(0)
            return answer.rounded(params.precision)
        return answer.remove_parenthesis()


def _to_term(ctx, value):
    if isinstance(value, Term):
        return value
    if isinstance(value, str):
        return evaluate(ctx, value)
    return Numeric(value)


def define_function(ctx: Context, expression: str):
    """
    Add a function from a definition expression such as ``f(x, y) = x^2 + y``

    :raises ExpressionSyntaxError: if `expression` is not a function definition
    :raises DefinitionError: if the name is taken by a native, a constant or another function
    """
    return ctx.add_function(expression)


def simplify(ctx: Context, expression: Union[str, Node]):
    """ Returns the factored and additively folded syntax tree of an expression, Ex. (x+1)(x-1) gives x^2-1 """
    root = _parse(ctx, expression) if isinstance(expression, str) else expression
    with ctx.with_params():
        return _simplify(factor(root, ctx), ctx)


# --- Calculus --- #

def differentiate(ctx: Context, expression: Union[str, Node], wrt: str):
    """ Symbolic derivative of an expression with respect to the variable `wrt`, Ex. x^2 gives 2x """
    root = _parse(ctx, expression) if isinstance(expression, str) else expression
    return evaluate(ctx, derivative(inline_functions(root, ctx), wrt, ctx))


def integrate(ctx: Context, expression: Union[str, Node], wrt: str):
    """
    Antiderivative of an expression with respect to `wrt` (without the constant of integration), Ex. x^2 gives x^3/3

    :raises NotImplementedError: for integrands the heuristic can't handle, such as products of two functions of `wrt`
    """
    root = _parse(ctx, expression) if isinstance(expression, str) else expression
    return evaluate(ctx, antiderivative(inline_functions(root, ctx), wrt, ctx))


def find_roots(ctx: Context, expression: Union[str, Node], *variables: str):
    """
    Real roots of a one variable expression. The variable is inferred if it is not given.

    :return: Sorted list of distinct roots as Decimals
    :raises ConvergenceError: if no root is found
    """
    root = _parse(ctx, expression) if isinstance(expression, str) else expression
    if not variables:
        variables = free_variables(substitute_constants(inline_functions(root, ctx), ctx), ctx)
    if len(variables) != 1:
        raise ValueError('find_roots solves for exactly one variable, got {}'.format(
            ', '.join(variables) or 'none'))

    with ctx.with_params():
        return _find_roots(ctx, root, variables[0])


# --- Configuration --- #

def set_precision(ctx: Context, digits: int):
    """ Set the number of significant digits results are rounded to """
    digits = int(digits)
    if digits < 1:
        raise ValueError('precision must be at least 1 digit, got {}'.format(digits))
    ctx.params.precision = digits


def set_angle_mode(ctx: Context, mode: Union[str, AngleMode]):
    """ Set the unit of the trigonometric functions, 'degrees' or 'radians' """
    ctx.params.angle_mode = AngleMode.from_name(mode)


# --- Matrices --- #

def parse_matrix(ctx: Context, expression: str):
    """
    Parse a matrix literal such as ``[1 3 5][8 30 2][1 89 2]`` (rows written left to right). A single bracket row is
    a 1 by n matrix. Every entry must evaluate to a number.
    """
    root = _parse(ctx, expression)
    if isinstance(root, VectorNode):
        rows = [root.children]
    elif isinstance(root, MatrixNode):
        rows = root.value
    else:
        raise ValueError("'{}' is not a matrix literal".format(expression))

    values = []
    for row in rows:
        values.append([_entry(ctx, node) for node in row])
    return matrix.from_rows(*values)


def _entry(ctx, node):
    term = evaluate(ctx, node)
    if not term.is_numeric:
        raise ValueError("Matrix entry '{}' is not a number".format(term))
    return float(term.value)


def row_reduce(ctx: Context, m: matrix):
    """ Reduced row echelon form of `m`, pivots tested against ``matrix_epsilon`` """
    return _row_reduce(m, ctx.params)


def echelon(ctx: Context, m: matrix):
    return _echelon(m, ctx.params)


def determinant(ctx: Context, m: matrix):
    """ Determinant of a square matrix as a Numeric rounded to the context precision """
    return _determinant(m, ctx.params)


def inverse(ctx: Context, m: matrix):
    """
    Inverse of a square matrix

    :raises SingularMatrixError: if `m` has no inverse
    """
    return _inverse(m, ctx.params)


def characteristic_polynomial(ctx: Context, m: matrix, variable='x'):
    """ det(xI - m) as a symbolic Term, coefficients rounded to ``display_places``. Ex. x^2-5x-2 for [1 2][3 4] """
    return _characteristic_polynomial(m, variable, ctx.params)


# --- Display --- #

def tree(ctx: Context, expression: Union[str, Node]):
    """ Parse an expression and print the syntax tree structure. """
    import treelib

    root = _parse(ctx, expression) if isinstance(expression, str) else expression
    if isinstance(root, FunctionDefinitionNode):
        msg = 'Definition ' + str(root)
    else:
        msg = 'Expression ' + str(root)

    t = treelib.Tree()
    root.add_to_tree(t, 0)
    print(msg)
    t.show()


def console(ctx: Context, *, show_time=False, show_tree=False, echo=False):
    """ Start an interactive console """
    # noinspection PyUnresolvedReferences
    from colorama import Fore, Style, just_fix_windows_console
    just_fix_windows_console()

    def cprint(s, col):
        """ Print a message with a given color """
        print(col + str(s) + Style.RESET_ALL)
    def errprint(exc):
        """ Print an exception """
        cprint('{}: {}'.format(type(exc).__name__, str(exc)), Fore.RED)

    while True:
        exp = input(Fore.YELLOW + '>>> ' + Fore.RESET)

        if exp == 'exit':
            break
        elif exp == 'ctx':
            print(ctx)
        else:
            try:
                root = _parse(ctx, exp)

                # Print echo or tree
                if echo:
                    cprint(str(root), Fore.CYAN)
                if show_tree:
                    tree(ctx, root)

                if isinstance(root, (VectorNode, MatrixNode)):
                    cprint(parse_matrix(ctx, exp), Style.BRIGHT)
                    continue

                t = time.perf_counter()
                result = evaluate(ctx, root)
                t = time.perf_counter() - t

                if isinstance(root, FunctionDefinitionNode):
                    cprint('Added {} to context.'.format(result), Fore.YELLOW)
                else:
                    cprint(result, Style.BRIGHT)

                # Print elapsed time
                if show_time:
                    cprint('{:.5f}ms'.format(t*1000), Style.DIM)
            except Exception as e:
                errprint(e)
            except KeyboardInterrupt:
                pass
        print()


# --- Default context --- #

def create_default_context():
    ctx = Context()
    trig = natives.DERIVATIVES
    ctx.add_global(
        # Constants
        Constant('pi', natives.PI, help_text="Ratio of a circle's circumference to its diameter"),
        Constant('e',  natives.E,  help_text="Euler's number"),

        # Trigonometric Functions
        NativeFunction('sin', 'θ', natives.sin, trigonometric=True, derivative=trig['sin'], help_text="Sine of `θ`"),
        NativeFunction('cos', 'θ', natives.cos, trigonometric=True, derivative=trig['cos'], help_text="Cosine of `θ`"),
        NativeFunction('tan', 'θ', natives.tan, trigonometric=True, derivative=trig['tan'], help_text="Tangent of `θ`"),
        NativeFunction('cot', 'θ', natives.cot, trigonometric=True, derivative=trig['cot'], help_text="Cotangent of `θ`"),
        NativeFunction('sec', 'θ', natives.sec, trigonometric=True, derivative=trig['sec'], help_text="Secant of `θ`"),
        NativeFunction('csc', 'θ', natives.csc, trigonometric=True, derivative=trig['csc'], help_text="Cosecant of `θ`"),

        # Hyperbolic Functions
        NativeFunction('sinh', 'x', natives.sinh, derivative=trig['sinh'], help_text="Hyperbolic sine of `x`"),
        NativeFunction('cosh', 'x', natives.cosh, derivative=trig['cosh'], help_text="Hyperbolic cosine of `x`"),
        NativeFunction('tanh', 'x', natives.tanh, derivative=trig['tanh'], help_text="Hyperbolic tangent of `x`"),

        # Inverse Trigonometric Functions
        *_inverse_trig('asin', natives.asin, 'Inverse sine of `x`'),
        *_inverse_trig('acos', natives.acos, 'Inverse cosine of `x`'),
        *_inverse_trig('atan', natives.atan, 'Inverse tangent of `x`'),
        *_inverse_trig('acot', natives.acot, 'Inverse cotangent of `x`'),
        *_inverse_trig('asec', natives.asec, 'Inverse secant of `x`'),
        *_inverse_trig('acsc', natives.acsc, 'Inverse cosecant of `x`'),

        # Roots & Logarithms
        NativeFunction('sqrt', 'x', natives.sqrt,     help_text="Square root of `x`"),
        NativeFunction('cbrt', 'x', natives.cbrt,     help_text="Cube root of `x`"),
        NativeFunction('abs',  'x', natives.absolute, help_text="Absolute value of `x`"),
        NativeFunction('ln',   'x', natives.ln,       help_text="Natural logarithm of `x`"),
        NativeFunction('log',  'x', natives.log,      help_text="Base 10 logarithm of `x`"),

        # Combinatorics & Integer Functions
        NativeFunction('fac',  'n',  natives.fac,  help_text="Factorial of `n`, the product n(n-1)(n-2)... of its positive terms"),
        NativeFunction('perm', 'nk', natives.perm, help_text="Number of ordered selections of `k` items from `n`"),
        NativeFunction('comb', 'nk', natives.comb, help_text="Number of unordered selections of `k` items from `n`"),
        NativeFunction('mod',  'ab', natives.mod,  help_text="Remainder of `a` divided by `b`, with the sign of `a`"),
        NativeFunction('div',  'ab', natives.div,  help_text="Integer quotient of `a` divided by `b`, truncated toward zero"),
        NativeFunction('gcf',  'ab', natives.gcf,  help_text="Greatest common factor of `a` and `b`"),

        # Series
        NativeFunction('sum', ['f'], series_sum, manual_eval=True,
                       help_text="Sum of `f` over n = 0, 1, 2, ... until the terms become negligible"),
    )
    return ctx


def _inverse_trig(name, func, help_text):
    """ An inverse trigonometric native and its arc* alias, Ex. asin and arcsin """
    derivative_text = natives.DERIVATIVES[name]
    return [
        NativeFunction(name, 'x', func, trigonometric=True, inverse=True, derivative=derivative_text,
                       help_text=help_text),
        NativeFunction('arc' + name[1:], 'x', func, trigonometric=True, inverse=True, derivative=derivative_text,
                       help_text=help_text),
    ]