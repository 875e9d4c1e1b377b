import logging
from decimal import Decimal, ROUND_HALF_UP, localcontext

from .context import Context, UnknownIdentifierError
from .definitions import FunctionDefinition, Operator, UnarySymbol
from .parser import BinaryNode, FunctionCallNode, FunctionDefinitionNode, LiteralNode, MatrixNode, Node, \
    SpaceNode, UnaryNode, VariableNode, VectorNode, free_variables, parse, substitute, substitute_constants
from .simplifier import factor, numeric_value, simplify
from .term import GUARD_DIGITS, DivisionError, Numeric, normalize

logger = logging.getLogger(__name__)

__all__ = [
    'ConvergenceError',
    'derivative',
    'antiderivative',
    'inline_functions',
    'depends_on',
    'find_roots',
    'series_sum',
    'polynomial_degree',
]

# User functions calling each other deeper than this are assumed to be recursive
MAX_INLINE_DEPTH = 64

# Newton iterates beyond this magnitude are treated as diverging
DIVERGENCE_LIMIT = Decimal('1e30')

# Antiderivatives of natives applied directly to the integration variable, in terms of x
INTEGRALS = {
    'sin': '-cos(x)',
    'cos': 'sin(x)',
    'sinh': 'cosh(x)',
    'cosh': 'sinh(x)',
}


class ConvergenceError(ArithmeticError):
    pass


# --- Tree builders --- #
# These collapse the identity and zero cases so derivatives do not fill up with 0+... and 1*...

def _literal(n):
    n = Decimal(n)
    if n < 0:
        return UnaryNode(UnarySymbol.NEGATIVE, LiteralNode(-n))
    return LiteralNode(n)


def _is_value(node, n):
    return isinstance(node, LiteralNode) and node.n == n


def _add(a, b):
    if _is_value(a, 0):
        return b
    if _is_value(b, 0):
        return a
    return BinaryNode(Operator.PLUS, a, b)


def _sub(a, b):
    if _is_value(b, 0):
        return a
    if _is_value(a, 0):
        return _neg(b)
    return BinaryNode(Operator.MINUS, a, b)


def _neg(a):
    if _is_value(a, 0):
        return a
    if isinstance(a, UnaryNode) and a.sign == UnarySymbol.NEGATIVE:
        return a.child
    return UnaryNode(UnarySymbol.NEGATIVE, a)


def _mul(a, b):
    if _is_value(a, 0) or _is_value(b, 0):
        return LiteralNode(Decimal(0))
    if _is_value(a, 1):
        return b
    if _is_value(b, 1):
        return a
    return BinaryNode(Operator.MULT, a, b)


def _div(a, b):
    if _is_value(a, 0):
        return a
    if _is_value(b, 1):
        return a
    return BinaryNode(Operator.DIV, a, b)


def _pow(a, b):
    if _is_value(b, 1):
        return a
    return BinaryNode(Operator.EXP, a, b)


def _ln(a, ctx):
    # ln(e) is 1
    if isinstance(a, VariableNode) and a.name == 'e' and ctx.is_constant('e'):
        return LiteralNode(Decimal(1))
    return FunctionCallNode('ln', [a])


def _template(ctx, text, arg):
    """ Parse a formula written in terms of x and put a copy of `arg` in place of x """
    return substitute(parse(ctx, text, params=('x',)), {'x': arg})


# --- Structure --- #

def inline_functions(node: Node, ctx: Context, depth=0):
    """ Returns a copy of the tree with every user function call replaced by the function body """
    if depth > MAX_INLINE_DEPTH:
        raise RecursionError('Function calls are nested too deeply to inline')

    if isinstance(node, FunctionCallNode):
        args = [inline_functions(arg, ctx, depth) for arg in node.args]
        definition = ctx.lookup_function(node.name)
        if definition is None:
            return FunctionCallNode(node.name, args)
        definition.check_inputs(len(args))
        body = substitute(definition.body, dict(zip(definition.params, args)))
        return inline_functions(body, ctx, depth + 1)

    if isinstance(node, BinaryNode):
        return BinaryNode(node.op, inline_functions(node.left, ctx, depth), inline_functions(node.right, ctx, depth),
                          node.attached)
    if isinstance(node, UnaryNode):
        return UnaryNode(node.sign, inline_functions(node.child, ctx, depth))
    return substitute(node)


def depends_on(node: Node, wrt: str):
    """ True if the variable `wrt` appears in the tree """
    return wrt in free_variables(node)


# --- Differentiation --- #

def derivative(node: Node, wrt: str, ctx: Context) -> Node:
    """
    Symbolic derivative of a syntax tree with respect to the variable `wrt`. User functions must already be inlined
    (see ``inline_functions``). Only the trigonometric natives can be differentiated.

    :raises NotImplementedError: for natives without a derivative and for comparisons
    """
    if isinstance(node, (LiteralNode, SpaceNode)):
        return LiteralNode(Decimal(0))

    if isinstance(node, VariableNode):
        return LiteralNode(Decimal(1 if node.name == wrt else 0))

    if isinstance(node, UnaryNode):
        inner = derivative(node.child, wrt, ctx)
        return _neg(inner) if node.sign == UnarySymbol.NEGATIVE else inner

    if isinstance(node, BinaryNode):
        return _binary_derivative(node, wrt, ctx)

    if isinstance(node, FunctionCallNode):
        return _call_derivative(node, wrt, ctx)

    if isinstance(node, (FunctionDefinitionNode, VectorNode, MatrixNode)):
        raise TypeError("Can't differentiate a {}".format(node.node_type.value))

    raise TypeError("Can't differentiate '{}'".format(type(node).__name__))


def _binary_derivative(node: BinaryNode, wrt, ctx):
    op = node.op
    left, right = node.left, node.right

    if op in (Operator.PLUS, Operator.MINUS):
        d_left = derivative(left, wrt, ctx)
        d_right = derivative(right, wrt, ctx)
        return _add(d_left, d_right) if op is Operator.PLUS else _sub(d_left, d_right)

    if op.is_comparison:
        raise NotImplementedError("Can't differentiate the comparison '{}'".format(op.symbol))

    left_varies = depends_on(left, wrt)
    right_varies = depends_on(right, wrt)
    if not left_varies and not right_varies:
        return LiteralNode(Decimal(0))

    if op is Operator.MULT:
        # Constant factors are pulled out
        if not left_varies:
            return _mul(substitute(left), derivative(right, wrt, ctx))
        if not right_varies:
            return _mul(derivative(left, wrt, ctx), substitute(right))
        return _add(
            _mul(derivative(left, wrt, ctx), substitute(right)),
            _mul(substitute(left), derivative(right, wrt, ctx))
        )

    if op is Operator.DIV:
        if not right_varies:
            return _div(derivative(left, wrt, ctx), substitute(right))
        # (f'g - fg') / g^2
        numerator = _sub(
            _mul(derivative(left, wrt, ctx), substitute(right)),
            _mul(substitute(left), derivative(right, wrt, ctx))
        )
        return _div(numerator, _pow(substitute(right), LiteralNode(Decimal(2))))

    if op is Operator.EXP:
        return _power_derivative(left, right, left_varies, right_varies, wrt, ctx)

    raise NotImplementedError("Can't differentiate the operator '{}'".format(op.symbol))


def _power_derivative(base, exponent, base_varies, exponent_varies, wrt, ctx):
    d_base = derivative(base, wrt, ctx) if base_varies else None

    if not exponent_varies:
        # n * b^(n-1) * b'
        n = numeric_value(exponent, ctx)
        if n is not None:
            reduced = n - 1
            power = LiteralNode(Decimal(1)) if reduced == 0 else _pow(substitute(base), _literal(reduced))
            return _mul(_mul(_literal(n), power), d_base)
        reduced = BinaryNode(Operator.MINUS, substitute(exponent), LiteralNode(Decimal(1)))
        return _mul(_mul(substitute(exponent), _pow(substitute(base), reduced)), d_base)

    d_exponent = derivative(exponent, wrt, ctx)
    power = _pow(substitute(base), substitute(exponent))

    if not base_varies:
        # a^g * ln(a) * g'
        return _mul(_mul(power, _ln(substitute(base), ctx)), d_exponent)

    # b^g * (g' ln(b) + g b'/b)
    return _mul(power, _add(
        _mul(d_exponent, _ln(substitute(base), ctx)),
        _mul(substitute(exponent), _div(d_base, substitute(base)))
    ))


def _call_derivative(node: FunctionCallNode, wrt, ctx):
    if ctx.lookup_function(node.name) is not None:
        return derivative(inline_functions(node, ctx), wrt, ctx)

    if not ctx.is_native(node.name):
        raise UnknownIdentifierError("Function '{}' not found".format(node.name))

    native = ctx.get_native(node.name)
    native.check_inputs(len(node.args))
    if not depends_on(node, wrt):
        return LiteralNode(Decimal(0))
    if native.derivative is None:
        raise NotImplementedError("Can't differentiate the function '{}'".format(native.name))

    # Chain rule
    arg = node.args[0]
    outer = _template(ctx, native.derivative, arg)
    return _mul(outer, derivative(arg, wrt, ctx))


# --- Integration --- #

def antiderivative(node: Node, wrt: str, ctx: Context) -> Node:
    """
    Antiderivative of a syntax tree with respect to `wrt`, without the constant of integration. This is a narrow
    heuristic: sums are integrated termwise, constant factors are pulled out, and powers of the variable use the power
    rule. The product rule is not inverted, so a product of two factors that both depend on `wrt` is refused.

    :raises NotImplementedError: for shapes the heuristic does not cover
    """
    x = VariableNode(wrt)

    if not depends_on(node, wrt):
        return _mul(substitute(node), x)

    if isinstance(node, VariableNode):
        # x^2/2
        return _div(_pow(x, LiteralNode(Decimal(2))), LiteralNode(Decimal(2)))

    if isinstance(node, UnaryNode):
        inner = antiderivative(node.child, wrt, ctx)
        return _neg(inner) if node.sign == UnarySymbol.NEGATIVE else inner

    if isinstance(node, BinaryNode):
        op = node.op
        left, right = node.left, node.right

        if op in (Operator.PLUS, Operator.MINUS):
            left_integral = antiderivative(left, wrt, ctx)
            right_integral = antiderivative(right, wrt, ctx)
            return _add(left_integral, right_integral) if op is Operator.PLUS else _sub(left_integral, right_integral)

        if op is Operator.MULT:
            if not depends_on(left, wrt):
                return _mul(substitute(left), antiderivative(right, wrt, ctx))
            if not depends_on(right, wrt):
                return _mul(antiderivative(left, wrt, ctx), substitute(right))
            raise NotImplementedError("Can't integrate the product '{}'".format(node))

        if op is Operator.DIV:
            if not depends_on(right, wrt):
                return _div(antiderivative(left, wrt, ctx), substitute(right))
            if isinstance(right, VariableNode) and not depends_on(left, wrt):
                # c/x is c*x^-1
                return _mul(substitute(left), _log_abs(x))
            raise NotImplementedError("Can't integrate the quotient '{}'".format(node))

        if op is Operator.EXP:
            return _power_antiderivative(node, wrt, ctx)

    if isinstance(node, FunctionCallNode) and node.name in INTEGRALS and ctx.is_native(node.name):
        arg = node.args[0] if len(node.args) == 1 else None
        if isinstance(arg, VariableNode) and arg.name == wrt:
            return _template(ctx, INTEGRALS[node.name], x)

    raise NotImplementedError("Can't integrate '{}'".format(node))


def _power_antiderivative(node: BinaryNode, wrt, ctx):
    base, exponent = node.left, node.right
    x = VariableNode(wrt)

    if isinstance(base, VariableNode) and base.name == wrt and not depends_on(exponent, wrt):
        n = numeric_value(exponent, ctx)
        if n is not None:
            if n == -1:
                return _log_abs(x)
            raised = n + 1
            return _div(_pow(x, _literal(raised)), _literal(raised))
        raised = BinaryNode(Operator.PLUS, substitute(exponent), LiteralNode(Decimal(1)))
        return _div(_pow(x, raised), substitute(raised))

    if not depends_on(base, wrt) and isinstance(exponent, VariableNode) and exponent.name == wrt:
        # a^x / ln(a)
        return _div(_pow(substitute(base), x), _ln(substitute(base), ctx))

    raise NotImplementedError("Can't integrate the power '{}'".format(node))


def _log_abs(x):
    return FunctionCallNode('ln', [FunctionCallNode('abs', [x])])


# --- Numeric methods --- #

def polynomial_degree(node: Node):
    """
    Degree of a polynomial-like tree: the largest literal exponent applied to something that is not a literal. Trees
    with variables but no such exponent have degree 1, trees without variables have degree 0.
    """
    degree = 0
    stack = [node]
    while stack:
        n = stack.pop()
        if isinstance(n, BinaryNode) and n.op is Operator.EXP and isinstance(n.right, LiteralNode) \
                and not isinstance(n.left, LiteralNode):
            degree = max(degree, int(n.right.n))
        stack.extend(n.children)

    if degree == 0 and free_variables(node):
        return 1
    return degree


def _synthesize(ctx: Context, params, body: Node):
    """ Add a helper function with a generated name to the current scope """
    definition = FunctionDefinition(ctx.generate_name(), params, body)
    ctx.define(definition)
    logger.debug('Synthesized %s', definition)
    return definition


def _sample(ctx: Context, definition: FunctionDefinition, x: Decimal):
    """ Evaluate a one parameter helper function at `x`. Raises ValueError if the result is not a number. """
    term = ctx.call_function(definition.name, [Numeric(x)])
    if not term.is_numeric:
        raise ValueError("'{}' does not evaluate to a number, it has free variables".format(definition.body))
    return term.value


def find_roots(ctx: Context, node: Node, variable: str):
    """
    Find the real roots of a one variable expression with Newton-Raphson.

    A bracket [-a, a] is doubled from a=1 until the function changes sign (at most ``bracket_doublings`` times). Newton
    iterations are started from the bracket ends, +-1, 0 and the negation of every root found. Each new root is found
    on the function with the known roots divided out, f(x) / (x-r1)(x-r2)..., so the iteration can't fall back into a
    root that is already known. The search stops once as many roots as the detected polynomial degree are known, or
    when no start point gives a new root.

    :return: Sorted list of distinct roots as Decimals, rounded to ``root_places``
    :raises ConvergenceError: if no root is found at all
    """
    params = ctx.params
    body = simplify(factor(substitute_constants(inline_functions(node, ctx), ctx), ctx), ctx)
    if not depends_on(body, variable):
        raise ValueError("'{}' does not depend on '{}'".format(node, variable))
    others = [name for name in free_variables(body, ctx) if name != variable]
    if others:
        raise ValueError("'{}' has free variables other than '{}': {}".format(node, variable, ', '.join(others)))

    degree = polynomial_degree(body)
    d_body = simplify(factor(derivative(body, variable, ctx), ctx), ctx)

    with ctx.with_scope():
        f = _synthesize(ctx, [variable], body)
        df = _synthesize(ctx, [variable], d_body)

        starts = [Decimal(1), Decimal(-1), Decimal(0)]
        bracket = _bracket(ctx, f)
        if bracket is not None:
            starts = list(bracket) + starts

        # Unrounded roots are divided out, rounded ones are returned
        known = []
        roots = []
        while len(roots) < degree:
            root = _next_root(ctx, f, df, starts + [-r for r in roots], known)
            if root is None:
                break
            known.append(root)
            roots.append(_round_root(root, params.root_places))

    if not roots:
        raise ConvergenceError("No roots found for '{}'".format(node))
    return sorted(roots)


def _next_root(ctx: Context, f: FunctionDefinition, df: FunctionDefinition, starts, known):
    """ Run Newton from each start in turn and return the first root that is not already known, or None """
    places = ctx.params.root_places
    seen = {_round_root(r, places) for r in known}
    tried = set()
    for start in starts:
        if start in tried:
            continue
        tried.add(start)

        root = _newton(ctx, f, df, start, known)
        if root is not None and _round_root(root, places) not in seen:
            logger.debug('Found root %s starting from %s', root, start)
            return root
    return None


def _bracket(ctx: Context, f: FunctionDefinition):
    """ Double [-a, a] from a=1 until f changes sign across it. Returns (low, high), or None. """
    a = Decimal(1)
    for _ in range(ctx.params.bracket_doublings):
        try:
            low = _sample(ctx, f, -a)
            high = _sample(ctx, f, a)
        except (DivisionError, ValueError, OverflowError) as e:
            logger.debug('Bracket search at +-%s failed: %s', a, e)
            a *= 2
            continue
        if low.is_zero() or high.is_zero() or (low < 0) != (high < 0):
            logger.debug('Bracketed a sign change in [%s, %s]', -a, a)
            return -a, a
        a *= 2
    logger.debug('No sign change found within +-%s', a)
    return None


def _newton(ctx: Context, f: FunctionDefinition, df: FunctionDefinition, x: Decimal, known=()):
    """
    Newton-Raphson from `x` on f(x) / (x-r1)(x-r2)... for the `known` roots r. The step of the divided function is
    f / (f' - f * sum(1/(x-r))), so only f and f' are ever evaluated. A point is accepted once |f(x)| is below
    ``newton_tolerance`` and the last step no longer moves the rounded root. Returns the root, or None if the iteration
    fails or does not converge.
    """
    params = ctx.params
    step_tolerance = Decimal(1).scaleb(-(params.root_places + 1))
    for i in range(params.newton_iterations):
        try:
            y = _sample(ctx, f, x)
            if y.is_zero():
                return x
            slope = _sample(ctx, df, x)
            with localcontext() as c:
                c.prec = params.precision + GUARD_DIGITS
                # x landing exactly on a known root raises DivisionError
                slope = slope - y * sum(1 / (x - r) for r in known)
        except (ZeroDivisionError, ValueError, OverflowError) as e:
            logger.debug('Newton iteration from %s stopped: %s', x, e)
            return None

        if slope.is_zero():
            if abs(y) < params.newton_tolerance:
                return x
            logger.debug('Newton iteration stopped on a flat point at %s', x)
            return None
        with localcontext() as c:
            c.prec = params.precision + GUARD_DIGITS
            step = y / slope
            x = x - step
        if abs(y) < params.newton_tolerance and abs(step) < step_tolerance:
            return x
        if abs(x) > DIVERGENCE_LIMIT:
            logger.debug('Newton iteration diverged after %d steps', i)
            return None
    return None


def _round_root(root: Decimal, places: int):
    """ Round to `places` decimal places and drop trailing zeros, keeping plain notation (100000, not 1E+5) """
    with localcontext() as c:
        c.prec = max(c.prec, places + root.adjusted() + 2)
        root = root.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return Decimal(normalize(root))


def series_sum(ctx: Context, node: Node):
    """
    The ``sum`` native. Adds the terms of `node` at 0, 1, 2, ... of its single free variable until two consecutive
    partial sums differ by less than ``zero_epsilon``.

    :raises ValueError: if `node` has more than one free variable or a term is not a number
    :raises ConvergenceError: if the sum has not settled after ``max_iterations`` terms
    """
    params = ctx.params
    body = substitute_constants(node, ctx)
    names = free_variables(body, ctx)
    if len(names) > 1:
        raise ValueError("sum expects one free variable, '{}' has {}".format(node, ', '.join(names)))
    variable = names[0] if names else 'n'

    with ctx.with_scope():
        f = _synthesize(ctx, [variable], body)

        with localcontext() as c:
            c.prec = params.precision + GUARD_DIGITS
            total = Decimal(0)
            for n in range(params.max_iterations):
                previous = total
                total = total + _sample(ctx, f, Decimal(n))
                if n >= 1 and abs(total - previous) < params.zero_epsilon:
                    logger.debug('sum(%s) settled after %d terms', node, n + 1)
                    return Numeric(total)

    raise ConvergenceError("sum({}) did not converge within {} terms".format(node, params.max_iterations))
