"""
Best effort rewrites of syntax trees. ``simplify`` folds sums and ``factor`` expands products; both return a new
tree and leave shapes they do not understand unchanged.

Both passes work on monomials: a coefficient, a set of variables raised to numeric powers, and a list of other
factors (function calls, powers of sums, ...) that are compared by their rendering.
"""
from collections import OrderedDict
from decimal import Decimal, localcontext
from typing import List, Tuple

from .context import Context
from .definitions import FunctionDefinition, Operator, UnarySymbol
from .parser import BinaryNode, FunctionCallNode, FunctionDefinitionNode, LiteralNode, MatrixNode, Node, \
    UnaryNode, VariableNode, VectorNode, free_variables, substitute
from .term import EXACT_DIGITS

__all__ = [
    'simplify',
    'factor',
    'flatten_sum',
    'numeric_value',
    'Monomial',
]

# Products of sums with more pairings than this are left alone
EXPANSION_LIMIT = 256


class Monomial:
    def __init__(self, coefficient=Decimal(1), powers=None, others=None):
        self.coefficient = coefficient
        self.powers: OrderedDict = powers if powers is not None else OrderedDict()
        self.others: List[Node] = others if others is not None else []

    @property
    def key(self):
        """ Monomials with equal keys differ only by their coefficient """
        powers = tuple(sorted((name, exp) for name, exp in self.powers.items() if exp != 0))
        others = tuple(sorted(str(node) for node in self.others))
        return powers, others

    @property
    def is_constant(self):
        return not self.key[0] and not self.others

    def __mul__(self, other: 'Monomial'):
        powers = OrderedDict(self.powers)
        for name, exp in other.powers.items():
            # x^a * x^b = x^(a+b)
            powers[name] = powers.get(name, Decimal(0)) + exp
        with localcontext() as c:
            c.prec = EXACT_DIGITS
            coefficient = self.coefficient * other.coefficient
        return Monomial(coefficient, powers, self.others + other.others)

    def negate(self):
        return Monomial(-self.coefficient, self.powers, self.others)

    def to_node(self):
        """ Build the tree of this monomial with the coefficient first, Ex. 3x^2y. The sign is left on the result. """
        factors = []
        for name, exp in self.powers.items():
            if exp == 0:
                continue
            if exp == 1:
                factors.append(VariableNode(name))
            else:
                factors.append(BinaryNode(Operator.EXP, VariableNode(name), _literal(exp)))
        factors.extend(substitute(node) for node in self.others)

        magnitude = abs(self.coefficient)
        if not factors:
            node = LiteralNode(magnitude)
        else:
            node = factors[0]
            for factor_node in factors[1:]:
                node = BinaryNode(Operator.MULT, node, factor_node, attached=True)
            if magnitude != 1:
                node = BinaryNode(Operator.MULT, LiteralNode(magnitude), node, attached=True)

        if self.coefficient < 0:
            return UnaryNode(UnarySymbol.NEGATIVE, node)
        return node

    def __repr__(self):
        return '<{} coefficient={}, key={}>'.format(type(self).__name__, self.coefficient, self.key)


def flatten_sum(node: Node, sign=1) -> List[Tuple[int, Node]]:
    """
    Flatten nested additions and subtractions into a list of (sign, term). A unary minus flips the sign of everything
    beneath it. Ex. ``a-(b-c)`` gives ``[(1, a), (-1, b), (1, c)]``.
    """
    if isinstance(node, BinaryNode) and node.op is Operator.PLUS:
        return flatten_sum(node.left, sign) + flatten_sum(node.right, sign)
    if isinstance(node, BinaryNode) and node.op is Operator.MINUS:
        return flatten_sum(node.left, sign) + flatten_sum(node.right, -sign)
    if isinstance(node, UnaryNode):
        if node.sign == UnarySymbol.NEGATIVE:
            return flatten_sum(node.child, -sign)
        return flatten_sum(node.child, sign)
    return [(sign, node)]


def simplify(node: Node, ctx: Context):
    """
    Additive folding: sums are flattened, numeric terms are added into one literal placed last, like terms are
    collected (``x+2x`` gives ``3x``), and everything is reassembled into a left leaning chain. A sum that cancels
    out completely becomes the literal 0.
    """
    if _is_sum(node):
        terms = []
        for sign, term in flatten_sum(node):
            monomial = _monomial(simplify(term, ctx), ctx)
            terms.append(monomial if sign > 0 else monomial.negate())
        return _assemble(_collect(terms))
    return _rebuild(node, lambda child: simplify(child, ctx))


def factor(node: Node, ctx: Context):
    """
    Multiplicative factoring, applied bottom-up to every multiplication: both operands are flattened into signed term
    lists and every left term is multiplied with every right term. Identical variables add their exponents, numeric
    factors multiply into the coefficient, and like products are collected. Ex. ``(x+1)(x-1)`` gives ``x^2-1``.
    """
    node = _rebuild(node, lambda child: factor(child, ctx))
    if not (isinstance(node, BinaryNode) and node.op is Operator.MULT):
        return node

    left_terms = flatten_sum(node.left)
    right_terms = flatten_sum(node.right)
    if len(left_terms) * len(right_terms) > EXPANSION_LIMIT:
        return node

    products = []
    for left_sign, left in left_terms:
        left_monomial = _monomial(left, ctx)
        for right_sign, right in right_terms:
            product = left_monomial * _monomial(right, ctx)
            products.append(product if left_sign * right_sign > 0 else product.negate())
    return _assemble(_collect(products))


def _is_sum(node):
    if isinstance(node, BinaryNode):
        return node.op in (Operator.PLUS, Operator.MINUS)
    return isinstance(node, UnaryNode)


def _rebuild(node: Node, f):
    """ Copy of `node` with `f` applied to each child """
    if isinstance(node, BinaryNode):
        return BinaryNode(node.op, f(node.left), f(node.right), node.attached)
    if isinstance(node, UnaryNode):
        return UnaryNode(node.sign, f(node.child))
    if isinstance(node, FunctionCallNode):
        return FunctionCallNode(node.name, [f(arg) for arg in node.args])
    if isinstance(node, FunctionDefinitionNode):
        definition = node.definition
        body = f(definition.body)
        return FunctionDefinitionNode(
            FunctionDefinition(definition.name, definition.params, body, definition.expression)
        )
    return substitute(node)


def numeric_value(node: Node, ctx: Context):
    """ The value of `node` if it evaluates to a number without calling any function, otherwise None """
    stack = [node]
    while stack:
        n = stack.pop()
        if isinstance(n, (FunctionCallNode, FunctionDefinitionNode, VectorNode, MatrixNode)):
            return None
        stack.extend(n.children)

    if any(not ctx.is_bound(name) for name in free_variables(node)):
        return None

    term = node.evaluate(ctx)
    return term.value if term.is_numeric else None


def _monomial(node: Node, ctx: Context):
    value = numeric_value(node, ctx)
    if value is not None:
        return Monomial(value)

    if isinstance(node, VariableNode):
        return Monomial(powers=OrderedDict([(node.name, Decimal(1))]))

    if isinstance(node, UnaryNode):
        monomial = _monomial(node.child, ctx)
        return monomial.negate() if node.sign == UnarySymbol.NEGATIVE else monomial

    if isinstance(node, BinaryNode):
        if node.op is Operator.MULT:
            return _monomial(node.left, ctx) * _monomial(node.right, ctx)
        if node.op is Operator.EXP and isinstance(node.left, VariableNode) and not ctx.is_bound(node.left.name):
            exp = numeric_value(node.right, ctx)
            if exp is not None:
                return Monomial(powers=OrderedDict([(node.left.name, exp)]))

    return Monomial(others=[node])


def _collect(monomials: List[Monomial]):
    """ Add the coefficients of like monomials, keeping the order of first appearance and dropping zero terms """
    collected = OrderedDict()
    with localcontext() as c:
        c.prec = EXACT_DIGITS
        for monomial in monomials:
            key = monomial.key
            if key in collected:
                first = collected[key]
                collected[key] = Monomial(first.coefficient + monomial.coefficient, first.powers, first.others)
            else:
                collected[key] = monomial

    terms = [m for m in collected.values() if m.coefficient != 0]
    # The numeric part goes last, Ex. x^2-1
    return [m for m in terms if not m.is_constant] + [m for m in terms if m.is_constant]


def _assemble(monomials: List[Monomial]):
    if not monomials:
        return LiteralNode(Decimal(0))

    node = monomials[0].to_node()
    for monomial in monomials[1:]:
        if monomial.coefficient < 0:
            node = BinaryNode(Operator.MINUS, node, monomial.negate().to_node())
        else:
            node = BinaryNode(Operator.PLUS, node, monomial.to_node())
    return node


def _literal(n: Decimal):
    if n < 0:
        return UnaryNode(UnarySymbol.NEGATIVE, LiteralNode(-n))
    return LiteralNode(n)
