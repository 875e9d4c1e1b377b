from decimal import Decimal
from enum import Enum
from typing import Dict, List

from .context import Context, UnknownIdentifierError
from .definitions import ArgumentError, Associativity, FunctionDefinition, Operator, UnarySymbol, \
    ATOM_PRECEDENCE, UNARY_PRECEDENCE
from .term import Numeric, Symbolic, Term, combine_terms, normalize
from .tokenizer import ExpressionSyntaxError, TokenType, tokenize

__all__ = [
    'parse',
    'Parser',
    'ExpressionSyntaxError',
    'NodeType',
    'Node',
    'LiteralNode',
    'VariableNode',
    'UnaryNode',
    'BinaryNode',
    'FunctionCallNode',
    'FunctionDefinitionNode',
    'MatrixNode',
    'VectorNode',
    'SpaceNode',
    'substitute',
    'substitute_constants',
    'free_variables',
]


def parse(ctx: Context, expr: str, params=()):
    """
    Parse an expression into a syntax tree.

    :param ctx: Context used to tell function names, constants and bound variables apart from free variables
    :param expr: Expression string to parse
    :param params: Extra names that should be read as whole identifiers, Ex. parameters of a function being defined
    :return: Node at the root of the syntax tree. Empty expressions give a SpaceNode.
    """
    return Parser(ctx, expr, params).parse()


class NodeType(Enum):
    LITERAL = 'literal'
    VARIABLE = 'variable'
    UNARY = 'unary'
    BINARY = 'binary'
    FUNCTION_CALL = 'function call'
    FUNCTION_DEFINITION = 'function definition'
    MATRIX = 'matrix'
    VECTOR = 'vector'
    SPACE = 'space'


class Node:
    """
    A node of the syntax tree. Nodes are owned by exactly one parent and keep no reference to it; rewrites build new
    trees (see ``substitute``) instead of editing nodes in place.
    """
    node_type: NodeType = None
    precedence = ATOM_PRECEDENCE
    associativity = Associativity.L_TO_R

    def __init__(self, *children: 'Node'):
        self.children: List[Node] = list(children)

    @property
    def value(self):
        """ The payload of the node, Ex. the Decimal of a literal or the name of a variable """
        return None

    def evaluate(self, ctx: Context) -> Term:
        """ Evaluate this node """
        raise NotImplementedError('{} does not implement evaluate'.format(type(self).__name__))

    def __str__(self):
        raise NotImplementedError('{} does not implement __str__'.format(type(self).__name__))

    def __repr__(self):
        return '<{} value={}, children={}>'.format(
            type(self).__name__,
            repr(self.value),
            len(self.children)
        )

    def tree_tag(self):
        """ Returns a string used as the tag for this node when added to a treelib.Tree """
        return '{}({})'.format(type(self).__name__, self.value)

    def higher_precedence(self, other: 'Node'):
        """
        Returns True if this node's precedence is greater than `other`, in other words that self should be evaluated
        before `other`.
        """
        # If precedence is not equal, the higher one should be evaluated first
        if self.precedence != other.precedence:
            return self.precedence > other.precedence

        # If the precedence and associativities are the same, self should be first if it is left-to-right associative
        if self.associativity == other.associativity:
            return self.associativity == Associativity.L_TO_R

        # If self is left-associative and other is right-associative, evaluate other before self
        # If self is right-associative and other is left-associative, evaluate self before other
        return self.associativity == Associativity.R_TO_L

    def is_left_parenthesized(self, child: 'Node'):
        """ Returns true if `child` (to the left of self) binds more loosely than self and needs parentheses """
        if child.precedence == ATOM_PRECEDENCE:
            return False
        return not child.higher_precedence(self)

    def is_right_parenthesized(self, child: 'Node'):
        """ Returns true if `child` (to the right of self) binds more loosely than self and needs parentheses """
        if child.precedence == ATOM_PRECEDENCE:
            return False
        return self.higher_precedence(child)

    def leftmost_leaf(self):
        """ The node whose rendering starts the rendering of this subtree """
        return self

    def add_to_tree(self, tree, num, parent: 'Node' = None):
        """ Add this syntax tree to a treelib.Tree. `num` is added to the tag to keep children in order. """
        tree.create_node(
            str(num) + ' ' + self.tree_tag(),
            id(self),
            id(parent) if parent is not None else None
        )
        for i, node in enumerate(self.children):
            node.add_to_tree(tree, i, self)


class LiteralNode(Node):
    node_type = NodeType.LITERAL

    def __init__(self, n: Decimal, parsed=False):
        """
        :param n: The value
        :param parsed: True if the literal was written in the source expression. Only those raise the precision.
        """
        super().__init__()
        self.n = n
        self.parsed = parsed

    @property
    def value(self):
        return self.n

    @property
    def precedence(self):
        return UNARY_PRECEDENCE if self.n < 0 else ATOM_PRECEDENCE

    @property
    def significant_digits(self):
        digits = self.n.as_tuple().digits
        # Leading zeros of "0.05" are not significant
        return max(1, len(digits) - next((i for i, d in enumerate(digits) if d != 0), len(digits)))

    def evaluate(self, ctx: Context):
        # A literal longer than the configured precision raises it for the rest of the request
        digits = self.significant_digits
        if self.parsed and digits > ctx.params.precision:
            ctx.params.precision = digits
        return Numeric(self.n)

    def __str__(self):
        return normalize(self.n)


class VariableNode(Node):
    node_type = NodeType.VARIABLE

    def __init__(self, name: str):
        super().__init__()
        self.name = name

    @property
    def value(self):
        return self.name

    def evaluate(self, ctx: Context):
        bound = ctx.lookup_variable(self.name)
        if bound is not None:
            return bound
        return Symbolic(self.name)

    def __str__(self):
        return self.name


class UnaryNode(Node):
    node_type = NodeType.UNARY
    precedence = UNARY_PRECEDENCE
    associativity = Associativity.R_TO_L

    def __init__(self, sign: UnarySymbol, child: Node):
        super().__init__(child)
        self.sign = sign

    @property
    def value(self):
        return self.sign

    @property
    def child(self):
        return self.children[0]

    def evaluate(self, ctx: Context):
        result = self.child.evaluate(ctx)
        if self.sign == UnarySymbol.NEGATIVE:
            return result.negate()
        return result

    def __str__(self):
        right = str(self.child)
        if self.is_right_parenthesized(self.child):
            right = '(' + right + ')'
        return self.sign.value + right

    def tree_tag(self):
        return '{}({})'.format(type(self).__name__, self.sign.value)


class BinaryNode(Node):
    node_type = NodeType.BINARY

    def __init__(self, op: Operator, left: Node, right: Node, attached=False):
        """
        :param op: The operator
        :param left: Left operand
        :param right: Right operand
        :param attached: True if the operator was implicit in the source, Ex. "3x" or "2(x+1)"
        """
        super().__init__(left, right)
        self.op = op
        self.attached = attached

    @property
    def value(self):
        return self.op

    @property
    def precedence(self):
        return self.op.precedence

    @property
    def associativity(self):
        return self.op.associativity

    @property
    def left(self):
        return self.children[0]

    @property
    def right(self):
        return self.children[1]

    def leftmost_leaf(self):
        return self.left.leftmost_leaf()

    def evaluate(self, ctx: Context):
        left = self.left.evaluate(ctx)
        right = self.right.evaluate(ctx)
        return combine_terms(left, right, self.op, ctx.params)

    def is_right_parenthesized(self, child: Node):
        # A sign directly after an operator is always wrapped, Ex. "x-(-3)"
        if isinstance(child, UnaryNode) or (isinstance(child, LiteralNode) and child.n < 0):
            return True
        return super().is_right_parenthesized(child)

    def __str__(self):
        left = str(self.left)
        right = str(self.right)

        if self.is_left_parenthesized(self.left):
            left = '(' + left + ')'
        if self.is_right_parenthesized(self.right):
            right = '(' + right + ')'

        if self.is_implicit(left, right):
            return left + right
        return left + self.op.symbol + right

    def is_implicit(self, left: str, right: str):
        """ Whether ``left * right`` can be written without the '*' """
        if not self.attached or self.op is not Operator.MULT:
            return False

        if isinstance(self.right.leftmost_leaf(), LiteralNode) and not right.startswith('('):
            # Implicit multiplication can never be followed by a number
            return False

        if left[-1].isalpha() and right[0] == '(':
            # Would read as a function call
            return False

        return (left[-1].isdigit() or left[-1].isalpha() or left[-1] == ')') and \
            (right[0].isalpha() or right[0] == '(')

    def tree_tag(self):
        return '{}({})'.format(type(self).__name__, self.op.symbol)


class FunctionCallNode(Node):
    node_type = NodeType.FUNCTION_CALL

    def __init__(self, name: str, args: List[Node]):
        super().__init__(*args)
        self.name = name

    @property
    def value(self):
        return self.name

    @property
    def args(self):
        return self.children

    def evaluate(self, ctx: Context):
        if ctx.lookup_function(self.name) is not None:
            inputs = [arg.evaluate(ctx) for arg in self.args]
            return ctx.call_function(self.name, inputs)

        if ctx.is_native(self.name):
            native = ctx.get_native(self.name)
            if native.manual_eval:
                inputs = list(self.args)
            else:
                inputs = [arg.evaluate(ctx) for arg in self.args]
            return ctx.call_native(self.name, inputs)

        raise UnknownIdentifierError("Function '{}' not found".format(self.name))

    def __str__(self):
        return '{}({})'.format(self.name, ', '.join(map(str, self.args)))


class FunctionDefinitionNode(Node):
    node_type = NodeType.FUNCTION_DEFINITION
    precedence = 0

    def __init__(self, definition: FunctionDefinition):
        super().__init__(definition.body)
        self.definition = definition

    @property
    def value(self):
        return self.definition

    def evaluate(self, ctx: Context):
        """ Adds the function to the context. Evaluates to the function signature. """
        ctx.define(self.definition)
        return Symbolic(self.definition.signature)

    def __str__(self):
        return str(self.definition)

    def tree_tag(self):
        return '{}({})'.format(type(self).__name__, self.definition.signature)


class VectorNode(Node):
    node_type = NodeType.VECTOR

    def __init__(self, elements: List[Node]):
        super().__init__(*elements)

    @property
    def value(self):
        return self.children

    def evaluate(self, ctx: Context):
        raise TypeError('Vector literals do not evaluate to a term, use parse_matrix instead')

    def __str__(self):
        return '[' + ' '.join(map(str, self.children)) + ']'

    def tree_tag(self):
        return '{}({})'.format(type(self).__name__, len(self.children))


class MatrixNode(Node):
    node_type = NodeType.MATRIX

    def __init__(self, rows: List[VectorNode]):
        super().__init__(*rows)

    @property
    def value(self):
        return [row.children for row in self.children]

    @property
    def rows(self):
        return self.children

    def evaluate(self, ctx: Context):
        raise TypeError('Matrix literals do not evaluate to a term, use parse_matrix instead')

    def __str__(self):
        return ''.join(map(str, self.rows))

    def tree_tag(self):
        n_cols = len(self.rows[0].children) if self.rows else 0
        return '{}({}x{})'.format(type(self).__name__, len(self.rows), n_cols)


class SpaceNode(Node):
    """ An empty expression. Evaluates to zero. """
    node_type = NodeType.SPACE

    def evaluate(self, ctx: Context):
        return Numeric(0)

    def __str__(self):
        return ''

    def tree_tag(self):
        return type(self).__name__


class Parser:
    """
    Precedence climbing parser. Operands are read by ``unary`` and ``primary``, and ``expression`` folds binary
    operators (explicit or implicit multiplication) into left or right leaning chains according to the operator table.

    Whitespace is insignificant except inside brackets, where it separates elements (``[1 -2]`` has two elements but
    ``[1 - 2]`` has one), and between two numbers, which is an error.
    """

    def __init__(self, ctx: Context, expr: str, params=()):
        self.ctx = ctx
        self.expr = expr
        self.tokens = tokenize(expr)
        self.pos = 0
        self.prev = None
        self.known = set(params)
        # One entry per open paren/bracket; True if whitespace separates elements at that level
        self.modes = []

    def parse(self):
        self._skip_space()
        if self._raw() is None:
            return SpaceNode()

        if self._at_definition():
            node = self.definition()
        else:
            node = self.expression(0)

        tok = self.peek()
        if tok is not None:
            raise ExpressionSyntaxError("Unexpected '{}'".format(tok.text), self.expr, tok.i, len(tok.text))
        return node

    # --- Grammar --- #

    def definition(self):
        """ name(p1, p2, ...) = body """
        name_tok = self.advance()
        open_tok = self.advance()
        params = []

        tok = self.peek()
        if tok is not None and tok.type != TokenType.RPAREN:
            while True:
                tok = self.expect(TokenType.IDENTIFIER, 'Expected a parameter name')
                params.append(tok.text)
                if self._next_is(TokenType.COMMA):
                    self.advance()
                    continue
                break
        self._close(TokenType.RPAREN, open_tok, 'No matching close parenthesis')
        self.expect(TokenType.EQUALS, "Expected '='")

        self._skip_space()
        if self._raw() is None:
            raise ExpressionSyntaxError('Function body is empty', self.expr, len(self.expr))

        self.known.update(params)
        body = self.expression(0)

        try:
            definition = FunctionDefinition(name_tok.text, params, body, expression=self.expr.strip())
        except ArgumentError as e:
            raise ExpressionSyntaxError(str(e), self.expr, name_tok.i, self.prev.end - name_tok.i)
        return FunctionDefinitionNode(definition)

    def expression(self, min_precedence):
        left = self.unary()
        while True:
            op, implicit = self._next_operator()
            if op is None or op.precedence < min_precedence:
                break
            if not implicit:
                self.advance()

            if op.associativity == Associativity.L_TO_R:
                right = self.expression(op.precedence + 1)
            else:
                right = self.expression(op.precedence)
            left = BinaryNode(op, left, right, attached=implicit)
        return left

    def unary(self):
        tok = self.peek()
        if tok is not None and tok.type == TokenType.OPERATOR and tok.value in (Operator.PLUS, Operator.MINUS):
            self.advance()
            sign = UnarySymbol.NEGATIVE if tok.value == Operator.MINUS else UnarySymbol.POSITIVE
            # The operand only takes exponentiation with it: -x^2 is -(x^2) but -2x is (-2)*x
            operand = self.expression(UNARY_PRECEDENCE)
            return UnaryNode(sign, operand)
        return self.primary()

    def primary(self):
        tok = self.peek()
        if tok is None:
            raise ExpressionSyntaxError('Unexpected end of expression', self.expr, len(self.expr))

        if tok.type == TokenType.NUMBER:
            self.advance()
            return LiteralNode(tok.value, parsed=True)
        if tok.type == TokenType.IDENTIFIER:
            return self.identifier()
        if tok.type == TokenType.LPAREN:
            return self.parenthesized()
        if tok.type == TokenType.LBRACKET:
            return self.bracketed()

        raise ExpressionSyntaxError(
            "Expected an operand but found '{}'".format(tok.text), self.expr, tok.i, len(tok.text)
        )

    def parenthesized(self):
        open_tok = self.advance()
        self.modes.append(False)
        node = self.expression(0)
        self._close(TokenType.RPAREN, open_tok, 'No matching close parenthesis')
        self.modes.pop()
        return node

    def identifier(self):
        tok = self.advance()
        name = tok.text
        nxt = self._peek_adjacent()

        if nxt is not None and nxt.type == TokenType.LPAREN:
            if self.ctx.is_function(name):
                return self.call(name)

            # "xsin(" is x*sin(
            prefix, func = self._split_function_suffix(name)
            if func is not None:
                left = self._variables(prefix)
                return BinaryNode(Operator.MULT, left, self.call(func), attached=True)

            # Known names followed by a parenthesis are multiplied, Ex. "x(x+1)" in the body of f(x)
            if not all(self._is_known(piece) for piece in self._split_identifier(name)):
                return self.call(name)

        elif self.ctx.is_function(name) and not self._is_known(name):
            raise ExpressionSyntaxError(
                "Expected '(' after function '{}'".format(name), self.expr, tok.end
            )

        return self._variables(name)

    def call(self, name):
        open_tok = self.advance()
        self.modes.append(False)
        args = []

        if not self._next_is(TokenType.RPAREN):
            while True:
                args.append(self.expression(0))
                if self._next_is(TokenType.COMMA):
                    self.advance()
                    continue
                break

        self._close(TokenType.RPAREN, open_tok, 'No matching close parenthesis')
        self.modes.pop()
        return FunctionCallNode(name, args)

    def bracketed(self):
        """ [a b c] is a vector, [a b][c d] or [[a, b], [c, d]] is a matrix """
        open_tok = self._raw()
        rows = [self._bracket_row()]
        while True:
            nxt = self._peek_adjacent()
            if nxt is None or nxt.type != TokenType.LBRACKET:
                break
            rows.append(self._bracket_row())

        if len(rows) == 1:
            elements = rows[0]
            if len(elements) == 1 and isinstance(elements[0], MatrixNode):
                return elements[0]
            if elements and all(isinstance(e, VectorNode) for e in elements):
                return self._matrix(elements, open_tok)
            return VectorNode(elements)

        return self._matrix([VectorNode(row) for row in rows], open_tok)

    def _matrix(self, rows, open_tok):
        lengths = {len(row.children) for row in rows}
        if len(lengths) != 1:
            raise ExpressionSyntaxError(
                'Matrix rows must all have the same length', self.expr, open_tok.i, self.prev.end - open_tok.i
            )
        if 0 in lengths:
            raise ExpressionSyntaxError('Matrix rows cannot be empty', self.expr, open_tok.i)
        return MatrixNode(rows)

    def _bracket_row(self):
        open_tok = self.advance()
        self.modes.append(True)
        elements = []
        need_element = False

        while True:
            self._skip_space()
            tok = self._raw()
            if tok is None:
                raise ExpressionSyntaxError('No matching close bracket', self.expr, open_tok.i)
            if tok.type == TokenType.RBRACKET:
                if need_element:
                    raise ExpressionSyntaxError("Expected an element after ','", self.expr, tok.i)
                self.advance()
                break
            if tok.type == TokenType.COMMA:
                if need_element or not elements:
                    raise ExpressionSyntaxError("Expected an element before ','", self.expr, tok.i)
                self.advance()
                need_element = True
                continue

            elements.append(self.expression(0))
            need_element = False

        self.modes.pop()
        return elements

    # --- Identifier splitting --- #

    def _is_known(self, name):
        return name in self.known or self.ctx.is_constant(name) or self.ctx.is_bound(name)

    def _split_function_suffix(self, name):
        """ Returns (prefix, function name) if `name` ends with a function name, otherwise (name, None) """
        for k in range(1, len(name)):
            if self.ctx.is_function(name[k:]):
                return name[:k], name[k:]
        return name, None

    def _split_identifier(self, name):
        """
        Split an identifier into known names (constants, parameters, bound variables) and single letter variables,
        reading left to right and preferring the longest known name. Ex. "2pix" gives ["pi", "x"].
        """
        if self._is_known(name):
            return [name]

        pieces = []
        i = 0
        while i < len(name):
            for j in range(len(name), i + 1, -1):
                if self._is_known(name[i:j]):
                    pieces.append(name[i:j])
                    i = j
                    break
            else:
                pieces.append(name[i])
                i += 1
        return pieces

    def _variables(self, name):
        pieces = self._split_identifier(name)
        node = VariableNode(pieces[0])
        for piece in pieces[1:]:
            node = BinaryNode(Operator.MULT, node, VariableNode(piece), attached=True)
        return node

    # --- Token helpers --- #

    def _next_operator(self):
        """
        Look ahead for the next binary operator without consuming it. Returns (Operator, implicit), or (None, False)
        if the current operand is the end of the (sub)expression.
        """
        j = self.pos
        while j < len(self.tokens) and self.tokens[j].type == TokenType.SPACE:
            j += 1
        if j >= len(self.tokens):
            return None, False

        tok = self.tokens[j]
        spaced = j > self.pos

        if spaced and self.modes and self.modes[-1]:
            # Inside brackets, whitespace ends the element unless a binary operator follows
            if tok.type != TokenType.OPERATOR:
                return None, False
            if tok.value in (Operator.PLUS, Operator.MINUS) and j + 1 < len(self.tokens) \
                    and self._starts_operand(self.tokens[j + 1]):
                return None, False

        if tok.type == TokenType.OPERATOR:
            return tok.value, False

        if self._starts_operand(tok):
            if tok.type == TokenType.NUMBER and self.prev is not None and self.prev.type == TokenType.NUMBER:
                raise ExpressionSyntaxError('Missing operator between numbers', self.expr, tok.i, len(tok.text))
            return Operator.MULT, True

        return None, False

    @staticmethod
    def _starts_operand(tok):
        return tok.type in (TokenType.NUMBER, TokenType.IDENTIFIER, TokenType.LPAREN)

    def _raw(self):
        """ The current token, whitespace included """
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _skip_space(self):
        while self.pos < len(self.tokens) and self.tokens[self.pos].type == TokenType.SPACE:
            self.pos += 1

    def _peek_adjacent(self):
        """ The next token, skipping whitespace only where it is insignificant """
        if self.modes and self.modes[-1]:
            return self._raw()
        return self.peek()

    def _next_is(self, token_type):
        tok = self.peek()
        return tok is not None and tok.type == token_type

    def _at_definition(self):
        """ True if the remaining tokens start with "name(p1, p2, ...) =" """
        tokens = [tok for tok in self.tokens[self.pos:] if tok.type != TokenType.SPACE]
        if len(tokens) < 4 or tokens[0].type != TokenType.IDENTIFIER or tokens[1].type != TokenType.LPAREN:
            return False

        i = 2
        if tokens[i].type == TokenType.IDENTIFIER:
            i += 1
            while i + 1 < len(tokens) and tokens[i].type == TokenType.COMMA \
                    and tokens[i + 1].type == TokenType.IDENTIFIER:
                i += 2
        return i + 1 < len(tokens) and tokens[i].type == TokenType.RPAREN and tokens[i + 1].type == TokenType.EQUALS

    def peek(self):
        """ The next significant token, or None at the end of the expression """
        self._skip_space()
        return self._raw()

    def advance(self):
        tok = self.peek()
        if tok is None:
            raise ExpressionSyntaxError('Unexpected end of expression', self.expr, len(self.expr))
        self.pos += 1
        self.prev = tok
        return tok

    def expect(self, token_type, msg):
        tok = self.peek()
        if tok is None:
            raise ExpressionSyntaxError(msg, self.expr, len(self.expr))
        if tok.type != token_type:
            raise ExpressionSyntaxError(msg, self.expr, tok.i, len(tok.text))
        return self.advance()

    def _close(self, token_type, open_tok, msg):
        tok = self.peek()
        if tok is None:
            raise ExpressionSyntaxError(msg, self.expr, open_tok.i)
        if tok.type != token_type:
            raise ExpressionSyntaxError(
                "Expected '{}' but found '{}'".format(token_type.value, tok.text), self.expr, tok.i, len(tok.text)
            )
        self.advance()


# --- Structural rewriting --- #

def substitute(node: Node, mapping: Dict[str, Node] = None):
    """
    Returns a copy of the syntax tree with every variable named in `mapping` replaced by a copy of the mapped node.
    The original tree is never modified. Pass no mapping to make a plain deep copy.
    """
    mapping = mapping or {}

    if isinstance(node, VariableNode):
        if node.name in mapping:
            return substitute(mapping[node.name])
        return VariableNode(node.name)
    if isinstance(node, LiteralNode):
        return LiteralNode(node.n, node.parsed)
    if isinstance(node, UnaryNode):
        return UnaryNode(node.sign, substitute(node.child, mapping))
    if isinstance(node, BinaryNode):
        return BinaryNode(node.op, substitute(node.left, mapping), substitute(node.right, mapping), node.attached)
    if isinstance(node, FunctionCallNode):
        return FunctionCallNode(node.name, [substitute(arg, mapping) for arg in node.args])
    if isinstance(node, FunctionDefinitionNode):
        # Parameters shadow the mapping inside the body
        inner = {k: v for k, v in mapping.items() if k not in node.definition.params}
        definition = node.definition
        body = substitute(definition.body, inner)
        return FunctionDefinitionNode(FunctionDefinition(definition.name, definition.params, body, definition.expression))
    if isinstance(node, VectorNode):
        return VectorNode([substitute(child, mapping) for child in node.children])
    if isinstance(node, MatrixNode):
        return MatrixNode([substitute(row, mapping) for row in node.rows])
    if isinstance(node, SpaceNode):
        return SpaceNode()
    raise TypeError("Can't substitute into '{}'".format(type(node).__name__))


def free_variables(node: Node, ctx: Context = None):
    """
    Names of the variables in a syntax tree, in order of first appearance. If `ctx` is given, constants and bound
    variables are left out.
    """
    names = []

    def visit(n):
        if isinstance(n, VariableNode):
            if n.name in names:
                return
            if ctx is not None and (ctx.is_constant(n.name) or ctx.is_bound(n.name)):
                return
            names.append(n.name)
        elif isinstance(n, FunctionDefinitionNode):
            return
        for child in n.children:
            visit(child)

    visit(node)
    return names


def substitute_constants(node: Node, ctx: Context):
    """ Returns a copy of the syntax tree with every constant name replaced by its value """
    mapping = {}
    for name in ctx.constants():
        if not ctx.is_bound(name):
            mapping[name] = LiteralNode(ctx.get_constant(name).value)
    return substitute(node, mapping)
