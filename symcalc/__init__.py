from .calculus import ConvergenceError
from .context import Context, ContextError, DefinitionError, Params, UnknownIdentifierError
from .definitions import AngleMode, ArgumentError, ArityError, Constant, FunctionDefinition, NativeFunction, Operator
from .matrix import SingularMatrixError, matrix, vector
from .term import DivisionError, Numeric, Symbolic, Term
from .tokenizer import ExpressionSyntaxError, LexicalError
from .utils import characteristic_polynomial, console, create_default_context, define_function, determinant, \
    differentiate, echelon, evaluate, find_roots, integrate, inverse, parse, parse_matrix, row_reduce, \
    set_angle_mode, set_precision, simplify, tree
