import logging
from contextlib import contextmanager
from copy import copy
from decimal import Decimal
from enum import Enum
from string import ascii_lowercase
from typing import List

from .definitions import AngleMode, Constant, Definition, FunctionDefinition, NativeFunction
from .natives import apply_native
from .term import Term

logger = logging.getLogger(__name__)


class ContextError(Exception):
    pass


class DefinitionError(ContextError):
    """ A function could not be added to the context, usually because the name is already taken """
    pass


class UnknownIdentifierError(ContextError):
    pass


class Params:
    # Number of significant digits numeric results are rounded to. A literal with
    # more significant digits than this raises it for the rest of the request.
    precision = 10

    # Unit used by the trigonometric natives. Direct functions (sin, cos, ...)
    # convert their input from this unit, inverse functions convert their output
    # to it.
    angle_mode = AngleMode.RADIANS

    # Numeric results with a magnitude below this are treated as exactly zero.
    # Also used as the convergence threshold of series sums.
    zero_epsilon = Decimal('1e-7')

    # Pivot zero test for the matrix engine. Entries with a magnitude below this
    # are treated as zero during elimination and cleaned to 0.0 afterwards.
    matrix_epsilon = 1e-5

    # Number of decimal places matrices are rounded to when displayed. Stored
    # values are never rounded.
    display_places = 5

    # Maximum number of terms a series sum adds before giving up with a
    # ConvergenceError.
    max_iterations = 10000

    # Newton-Raphson iteration ceiling, and the |f(x)| below which a point is
    # accepted as a root.
    newton_iterations = 100
    newton_tolerance = Decimal('1e-6')

    # Maximum number of times the root bracket is doubled while looking for a
    # sign change.
    bracket_doublings = 64

    # Number of decimal places roots are rounded to. Roots that are equal after
    # rounding are reported once.
    root_places = 6

    # If True, expressions are factored and additively folded before evaluation.
    simplify = True

    # If True, constant names (e, pi) are replaced with their values before
    # evaluation. Otherwise they evaluate like any other free variable.
    substitute_constants = False

    def copy(self):
        """ Returns a snapshot of these params. Changes to the snapshot do not affect the original. """
        return copy(self)

    def __repr__(self):
        return '<{} precision={}, angle_mode={}>'.format(type(self).__name__, self.precision, self.angle_mode.value)


class DefinitionType(Enum):
    CONSTANT = 'constant'
    NATIVE = 'native'
    FUNCTION = 'function'
    VARIABLE = 'variable'


class Scope(dict):
    def add(self, definition: Definition):
        """ Add a definition to the scope. Replaces the existing definition if there is one. """
        self[(definition.name, self.definition_type(definition))] = definition

    def bind(self, name: str, term: Term):
        """ Bind a variable name to a value """
        self[(name, DefinitionType.VARIABLE)] = term

    def get(self, name: str, definition_type: DefinitionType = DefinitionType.FUNCTION, default=None):
        """ Get a definition (or variable binding) from the scope. """
        return super().get((name, definition_type), default)

    @staticmethod
    def definition_type(definition: Definition):
        if isinstance(definition, NativeFunction):
            return DefinitionType.NATIVE
        if isinstance(definition, Constant):
            return DefinitionType.CONSTANT
        if isinstance(definition, FunctionDefinition):
            return DefinitionType.FUNCTION
        raise TypeError("Can't add '{}' to a scope".format(type(definition).__name__))

    def __str__(self):
        s = 'Scope {\n'
        for (name, definition_type), item in self.items():
            if definition_type == DefinitionType.VARIABLE:
                s += '\t{} = {}\n'.format(name, item)
            else:
                s += '\t' + str(item) + '\n'
        s += '}'
        return s

    def __repr__(self):
        return '<Scope size={}>'.format(len(self))


class Context:
    """
    Holds everything an expression can refer to. The global scope (bottom of the stack) contains constants, natives,
    top level functions and top level variable bindings. Each user function call pushes a scope holding its arguments,
    so parameters shadow outer names without modifying them.

    Variable lookup only checks the innermost scope and then the global scope: a function body sees its own parameters
    and the top level bindings, never the bindings of its caller. Function lookup checks every scope, innermost first.
    """

    def __init__(self):
        self.params = Params()
        self.global_scope = Scope()
        self.stack: List[Scope] = [self.global_scope]
        self._name_counter = 0

    # --- Definitions --- #

    def add_global(self, *definitions: Definition):
        """ Add constants and natives to the global scope. Existing entries with the same name are replaced. """
        for definition in definitions:
            self.global_scope.add(definition)

    def add_function(self, text: str):
        """
        Parse a definition expression such as ``f(x, y) = x^2 + y`` and add the function to the current scope.

        :raises ExpressionSyntaxError: if `text` is not a function definition
        :raises DefinitionError: if the name is already taken
        :return: FunctionDefinition
        """
        from .parser import FunctionDefinitionNode, parse, ExpressionSyntaxError

        root = parse(self, text)
        if not isinstance(root, FunctionDefinitionNode):
            raise ExpressionSyntaxError(
                'Expected a function definition such as f(x)=x^2', text, 0, len(text)
            )
        return self.define(root.definition)

    def define(self, definition: FunctionDefinition):
        """ Add an already parsed function definition to the current scope. Raises DefinitionError on a name clash. """
        name = definition.name
        if self.is_native(name):
            raise DefinitionError("Cannot redefine native function '{}'".format(name))
        if self.is_constant(name):
            raise DefinitionError("Cannot redefine constant '{}'".format(name))
        if self.lookup_function(name) is not None:
            raise DefinitionError("Function '{}' is already defined".format(name))

        self.stack[-1].add(definition)
        logger.debug('Defined %s', definition)
        return definition

    def remove_function(self, name: str):
        """ Removes and returns a user function. Raises UnknownIdentifierError if it does not exist. """
        for scope in reversed(self.stack):
            definition = scope.pop((name, DefinitionType.FUNCTION), None)
            if definition is not None:
                return definition
        raise UnknownIdentifierError("Function '{}' not found".format(name))

    def lookup_function(self, name: str):
        """ Returns the user function named `name`, or None """
        for scope in reversed(self.stack):
            definition = scope.get(name, DefinitionType.FUNCTION)
            if definition is not None:
                return definition
        return None

    def is_native(self, name: str):
        return (name, DefinitionType.NATIVE) in self.global_scope

    def get_native(self, name: str) -> NativeFunction:
        native = self.global_scope.get(name, DefinitionType.NATIVE)
        if native is None:
            raise UnknownIdentifierError("Native function '{}' not found".format(name))
        return native

    def is_function(self, name: str):
        """ True for both native and user functions """
        return self.is_native(name) or self.lookup_function(name) is not None

    def is_constant(self, name: str):
        return (name, DefinitionType.CONSTANT) in self.global_scope

    def get_constant(self, name: str) -> Constant:
        constant = self.global_scope.get(name, DefinitionType.CONSTANT)
        if constant is None:
            raise UnknownIdentifierError("Constant '{}' not found".format(name))
        return constant

    def constants(self):
        """ Names of all constants """
        return [name for name, definition_type in self.global_scope if definition_type == DefinitionType.CONSTANT]

    def function_names(self):
        """ Names of all natives and user functions visible from the current scope """
        names = set()
        for scope in self.stack:
            for name, definition_type in scope:
                if definition_type in (DefinitionType.NATIVE, DefinitionType.FUNCTION):
                    names.add(name)
        return names

    # --- Calls --- #

    def call_native(self, name: str, inputs):
        """ Invoke a native function. `inputs` are Terms, or syntax tree nodes if the native is manual_eval. """
        return apply_native(self, self.get_native(name), list(inputs))

    def call_function(self, name: str, inputs: List[Term]):
        """ Evaluate a user function body with `inputs` bound to its parameters in a new scope """
        definition = self.lookup_function(name)
        if definition is None:
            raise UnknownIdentifierError("Function '{}' not found".format(name))
        definition.check_inputs(len(inputs))

        with self.with_scope():
            for param, term in zip(definition.params, inputs):
                self.bind(param, term)
            return definition.body.evaluate(self)

    # --- Variables --- #

    def bind(self, name: str, term: Term):
        """ Bind a variable in the current scope """
        self.stack[-1].bind(name, term)

    def lookup_variable(self, name: str):
        """ Returns the Term bound to `name` in the current scope or the global scope, or None """
        term = self.stack[-1].get(name, DefinitionType.VARIABLE)
        if term is None and len(self.stack) > 1:
            term = self.global_scope.get(name, DefinitionType.VARIABLE)
        return term

    def is_bound(self, name: str):
        return self.lookup_variable(name) is not None

    def generate_name(self):
        """
        Returns a fresh function name for internally synthesized helper functions. Names are built from a counter
        (``_a``, ``_b``, ..., ``_ba``, ...) and skip anything already in use.
        """
        while True:
            n = self._name_counter
            self._name_counter += 1

            letters = ''
            while True:
                n, r = divmod(n, len(ascii_lowercase))
                letters = ascii_lowercase[r] + letters
                if n == 0:
                    break

            name = '_' + letters
            if not self.is_function(name) and not self.is_constant(name):
                return name

    # --- Scopes --- #

    def push_scope(self):
        """ Push a new scope to the stack """
        self.stack.append(Scope())

    def pop_scope(self):
        """ Pop the top scope off the stack """
        if len(self.stack) > 1:
            del self.stack[-1]
        else:
            raise ContextError('Cannot pop global scope')

    @contextmanager
    def with_scope(self):
        """ Push a scope using a context manager """
        try:
            self.push_scope()
            yield
        finally:
            self.pop_scope()

    @contextmanager
    def with_params(self):
        """
        Run a request on a snapshot of the params. Changes made during the request (such as a long literal raising the
        precision) are discarded afterwards.
        """
        saved = self.params
        self.params = saved.copy()
        try:
            yield self.params
        finally:
            self.params = saved

    def __len__(self):
        """ Number of scopes in this context """
        return len(self.stack)

    def __str__(self):
        s = 'Context {\n'
        s += '\t<global scope: {} items>\n'.format(len(self.global_scope))
        for i, scope in enumerate(self.stack[1:], 1):
            for (name, definition_type), item in scope.items():
                if definition_type == DefinitionType.VARIABLE:
                    s += '\t' * i + '{} = {}\n'.format(name, item)
                else:
                    s += '\t' * i + str(item) + '\n'
        s += '}'
        return s

    def __repr__(self):
        return '<Context size={}>'.format(len(self.stack))
