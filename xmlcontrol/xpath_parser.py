#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
The XPath parser for the subset of XPath 1.0 used for validation expressions
and ignore paths: location paths with predicates, comparisons, boolean
operators, unions and a core function library.
"""
from typing import ClassVar, FrozenSet, Iterator, List, Optional, Tuple, Type, Union

from .exceptions import NamespaceNotFound
from .helpers import collapse_white_spaces, round_half_up
from .namespaces import NamespaceContext, NamespacesArgType
from .nodes import XPathNode, ElementNode, TextNode
from .tdop import Parser
from .xpath_context import XPathContext
from .xpath_tokens import XPathToken, XPathValue, node_set, string_value, \
    number_value, boolean_value, compare_values

XPATH_NAME_PATTERN = r'(?:[^\d\W][\w.\-]*:)?(?:[^\d\W][\w.\-]*|\*)'

STEP_SYMBOLS = frozenset(('(name)', '*', '@', '.', '..'))


class XPathParser(Parser[XPathToken]):
    """
    XPath parser for validation expressions.

    :param namespaces: the namespace context used for resolving the prefixes \
    of the expressions. The default namespace, if any, is applied to unprefixed \
    element names.
    :param namespace_agnostic: if `True` unprefixed names match by local name only.
    :param max_length: the maximum length of a parsed expression.
    """
    token_base_class = XPathToken
    name_pattern = XPATH_NAME_PATTERN

    SYMBOLS: ClassVar[FrozenSet[str]] = Parser.SYMBOLS | {
        # Path and predicate symbols
        '/', '//', '[', ']', '(', ')', '@', '.', '..', ',', '|', '*',

        # Operators
        '=', '!=', '<', '<=', '>', '>=', 'and', 'or',

        # Node tests
        'text', 'node',

        # Functions
        'local-name', 'namespace-uri', 'name', 'count', 'contains', 'concat',
        'string', 'starts-with', 'ends-with', 'normalize-space', 'string-length',
        'substring', 'not', 'boolean', 'number', 'true', 'false', 'position',
        'last', 'sum',
    }

    def __init__(self, namespaces: NamespacesArgType = None,
                 namespace_agnostic: bool = False,
                 max_length: Optional[int] = None) -> None:
        super().__init__()
        if isinstance(namespaces, NamespaceContext):
            self.namespaces = namespaces
        else:
            self.namespaces = NamespaceContext(namespaces)
        self.namespace_agnostic = namespace_agnostic
        if max_length is not None:
            self.max_length = max_length

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(namespaces={dict(self.namespaces)!r}, ' \
               f'namespace_agnostic={self.namespace_agnostic!r})'

    @property
    def default_namespace(self) -> Optional[str]:
        return self.namespaces.default_namespace

    def is_step_start(self, token: Optional[XPathToken] = None) -> bool:
        if token is None:
            token = self.next_token
        assert token is not None
        return token.symbol in STEP_SYMBOLS or \
            token.label in ('function', 'keyword', 'node test')

    def name_token(self, token: XPathToken) -> XPathToken:
        """Returns a name test token that replaces a keyword or a function token."""
        name = self.symbol_table['(name)'](self, token.symbol)
        name.span, name.position = token.span, token.position
        return name.nud()

    @classmethod
    def function(cls, symbol: str,
                 nargs: Union[int, Tuple[int, Optional[int]]] = 0,
                 label: str = 'function') -> Type[XPathToken]:
        """
        Registers a token class for an XPath function.

        :param symbol: the name of the function.
        :param nargs: the number of arguments, or a couple with the minimum \
        and the maximum, `None` for an unbounded maximum.
        :param label: the label of the token class.
        """
        if isinstance(nargs, int):
            min_args, max_args = nargs, nargs
        else:
            min_args, max_args = nargs

        def nud(self: XPathToken) -> XPathToken:
            if self.parser.next_token.symbol != '(':
                return self.parser.name_token(self)

            self.parser.advance('(')
            if self.parser.next_token.symbol != ')':
                while True:
                    self.append(self.parser.expression(5))
                    if self.parser.next_token.symbol != ',':
                        break
                    self.parser.advance(',')
            self.parser.advance(')')

            if len(self) < min_args or max_args is not None and len(self) > max_args:
                if min_args == max_args:
                    expected = str(min_args)
                elif max_args is None:
                    expected = f'at least {min_args}'
                else:
                    expected = f'{min_args} to {max_args}'
                raise self.error('XPST0017', f'{self.symbol}() requires {expected} '
                                             f'argument(s), {len(self)} provided')
            return self

        return cls.register(symbol, label=label, min_args=min_args,
                            max_args=max_args, nud=nud)


register = XPathParser.register
literal = XPathParser.literal
nullary = XPathParser.nullary
infix = XPathParser.infix
method = XPathParser.method
function = XPathParser.function

register('(end)')
register(',')
register(')')
register(']')


###
# Literals
literal('(string)')


def evaluate_number(self: XPathToken, context: Optional[XPathContext] = None) -> float:
    return float(self.value)


for _symbol in ('(float)', '(decimal)', '(integer)'):
    register(_symbol, label='literal', nud=lambda self: self, evaluate=evaluate_number)


###
# Name tests
@method(register('(name)', label='name'))
def nud(self: XPathToken) -> XPathToken:
    if self.parser.next_token.symbol == '(':
        raise self.error('XPST0017', f'unknown function {self.value}()')

    prefix, _, local_name = self.value.rpartition(':')
    self.local_name = local_name
    if prefix:
        self.prefix = prefix
        try:
            self.namespace = self.parser.namespaces.resolve(prefix)
        except NamespaceNotFound:
            raise self.error('XPST0081', f'namespace prefix {prefix!r} not found') from None
    else:
        self.namespace = self.parser.default_namespace
    return self


@method('(name)')
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    for child in context.iter_children():
        if self.match_element(child):
            yield child


@method(nullary('*'))
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    for child in context.iter_children():
        if isinstance(child, ElementNode):
            yield child


@method(nullary('.'))
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    yield context.item


@method(nullary('..'))
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    yield from context.iter_parent()


@method('@')
def nud(self: XPathToken) -> XPathToken:
    token = self.parser.next_token
    if not self.parser.is_step_start(token) or token.symbol in ('@', '.', '..'):
        raise token.wrong_syntax('an attribute name is expected')

    self.parser.advance()
    if token.symbol == '*':
        self[:] = token,
    elif token.symbol == '(name)':
        self[:] = token.nud(),
    else:
        self[:] = self.parser.name_token(token),
    return self


@method('@')
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    for attribute in context.iter_attributes():
        if self[0].match_attribute(attribute):
            yield attribute


###
# Paths
@method('/', bp=80)
def nud(self: XPathToken) -> XPathToken:
    if self.parser.is_step_start():
        self[:] = self.parser.expression(80),
    return self


@method('/')
def led(self: XPathToken, left: XPathToken) -> XPathToken:
    if not self.parser.is_step_start():
        raise self.parser.next_token.wrong_syntax('a location step is expected')
    self[:] = left, self.parser.expression(80)
    return self


@method('/')
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    if not self:
        yield context.root
    elif len(self) == 1:
        yield from node_set(self[0].select(context.copy(context.root)))
    else:
        results: List[XPathNode] = []
        for item in self[0].select(context):
            results.extend(self[1].select(context.copy(item)))
        yield from node_set(results)


@method('//', bp=80)
def nud(self: XPathToken) -> XPathToken:
    if not self.parser.is_step_start():
        raise self.parser.next_token.wrong_syntax('a location step is expected')
    self[:] = self.parser.expression(80),
    return self


@method('//')
def led(self: XPathToken, left: XPathToken) -> XPathToken:
    if not self.parser.is_step_start():
        raise self.parser.next_token.wrong_syntax('a location step is expected')
    self[:] = left, self.parser.expression(80)
    return self


@method('//')
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    if len(self) == 1:
        items: Iterator[XPathNode] = iter((context.root,))
    else:
        items = self[0].select(context)

    results: List[XPathNode] = []
    for item in items:
        for node in context.copy(item).iter_descendants():
            results.extend(self[-1].select(context.copy(node)))
    yield from node_set(results)


@method('[', bp=90)
def led(self: XPathToken, left: XPathToken) -> XPathToken:
    self[:] = left, self.parser.expression()
    self.parser.advance(']')
    return self


@method('[')
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    items = list(self[0].select(context))
    size = len(items)
    for position, item in enumerate(items, start=1):
        value = self[1].evaluate(context.copy(item, position, size))
        if isinstance(value, float):
            if value == position:
                yield item
        elif boolean_value(value):
            yield item


@method('(', bp=90)
def nud(self: XPathToken) -> XPathToken:
    self[:] = self.parser.expression(),
    self.parser.advance(')')
    return self


@method('(')
def evaluate(self: XPathToken, context: XPathContext) -> XPathValue:
    return self[0].evaluate(context)


@method(infix('|', bp=50))
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    yield from node_set(
        [*self[0].select(context), *self[1].select(context)]
    )


###
# Comparison and boolean operators
def evaluate_comparison(self: XPathToken, context: XPathContext) -> bool:
    return compare_values(self.symbol, self[0].evaluate(context), self[1].evaluate(context))


for _symbol, _bp in (('=', 30), ('!=', 30), ('<', 35), ('<=', 35), ('>', 35), ('>=', 35)):
    infix(_symbol, bp=_bp).evaluate = evaluate_comparison  # type: ignore[method-assign]


def nud_keyword(self: XPathToken) -> XPathToken:
    return self.parser.name_token(self)


register('and', label='keyword', nud=nud_keyword)
register('or', label='keyword', nud=nud_keyword)


@method(infix('and', bp=25))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return boolean_value(self[0].evaluate(context)) and \
        boolean_value(self[1].evaluate(context))


@method(infix('or', bp=20))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return boolean_value(self[0].evaluate(context)) or \
        boolean_value(self[1].evaluate(context))


###
# Node type tests
@method(function('text', label='node test'))
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    for child in context.iter_children():
        if isinstance(child, TextNode):
            yield child


@method(function('node', label='node test'))
def select(self: XPathToken, context: XPathContext) -> Iterator[XPathNode]:
    yield from context.iter_children()


###
# Node-set functions
@method(function('position'))
def evaluate(self: XPathToken, context: XPathContext) -> float:
    return float(context.position)


@method(function('last'))
def evaluate(self: XPathToken, context: XPathContext) -> float:
    return float(context.size)


@method(function('count', nargs=1))
def evaluate(self: XPathToken, context: XPathContext) -> float:
    return float(len(self.get_nodes_argument(context)))


@method(function('local-name', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    node = self.get_node_argument(context)
    return getattr(node, 'local_name', '')


@method(function('namespace-uri', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    node = self.get_node_argument(context)
    return getattr(node, 'namespace', None) or ''


@method(function('name', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    node = self.get_node_argument(context)
    return getattr(node, 'qualified_name', '')


@method(function('sum', nargs=1))
def evaluate(self: XPathToken, context: XPathContext) -> float:
    return sum(number_value(node) for node in self.get_nodes_argument(context))


###
# String functions
@method(function('string', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    return self.get_string_argument(context)


@method(function('concat', nargs=(2, None)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    return ''.join(string_value(token.evaluate(context)) for token in self)


@method(function('contains', nargs=2))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return self.get_string_argument(context, 1) in self.get_string_argument(context)


@method(function('starts-with', nargs=2))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return self.get_string_argument(context).startswith(self.get_string_argument(context, 1))


@method(function('ends-with', nargs=2))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return self.get_string_argument(context).endswith(self.get_string_argument(context, 1))


@method(function('normalize-space', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    return collapse_white_spaces(self.get_string_argument(context))


@method(function('string-length', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> float:
    return float(len(self.get_string_argument(context)))


@method(function('substring', nargs=(2, 3)))
def evaluate(self: XPathToken, context: XPathContext) -> str:
    value = self.get_string_argument(context)
    start = round_half_up(self.get_number_argument(context, 1))
    if len(self) > 2:
        end = start + round_half_up(self.get_number_argument(context, 2))
        return ''.join(c for k, c in enumerate(value, start=1) if start <= k < end)
    return ''.join(c for k, c in enumerate(value, start=1) if start <= k)


###
# Boolean and number functions
@method(function('not', nargs=1))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return not boolean_value(self[0].evaluate(context))


@method(function('boolean', nargs=1))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return boolean_value(self[0].evaluate(context))


@method(function('true'))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return True


@method(function('false'))
def evaluate(self: XPathToken, context: XPathContext) -> bool:
    return False


@method(function('number', nargs=(0, 1)))
def evaluate(self: XPathToken, context: XPathContext) -> float:
    if not self:
        return number_value(context.item)
    return number_value(self[0].evaluate(context))


XPathParser.build()


def iter_function_names() -> Iterator[str]:
    for symbol, token_class in XPathParser.symbol_table.items():
        if token_class.label in ('function', 'node test'):
            yield symbol


__all__ = ['XPathParser', 'iter_function_names']
