#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
XPath token base class and the value conversions of the XPath 1.0 data model
(node-sets, strings, numbers and booleans).
"""
import math
import operator
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from .helpers import to_number, format_number, boolean_to_string
from .nodes import XPathNode, ElementNode, AttributeNode
from .tdop import Token
from .xpath_context import XPathContext

if TYPE_CHECKING:
    from .xpath_parser import XPathParser  # noqa: F401

XPathValue = Union[List[XPathNode], str, float, bool]

COMPARISON_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    '=': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
}


###
# Value conversions

def node_set(nodes: Iterable[XPathNode]) -> List[XPathNode]:
    """Returns a list of nodes in document order without duplicates."""
    unique = {id(node): node for node in nodes}
    return sorted(unique.values(), key=lambda x: x.position)


def string_value(value: Any) -> str:
    if isinstance(value, list):
        return value[0].string_value if value else ''
    elif isinstance(value, XPathNode):
        return value.string_value
    elif isinstance(value, bool):
        return boolean_to_string(value)
    elif isinstance(value, (int, float, Decimal)):
        return format_number(float(value))
    elif value is None:
        return ''
    return str(value)


def number_value(value: Any) -> float:
    if isinstance(value, (list, XPathNode)):
        return to_number(string_value(value))
    return to_number(value)


def boolean_value(value: Any) -> bool:
    if isinstance(value, list):
        return bool(value)
    elif isinstance(value, bool):
        return value
    elif isinstance(value, (int, float, Decimal)):
        return not math.isnan(value) and value != 0
    return bool(value)


def compare_values(op: str, left: Any, right: Any) -> bool:
    """
    Compares two XPath values with the rules of XPath 1.0 general comparisons:
    a comparison that involves a node-set is true if it's true for at least
    one of its nodes.
    """
    cmp = COMPARISON_OPERATORS[op]
    equality = op in ('=', '!=')

    if isinstance(left, list) and isinstance(right, list):
        if equality:
            return any(cmp(x.string_value, y.string_value) for x in left for y in right)
        return any(cmp(to_number(x.string_value), to_number(y.string_value))
                   for x in left for y in right)

    elif isinstance(left, list) or isinstance(right, list):
        other = right if isinstance(left, list) else left
        if isinstance(other, bool):
            return cmp(boolean_value(left), boolean_value(right))

        if isinstance(other, (int, float, Decimal)) or not equality:
            convert: Callable[[Any], Any] = number_value
        else:
            convert = string_value

        if isinstance(left, list):
            return any(cmp(convert(x), convert(right)) for x in left)
        return any(cmp(convert(left), convert(y)) for y in right)

    elif not equality:
        return cmp(number_value(left), number_value(right))
    elif isinstance(left, bool) or isinstance(right, bool):
        return cmp(boolean_value(left), boolean_value(right))
    elif isinstance(left, (int, float, Decimal)) or isinstance(right, (int, float, Decimal)):
        return cmp(number_value(left), number_value(right))
    return cmp(string_value(left), string_value(right))


class XPathToken(Token['XPathToken']):
    """Base class for XPath tokens."""
    parser: 'XPathParser'

    # Name test attributes, set by the nud of name tokens
    local_name: str = '*'
    namespace: Optional[str] = None
    prefix: Optional[str] = None

    min_args = 0
    max_args: Optional[int] = 0

    def evaluate(self, context: XPathContext) -> XPathValue:
        """
        Evaluates the token with the dynamic context, returning a list of nodes,
        a string, a number or a boolean.

        :param context: the XPath dynamic context.
        """
        return node_set(self.select(context))

    def select(self, context: XPathContext) -> Iterator[XPathNode]:
        """
        Selects the nodes addressed by the token, raising an error if the
        token doesn't represent a node-set.

        :param context: the XPath dynamic context.
        """
        value = self.evaluate(context)
        if not isinstance(value, list):
            raise self.error('XPTY0004', f'{self} is not a node-set expression')
        yield from value

    def match_element(self, node: XPathNode) -> bool:
        """Returns `True` if the name test of the token matches an element node."""
        if not isinstance(node, ElementNode):
            return False
        elif self.local_name != '*' and node.local_name != self.local_name:
            return False
        elif self.prefix is None and self.parser.namespace_agnostic:
            return True
        elif self.prefix is None and self.local_name == '*':
            return True
        return node.namespace == self.namespace

    def match_attribute(self, node: XPathNode) -> bool:
        """Returns `True` if the name test of the token matches an attribute node."""
        if not isinstance(node, AttributeNode):
            return False
        elif self.local_name != '*' and node.local_name != self.local_name:
            return False
        elif self.prefix is None:
            return self.parser.namespace_agnostic or \
                self.local_name == '*' or node.namespace is None
        return node.namespace == self.namespace

    ###
    # Helpers for function arguments
    def get_node_argument(self, context: XPathContext, index: int = 0) -> Optional[XPathNode]:
        """
        Returns the first node of a node-set argument, or the context item if the
        argument is not provided.
        """
        if len(self) <= index:
            return context.item

        value = self[index].evaluate(context)
        if not isinstance(value, list):
            raise self.error('XPTY0004', f'the argument {index + 1} of {self.symbol}() '
                                         f'must be a node-set')
        return value[0] if value else None

    def get_nodes_argument(self, context: XPathContext, index: int = 0) -> List[XPathNode]:
        value = self[index].evaluate(context)
        if not isinstance(value, list):
            raise self.error('XPTY0004', f'the argument {index + 1} of {self.symbol}() '
                                         f'must be a node-set')
        return value

    def get_string_argument(self, context: XPathContext, index: int = 0) -> str:
        if len(self) <= index:
            return context.item.string_value
        return string_value(self[index].evaluate(context))

    def get_number_argument(self, context: XPathContext, index: int = 0) -> float:
        return number_value(self[index].evaluate(context))


__all__ = ['XPathToken', 'XPathValue', 'node_set', 'string_value', 'number_value',
           'boolean_value', 'compare_values']
