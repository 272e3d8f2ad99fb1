#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Typed evaluation of XPath expressions. An expression can start with a
result type prefix (eg. 'string:count(//item)') that selects the type of
the result, otherwise a default result type is used.
"""
import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import structlog

from .exceptions import xmlcontrol_error
from .helpers import format_number, round_half_up, boolean_to_string
from .namespaces import NamespacesArgType, replace_dynamic_namespaces
from .nodes import XPathNode, DocumentNode
from .tree_builders import build_document
from .xpath_context import XPathContext
from .xpath_parser import XPathParser
from .xpath_tokens import XPathValue, string_value, number_value, boolean_value

logger = structlog.get_logger(__name__)


class ResultType(enum.Enum):
    NODE = 'node'
    NODE_SET = 'node-set'
    STRING = 'string'
    NUMBER = 'number'
    INTEGER = 'integer'
    BOOLEAN = 'boolean'

    @classmethod
    def from_prefix(cls, prefix: Union[str, 'ResultType']) -> 'ResultType':
        if isinstance(prefix, ResultType):
            return prefix
        try:
            return cls(prefix.strip().lower())
        except ValueError:
            raise ValueError(f"unknown result type {prefix!r}") from None


@dataclass(frozen=True)
class NodeSetResult:
    """Nodes in document order. A node result has at most one node."""
    nodes: Tuple[XPathNode, ...]
    result_type: ResultType = ResultType.NODE_SET

    def __bool__(self) -> bool:
        return bool(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def as_text(self) -> str:
        return ','.join(node.string_value for node in self.nodes)

    def as_list(self) -> List[str]:
        return [node.string_value for node in self.nodes]


@dataclass(frozen=True)
class StringResult:
    value: str
    result_type: ResultType = ResultType.STRING

    def as_text(self) -> str:
        return self.value


@dataclass(frozen=True)
class NumberResult:
    value: float
    result_type: ResultType = ResultType.NUMBER

    def as_text(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class BooleanResult:
    value: bool
    result_type: ResultType = ResultType.BOOLEAN

    def as_text(self) -> str:
        return boolean_to_string(self.value)


ExpressionResult = Union[NodeSetResult, StringResult, NumberResult, BooleanResult]

RESULT_TYPE_PREFIXES = {f'{t.value}:': t for t in ResultType}


def split_result_type(expression: str,
                      default: Union[str, ResultType] = ResultType.NODE_SET) \
        -> Tuple[ResultType, str]:
    """
    Splits the result type prefix from an expression.

    :returns: a couple with the result type and the expression without prefix.
    """
    for prefix, result_type in RESULT_TYPE_PREFIXES.items():
        if expression.startswith(prefix):
            return result_type, expression[len(prefix):]
    return ResultType.from_prefix(default), expression


###
# Evaluation functions, one for each result type

def nodes_of(value: XPathValue, expression: str) -> List[XPathNode]:
    if not isinstance(value, list):
        raise xmlcontrol_error(
            'XPTY0004', f"XPath expression {expression!r} doesn't select nodes"
        )
    return value


def check_match(value: XPathValue, expression: str, required: bool) -> None:
    if required and isinstance(value, list) and not value:
        raise xmlcontrol_error('XCNM0001', f"No result for XPath expression: '{expression}'")


def evaluate_as_node(value: XPathValue, expression: str, required: bool) -> NodeSetResult:
    check_match(value, expression, required)
    return NodeSetResult(tuple(nodes_of(value, expression)[:1]), ResultType.NODE)


def evaluate_as_node_set(value: XPathValue, expression: str, required: bool) -> NodeSetResult:
    check_match(value, expression, required)
    return NodeSetResult(tuple(nodes_of(value, expression)))


def evaluate_as_string(value: XPathValue, expression: str, required: bool) -> StringResult:
    check_match(value, expression, required)
    return StringResult(string_value(value))


def evaluate_as_number(value: XPathValue, expression: str, required: bool) -> NumberResult:
    return NumberResult(number_value(value))


def evaluate_as_integer(value: XPathValue, expression: str, required: bool) -> NumberResult:
    return NumberResult(round_half_up(number_value(value)), ResultType.INTEGER)


def evaluate_as_boolean(value: XPathValue, expression: str, required: bool) -> BooleanResult:
    return BooleanResult(boolean_value(value))


EVALUATORS: Dict[ResultType, Callable[[XPathValue, str, bool], Any]] = {
    ResultType.NODE: evaluate_as_node,
    ResultType.NODE_SET: evaluate_as_node_set,
    ResultType.STRING: evaluate_as_string,
    ResultType.NUMBER: evaluate_as_number,
    ResultType.INTEGER: evaluate_as_integer,
    ResultType.BOOLEAN: evaluate_as_boolean,
}


def evaluate(expression: str,
             document: Any,
             namespaces: NamespacesArgType = None,
             result_type: Union[str, ResultType, None] = None,
             default_result_type: Union[str, ResultType] = ResultType.NODE_SET,
             namespace_agnostic: bool = False,
             required: bool = False,
             max_length: Optional[int] = None) -> ExpressionResult:
    """
    Evaluates an XPath expression on a document, returning a typed result.

    :param expression: the XPath expression, optionally prefixed by a result type \
    (eg. 'string:', 'number:', 'boolean:', 'node:').
    :param document: the document node, or any source accepted by `build_document()`.
    :param namespaces: the namespace context for resolving the expression prefixes.
    :param result_type: forces a result type, the prefix is not extracted from \
    the expression if this is provided.
    :param default_result_type: the result type when the expression has no prefix. \
    An unprefixed expression that evaluates to an atomic value (eg. 'count(//a)') \
    has a string result if the default result type is a node type.
    :param namespace_agnostic: if `True` unprefixed names match by local name only.
    :param required: if `True` raises `NoMatch` when a node or string result \
    is requested and the expression selects nothing.
    :param max_length: the maximum length of the expression.
    """
    if result_type is not None:
        result_type, path = ResultType.from_prefix(result_type), expression
        implicit = False
    else:
        result_type, path = split_result_type(expression, default_result_type)
        implicit = len(path) == len(expression)

    path, context_namespaces = replace_dynamic_namespaces(path, namespaces)
    parser = XPathParser(context_namespaces, namespace_agnostic, max_length)
    root_token = parser.parse(path)

    if not isinstance(document, DocumentNode):
        document = build_document(document)
    value = root_token.evaluate(XPathContext(document))
    if implicit and not isinstance(value, list) and \
            result_type in (ResultType.NODE, ResultType.NODE_SET):
        result_type = ResultType.STRING  # an atomic value of an unprefixed expression

    logger.debug("XPath expression evaluated", expression=expression,
                 result_type=result_type.value)
    return EVALUATORS[result_type](value, expression, required)


def select(document: Any, path: str,
           namespaces: NamespacesArgType = None,
           namespace_agnostic: bool = False) -> List[XPathNode]:
    """
    Selects the nodes of a document addressed by an XPath expression.

    :param document: the document node, or any source accepted by `build_document()`.
    :param path: the XPath expression.
    :param namespaces: the namespace context for resolving the expression prefixes.
    :param namespace_agnostic: if `True` unprefixed names match by local name only.
    """
    result = evaluate(path, document, namespaces, ResultType.NODE_SET,
                      namespace_agnostic=namespace_agnostic)
    assert isinstance(result, NodeSetResult)
    return list(result.nodes)


__all__ = ['ResultType', 'NodeSetResult', 'StringResult', 'NumberResult', 'BooleanResult',
           'ExpressionResult', 'RESULT_TYPE_PREFIXES', 'EVALUATORS', 'split_result_type',
           'evaluate', 'select']
