#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Resolution of ignore patterns on a control document. A pattern is either
an XPath expression (it contains '/' or '(') or a dot-notation path of
element names (eg. 'root.element.sub-element' or 'root.element.@attr').
"""
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional, Tuple

import structlog

from .exceptions import NoMatch, xmlcontrol_error
from .namespaces import NamespacesArgType, NamespaceContext
from .nodes import XPathNode, DocumentNode, ElementNode
from .settings import DEFAULT_SETTINGS, ValidationSettings
from .tree_builders import build_document
from .xpath_results import ResultType, evaluate

if TYPE_CHECKING:
    from .context import TestContext  # noqa: F401

logger = structlog.get_logger(__name__)


def is_xpath_expression(expression: str) -> bool:
    return '/' in expression or '(' in expression


def is_ignore_placeholder(text: Optional[str],
                          settings: ValidationSettings = DEFAULT_SETTINGS) -> bool:
    """Returns `True` if the text is the ignore placeholder, surrounding spaces allowed."""
    return text is not None and text.strip() == settings.ignore_placeholder


def find_node_by_name(document: DocumentNode, expression: str) -> XPathNode:
    """
    Finds a node by a dot-notation path. A single name selects the first
    element with that local name in document order. A dotted path selects
    the first element whose ancestors chain matches the path, or, if no
    element has the last name, the attribute of the element addressed by
    the rest of the path.

    :raises NoMatch: if no node is found.
    """
    parts = expression.strip().split('.')
    if not all(parts):
        raise xmlcontrol_error('XCEX0001', f"Invalid node name path {expression!r}")

    name = parts[-1]
    if not name.startswith('@'):
        for node in document.getroot().iter_descendants():
            if not isinstance(node, ElementNode) or node.local_name != name:
                continue
            elif len(parts) == 1:
                return node

            names = [node.local_name]
            names.extend(e.local_name for e in node.iter_ancestors()
                         if isinstance(e, ElementNode))
            if names[::-1] == parts:
                return node

    if len(parts) > 1:
        parent = find_node_by_name(document, '.'.join(parts[:-1]))
        if isinstance(parent, ElementNode):
            for attribute in parent.attributes:
                if attribute.local_name == name.lstrip('@'):
                    return attribute

    raise xmlcontrol_error(
        'XCNM0001', f"Element '{expression}' could not be found in DOM tree"
    )


class IgnoreSet:
    """
    An immutable set of the control nodes excluded from comparison.

    :param nodes: the ignored nodes.
    :param patterns: the patterns that selected the nodes.
    """
    __slots__ = ('nodes', 'patterns', '_ids')

    def __init__(self, nodes: Iterable[XPathNode] = (), patterns: Iterable[str] = ()) -> None:
        self.nodes: Tuple[XPathNode, ...] = tuple(nodes)
        self.patterns: Tuple[str, ...] = tuple(patterns)
        self._ids = frozenset(id(node) for node in self.nodes)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(patterns={list(self.patterns)!r})'

    def __contains__(self, node: object) -> bool:
        return id(node) in self._ids

    def __iter__(self) -> Iterator[XPathNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self._ids)

    def __bool__(self) -> bool:
        return bool(self._ids)


class IgnorePathResolver:
    """
    Computes the ignore set of a control document.

    :param namespaces: the namespace context for prefixed XPath patterns.
    :param context: an optional test context for resolving variables and \
    functions in the patterns.
    """
    def __init__(self, namespaces: NamespacesArgType = None,
                 context: Optional['TestContext'] = None) -> None:
        if isinstance(namespaces, NamespaceContext):
            self.namespaces = namespaces
        else:
            self.namespaces = NamespaceContext(namespaces)
        self.context = context

    def compute(self, patterns: Iterable[str], control: Any) -> IgnoreSet:
        """
        Evaluates the patterns on the control document. Unprefixed names of
        XPath patterns match elements of any namespace.

        :param patterns: XPath expressions or dot-notation paths.
        :param control: the control document node.
        :raises UnresolvedIgnorePath: if a pattern doesn't select any node.
        """
        if not isinstance(control, DocumentNode):
            control = build_document(control)

        nodes: List[XPathNode] = []
        resolved: List[str] = []

        for pattern in patterns:
            if self.context is not None:
                pattern = self.context.resolve(pattern)
            resolved.append(pattern)

            if is_xpath_expression(pattern):
                result = evaluate(pattern, control, self.namespaces,
                                  ResultType.NODE_SET, namespace_agnostic=True)
                selected = list(result.nodes)  # type: ignore[union-attr]
            else:
                try:
                    selected = [find_node_by_name(control, pattern)]
                except NoMatch:
                    selected = []

            if not selected:
                raise xmlcontrol_error(
                    'XCIG0001', f"Ignore pattern {pattern!r} doesn't match any node "
                                f"of the control document"
                )

            logger.debug("Ignore pattern resolved", pattern=pattern, count=len(selected))
            nodes.extend(selected)

        return IgnoreSet(nodes, resolved)


__all__ = ['IgnoreSet', 'IgnorePathResolver', 'find_node_by_name',
           'is_xpath_expression', 'is_ignore_placeholder']
