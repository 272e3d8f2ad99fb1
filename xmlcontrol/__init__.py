#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
__version__ = '1.0.0'
__copyright__ = "Copyright 2018-2025, SISSA"
__license__ = "MIT"
__status__ = "Beta"

# Imports here are considered as stable API, other internal calls may change.

from . import etree  # Safe parser for ElementTree

from .exceptions import XmlControlError, ParseError, XMLResourceForbidden, \
    InvalidExpression, UnsupportedExpression, NoMatch, UnresolvedIgnorePath, \
    UnknownVariable, UnknownFunction, NamespaceContextError, NamespaceNotFound, \
    ValidationError, StructuralMismatch, NamespaceMismatch, MatcherMismatch

from .settings import ValidationSettings, DEFAULT_SETTINGS
from .namespaces import NamespaceContext
from .nodes import XPathNode, DocumentNode, ElementNode, AttributeNode, TextNode
from .tree_builders import build_document, build_node_tree, build_lxml_node_tree
from .xpath_context import XPathContext
from .xpath_parser import XPathParser
from .xpath_results import ResultType, NodeSetResult, StringResult, NumberResult, \
    BooleanResult, ExpressionResult, evaluate, select
from .functions import FunctionLibrary, FunctionRegistry
from .matchers import ValidationMatcherLibrary, ValidationMatcherRegistry
from .context import TestContext
from .resolver import ExpressionResolver, resolve
from .ignore import IgnoreSet, IgnorePathResolver
from .compare import TreeComparator
from .validators import NamespaceValidator, XmlValidator, validate_structure, \
    validate_expressions, extract_variables

__all__ = ['etree', 'XmlControlError', 'ParseError', 'XMLResourceForbidden',
           'InvalidExpression', 'UnsupportedExpression', 'NoMatch',
           'UnresolvedIgnorePath', 'UnknownVariable', 'UnknownFunction',
           'NamespaceContextError', 'NamespaceNotFound', 'ValidationError',
           'StructuralMismatch', 'NamespaceMismatch', 'MatcherMismatch',
           'ValidationSettings', 'DEFAULT_SETTINGS', 'NamespaceContext',
           'XPathNode', 'DocumentNode', 'ElementNode', 'AttributeNode', 'TextNode',
           'build_document', 'build_node_tree', 'build_lxml_node_tree',
           'XPathContext', 'XPathParser', 'ResultType', 'NodeSetResult',
           'StringResult', 'NumberResult', 'BooleanResult', 'ExpressionResult',
           'evaluate', 'select', 'FunctionLibrary', 'FunctionRegistry',
           'ValidationMatcherLibrary', 'ValidationMatcherRegistry', 'TestContext',
           'ExpressionResolver', 'resolve', 'IgnoreSet', 'IgnorePathResolver',
           'TreeComparator', 'NamespaceValidator', 'XmlValidator',
           'validate_structure', 'validate_expressions', 'extract_variables']
