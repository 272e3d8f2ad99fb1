#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Comparison of an actual document with a control document.
"""
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .context import TestContext
from .exceptions import ValidationError, xmlcontrol_error
from .ignore import IgnoreSet, is_ignore_placeholder
from .matchers import is_matcher_expression
from .namespaces import XMLNS_NAMESPACE
from .nodes import XPathNode, ElementNode, AttributeNode
from .settings import ValidationSettings
from .tree_builders import build_document

logger = structlog.get_logger(__name__)


def is_namespace_declaration(attribute: AttributeNode) -> bool:
    return attribute.namespace == XMLNS_NAMESPACE or \
        attribute.qualified_name.startswith('xmlns')


def mismatch_message(message: str, expected: Any, actual: Any) -> str:
    return f"{message}, expected '{expected}' but was '{actual}'"


class TreeComparator:
    """
    Compares two documents depth-first, raising a `ValidationError` at the
    first difference. Control values are resolved for variables and functions
    and can be validation matcher expressions. Control nodes of the ignore set
    and control values equal to the ignore placeholder are not compared.

    :param context: the test context, for default an empty context.
    :param ignore: the ignore set computed on the control document.
    :param settings: the validation settings, for default the settings of the context.
    """
    def __init__(self, context: Optional[TestContext] = None,
                 ignore: Optional[IgnoreSet] = None,
                 settings: Optional[ValidationSettings] = None) -> None:
        self.context = context if context is not None else TestContext()
        self.ignore = ignore if ignore is not None else IgnoreSet()
        self.settings = settings if settings is not None else self.context.settings

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(ignore={self.ignore!r})'

    def compare(self, actual: Any, control: Any) -> None:
        """
        Compares the root elements of two documents.

        :param actual: the actual document, or a source accepted by `build_document()`.
        :param control: the control document. The ignore set must have been \
        computed on this document.
        """
        actual_root = build_document(actual).getroot()
        control_root = build_document(control).getroot()
        self.compare_elements(actual_root, control_root)

    def mismatch(self, message: str, node: XPathNode,
                 expected: Any = None, actual: Any = None) -> ValidationError:
        error = xmlcontrol_error('XCVA0001', message, path=node.path,
                                 expected=expected, actual=actual)
        assert isinstance(error, ValidationError)
        return error

    def value_mismatch(self, message: str, node: XPathNode,
                       expected: Any, actual: Any) -> ValidationError:
        return self.mismatch(mismatch_message(message, expected, actual), node, expected, actual)

    def validate_matcher(self, field_name: str, value: str,
                         expression: str, node: XPathNode) -> None:
        try:
            self.context.matchers.validate(field_name, value, expression, self.context)
        except ValidationError as err:
            if err.path is None:
                err.path = node.path
            raise

    def is_element_ignored(self, control: ElementNode) -> bool:
        if control in self.ignore:
            logger.debug("Element is on ignore list - skipped validation",
                         element=control.local_name, path=control.path)
            return True

        text_nodes = control.text_nodes
        if text_nodes and is_ignore_placeholder(text_nodes[0].value, self.settings):
            logger.debug("Element is ignored by placeholder", element=control.local_name,
                         placeholder=self.settings.ignore_placeholder)
            return True
        return False

    def compare_elements(self, actual: ElementNode, control: ElementNode) -> None:
        """Compares two element subtrees in document order, with an explicit stack."""
        pairs = [(actual, control)]
        while pairs:
            actual, control = pairs.pop()
            pairs.extend(reversed(self.compare_element(actual, control)))

    def compare_element(self, actual: ElementNode, control: ElementNode) \
            -> List[Tuple[ElementNode, ElementNode]]:
        """
        Compares two elements without their child elements. Returns the pairs
        of child elements still to compare, none if the control element is
        ignored or its text is a validation matcher expression.
        """
        logger.debug("Validating element", element=actual.local_name,
                     namespace=actual.namespace)

        if actual.local_name != control.local_name:
            raise self.value_mismatch("Element names not equal", control,
                                      control.local_name, actual.local_name)
        elif actual.namespace != control.namespace:
            raise self.value_mismatch(
                f"Element namespace not equal for element '{actual.local_name}'",
                control, control.namespace, actual.namespace
            )
        elif self.is_element_ignored(control):
            return []

        self.compare_attributes(actual, control)

        control_text = control.text.strip()
        if is_matcher_expression(control_text, self.settings):
            self.validate_matcher(control.local_name, actual.text.strip(), control_text, control)
            return []

        self.compare_text(actual, control)

        actual_children = actual.elements
        control_children = control.elements
        if len(actual_children) != len(control_children):
            raise self.value_mismatch(
                f"Number of child elements not equal for element '{actual.local_name}'",
                control, len(control_children), len(actual_children)
            )

        logger.debug("Element values OK", element=actual.local_name,
                     namespace=actual.namespace)
        return list(zip(actual_children, control_children))

    def compare_attributes(self, actual: ElementNode, control: ElementNode) -> None:
        logger.debug("Validating attributes for element", element=actual.local_name)

        actual_attributes: Dict[str, AttributeNode] = {
            attr.name: attr for attr in actual.attributes if not is_namespace_declaration(attr)
        }
        control_attributes: List[AttributeNode] = []

        for attr in control.attributes:
            if is_namespace_declaration(attr):
                continue
            elif attr not in self.ignore and \
                    not is_ignore_placeholder(attr.value, self.settings):
                control_attributes.append(attr)
                continue

            # An ignored attribute must be present but its value is not compared
            if attr.name not in actual_attributes:
                raise self.mismatch(
                    f"Attribute validation failed for element '{actual.local_name}', "
                    f"missing attribute '{attr.qualified_name}'", attr
                )
            logger.debug("Attribute is ignored - skipped value validation",
                         attribute=attr.local_name)
            del actual_attributes[attr.name]

        if len(actual_attributes) != len(control_attributes):
            raise self.value_mismatch(
                f"Number of attributes not equal for element '{actual.local_name}'",
                control, len(control_attributes), len(actual_attributes)
            )

        for attr in control_attributes:
            try:
                actual_attr = actual_attributes[attr.name]
            except KeyError:
                raise self.mismatch(
                    f"Attribute validation failed for element '{actual.local_name}', "
                    f"missing attribute '{attr.qualified_name}'", attr
                ) from None
            self.compare_attribute(actual_attr, attr)

    def compare_attribute(self, actual: AttributeNode, control: AttributeNode) -> None:
        logger.debug("Validating attribute", attribute=actual.local_name,
                     namespace=actual.namespace)

        control_value = control.value.strip()
        if is_matcher_expression(control_value, self.settings):
            self.validate_matcher(control.qualified_name, actual.value.strip(),
                                  control_value, control)
            logger.debug("Attribute value OK", attribute=actual.local_name)
            return

        expected = self.context.resolve(control.value)
        value = actual.value
        if ':' in value and ':' in expected:
            expected, value = self.split_qname_values(actual, control, expected)

        if value != expected:
            raise self.value_mismatch(
                f"Values not equal for attribute '{actual.local_name}'",
                control, expected, actual.value
            )
        logger.debug("Attribute value OK", attribute=actual.local_name, value=actual.value)

    def split_qname_values(self, actual: AttributeNode, control: AttributeNode,
                           expected: str) -> List[str]:
        """
        Compares the namespaces of QName attribute values (eg. 'ns0:item'),
        returning the couple of values to compare further. Values whose
        actual prefix is not bound are returned unchanged.
        """
        value = actual.value
        actual_prefix, actual_local = value.split(':', 1)
        control_prefix, control_local = expected.split(':', 1)

        if not isinstance(actual.parent, ElementNode) or \
                not isinstance(control.parent, ElementNode):
            return [expected, value]

        actual_uri = actual.parent.resolve_prefix(actual_prefix)
        if actual_uri is None:
            return [expected, value]

        control_uri = control.parent.resolve_prefix(control_prefix)
        if control_uri is None:
            raise self.mismatch(
                f"Actual attribute value '{actual.local_name}' describes namespace "
                f"qualified attribute value, control value '{expected}' does not", control,
                expected, value
            )
        elif actual_uri != control_uri:
            raise self.value_mismatch(
                f"Values not equal for attribute value namespace '{value}'",
                control, control_uri, actual_uri
            )
        return [control_local, actual_local]

    def compare_text(self, actual: ElementNode, control: ElementNode) -> None:
        logger.debug("Validating node value for element", element=actual.local_name)

        if any(node in self.ignore for node in control.text_nodes):
            logger.debug("Node value is on ignore list - skipped validation",
                         element=actual.local_name)
            return

        expected = self.context.resolve(control.text)
        value = actual.text
        if self.settings.trim_text:
            expected = expected.strip()
            value = value.strip()

        if value != expected:
            raise self.value_mismatch(
                f"Node value not equal for element '{actual.local_name}'",
                control, expected, value
            )
        logger.debug("Node value OK", element=actual.local_name, value=value)


__all__ = ['TreeComparator', 'is_namespace_declaration', 'mismatch_message']
