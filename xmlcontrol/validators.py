#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
The validation engine: structural validation of an actual document against
a control document, validation of XPath expression values and extraction
of variables.
"""
from typing import Any, Dict, Iterable, Mapping, Optional

import structlog

from .context import TestContext
from .compare import TreeComparator, mismatch_message
from .exceptions import ValidationError, xmlcontrol_error
from .helpers import boolean_to_string, format_number
from .ignore import IgnorePathResolver, find_node_by_name, is_ignore_placeholder, \
    is_xpath_expression
from .matchers import is_matcher_expression
from .namespaces import NamespacesArgType, NamespaceContext
from .nodes import DocumentNode
from .resolver import cut_off_variable_prefix
from .settings import DEFAULT_SETTINGS, ValidationSettings
from .tree_builders import build_document
from .xpath_results import RESULT_TYPE_PREFIXES, evaluate

logger = structlog.get_logger(__name__)


def is_empty_source(source: Any) -> bool:
    return source is None or isinstance(source, (str, bytes)) and not source.strip()


class NamespaceValidator:
    """
    Validates the namespace declarations of the root element of a document.
    An expected prefixed namespace is accepted if any prefix of the actual
    root is bound to the expected URI. The default namespace must be bound
    to the expected URI when it's declared.

    :param context: the test context used for resolving expected URIs.
    :param settings: the validation settings, for default the settings of the context.
    """
    def __init__(self, context: Optional[TestContext] = None,
                 settings: Optional[ValidationSettings] = None) -> None:
        self.context = context if context is not None else TestContext()
        self.settings = settings if settings is not None else self.context.settings

    def validate(self, actual_declarations: Optional[Mapping[str, str]],
                 expected: Optional[Mapping[str, str]],
                 node_name: Optional[str] = None) -> None:
        """
        :param actual_declarations: the namespace declarations of the actual root.
        :param expected: the expected namespaces, a map from prefixes to URIs.
        :param node_name: the name of the root, used in messages.
        """
        if not expected:
            return
        elif actual_declarations is None:
            raise xmlcontrol_error(
                'XCVA0000', "Unable to validate namespaces - actual document is empty"
            )

        logger.debug("Start XML namespace validation")
        reference = f" in reference node {node_name}" if node_name else ''

        if self.settings.strict_namespace_count and len(actual_declarations) != len(expected):
            raise xmlcontrol_error(
                'XCVA0002', f"Number of namespace declarations not equal{reference}, "
                            f"expected '{len(expected)}' but was '{len(actual_declarations)}'",
                expected=len(expected), actual=len(actual_declarations)
            )

        actual_uris = set(actual_declarations.values())
        for prefix, uri in expected.items():
            uri = self.context.resolve(uri)
            found = actual_declarations.get(prefix)

            if found == uri or uri in actual_uris and (prefix or found is None):
                logger.debug("Namespace OK", prefix=prefix, uri=uri)
            elif found is not None:
                raise xmlcontrol_error(
                    'XCVA0002', f"Namespace '{prefix}' values not equal: found "
                                f"'{found}' expected '{uri}'{reference}",
                    path=prefix, expected=uri, actual=found
                )
            else:
                raise xmlcontrol_error(
                    'XCVA0002', f"Missing namespace {prefix}({uri}){reference}",
                    path=prefix, expected=uri, actual='missing'
                )

        logger.debug("XML namespace validation successful: All values OK")


class XmlValidator:
    """
    The validation engine. Each instance has its own test context, with
    its variables and registries.

    :param settings: the validation settings, for default the settings \
    of the context or the default settings.
    :param context: the test context, for default a new context.

    Example:
        validator = XmlValidator()
        validator.validate_structure(actual, control, ignore=['//timestamp'])
        validator.validate_expressions(actual, {'string:/order/@id': '${orderId}'})
    """
    def __init__(self, settings: Optional[ValidationSettings] = None,
                 context: Optional[TestContext] = None) -> None:
        if settings is None:
            settings = context.settings if context is not None else DEFAULT_SETTINGS
        self.settings = settings
        self.context = context if context is not None else TestContext(settings=settings)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(context={self.context!r})'

    def build_namespace_context(self, document: DocumentNode,
                                namespace_context: NamespacesArgType = None) \
            -> NamespaceContext:
        """
        Builds the namespace context of the expressions: the default namespaces
        of the settings and the provided namespaces, in order of priority. The
        root declarations of the actual document are added after the settings
        only if `lookup_document_namespaces` is enabled.
        """
        layers: list = [self.settings.default_namespaces]
        if self.settings.lookup_document_namespaces:
            layers.append(document.namespaces)
        if namespace_context is not None:
            layers.append({k: self.context.resolve(v)
                           for k, v in NamespaceContext(namespace_context).items()})
        return NamespaceContext.build(*layers)

    def evaluate_expression(self, document: DocumentNode, expression: str,
                            namespaces: NamespaceContext, default_result_type: str) -> str:
        """
        Returns the text value of an XPath expression or of a dot-notation
        node path, raising `NoMatch` if nothing is selected.
        """
        if is_xpath_expression(expression) or \
                any(expression.startswith(p) for p in RESULT_TYPE_PREFIXES):
            result = evaluate(expression, document, namespaces,
                              default_result_type=default_result_type,
                              required=True,
                              max_length=self.settings.max_expression_length)
            return result.as_text()
        return find_node_by_name(document, expression).string_value

    def expected_text(self, expected: Any) -> str:
        if expected is None:
            return ''
        elif isinstance(expected, bool):
            return boolean_to_string(expected)
        elif isinstance(expected, (int, float)):
            return format_number(float(expected))
        elif isinstance(expected, (list, tuple)):
            return ','.join(self.expected_text(x) for x in expected)
        return self.context.resolve(str(expected))

    def validate_structure(self, actual: Any, control: Any,
                           ignore: Iterable[str] = (),
                           namespaces: Optional[Mapping[str, str]] = None,
                           namespace_context: NamespacesArgType = None) -> None:
        """
        Validates an actual document against a control document.

        :param actual: the actual document.
        :param control: the control document, whose values can contain \
        variables, functions, validation matchers and ignore placeholders.
        :param ignore: ignore patterns, XPath expressions or dot-notation paths \
        evaluated on the control document.
        :param namespaces: expected namespace declarations of the actual root.
        :param namespace_context: namespaces for the prefixes of ignore patterns.
        :raises ValidationError: at the first mismatch.
        """
        if is_empty_source(actual):
            if not is_empty_source(control):
                raise xmlcontrol_error(
                    'XCVA0000', "Unable to validate document - actual document is "
                                "empty, control document is not"
                )
            return

        actual_document = build_document(actual)
        self.validate_namespaces(actual_document, namespaces)

        if is_empty_source(control):
            logger.debug("Skip structure validation as no control document was defined")
            return

        logger.debug("Start XML tree validation")
        control_document = build_document(control)
        ns_context = self.build_namespace_context(actual_document, namespace_context)
        ignore_set = IgnorePathResolver(ns_context, self.context).compute(
            ignore, control_document
        )

        comparator = TreeComparator(self.context, ignore_set, self.settings)
        comparator.compare(actual_document, control_document)
        logger.info("XML tree validation successful: All values OK")

    def validate_namespaces(self, actual: Any,
                            namespaces: Optional[Mapping[str, str]]) -> None:
        if not namespaces:
            return
        elif is_empty_source(actual):
            declarations = None
            node_name = None
        else:
            document = build_document(actual)
            declarations = document.namespaces
            node_name = document.getroot().local_name
        NamespaceValidator(self.context, self.settings).validate(declarations, namespaces,
                                                                node_name)

    def validate_expressions(self, actual: Any, expressions: Mapping[str, Any],
                             namespace_context: NamespacesArgType = None,
                             ignore: Iterable[str] = ()) -> None:
        """
        Validates the values selected by expressions in an actual document.

        :param actual: the actual document.
        :param expressions: an ordered map from expressions (XPath, optionally \
        with a result type prefix, or dot-notation paths) to expected values.
        :param namespace_context: namespaces for the expression prefixes.
        :param ignore: expressions to skip.
        :raises ValidationError: at the first mismatch.
        :raises NoMatch: if an expression doesn't select anything.
        """
        if is_empty_source(actual):
            raise xmlcontrol_error(
                'XCVA0000', "Unable to validate expressions - actual document is empty"
            )

        document = build_document(actual)
        ns_context = self.build_namespace_context(document, namespace_context)
        ignored = {self.context.resolve(x) for x in ignore}

        for expression, expected in expressions.items():
            expression = self.context.resolve(expression)
            if expression in ignored:
                logger.debug("Expression is on ignore list - skipped validation",
                             expression=expression)
                continue
            elif isinstance(expected, str) and is_ignore_placeholder(expected, self.settings):
                logger.debug("Expression is ignored by placeholder", expression=expression)
                continue

            value = self.evaluate_expression(
                document, expression, ns_context, self.settings.validation_result_type
            )

            if isinstance(expected, str) and is_matcher_expression(expected, self.settings):
                try:
                    self.context.matchers.validate(expression, value, expected.strip(),
                                                   self.context)
                except ValidationError as err:
                    if err.path is None:
                        err.path = expression
                    raise
            else:
                expected_value = self.expected_text(expected)
                if value != expected_value:
                    raise xmlcontrol_error(
                        'XCVA0001',
                        mismatch_message(f"Values not equal for element '{expression}'",
                                         expected_value, value),
                        path=expression, expected=expected_value, actual=value
                    )

            logger.debug("Validating element value OK", expression=expression, value=value)

        logger.info("XPath element validation successful: All values OK")

    def extract_variables(self, actual: Any, expressions: Mapping[str, str],
                          namespace_context: NamespacesArgType = None) -> Dict[str, str]:
        """
        Extracts values from an actual document into the variables of the context.

        :param actual: the actual document.
        :param expressions: an ordered map from expressions to variable names \
        (plain names or variable expressions like '${name}').
        :param namespace_context: namespaces for the expression prefixes.
        :returns: a dictionary with the extracted variables.
        """
        if is_empty_source(actual):
            raise xmlcontrol_error(
                'XCVA0000', "Unable to extract variables - actual document is empty"
            )

        document = build_document(actual)
        ns_context = self.build_namespace_context(document, namespace_context)
        variables: Dict[str, str] = {}

        for expression, variable in expressions.items():
            expression = self.context.resolve(expression)
            value = self.evaluate_expression(
                document, expression, ns_context, self.settings.extraction_result_type
            )
            name = cut_off_variable_prefix(variable, self.settings)
            self.context.set_variable(name, value)
            variables[name] = value

        logger.info("Variables extracted", names=list(variables))
        return variables


###
# Convenience functions

def validate_structure(actual: Any, control: Any,
                       ignore: Iterable[str] = (),
                       namespaces: Optional[Mapping[str, str]] = None,
                       namespace_context: NamespacesArgType = None,
                       context: Optional[TestContext] = None) -> None:
    """Validates an actual document against a control document, see `XmlValidator`."""
    XmlValidator(context=context).validate_structure(
        actual, control, ignore, namespaces, namespace_context
    )


def validate_expressions(actual: Any, expressions: Mapping[str, Any],
                         namespace_context: NamespacesArgType = None,
                         ignore: Iterable[str] = (),
                         context: Optional[TestContext] = None) -> None:
    """Validates expression values of an actual document, see `XmlValidator`."""
    XmlValidator(context=context).validate_expressions(
        actual, expressions, namespace_context, ignore
    )


def extract_variables(actual: Any, expressions: Mapping[str, str],
                      namespace_context: NamespacesArgType = None,
                      context: Optional[TestContext] = None) -> Dict[str, str]:
    return XmlValidator(context=context).extract_variables(
        actual, expressions, namespace_context
    )


__all__ = ['NamespaceValidator', 'XmlValidator', 'validate_structure',
           'validate_expressions', 'extract_variables']
