#!/usr/bin/env python
#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
import unittest

from xmlcontrol.context import TestContext
from xmlcontrol.exceptions import InvalidExpression, MatcherMismatch, NamespaceMismatch, NoMatch, \
    StructuralMismatch, UnresolvedIgnorePath, ValidationError
from xmlcontrol.settings import ValidationSettings
from xmlcontrol.validators import NamespaceValidator, XmlValidator, \
    validate_structure, validate_expressions, extract_variables

XML_DATA = """\
<root>
  <element attributeA="attribute-value" attributeB="attribute-value">
    <sub-elementA attribute="A">text-value</sub-elementA>
    <sub-elementB attribute="B">text-value</sub-elementB>
  </element>
</root>"""

XML_DATA_SWAPPED = """\
<root>
  <element attributeB="attribute-value" attributeA="attribute-value">
    <sub-elementA attribute="A">text-value</sub-elementA>
    <sub-elementB attribute="B">text-value</sub-elementB>
  </element>
</root>"""

XML_NAMESPACED = """\
<root xmlns="http://agenix/default" xmlns:ns1="http://agenix/ns1">
  <element>text-value</element>
  <ns1:element>ns-value</ns1:element>
</root>"""


class NamespaceValidatorTest(unittest.TestCase):

    def setUp(self):
        self.validator = NamespaceValidator()

    def test_matching_namespaces(self):
        declarations = {'': 'http://agenix/default', 'ns1': 'http://agenix/ns1'}
        self.validator.validate(declarations, {'ns1': 'http://agenix/ns1'}, 'root')
        self.validator.validate(declarations, declarations, 'root')
        self.validator.validate(declarations, {'other': 'http://agenix/ns1'}, 'root')
        self.validator.validate(declarations, {})
        self.validator.validate(None, None)

    def test_namespace_values_not_equal(self):
        with self.assertRaises(NamespaceMismatch) as ctx:
            self.validator.validate({'': 'http://agenix/default'},
                                    {'': 'http://agenix/wrong'}, 'root')
        self.assertEqual(ctx.exception.code, 'XCVA0002')
        self.assertEqual(ctx.exception.message,
                         "Namespace '' values not equal: found 'http://agenix/default' "
                         "expected 'http://agenix/wrong' in reference node root")
        self.assertEqual(ctx.exception.expected, 'http://agenix/wrong')
        self.assertEqual(ctx.exception.actual, 'http://agenix/default')

    def test_missing_namespace(self):
        with self.assertRaises(NamespaceMismatch) as ctx:
            self.validator.validate({'': 'http://agenix/default'},
                                    {'ns2': 'http://agenix/ns2'}, 'root')
        self.assertEqual(ctx.exception.message,
                         "Missing namespace ns2(http://agenix/ns2) in reference node root")

        with self.assertRaises(NamespaceMismatch) as ctx:
            self.validator.validate({}, {'ns2': 'http://agenix/ns2'})
        self.assertEqual(ctx.exception.message, "Missing namespace ns2(http://agenix/ns2)")

    def test_expected_prefix_bound_to_another_uri(self):
        declarations = {'ns0': 'http://agenix/a', 'ns1': 'http://agenix/b'}
        self.validator.validate(declarations, {'ns0': 'http://agenix/b'})

        with self.assertRaises(NamespaceMismatch) as ctx:
            self.validator.validate(declarations, {'ns0': 'http://agenix/c'}, 'root')
        self.assertEqual(ctx.exception.message,
                         "Namespace 'ns0' values not equal: found 'http://agenix/a' "
                         "expected 'http://agenix/c' in reference node root")

        # The default namespace is not matched by other prefixes
        with self.assertRaises(NamespaceMismatch):
            self.validator.validate({'': 'http://agenix/a', 'ns1': 'http://agenix/b'},
                                    {'': 'http://agenix/b'})

    def test_strict_namespace_count(self):
        declarations = {'': 'http://agenix/default', 'ns1': 'http://agenix/ns1'}
        self.validator.validate(declarations, {'ns1': 'http://agenix/ns1'})

        validator = NamespaceValidator(settings=ValidationSettings(strict_namespace_count=True))
        validator.validate(declarations, declarations)
        with self.assertRaises(NamespaceMismatch) as ctx:
            validator.validate(declarations, {'ns1': 'http://agenix/ns1'}, 'root')
        self.assertEqual(ctx.exception.message,
                         "Number of namespace declarations not equal in reference node "
                         "root, expected '1' but was '2'")

    def test_empty_document(self):
        with self.assertRaises(ValidationError) as ctx:
            self.validator.validate(None, {'ns1': 'http://agenix/ns1'})
        self.assertEqual(ctx.exception.code, 'XCVA0000')

    def test_resolved_namespaces(self):
        validator = NamespaceValidator(TestContext({'uri': 'http://agenix/ns1'}))
        validator.validate({'ns1': 'http://agenix/ns1'}, {'ns1': '${uri}'})


class ValidateStructureTest(unittest.TestCase):

    def setUp(self):
        self.validator = XmlValidator()

    def test_identical_documents(self):
        self.assertIsNone(self.validator.validate_structure(XML_DATA, XML_DATA_SWAPPED))
        self.validator.validate_structure(XML_NAMESPACED, XML_NAMESPACED)

    def test_child_count_mismatch(self):
        control = XML_DATA.replace('<sub-elementB attribute="B">text-value</sub-elementB>', '')
        with self.assertRaises(StructuralMismatch) as ctx:
            self.validator.validate_structure(XML_DATA, control)
        self.assertIn("Number of child elements not equal for element 'element', "
                      "expected '1' but was '2'", str(ctx.exception))

    def test_ignore_patterns(self):
        control = XML_DATA.replace('attribute="A"', 'attribute="wrong"') \
            .replace('attribute="B"', 'attribute="wrong"')
        self.assertRaises(StructuralMismatch, self.validator.validate_structure,
                          XML_DATA, control)

        self.validator.validate_structure(XML_DATA, control,
                                          ignore=['//sub-elementA', '//sub-elementB'])
        self.validator.validate_structure(XML_DATA, control,
                                          ignore=['//element/*'])
        self.validator.validate_structure(XML_DATA, control,
                                          ignore=['root.element.sub-elementA.@attribute',
                                                  'sub-elementB'])

        with self.assertRaises(UnresolvedIgnorePath):
            self.validator.validate_structure(XML_DATA, control, ignore=['//sub-elementC'])

    def test_ignored_child_names(self):
        with self.assertRaises(StructuralMismatch) as ctx:
            self.validator.validate_structure('<r><a/><c/></r>', '<r><a/><b/></r>',
                                              ignore=['//b'])
        self.assertEqual(ctx.exception.message,
                         "Element names not equal, expected 'b' but was 'c'")
        self.validator.validate_structure('<r><a/><b x="1"/></r>', '<r><a/><b x="2"/></r>',
                                          ignore=['//b'])

    def test_deeply_nested_documents(self):
        source = '<a>' * 3000 + 'x' + '</a>' * 3000
        self.validator.validate_structure(source, source)
        with self.assertRaises(StructuralMismatch) as ctx:
            self.validator.validate_structure(source, source.replace('x', 'y'))
        self.assertTrue(ctx.exception.path.endswith('/a[1]/a[1]'))

    def test_prefixed_ignore_patterns(self):
        control = XML_NAMESPACED.replace('ns-value', 'other-value')
        self.assertRaises(StructuralMismatch, self.validator.validate_structure,
                          XML_NAMESPACED, control)
        with self.assertRaises(InvalidExpression) as ctx:
            self.validator.validate_structure(XML_NAMESPACED, control, ignore=['//ns1:element'])
        self.assertEqual(ctx.exception.code, 'XPST0081')
        self.validator.validate_structure(XML_NAMESPACED, control, ignore=['//x:element'],
                                          namespace_context={'x': 'http://agenix/ns1'})

    def test_namespace_mismatch(self):
        with self.assertRaises(NamespaceMismatch) as ctx:
            self.validator.validate_structure(
                XML_NAMESPACED, XML_NAMESPACED, namespaces={'': 'http://agenix/wrong'}
            )
        self.assertEqual(str(ctx.exception),
                         "[XCVA0002] Namespace '' values not equal: found "
                         "'http://agenix/default' expected 'http://agenix/wrong' "
                         "in reference node root")

        self.validator.validate_structure(
            XML_NAMESPACED, XML_NAMESPACED,
            namespaces={'': 'http://agenix/default', 'ns1': 'http://agenix/ns1'}
        )

    def test_empty_documents(self):
        self.validator.validate_structure('', '')
        self.validator.validate_structure(None, '  ')

        with self.assertRaises(ValidationError) as ctx:
            self.validator.validate_structure('', XML_DATA)
        self.assertEqual(ctx.exception.code, 'XCVA0000')
        self.assertIn('actual document is empty', str(ctx.exception))

        # An empty control skips the tree comparison, not the namespaces check
        self.validator.validate_structure(XML_DATA, '')
        self.assertRaises(NamespaceMismatch, self.validator.validate_structure,
                          XML_DATA, '', namespaces={'ns1': 'http://agenix/ns1'})

    def test_control_with_expressions(self):
        validator = XmlValidator(context=TestContext({'value': 'text-value'}))
        control = XML_DATA.replace('>text-value<', '>${value}<') \
            .replace('attribute="B"', "attribute=\"@Matches('[A-Z]')@\"")
        validator.validate_structure(XML_DATA, control)

        control = XML_DATA.replace('attribute="A"', 'attribute="@Ignore@"')
        validator.validate_structure(XML_DATA, control)


class ValidateExpressionsTest(unittest.TestCase):

    def setUp(self):
        self.context = TestContext({'variable': 'text-value'})
        self.validator = XmlValidator(context=self.context)

    def test_variable_values(self):
        self.validator.validate_expressions(
            XML_DATA, {'//root/element/sub-elementA': '${variable}'}
        )

        self.context.set_variable('variable', 'other-value')
        with self.assertRaises(StructuralMismatch) as ctx:
            self.validator.validate_expressions(
                XML_DATA, {'//root/element/sub-elementA': '${variable}'}
            )
        self.assertEqual(ctx.exception.message,
                         "Values not equal for element '//root/element/sub-elementA', "
                         "expected 'other-value' but was 'text-value'")
        self.assertEqual(ctx.exception.path, '//root/element/sub-elementA')

    def test_result_types(self):
        self.validator.validate_expressions(XML_DATA, {
            '/root/element/@attributeA': 'attribute-value',
            'string:local-name(/*)': 'root',
            'count(/root/element/*)': 2,
            'number:count(/root/element/*/@attribute)': '2',
            'boolean:/root/element/sub-elementA': True,
            'boolean:/root/missing': False,
            'node-set:/root/element/*': ['text-value', 'text-value'],
            "string:concat(/root/element/sub-elementA/@attribute, '-', 'x')": 'A-x',
        })

    def test_prefixed_root_local_name(self):
        self.validator.validate_expressions('<ns1:root xmlns:ns1="http://agenix"/>',
                                            {'string:local-name(/*)': 'root'})

    def test_dot_notation(self):
        self.validator.validate_expressions(XML_DATA, {
            'root.element.sub-elementA': 'text-value',
            'root.element.@attributeB': 'attribute-value',
            'sub-elementB.attribute': 'B',
        })
        with self.assertRaises(NoMatch):
            self.validator.validate_expressions(XML_DATA, {'root.missing': 'x'})

    def test_namespaces(self):
        self.validator.validate_expressions(XML_NAMESPACED, {
            '/root/element': 'text-value',
            '/root/ns1:element': 'ns-value',
            '//{http://agenix/ns1}element': 'ns-value',
        }, namespace_context={'': 'http://agenix/default', 'ns1': 'http://agenix/ns1'})
        self.validator.validate_expressions(XML_NAMESPACED, {
            '//{http://agenix/ns1}element': 'ns-value',
            'string:local-name(/*)': 'root',
        })
        self.context.set_variable('uri', 'http://agenix/ns1')
        self.validator.validate_expressions(
            XML_NAMESPACED, {'/d:root/x:element': 'ns-value'},
            namespace_context={'d': 'http://agenix/default', 'x': '${uri}'}
        )

    def test_document_prefixes_are_not_used(self):
        xml_source = '<ns1:root xmlns:ns1="http://agenix"><ns1:a>x</ns1:a></ns1:root>'
        with self.assertRaises(InvalidExpression) as ctx:
            self.validator.validate_expressions(xml_source, {'/ns1:root/ns1:a': 'x'})
        self.assertEqual(ctx.exception.code, 'XPST0081')

        with self.assertRaises(NoMatch):
            self.validator.validate_expressions(xml_source, {'/ns1:root/ns1:a': 'x'},
                                                namespace_context={'ns1': 'http://other'})
        self.validator.validate_expressions(xml_source, {'/ns1:root/ns1:a': 'x'},
                                            namespace_context={'ns1': 'http://agenix'})

    def test_document_namespaces_lookup(self):
        validator = XmlValidator(ValidationSettings(lookup_document_namespaces=True))
        validator.validate_expressions(XML_NAMESPACED, {
            '/root/element': 'text-value',
            '/root/ns1:element': 'ns-value',
        })
        self.assertEqual(validator.extract_variables(XML_NAMESPACED, {'/root/ns1:element': 'v'}),
                         {'v': 'ns-value'})

    def test_settings_namespaces(self):
        settings = ValidationSettings(default_namespaces={'d': 'http://agenix/default'},
                                      lookup_document_namespaces=False)
        validator = XmlValidator(settings)
        self.assertIs(validator.context.settings, settings)
        validator.validate_expressions(XML_NAMESPACED, {'/d:root/d:element': 'text-value'})

        # Without the document namespaces unprefixed names have no namespace
        with self.assertRaises(NoMatch):
            validator.validate_expressions(XML_NAMESPACED, {'/root/element': 'text-value'})

    def test_expression_keys(self):
        self.context.set_variable('child', 'sub-elementA')
        self.validator.validate_expressions(XML_DATA, {
            '/root/element/${child}': 'text-value',
            "core:Concat('/root/element/', 'sub-elementB')": 'text-value',
        })

    def test_matchers(self):
        self.validator.validate_expressions(XML_DATA, {
            '/root/element/sub-elementA': "@StartsWith('text')@",
            '/root/element/@attributeA': '@Ignore@',
            'count(//*)': "@GreaterThan('3')@",
        })

        with self.assertRaises(MatcherMismatch) as ctx:
            self.validator.validate_expressions(
                XML_DATA, {'/root/element/sub-elementA': "@EndsWith('text')@"}
            )
        self.assertEqual(ctx.exception.path, '/root/element/sub-elementA')

    def test_ignored_expressions(self):
        self.validator.validate_expressions(
            XML_DATA, {'/root/missing': 'x', '/root/element/sub-elementB': 'text-value'},
            ignore=['/root/missing']
        )
        self.validator.validate_expressions(XML_DATA, {'/root/missing': '@Ignore@'})

    def test_no_match(self):
        with self.assertRaises(NoMatch) as ctx:
            self.validator.validate_expressions(XML_DATA, {'/root/missing': 'x'})
        self.assertEqual(ctx.exception.code, 'XCNM0001')

    def test_empty_document(self):
        with self.assertRaises(ValidationError) as ctx:
            self.validator.validate_expressions('', {'/root': 'x'})
        self.assertEqual(ctx.exception.code, 'XCVA0000')


class ExtractVariablesTest(unittest.TestCase):

    def setUp(self):
        self.validator = XmlValidator()

    def test_extract_variables(self):
        variables = self.validator.extract_variables(XML_DATA, {
            '//root/element/sub-elementA': 'value',
            'root.element.@attributeA': '${attribute}',
            'count(/root/element/*)': 'count',
            'boolean:/root/missing': 'missing',
        })
        self.assertEqual(variables, {
            'value': 'text-value',
            'attribute': 'attribute-value',
            'count': '2',
            'missing': 'false',
        })
        self.assertEqual(self.validator.context.get_variable('value'), 'text-value')
        self.assertEqual(self.validator.context.get_variable('${count}'), '2')

    def test_round_trip(self):
        expressions = {
            '/root/element/sub-elementB/@attribute': 'attribute',
            'string:/root/element/sub-elementA': 'text',
        }
        self.validator.extract_variables(XML_DATA, expressions)
        self.validator.validate_expressions(
            XML_DATA, {expr: '${%s}' % name for expr, name in expressions.items()}
        )

    def test_extraction_errors(self):
        with self.assertRaises(NoMatch):
            self.validator.extract_variables(XML_DATA, {'/root/missing': 'x'})
        with self.assertRaises(ValidationError):
            self.validator.extract_variables(None, {'/root': 'x'})


class ConvenienceFunctionsTest(unittest.TestCase):

    def test_validate_structure(self):
        validate_structure(XML_DATA, XML_DATA_SWAPPED)
        validate_structure(XML_DATA, XML_DATA.replace('text-value', '${v}'),
                           context=TestContext({'v': 'text-value'}))
        self.assertRaises(StructuralMismatch, validate_structure,
                          XML_DATA, XML_DATA.replace('text-value', 'other'))

    def test_validate_expressions(self):
        validate_expressions(XML_DATA, {'string:/root/element/sub-elementA': 'text-value'})
        self.assertRaises(StructuralMismatch, validate_expressions,
                          XML_DATA, {'string:/root/element/sub-elementA': 'other'})

    def test_extract_variables(self):
        context = TestContext()
        self.assertEqual(
            extract_variables(XML_DATA, {'/root/element/@attributeB': 'b'}, context=context),
            {'b': 'attribute-value'}
        )
        self.assertEqual(context.get_variable('b'), 'attribute-value')

    def test_validator_repr(self):
        validator = XmlValidator(context=TestContext({'a': '1'}))
        self.assertEqual(repr(validator), "XmlValidator(context=TestContext(variables={'a': '1'}))")


if __name__ == '__main__':
    unittest.main()
