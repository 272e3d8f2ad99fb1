#!/usr/bin/env python
#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
import math
import unittest
from xml.etree import ElementTree

from xmlcontrol.exceptions import InvalidExpression, NoMatch
from xmlcontrol.nodes import AttributeNode, ElementNode
from xmlcontrol.tree_builders import build_document
from xmlcontrol.xpath_results import ResultType, NodeSetResult, StringResult, \
    NumberResult, BooleanResult, split_result_type, evaluate, select

XML_CATALOG = """\
<catalog>
  <item price="1.5">alpha</item>
  <item price="2">beta</item>
  <empty/>
</catalog>"""


class ResultTypeTest(unittest.TestCase):

    def test_from_prefix(self):
        self.assertIs(ResultType.from_prefix('string'), ResultType.STRING)
        self.assertIs(ResultType.from_prefix(' Boolean '), ResultType.BOOLEAN)
        self.assertIs(ResultType.from_prefix('node-set'), ResultType.NODE_SET)
        self.assertIs(ResultType.from_prefix(ResultType.NODE), ResultType.NODE)

        with self.assertRaises(ValueError) as ctx:
            ResultType.from_prefix('date')
        self.assertEqual(str(ctx.exception), "unknown result type 'date'")

    def test_split_result_type(self):
        self.assertEqual(split_result_type('string:/a'), (ResultType.STRING, '/a'))
        self.assertEqual(split_result_type('node-set://a'), (ResultType.NODE_SET, '//a'))
        self.assertEqual(split_result_type('node:/a'), (ResultType.NODE, '/a'))
        self.assertEqual(split_result_type('integer:count(//a)'),
                         (ResultType.INTEGER, 'count(//a)'))
        self.assertEqual(split_result_type('/a'), (ResultType.NODE_SET, '/a'))
        self.assertEqual(split_result_type('/a', 'node'), (ResultType.NODE, '/a'))
        self.assertEqual(split_result_type('ns:a'), (ResultType.NODE_SET, 'ns:a'))


class EvaluateTest(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.document = build_document(XML_CATALOG)

    def test_node_set_results(self):
        result = evaluate('node-set://item', self.document)
        self.assertIsInstance(result, NodeSetResult)
        self.assertIs(result.result_type, ResultType.NODE_SET)
        self.assertEqual(len(result), 2)
        self.assertTrue(result)
        self.assertEqual(result.as_text(), 'alpha,beta')
        self.assertEqual(result.as_list(), ['alpha', 'beta'])

        result = evaluate('//missing', self.document)
        self.assertFalse(result)
        self.assertEqual(result.as_text(), '')

    def test_node_results(self):
        result = evaluate('node:/catalog/item', self.document)
        self.assertIs(result.result_type, ResultType.NODE)
        self.assertEqual(len(result), 1)
        self.assertEqual(result.as_text(), 'alpha')

        result = evaluate('/catalog/item[2]/@price', self.document, result_type='node')
        self.assertIsInstance(result.nodes[0], AttributeNode)
        self.assertEqual(result.as_text(), '2')

    def test_string_results(self):
        result = evaluate('string:/catalog/item[2]', self.document)
        self.assertEqual(result, StringResult('beta'))
        self.assertEqual(result.as_text(), 'beta')
        self.assertEqual(evaluate('string:count(//item)', self.document).as_text(), '2')
        self.assertEqual(evaluate('string:/catalog/empty', self.document).as_text(), '')

    def test_local_name_of_prefixed_root(self):
        result = evaluate('string:local-name(/*)', '<ns1:root xmlns:ns1="http://agenix"/>')
        self.assertEqual(result.as_text(), 'root')

    def test_number_results(self):
        result = evaluate('number:count(//item)', self.document)
        self.assertEqual(result, NumberResult(2.0))
        self.assertEqual(result.as_text(), '2')

        result = evaluate('number:sum(//@price)', self.document)
        self.assertEqual(result.as_text(), '3.5')

        result = evaluate('integer:sum(//@price)', self.document)
        self.assertIs(result.result_type, ResultType.INTEGER)
        self.assertEqual(result.value, 4.0)
        self.assertEqual(result.as_text(), '4')

        result = evaluate('number:/catalog/item', self.document)
        self.assertTrue(math.isnan(result.value))
        self.assertEqual(result.as_text(), 'NaN')

    def test_boolean_results(self):
        result = evaluate('boolean:/catalog/missing', self.document)
        self.assertEqual(result, BooleanResult(False))
        self.assertEqual(result.as_text(), 'false')
        self.assertEqual(evaluate('boolean://item[@price > 1.8]', self.document).as_text(),
                         'true')

    def test_unprefixed_atomic_values(self):
        result = evaluate('count(//item)', self.document)
        self.assertIsInstance(result, StringResult)
        self.assertEqual(result.as_text(), '2')

        result = evaluate('//item = "beta"', self.document, default_result_type='node')
        self.assertEqual(result.as_text(), 'true')

        with self.assertRaises(InvalidExpression) as ctx:
            evaluate('node-set:count(//item)', self.document)
        self.assertEqual(ctx.exception.code, 'XPTY0004')

    def test_required_results(self):
        with self.assertRaises(NoMatch) as ctx:
            evaluate('/catalog/missing', self.document, required=True)
        self.assertEqual(str(ctx.exception),
                         "[XCNM0001] No result for XPath expression: '/catalog/missing'")

        with self.assertRaises(NoMatch):
            evaluate('string:/catalog/missing', self.document, required=True)

        result = evaluate('number:/catalog/missing', self.document, required=True)
        self.assertEqual(result.as_text(), 'NaN')
        result = evaluate('boolean:/catalog/missing', self.document, required=True)
        self.assertEqual(result.as_text(), 'false')

    def test_namespaces(self):
        xml_source = '<root xmlns="http://a.example"><item>x</item></root>'
        result = evaluate('string:/{http://a.example}root/{http://a.example}item', xml_source)
        self.assertEqual(result.as_text(), 'x')

        result = evaluate('/root/item', xml_source, namespaces={'': 'http://a.example'})
        self.assertEqual(len(result), 1)

        result = evaluate('/a:root/a:item', xml_source, namespaces={'a': 'http://a.example'})
        self.assertEqual(result.as_text(), 'x')

        self.assertFalse(evaluate('/root/item', xml_source))
        self.assertTrue(evaluate('/root/item', xml_source, namespace_agnostic=True))

    def test_document_sources(self):
        root = ElementTree.XML(XML_CATALOG)
        self.assertEqual(evaluate('string:/catalog/item', root).as_text(), 'alpha')
        self.assertEqual(evaluate('string:/catalog/item', XML_CATALOG).as_text(), 'alpha')

    def test_max_length(self):
        with self.assertRaises(InvalidExpression):
            evaluate('/catalog', self.document, max_length=3)
        self.assertTrue(evaluate('/catalog', self.document, max_length=8))

    def test_select(self):
        nodes = select(self.document, '//item')
        self.assertEqual(len(nodes), 2)
        self.assertTrue(all(isinstance(node, ElementNode) for node in nodes))
        self.assertEqual(select(self.document, '//missing'), [])


if __name__ == '__main__':
    unittest.main()
