#!/usr/bin/env python
#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
import os
import pathlib
import tempfile
import unittest
from xml.etree import ElementTree

try:
    import lxml.etree as lxml_etree
except ImportError:
    lxml_etree = None

from xmlcontrol.exceptions import ParseError
from xmlcontrol.nodes import DocumentNode, ElementNode, AttributeNode, TextNode
from xmlcontrol.tree_builders import build_document, build_node_tree, \
    build_lxml_node_tree

XML_ORDER = """\
<ord:order xmlns:ord="http://xmlcontrol.test/order" xmlns:c="http://xmlcontrol.test/c"
           id="A-1" c:status="open">
  <ord:item code="X1">book</ord:item>
  <ord:item code="X2">pen</ord:item>
  <note>first <b>bold</b> second</note>
  <c:customer xmlns="http://xmlcontrol.test/default"><name>Jane</name></c:customer>
</ord:order>"""


class TreeBuildersTest(unittest.TestCase):

    def check_order_document(self, document):
        self.assertIsInstance(document, DocumentNode)
        root = document.getroot()
        self.assertIsInstance(root, ElementNode)
        self.assertEqual(root.local_name, 'order')
        self.assertEqual(root.namespace, 'http://xmlcontrol.test/order')
        self.assertEqual(root.name, '{http://xmlcontrol.test/order}order')
        self.assertEqual(root.prefix, 'ord')
        self.assertEqual(root.qualified_name, 'ord:order')
        self.assertIs(root.parent, document)

        self.assertEqual(len(root.elements), 4)
        self.assertEqual([e.local_name for e in root.elements],
                         ['item', 'item', 'note', 'customer'])
        item = root.elements[1]
        self.assertEqual(item.text, 'pen')
        self.assertEqual(item.path, '/ord:order[1]/ord:item[2]')
        self.assertEqual(item.get_attribute('code').value, 'X2')
        self.assertIsNone(item.get_attribute('missing'))

        attribute = root.get_attribute('status', 'http://xmlcontrol.test/c')
        self.assertIsInstance(attribute, AttributeNode)
        self.assertEqual(attribute.qualified_name, 'c:status')
        self.assertEqual(attribute.path, '/ord:order[1]/@c:status')
        self.assertIs(attribute.parent, root)

        name = root.elements[3].elements[0]
        self.assertEqual(name.namespace, 'http://xmlcontrol.test/default')
        self.assertIsNone(name.prefix)
        self.assertEqual(name.path, '/ord:order[1]/c:customer[1]/name[1]')
        self.assertEqual(name.resolve_prefix('ord'), 'http://xmlcontrol.test/order')
        self.assertEqual(name.resolve_prefix(None), 'http://xmlcontrol.test/default')
        self.assertIsNone(name.resolve_prefix('unknown'))

    def test_build_from_string(self):
        document = build_document(XML_ORDER)
        self.check_order_document(document)
        self.assertEqual(document.namespaces, {
            'ord': 'http://xmlcontrol.test/order', 'c': 'http://xmlcontrol.test/c'
        })
        customer = document.getroot().elements[3]
        self.assertEqual(customer.declarations, {'': 'http://xmlcontrol.test/default'})

    def test_build_from_bytes_and_files(self):
        self.check_order_document(build_document(XML_ORDER.encode('utf-8')))

        with tempfile.TemporaryDirectory() as dirname:
            filename = os.path.join(dirname, 'order.xml')
            with open(filename, 'w', encoding='utf-8') as fp:
                fp.write(XML_ORDER)

            document = build_document(pathlib.Path(filename))
            self.check_order_document(document)
            self.assertEqual(document.uri, filename)

    def test_build_from_element_tree(self):
        root = ElementTree.XML(XML_ORDER)
        document = build_document(root)
        self.assertEqual(document.namespaces, {})
        self.assertIsNone(document.getroot().prefix)

        namespaces = {'ord': 'http://xmlcontrol.test/order', 'c': 'http://xmlcontrol.test/c'}
        document = build_node_tree(ElementTree.ElementTree(root), namespaces)
        self.assertEqual(document.namespaces, namespaces)
        self.assertEqual(document.getroot().qualified_name, 'ord:order')

        document = build_document(root, namespaces=namespaces)
        self.assertEqual(document.getroot().elements[0].path, '/ord:order[1]/ord:item[1]')

    def test_build_from_node(self):
        document = build_document(XML_ORDER)
        self.assertIs(build_document(document), document)
        self.assertIs(build_document(document.getroot().elements[0]), document)

        with self.assertRaises(TypeError):
            build_document(ElementNode('orphan'))
        with self.assertRaises(TypeError):
            build_document(10)

    def test_invalid_source(self):
        with self.assertRaises(ParseError):
            build_document('<root>')
        with self.assertRaises(ParseError):
            build_document('')

    def test_text_nodes(self):
        document = build_document(XML_ORDER)
        note = document.getroot().elements[2]
        self.assertEqual([type(c) for c in note.children], [TextNode, ElementNode, TextNode])
        self.assertEqual(note.text, 'first  second')
        self.assertEqual(note.string_value, 'first bold second')
        self.assertEqual(note.text_nodes[1].path, '/ord:order[1]/note[1]/text()[2]')

        # Whitespace-only text is not part of the model
        self.assertFalse(document.getroot().text_nodes)
        self.assertEqual(document.getroot().text, '')

    def test_document_order(self):
        document = build_document('<a x="1"><b>t</b><c/></a>')
        nodes = list(document.iter())
        self.assertEqual([n.kind for n in nodes],
                         ['document', 'element', 'attribute', 'element', 'text', 'element'])
        self.assertEqual([n.position for n in nodes], list(range(6)))
        self.assertIs(nodes[4].root_node, document)
        self.assertEqual([n.kind for n in nodes[4].iter_ancestors()],
                         ['element', 'element', 'document'])
        self.assertEqual(document.string_value, 't')
        self.assertEqual(document.path, '/')

    def test_deeply_nested_document(self):
        depth = 3000
        document = build_document('<a>' * depth + 'x' + '</a>' * depth)
        nodes = list(document.iter())
        self.assertEqual(len(nodes), depth + 2)
        self.assertEqual(nodes[-1].kind, 'text')
        self.assertEqual(nodes[-2].path, '/a[1]' * depth)
        self.assertIs(nodes[-1].root_node, document)
        self.assertEqual(document.string_value, 'x')

        root = ElementTree.XML('<b>' * depth + '</b>' * depth)
        document = build_node_tree(root)
        self.assertEqual(len(list(document.getroot().iter_descendants())), depth)

    def test_node_representations(self):
        document = build_document('<a x="1">t</a>')
        root = document.getroot()
        self.assertEqual(repr(root), "ElementNode(name='a')")
        self.assertEqual(repr(root.attributes[0]), "AttributeNode(name='x', value='1')")
        self.assertEqual(repr(root.children[0]), "TextNode(value='t')")
        self.assertEqual(repr(document), "DocumentNode(root=ElementNode(name='a'))")

    @unittest.skipIf(lxml_etree is None, "lxml is not installed ...")
    def test_build_from_lxml(self):
        root = lxml_etree.XML(XML_ORDER)
        document = build_document(root)
        self.check_order_document(document)
        self.assertEqual(document.getroot().elements[0].sourceline, 3)

        document = build_lxml_node_tree(lxml_etree.ElementTree(root))
        self.check_order_document(document)

        document = build_document(lxml_etree.XML('<root>\n  <a/>\n  <b x="1"/>\n</root>'))
        self.assertEqual(document.getroot().sourceline, 1)
        self.assertEqual([e.sourceline for e in document.getroot().elements], [2, 3])

    @unittest.skipIf(lxml_etree is None, "lxml is not installed ...")
    def test_lxml_comments_are_skipped(self):
        root = lxml_etree.XML('<root><!-- comment --><a/><?pi data?>text</root>')
        document = build_document(root)
        self.assertEqual([c.kind for c in document.getroot().children], ['element', 'text'])


if __name__ == '__main__':
    unittest.main()
