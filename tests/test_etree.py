#!/usr/bin/env python
#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
import unittest
from xml.etree import ElementTree

try:
    import lxml.etree as lxml_etree
except ImportError:
    lxml_etree = None

from xmlcontrol.exceptions import ParseError, XMLResourceForbidden
from xmlcontrol.etree import defuse_xml, parse_xml, is_etree_element, \
    is_etree_document, is_lxml_etree_element, is_lxml_etree_document


XML_WITH_NAMESPACES = '<pfa:root xmlns:pfa="http://xpath.test/nsa">\n' \
                      '  <pfb:elem xmlns:pfb="http://xpath.test/nsb"/>\n' \
                      '</pfa:root>'


class TestElementTree(unittest.TestCase):

    def test_defuse_xml_entities(self):
        xml_file = '<!DOCTYPE foo [<!ELEMENT foo ANY >]><foo>bar</foo>'
        self.assertIs(defuse_xml(xml_file), xml_file)

        xml_file = '<!DOCTYPE foo [<!ENTITY xxe SYSTEM "file:///etc/passwd" >]><foo>&xxe;</foo>'
        with self.assertRaises(XMLResourceForbidden):
            defuse_xml(xml_file)

        xml_file = '<!DOCTYPE foo [<!ENTITY xe "bar" >]><foo>&xe;</foo>'
        with self.assertRaises(XMLResourceForbidden):
            defuse_xml(xml_file)

        xml_file = b'<!DOCTYPE foo [<!ENTITY xe "bar" >]><foo>&xe;</foo>'
        with self.assertRaises(XMLResourceForbidden):
            defuse_xml(xml_file)

    def test_defuse_xml_external_dtd(self):
        with self.assertRaises(XMLResourceForbidden) as ctx:
            defuse_xml('<!DOCTYPE foo SYSTEM "http://example.test/foo.dtd"><foo/>')
        self.assertIn('External DTDs are forbidden', str(ctx.exception))

        xml_source = '<?xml version="1.0"?>\n<!DOCTYPE foo><foo/>'
        self.assertIs(defuse_xml(xml_source), xml_source)

    def test_defuse_xml_does_not_check_syntax(self):
        self.assertEqual(defuse_xml('<root><unclosed></root>'), '<root><unclosed></root>')

    def test_parse_xml(self):
        root, declarations = parse_xml(XML_WITH_NAMESPACES)
        self.assertEqual(root.tag, '{http://xpath.test/nsa}root')
        self.assertEqual(declarations[root], {'pfa': 'http://xpath.test/nsa'})
        self.assertEqual(declarations[root[0]], {'pfb': 'http://xpath.test/nsb'})

        root, declarations = parse_xml(b'<root><a>1</a><!-- comment --><b/></root>')
        self.assertEqual([e.tag for e in root], ['a', 'b'])
        self.assertEqual(declarations, {})

        root, declarations = parse_xml('<root xmlns="urn:default"/>')
        self.assertEqual(declarations[root], {'': 'urn:default'})

    def test_parse_xml_errors(self):
        with self.assertRaises(ParseError) as ctx:
            parse_xml('<root><unclosed></root>')
        self.assertEqual(ctx.exception.code, 'FODC0006')

        self.assertRaises(ParseError, parse_xml, 'not xml')
        self.assertRaises(XMLResourceForbidden, parse_xml,
                          '<!DOCTYPE foo [<!ENTITY xe "bar" >]><foo>&xe;</foo>')

    def test_etree_type_checks(self):
        root = ElementTree.XML('<root/>')
        self.assertTrue(is_etree_element(root))
        self.assertFalse(is_etree_element('<root/>'))
        self.assertFalse(is_etree_document(root))
        self.assertTrue(is_etree_document(ElementTree.ElementTree(root)))
        self.assertFalse(is_lxml_etree_element(root))
        self.assertFalse(is_lxml_etree_document(ElementTree.ElementTree(root)))

    @unittest.skipIf(lxml_etree is None, "lxml is not installed ...")
    def test_lxml_type_checks(self):
        root = lxml_etree.XML('<root/>')
        self.assertTrue(is_etree_element(root))
        self.assertTrue(is_lxml_etree_element(root))
        self.assertTrue(is_lxml_etree_document(root.getroottree()))
        self.assertFalse(is_lxml_etree_document(root))


if __name__ == '__main__':
    unittest.main()
