#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Safe parsing of XML sources into ElementTree structures and helper
functions for etree-like objects.
"""
from typing import Any, Dict, List, Optional, Tuple, Union
from xml.etree import ElementTree
from xml.parsers import expat

from .exceptions import XMLResourceForbidden, xmlcontrol_error

NamespaceDeclarations = Dict[ElementTree.Element, Dict[str, str]]


class RootElementReached(Exception):
    """Stops the defusing scan at the start of the root element."""


def forbid_external_doctype(name: str, sysid: Optional[str],
                            pubid: Optional[str], has_internal_subset: bool) -> None:
    if sysid or pubid:
        raise XMLResourceForbidden(
            f"External DTDs are forbidden (system_id={sysid!r}, public_id={pubid!r})"
        )


def forbid_entity_declaration(name: str, is_parameter_entity: bool, *args: Any) -> None:
    raise XMLResourceForbidden(f"Entities are forbidden (entity_name={name!r})")


def forbid_unparsed_entity_declaration(name: str, *args: Any) -> None:
    raise XMLResourceForbidden(f"Unparsed entities are forbidden (entity_name={name!r})")


def forbid_external_entity_reference(context: Optional[str], base: Optional[str],
                                     sysid: Optional[str], pubid: Optional[str]) -> int:
    raise XMLResourceForbidden(
        f"External references are forbidden (system_id={sysid!r}, public_id={pubid!r})"
    )  # pragma: no cover


def stop_at_root(name: str, attributes: Any) -> None:
    raise RootElementReached(name)


def defuse_xml(xml_source: Union[str, bytes]) -> Union[str, bytes]:
    """
    Scans the prolog of an XML source, raising `XMLResourceForbidden` for
    entity declarations and external DTDs. The scan stops at the root
    element and doesn't check the syntax of the source.
    """
    parser = expat.ParserCreate()
    parser.StartDoctypeDeclHandler = forbid_external_doctype
    parser.EntityDeclHandler = forbid_entity_declaration
    parser.UnparsedEntityDeclHandler = forbid_unparsed_entity_declaration
    parser.ExternalEntityRefHandler = forbid_external_entity_reference
    parser.StartElementHandler = stop_at_root

    try:
        parser.Parse(xml_source, True)
    except RootElementReached:
        pass
    except expat.ExpatError:
        pass  # syntax errors are reported by parse_xml()

    return xml_source


def parse_xml(xml_source: Union[str, bytes]) \
        -> Tuple[ElementTree.Element, NamespaceDeclarations]:
    """
    Parses an XML source after defusing it. Comments and processing
    instructions are not included in the tree.

    :returns: a couple with the root element and a map from the elements \
    to their namespace declarations.
    """
    defuse_xml(xml_source)

    parser = ElementTree.XMLPullParser(events=('start-ns', 'start'))
    declarations: NamespaceDeclarations = {}
    pending: List[Tuple[str, str]] = []
    root = None

    try:
        parser.feed(xml_source)
        for event, item in parser.read_events():
            if event == 'start-ns':
                pending.append(item)
            elif event == 'start':
                if root is None:
                    root = item
                if pending:
                    declarations[item] = dict(pending)
                    pending.clear()
        parser.close()
    except ElementTree.ParseError as err:
        raise xmlcontrol_error('FODC0006', f"invalid XML source: {err}") from None

    if root is None:
        raise xmlcontrol_error('FODC0006', "invalid XML source: no root element")
    return root, declarations


def is_etree_element(obj: Any) -> bool:
    return hasattr(obj, 'tag') and hasattr(obj, 'attrib') and hasattr(obj, 'text')


def is_lxml_etree_element(obj: Any) -> bool:
    return is_etree_element(obj) and \
        hasattr(obj, 'getparent') and \
        hasattr(obj, 'nsmap') and \
        obj.__class__.__module__ in ('lxml.etree', 'lxml.html')


def is_etree_document(obj: Any) -> bool:
    return hasattr(obj, 'getroot') and hasattr(obj, 'parse') and hasattr(obj, 'iter')


def is_lxml_etree_document(obj: Any) -> bool:
    return is_etree_document(obj) and \
        hasattr(obj, 'xpath') and \
        hasattr(obj, 'xslt') and \
        obj.__class__.__module__ in ('lxml.etree', 'lxml.html')


__all__ = ['defuse_xml', 'parse_xml', 'is_etree_element',
           'is_lxml_etree_element', 'is_etree_document', 'is_lxml_etree_document']
