#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
import os
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import structlog

from .etree import NamespaceDeclarations, parse_xml, is_etree_document, \
    is_etree_element, is_lxml_etree_document, is_lxml_etree_element
from .namespaces import split_expanded_name
from .nodes import ChildNodeType, ParentNodeType, XPathNode, DocumentNode, ElementNode, \
    AttributeNode, TextNode

logger = structlog.get_logger(__name__)

SourceArgType = Union[str, bytes, 'os.PathLike[str]', DocumentNode, ElementNode, Any]


def build_document(source: SourceArgType,
                   namespaces: Optional[Mapping[str, str]] = None,
                   uri: Optional[str] = None) -> DocumentNode:
    """
    Returns a document node tree built from an XML source.

    :param source: an XML string or bytes, a path-like object of an XML file, \
    an ElementTree or lxml element or tree, or an already built node tree.
    :param namespaces: namespace declarations to assume on the root element. \
    Used only for ElementTree elements, that don't keep the declarations of \
    the parsed source.
    :param uri: an optional URI associated with the document.
    """
    if isinstance(source, DocumentNode):
        return source
    elif isinstance(source, XPathNode):
        root_node = source.root_node
        if isinstance(root_node, DocumentNode):
            return root_node
        raise TypeError(f"{source!r} is not bound to a document")
    elif isinstance(source, os.PathLike):
        uri = uri or os.fspath(source)
        with open(source, 'rb') as fp:
            source = fp.read()

    if isinstance(source, (str, bytes)):
        root, declarations = parse_xml(source)
        return build_node_tree(root, namespaces, declarations, uri)
    elif is_lxml_etree_document(source) or is_lxml_etree_element(source):
        return build_lxml_node_tree(source, uri)
    elif is_etree_document(source) or is_etree_element(source):
        return build_node_tree(source, namespaces, uri=uri)
    raise TypeError(f"invalid XML source {source!r}")


def build_node_tree(root: Any,
                    namespaces: Optional[Mapping[str, str]] = None,
                    declarations: Optional[NamespaceDeclarations] = None,
                    uri: Optional[str] = None) -> DocumentNode:
    """
    Returns a document node tree that represents an ElementTree structure.

    :param root: an Element or an ElementTree.
    :param namespaces: namespace declarations to assume on the root element.
    :param declarations: a map from elements to their namespace declarations, \
    as returned by the parse function of the etree module.
    :param uri: an optional URI associated with the document.
    """
    def create_element(elem: Any, parent: ParentNodeType) -> ElementNode:
        local_declarations = declarations.get(elem, {}) if declarations else {}
        if elem is root and namespaces:
            local_declarations = {**namespaces, **local_declarations}

        inherited = parent.nsmap if isinstance(parent, ElementNode) else {}
        nsmap = {**inherited, **local_declarations} if local_declarations else inherited
        namespace, local_name = split_expanded_name(elem.tag)

        return ElementNode(
            local_name=local_name,
            namespace=namespace,
            prefix=find_prefix(namespace, nsmap),
            parent=parent,
            nsmap=nsmap,
            declarations=local_declarations,
        )

    if hasattr(root, 'getroot'):
        root = root.getroot()
    return build_elements(root, DocumentNode(uri), create_element)


def build_lxml_node_tree(root: Any, uri: Optional[str] = None) -> DocumentNode:
    """
    Returns a document node tree that represents a lxml structure.
    Comments, processing instructions and entities are skipped.
    """
    def create_element(elem: Any, parent: ParentNodeType) -> ElementNode:
        inherited = parent.nsmap if isinstance(parent, ElementNode) else {}
        nsmap = {k or '': v for k, v in elem.nsmap.items()}
        namespace, local_name = split_expanded_name(elem.tag)

        return ElementNode(
            local_name=local_name,
            namespace=namespace,
            prefix=elem.prefix,
            parent=parent,
            nsmap=nsmap,
            declarations={k: v for k, v in nsmap.items() if inherited.get(k) != v},
            sourceline=elem.sourceline,
        )

    if hasattr(root, 'getroot'):
        root = root.getroot()
    if uri is None:
        uri = root.getroottree().docinfo.URL
    return build_elements(root, DocumentNode(uri), create_element)


def build_elements(root: Any, document: DocumentNode,
                   create_element: Callable[[Any, ParentNodeType], ElementNode]) \
        -> DocumentNode:
    """
    Builds the element nodes under a document node, walking the source tree
    with a stack of iterators instead of recursion.
    """
    parent = create_element(root, document)
    parent.attributes = build_attributes(root, parent)
    document.children = (parent,)

    items: List[ChildNodeType] = []
    add_text(items, root.text, parent)
    children: Iterator[Any] = iter(root)
    ancestors: List[Tuple[ElementNode, List[ChildNodeType], Iterator[Any], Any]] = []

    while True:
        for elem in children:
            if callable(elem.tag):
                add_text(items, elem.tail, parent)  # comments and PIs are skipped
                continue

            child = create_element(elem, parent)
            child.attributes = build_attributes(elem, child)
            items.append(child)

            ancestors.append((parent, items, children, elem))
            parent, items, children = child, [], iter(elem)
            add_text(items, elem.text, parent)
            break
        else:
            parent.children = tuple(
                c for c in items if not isinstance(c, TextNode) or c.value.strip()
            )
            try:
                parent, items, children, elem = ancestors.pop()
            except IndexError:
                return finalize(document)
            add_text(items, elem.tail, parent)


def find_prefix(namespace: str, nsmap: Mapping[str, str]) -> Optional[str]:
    if not namespace or nsmap.get('') == namespace:
        return None
    for prefix, uri in nsmap.items():
        if uri == namespace and prefix:
            return prefix
    return None


def build_attributes(elem: Any, parent: ElementNode) -> tuple:
    attributes = []
    for name, value in elem.attrib.items():
        namespace, local_name = split_expanded_name(name)
        attributes.append(AttributeNode(
            local_name=local_name,
            value=value,
            namespace=namespace,
            prefix=find_prefix(namespace, {k: v for k, v in parent.nsmap.items() if k}),
            parent=parent,
        ))
    return tuple(attributes)


def add_text(items: List[ChildNodeType], text: Optional[str], parent: ElementNode) -> None:
    """Appends a text, merging it with a preceding text node."""
    if not text:
        return
    elif items and isinstance(items[-1], TextNode):
        items[-1].value += text
    else:
        items.append(TextNode(text, parent))


def finalize(document: DocumentNode) -> DocumentNode:
    """Sets the document order positions and the paths of the element nodes."""
    root = document.getroot()
    root._path = f'/{root.qualified_name}[1]'

    # Parents precede their children in document order
    for node in root.iter_descendants():
        if isinstance(node, ElementNode):
            counters: Dict[str, int] = {}
            for child in node.elements:
                counters[child.name] = counters.get(child.name, 0) + 1
                child._path = f'{node._path}/{child.qualified_name}[{counters[child.name]}]'

    for position, node in enumerate(document.iter()):
        node.position = position

    logger.debug("Document built", root=root.name, nodes=position + 1)
    return document


__all__ = ['build_document', 'build_node_tree', 'build_lxml_node_tree']
