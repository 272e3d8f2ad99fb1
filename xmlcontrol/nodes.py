#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Node classes of the document model. Node trees are built by the functions
of the tree_builders module and are not modified after their construction.
"""
from typing import Dict, Iterator, List, Optional, Tuple, Union

ChildNodeType = Union['ElementNode', 'TextNode']
ParentNodeType = Union['DocumentNode', 'ElementNode']


class XPathNode:
    """
    The base class of document nodes.

    :ivar parent: the parent node, `None` for the document node.
    :ivar position: the index of the node in document order.
    """
    __slots__ = ('parent', 'position')

    kind = ''
    parent: Optional[ParentNodeType]
    position: int

    @property
    def string_value(self) -> str:
        raise NotImplementedError()

    @property
    def path(self) -> str:
        """An XPath expression that locates the node in its document."""
        return ''

    @property
    def sourceline(self) -> Optional[int]:
        return None

    @property
    def root_node(self) -> 'XPathNode':
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def iter_ancestors(self) -> Iterator[ParentNodeType]:
        parent = self.parent
        while parent is not None:
            yield parent
            parent = parent.parent


class DocumentNode(XPathNode):
    """The document node, the parent of the root element."""
    __slots__ = ('children', 'uri')

    kind = 'document'
    children: Tuple['ElementNode', ...]

    def __init__(self, uri: Optional[str] = None) -> None:
        self.parent = None
        self.position = 0
        self.children = ()
        self.uri = uri

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(root={self.getroot()!r})'

    def getroot(self) -> 'ElementNode':
        return self.children[0]

    @property
    def namespaces(self) -> Dict[str, str]:
        """The namespace declarations of the root element."""
        return dict(self.getroot().declarations)

    @property
    def string_value(self) -> str:
        return self.getroot().string_value

    @property
    def path(self) -> str:
        return '/'

    def iter(self) -> Iterator[XPathNode]:
        """Iterates all the nodes of the document in document order."""
        yield self
        yield from self.getroot().iter()

    def iter_descendants(self, with_self: bool = True) -> Iterator[XPathNode]:
        if with_self:
            yield self
        yield from self.getroot().iter_descendants()


class ElementNode(XPathNode):
    """
    An element node.

    :ivar name: the expanded name (eg. '{http://a.example}root').
    :ivar local_name: the local part of the name.
    :ivar namespace: the namespace URI, `None` if the element has no namespace.
    :ivar prefix: the prefix used in the source, `None` if unknown or unprefixed.
    :ivar attributes: the attribute nodes, in source order.
    :ivar children: element and text nodes, in document order.
    :ivar nsmap: the in-scope namespace declarations.
    :ivar declarations: the namespace declarations made by the element itself.
    """
    __slots__ = ('name', 'local_name', 'namespace', 'prefix', 'attributes', 'children',
                 'nsmap', 'declarations', '_sourceline', '_path')

    kind = 'element'
    attributes: Tuple['AttributeNode', ...]
    children: Tuple[ChildNodeType, ...]

    def __init__(self, local_name: str,
                 namespace: Optional[str] = None,
                 prefix: Optional[str] = None,
                 parent: Optional[ParentNodeType] = None,
                 nsmap: Optional[Dict[str, str]] = None,
                 declarations: Optional[Dict[str, str]] = None,
                 sourceline: Optional[int] = None) -> None:
        self.local_name = local_name
        self.namespace = namespace or None
        self.name = f'{{{namespace}}}{local_name}' if namespace else local_name
        self.prefix = prefix or None
        self.parent = parent
        self.position = 0
        self.attributes = ()
        self.children = ()
        self.nsmap = nsmap if nsmap is not None else {}
        self.declarations = declarations if declarations is not None else {}
        self._sourceline = sourceline
        self._path = ''

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(name={self.name!r})'

    @property
    def qualified_name(self) -> str:
        return f'{self.prefix}:{self.local_name}' if self.prefix else self.local_name

    @property
    def elements(self) -> List['ElementNode']:
        return [child for child in self.children if isinstance(child, ElementNode)]

    @property
    def text_nodes(self) -> List['TextNode']:
        return [child for child in self.children if isinstance(child, TextNode)]

    @property
    def text(self) -> str:
        """The concatenation of the direct text children."""
        return ''.join(child.value for child in self.children if isinstance(child, TextNode))

    @property
    def string_value(self) -> str:
        return ''.join(node.value for node in self.iter_descendants()
                       if isinstance(node, TextNode))

    @property
    def path(self) -> str:
        return self._path

    @property
    def sourceline(self) -> Optional[int]:
        return self._sourceline

    def get_attribute(self, local_name: str,
                      namespace: Optional[str] = None) -> Optional['AttributeNode']:
        for attribute in self.attributes:
            if attribute.local_name == local_name and attribute.namespace == (namespace or None):
                return attribute
        return None

    def iter(self) -> Iterator[XPathNode]:
        """Iterates the element, its attributes and its descendants in document order."""
        yield self
        yield from self.attributes
        for node in self.iter_descendants(with_self=False):
            yield node
            if isinstance(node, ElementNode):
                yield from node.attributes

    def iter_descendants(self, with_self: bool = True) -> Iterator[ChildNodeType]:
        if with_self:
            yield self

        iterators: List[Iterator[ChildNodeType]] = []
        children = iter(self.children)
        while True:
            for child in children:
                yield child
                if isinstance(child, ElementNode) and child.children:
                    iterators.append(children)
                    children = iter(child.children)
                    break
            else:
                if not iterators:
                    return
                children = iterators.pop()

    def resolve_prefix(self, prefix: Optional[str]) -> Optional[str]:
        """Returns the in-scope namespace URI bound to a prefix, `None` if unbound."""
        return self.nsmap.get(prefix or '')


class AttributeNode(XPathNode):
    __slots__ = ('name', 'local_name', 'namespace', 'prefix', 'value')

    kind = 'attribute'

    def __init__(self, local_name: str,
                 value: str,
                 namespace: Optional[str] = None,
                 prefix: Optional[str] = None,
                 parent: Optional[ElementNode] = None) -> None:
        self.local_name = local_name
        self.value = value
        self.namespace = namespace or None
        self.name = f'{{{namespace}}}{local_name}' if namespace else local_name
        self.prefix = prefix or None
        self.parent = parent
        self.position = 0

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(name={self.name!r}, value={self.value!r})'

    @property
    def qualified_name(self) -> str:
        return f'{self.prefix}:{self.local_name}' if self.prefix else self.local_name

    @property
    def string_value(self) -> str:
        return self.value

    @property
    def path(self) -> str:
        if self.parent is None:
            return f'@{self.qualified_name}'
        return f'{self.parent.path}/@{self.qualified_name}'

    @property
    def sourceline(self) -> Optional[int]:
        return self.parent.sourceline if self.parent is not None else None


class TextNode(XPathNode):
    __slots__ = ('value',)

    kind = 'text'

    def __init__(self, value: str, parent: Optional[ElementNode] = None) -> None:
        self.value = value
        self.parent = parent
        self.position = 0

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(value={self.value!r})'

    @property
    def string_value(self) -> str:
        return self.value

    @property
    def path(self) -> str:
        if not isinstance(self.parent, ElementNode):
            return 'text()'

        position = 1
        for child in self.parent.children:
            if child is self:
                break
            elif isinstance(child, TextNode):
                position += 1
        return f'{self.parent.path}/text()[{position}]'

    @property
    def sourceline(self) -> Optional[int]:
        return self.parent.sourceline if self.parent is not None else None


__all__ = ['XPathNode', 'DocumentNode', 'ElementNode', 'AttributeNode', 'TextNode',
           'ChildNodeType', 'ParentNodeType']
