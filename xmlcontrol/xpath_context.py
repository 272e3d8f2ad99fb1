#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
from typing import Iterator, Optional

from .nodes import XPathNode, DocumentNode, ElementNode, AttributeNode

__all__ = ['XPathContext']


class XPathContext:
    """
    The XPath dynamic context. The static context is provided by the parser.

    :param root: the document node.
    :param item: the context item, for default the document node.
    :param position: the current position of the node within the input sequence.
    :param size: the number of items in the input sequence.
    """
    __slots__ = ('root', 'item', 'position', 'size')

    def __init__(self, root: DocumentNode,
                 item: Optional[XPathNode] = None,
                 position: int = 1,
                 size: int = 1) -> None:
        self.root = root
        self.item = item if item is not None else root
        self.position = position
        self.size = size

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(root={self.root!r}, item={self.item!r})'

    def copy(self, item: Optional[XPathNode] = None,
             position: int = 1, size: int = 1) -> 'XPathContext':
        return XPathContext(self.root, item or self.item, position, size)

    def iter_children(self) -> Iterator[XPathNode]:
        """Iterates the element and text children of the context item."""
        if isinstance(self.item, (ElementNode, DocumentNode)):
            yield from self.item.children

    def iter_attributes(self) -> Iterator[AttributeNode]:
        if isinstance(self.item, ElementNode):
            yield from self.item.attributes

    def iter_descendants(self, with_self: bool = True) -> Iterator[XPathNode]:
        """Iterates the descendants of the context item, attributes excluded."""
        if isinstance(self.item, (ElementNode, DocumentNode)):
            yield from self.item.iter_descendants(with_self)
        elif with_self:
            yield self.item

    def iter_parent(self) -> Iterator[XPathNode]:
        if self.item.parent is not None:
            yield self.item.parent
