#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Namespace context and helper functions for QNames.
"""
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import structlog

from .exceptions import xmlcontrol_error
from .helpers import Patterns, is_ncname

logger = structlog.get_logger(__name__)

# Namespaces
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
XMLNS_NAMESPACE = "http://www.w3.org/2000/xmlns/"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

# Prefix template used for namespaces written inline in expressions ({uri}local)
DYNAMIC_PREFIX = 'dns'

NamespacesArgType = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


def get_namespace(name: str) -> str:
    match = Patterns.namespace_uri.match(name)
    return match.group(1) if match is not None else ''


def split_expanded_name(name: str) -> Tuple[str, str]:
    """Splits an expanded name ({uri}local) into a couple (uri, local name)."""
    match = Patterns.expanded_name.match(name)
    if match is None:
        raise ValueError(f"{name!r} is not an expanded QName")
    return match.group(1) or '', match.group(2)


def get_prefixed_name(name: str, namespaces: Mapping[str, str]) -> str:
    """
    Maps an expanded name to its prefixed form. Names that are not expanded
    and names whose namespace is not mapped are returned unchanged.
    """
    if not name.startswith('{'):
        return name

    uri, local_name = split_expanded_name(name)
    prefixes = [p for p, u in namespaces.items() if u == uri]
    if prefixes:
        prefix = max(prefixes)
        return f'{prefix}:{local_name}' if prefix else local_name
    elif uri == XML_NAMESPACE:
        return f'xml:{local_name}'
    return name


def get_expanded_name(name: str, namespaces: Mapping[str, str]) -> str:
    """
    Maps a prefixed name to its expanded form. Unprefixed names take the
    default namespace, if any. An unmapped prefix raises `KeyError`.
    """
    if not name or name.startswith('{'):
        return name

    prefix, sep, local_name = name.partition(':')
    if not sep:
        uri = namespaces.get('')
        return f'{{{uri}}}{name}' if uri else name
    elif not prefix or not local_name or ':' in local_name:
        raise ValueError(f"wrong format for prefixed QName {name!r}")
    elif prefix == 'xml':
        return f'{{{XML_NAMESPACE}}}{local_name}'

    uri = namespaces[prefix]
    if not uri:
        raise ValueError(f"prefix {prefix!r} is mapped to an empty URI")
    return f'{{{uri}}}{local_name}'


class NamespaceContext(Mapping[str, str]):
    """
    A read-only mapping from prefixes to namespace URIs, used for resolving
    the prefixes of caller-supplied expressions. The empty prefix is the
    default namespace.

    :param namespaces: a mapping or an iterable of (prefix, uri) couples. \
    Binding the same prefix to different URIs is an error.
    """
    def __init__(self, namespaces: NamespacesArgType = None) -> None:
        self._namespaces: Dict[str, str] = {}
        if namespaces is None:
            return
        elif isinstance(namespaces, Mapping):
            namespaces = namespaces.items()

        for prefix, uri in namespaces:
            self._bind(prefix, uri)

    def _bind(self, prefix: Optional[str], uri: str) -> None:
        if prefix is None:
            prefix = ''  # lxml nsmap default namespace
        if prefix and not is_ncname(prefix):
            raise xmlcontrol_error('XCNS0001', f"invalid namespace prefix {prefix!r}")
        elif not isinstance(uri, str):
            raise xmlcontrol_error('XCNS0001', f"invalid namespace URI {uri!r} "
                                               f"for prefix {prefix!r}")
        elif self._namespaces.get(prefix, uri) != uri:
            raise xmlcontrol_error(
                'XCNS0001', f"prefix {prefix!r} is already bound to "
                            f"{self._namespaces[prefix]!r}, cannot bind it to {uri!r}"
            )
        self._namespaces[prefix] = uri

    def __getitem__(self, prefix: str) -> str:
        return self._namespaces[prefix]

    def __iter__(self) -> Iterator[str]:
        return iter(self._namespaces)

    def __len__(self) -> int:
        return len(self._namespaces)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._namespaces!r})'

    @property
    def default_namespace(self) -> Optional[str]:
        return self._namespaces.get('')

    def resolve(self, prefix: str) -> str:
        """Returns the URI bound to a prefix, raising `NamespaceNotFound` if unbound."""
        try:
            return self._namespaces[prefix]
        except KeyError:
            if prefix == 'xml':
                return XML_NAMESPACE
            raise xmlcontrol_error('XCNS0002', f"namespace prefix {prefix!r} not found") from None

    def get_prefixes(self, uri: str) -> List[str]:
        return [p for p, u in self._namespaces.items() if u == uri]

    def bind(self, prefix: str, uri: str) -> 'NamespaceContext':
        """Returns a new context with an additional binding."""
        context = self.copy()
        context._bind(prefix, uri)
        return context

    def copy(self) -> 'NamespaceContext':
        context = object.__new__(self.__class__)
        context._namespaces = self._namespaces.copy()
        return context

    @classmethod
    def build(cls, *layers: NamespacesArgType) -> 'NamespaceContext':
        """
        Builds a context merging layers of namespace mappings. Each layer
        is checked for conflicts on its own and overrides the bindings of
        the previous layers.
        """
        namespaces: Dict[str, str] = {}
        for layer in layers:
            if layer is not None:
                namespaces.update(cls(layer))
        return cls(namespaces)


def extract_dynamic_namespaces(expression: str) -> List[str]:
    """Returns the URIs written inline in an expression, in order of appearance."""
    uris: List[str] = []
    for match in Patterns.dynamic_namespace.finditer(expression):
        if match.group(1) not in uris:
            uris.append(match.group(1))
    return uris


def replace_dynamic_namespaces(expression: str, namespaces: NamespacesArgType = None) \
        -> Tuple[str, NamespaceContext]:
    """
    Replaces inline namespace URIs (eg. `{http://a.example}root`) of an
    expression with prefixes, reusing the prefixes already bound in the
    provided namespaces or generating new ones (dns1, dns2, ...).

    :returns: a couple with the rewritten expression and the extended context.
    """
    context = namespaces if isinstance(namespaces, NamespaceContext) \
        else NamespaceContext(namespaces)

    uris = extract_dynamic_namespaces(expression)
    if not uris:
        return expression, context

    prefixes: Dict[str, str] = {}
    counter = 0
    for uri in uris:
        for prefix in context.get_prefixes(uri):
            if prefix:
                prefixes[uri] = prefix
                break
        else:
            counter += 1
            while f'{DYNAMIC_PREFIX}{counter}' in context:
                counter += 1
            prefixes[uri] = f'{DYNAMIC_PREFIX}{counter}'
            context = context.bind(prefixes[uri], uri)

    logger.debug("Dynamic namespaces replaced", expression=expression, prefixes=prefixes)
    return Patterns.dynamic_namespace.sub(
        lambda m: f'{prefixes[m.group(1)]}:', expression
    ), context


__all__ = ['XML_NAMESPACE', 'XMLNS_NAMESPACE', 'XSI_NAMESPACE', 'NamespaceContext',
           'get_namespace', 'split_expanded_name', 'get_prefixed_name',
           'get_expanded_name', 'extract_dynamic_namespaces', 'replace_dynamic_namespaces']
