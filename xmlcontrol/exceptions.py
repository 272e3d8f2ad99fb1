#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Type

if TYPE_CHECKING:
    from .tdop import Token  # noqa: F401


class XmlControlError(Exception):
    """
    Base exception class for xmlcontrol package.

    :param message: the message related to the error.
    :param code: an optional error code.
    :param token: an optional token instance related with the error.
    """
    def __init__(self, message: str,
                 code: Optional[str] = None,
                 token: Optional['Token'] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.token = token

    def __str__(self) -> str:
        if self.token is None or not isinstance(self.token.value, (str, bytes)):
            if not self.code:
                return self.message
            return '[{}] {}'.format(self.code, self.message)
        elif not self.code:
            return '{1} at line {2}, column {3}: {0}'.format(
                self.message, self.token, *self.token.position
            )
        return '{2} at line {3}, column {4}: [{1}] {0}'.format(
            self.message, self.code, self.token, *self.token.position
        )


class ParseError(XmlControlError, ValueError):
    """Raised when an XML source is not well-formed."""


class XMLResourceForbidden(ParseError):
    """Raised when the parsing of an XML resource is forbidden for safety reasons."""


class InvalidExpression(XmlControlError, SyntaxError):
    """Raised for malformed XPath or template expressions."""


class UnsupportedExpression(InvalidExpression):
    """Raised for well-formed expressions whose evaluation is not supported."""


class NoMatch(XmlControlError, LookupError):
    """Raised when an expression that must select something selects nothing."""


class UnresolvedIgnorePath(XmlControlError, LookupError):
    pass


class UnknownVariable(XmlControlError, KeyError):
    pass


class UnknownFunction(XmlControlError, NameError):
    pass


class NamespaceContextError(XmlControlError, ValueError):
    pass


class NamespaceNotFound(XmlControlError, KeyError):
    pass


class ValidationError(XmlControlError, AssertionError):
    """
    Raised at the first violated expectation of a validation.

    :param message: the message related to the mismatch.
    :param code: an optional error code.
    :param token: an optional token instance related with the error.
    :param path: the path of the control node where the mismatch was found.
    :param expected: the expected (control) value.
    :param actual: the actual value.
    """
    def __init__(self, message: str,
                 code: Optional[str] = None,
                 token: Optional['Token'] = None,
                 path: Optional[str] = None,
                 expected: Any = None,
                 actual: Any = None) -> None:
        super().__init__(message, code, token)
        self.path = path
        self.expected = expected
        self.actual = actual


class StructuralMismatch(ValidationError):
    """Names, counts, attributes or values of the two trees differ."""


class NamespaceMismatch(ValidationError):
    pass


class MatcherMismatch(ValidationError):
    """A validation matcher rejected a value."""


XMLCONTROL_ERROR_CODES: Dict[str, Tuple[Type[XmlControlError], str]] = {
    # XPath errors (https://www.w3.org/TR/xpath20/#id-errors)
    'XPST0003': (InvalidExpression, 'Invalid XPath expression'),
    'XPST0008': (InvalidExpression, 'Name not found'),
    'XPST0017': (InvalidExpression, 'Unknown function or wrong number of arguments'),
    'XPTY0004': (InvalidExpression, 'Type is not appropriate for the context'),
    'XPST0081': (InvalidExpression, 'Unknown namespace'),
    'FOER0000': (XmlControlError, 'Unidentified error'),
    'FODC0002': (ParseError, 'Error retrieving resource'),
    'FODC0006': (ParseError, 'Not a well-formed document'),

    # Template expression errors
    'XCEX0001': (InvalidExpression, 'Malformed template expression'),
    'XCEX0002': (UnsupportedExpression, 'Unsupported expression'),
    'XCVR0001': (UnknownVariable, 'Unknown variable'),
    'XCFN0001': (UnknownFunction, 'Unknown function'),
    'XCFN0002': (UnknownFunction, 'Unknown function library'),
    'XCFN0003': (InvalidExpression, 'Invalid function arguments'),
    'XCMT0001': (UnknownFunction, 'Unknown validation matcher'),

    # Namespace errors
    'XCNS0001': (NamespaceContextError, 'Conflicting namespace binding'),
    'XCNS0002': (NamespaceNotFound, 'Namespace prefix not found'),

    # Lookup errors
    'XCNM0001': (NoMatch, 'No result for expression'),
    'XCIG0001': (UnresolvedIgnorePath, 'Ignore path not found'),

    # Validation errors
    'XCVA0000': (ValidationError, 'Validation failed'),
    'XCVA0001': (StructuralMismatch, 'Structure mismatch'),
    'XCVA0002': (NamespaceMismatch, 'Namespace mismatch'),
    'XCVA0003': (MatcherMismatch, 'Validation matcher mismatch'),
}


def xmlcontrol_error(code: str,
                     message: Optional[str] = None,
                     token: Optional['Token'] = None,
                     **kwargs: Any) -> XmlControlError:
    """
    Returns an xmlcontrol exception instance for an error code. Extra keyword
    arguments are passed to validation errors (path, expected and actual).

    :param code: the error code.
    :param message: an optional custom additional message.
    :param token: an optional token instance.
    """
    try:
        error_class, default_message = XMLCONTROL_ERROR_CODES[code]
    except KeyError:
        raise ValueError(f'Unknown error code {code!r}') from None

    if issubclass(error_class, ValidationError):
        return error_class(message or default_message, code, token, **kwargs)
    return error_class(message or default_message, code, token)


__all__ = ['XmlControlError', 'ParseError', 'XMLResourceForbidden', 'InvalidExpression',
           'UnsupportedExpression', 'NoMatch', 'UnresolvedIgnorePath', 'UnknownVariable',
           'UnknownFunction', 'NamespaceContextError', 'NamespaceNotFound',
           'ValidationError', 'StructuralMismatch', 'NamespaceMismatch',
           'MatcherMismatch', 'XMLCONTROL_ERROR_CODES', 'xmlcontrol_error']
