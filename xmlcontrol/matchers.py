#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Validation matchers, control expressions like "@StartsWith('Hello')@" that
replace a plain value comparison.
"""
import datetime
import re
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, NamedTuple, Optional

import structlog

from .exceptions import xmlcontrol_error
from .helpers import to_number, to_strftime_format
from .settings import DEFAULT_SETTINGS, ValidationSettings

if TYPE_CHECKING:
    from .context import TestContext  # noqa: F401

logger = structlog.get_logger(__name__)

MatcherType = Callable[[str, str, List[str], 'TestContext'], None]

MATCHER_PATTERN = re.compile(
    r'^\s*(?:(?P<prefix>[^\d\W][\w.\-]*):)?(?P<name>[^\d\W][\w.\-]*)\s*'
    r'(?:\((?P<args>.*)\))?\s*$', re.DOTALL
)
DEFAULT_DELIMITER = "'"


class MatcherExpression(NamedTuple):
    prefix: str
    name: str
    arguments: str


def is_matcher_expression(expression: Any,
                          settings: ValidationSettings = DEFAULT_SETTINGS) -> bool:
    """Returns `True` if the argument is a validation matcher expression (eg. '@Ignore@')."""
    if not isinstance(expression, str):
        return False
    expression = expression.strip()
    return len(expression) > len(settings.matcher_prefix) + len(settings.matcher_suffix) and \
        expression.startswith(settings.matcher_prefix) and \
        expression.endswith(settings.matcher_suffix)


def parse_matcher_expression(expression: str,
                             settings: ValidationSettings = DEFAULT_SETTINGS) \
        -> MatcherExpression:
    """
    Parses a validation matcher expression like "@prefix:Name('arg1', 'arg2')@".
    Only the Ignore matcher can be written without parenthesis.
    """
    body = expression.strip()
    if is_matcher_expression(body, settings):
        body = body[len(settings.matcher_prefix):-len(settings.matcher_suffix)]

    match = MATCHER_PATTERN.match(body)
    if match is None:
        raise xmlcontrol_error(
            'XCEX0001', f"Illegal syntax for validation matcher expression {expression!r}"
        )

    prefix, name, arguments = match.group('prefix', 'name', 'args')
    if arguments is None:
        if name.lower() != 'ignore':
            raise xmlcontrol_error(
                'XCEX0001', "Illegal syntax for validation matcher expression - missing "
                            f"validation value in '()' function body: {expression!r}"
            )
        arguments = ''
    return MatcherExpression(prefix or '', name, arguments)


def extract_control_values(expression: str, delimiter: str = DEFAULT_DELIMITER) -> List[str]:
    """
    Extracts the parameters of a control expression. Parameters are delimited
    (eg. "'a', 'b'"), a closing delimiter must be followed by a comma, a space
    or the end of the expression. If no delimited parameter is found the whole
    expression is the only parameter.
    """
    values: List[str] = []
    if not expression:
        return values

    length = len(expression)
    pos = expression.find(delimiter)
    while pos >= 0:
        end = pos + 1
        while True:
            end = expression.find(delimiter, end)
            if end < 0:
                raise xmlcontrol_error(
                    'XCEX0001', f"No matching delimiter ({delimiter}) found after position "
                                f"{pos} in control expression: {expression!r}"
                )
            elif end + 1 >= length or expression[end + 1] == ',' \
                    or expression[end + 1].isspace():
                break
            end += 1

        values.append(expression[pos + 1:end])
        pos = end + 1
        while pos < length and (expression[pos] == ',' or expression[pos].isspace()):
            pos += 1
        if pos >= length:
            break
        pos = expression.find(delimiter, pos)

    if not values:
        values.append(expression)
    return values


class ValidationMatcherLibrary:
    """
    A named collection of validation matchers bound to a prefix. A matcher is
    a callable `matcher(field_name, value, params, context)` that raises a
    `MatcherMismatch` when the value doesn't satisfy the control parameters.
    """
    def __init__(self, name: str, prefix: str = '',
                 matchers: Optional[Dict[str, MatcherType]] = None) -> None:
        self.name = name
        self.prefix = prefix
        self.matchers: Dict[str, MatcherType] = dict(matchers or ())

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(name={self.name!r}, prefix={self.prefix!r})'

    def __contains__(self, name: object) -> bool:
        return name in self.matchers

    def register(self, name: str) -> Callable[[MatcherType], MatcherType]:
        def decorator(func: MatcherType) -> MatcherType:
            self.matchers[name] = func
            return func
        return decorator

    def get_matcher(self, name: str) -> MatcherType:
        try:
            return self.matchers[name]
        except KeyError:
            for key, matcher in self.matchers.items():
                if key.lower() == name.lower():
                    return matcher
            raise xmlcontrol_error(
                'XCMT0001', f"Can not find validation matcher '{name}' in library {self.name}"
            ) from None

    def copy(self) -> 'ValidationMatcherLibrary':
        return ValidationMatcherLibrary(self.name, self.prefix, self.matchers)


class ValidationMatcherRegistry:
    """A registry of validation matcher libraries, indexed by prefix."""

    def __init__(self, libraries: Optional[List[ValidationMatcherLibrary]] = None,
                 settings: ValidationSettings = DEFAULT_SETTINGS) -> None:
        self.settings = settings
        self.libraries: Dict[str, ValidationMatcherLibrary] = {}
        for library in libraries or ():
            self.add_library(library)

    def __iter__(self) -> Iterator[ValidationMatcherLibrary]:
        return iter(self.libraries.values())

    def add_library(self, library: ValidationMatcherLibrary) -> None:
        self.libraries[library.prefix] = library

    def get_library(self, prefix: str) -> ValidationMatcherLibrary:
        try:
            return self.libraries[prefix]
        except KeyError:
            raise xmlcontrol_error(
                'XCMT0001', f"Can not find validation matcher library for prefix '{prefix}'"
            ) from None

    def is_matcher_expression(self, expression: Any) -> bool:
        return is_matcher_expression(expression, self.settings)

    def validate(self, field_name: str, value: str, expression: str,
                 context: 'TestContext') -> None:
        """
        Validates a value with a validation matcher expression. The control
        parameters are resolved for variables and functions before validation.

        :param field_name: the name of the validated field, used in messages.
        :param value: the actual value.
        :param expression: the validation matcher expression.
        :param context: the test context.
        """
        prefix, name, arguments = parse_matcher_expression(expression, self.settings)
        matcher = self.get_library(prefix).get_matcher(name)
        params = [context.resolve(p) for p in extract_control_values(arguments)]

        matcher(field_name, value, params, context)
        logger.debug("Validation matcher passed", field=field_name, matcher=name)

    def copy(self) -> 'ValidationMatcherRegistry':
        return ValidationMatcherRegistry([library.copy() for library in self], self.settings)


###
# Default matchers

def mismatch(name: str, field_name: str, value: str, control: Any = None) -> Exception:
    if control is None:
        message = f"{name} failed for field '{field_name}'. Received value is '{value}'"
    else:
        message = f"{name} failed for field '{field_name}'. " \
                  f"Received value is '{value}', control value is '{control}'"
    return xmlcontrol_error('XCVA0003', message, expected=control, actual=value)


def first_param(name: str, params: List[str]) -> str:
    if not params:
        raise xmlcontrol_error('XCFN0003', f"Validation matcher {name} requires a control value")
    return params[0]


def number_param(name: str, params: List[str]) -> float:
    value = to_number(first_param(name, params).strip())
    if value != value:
        raise xmlcontrol_error(
            'XCFN0003', f"Validation matcher {name}: control value {params[0]!r} "
                        f"is not a number"
        )
    return value


default_matchers = ValidationMatcherLibrary('default')


@default_matchers.register('Ignore')
def ignore(field_name: str, value: str, params: List[str], context: Any) -> None:
    logger.debug("Ignoring value", field=field_name)


@default_matchers.register('EqualsIgnoreCase')
def equals_ignore_case(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('EqualsIgnoreCase', params)
    if value.casefold() != control.casefold():
        raise mismatch('EqualsIgnoreCaseValidationMatcher', field_name, value, control)


@default_matchers.register('Contains')
def contains(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('Contains', params)
    if control not in value:
        raise mismatch('ContainsValidationMatcher', field_name, value, control)


@default_matchers.register('ContainsIgnoreCase')
def contains_ignore_case(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('ContainsIgnoreCase', params)
    if control.casefold() not in value.casefold():
        raise mismatch('ContainsIgnoreCaseValidationMatcher', field_name, value, control)


@default_matchers.register('StartsWith')
def starts_with(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('StartsWith', params)
    if not value.startswith(control):
        raise mismatch('StartsWithValidationMatcher', field_name, value, control)


@default_matchers.register('EndsWith')
def ends_with(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('EndsWith', params)
    if not value.endswith(control):
        raise mismatch('EndsWithValidationMatcher', field_name, value, control)


@default_matchers.register('Matches')
def matches(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('Matches', params)
    try:
        pattern = re.compile(control)
    except re.error as err:
        raise xmlcontrol_error(
            'XCFN0003', f"Validation matcher Matches: invalid regex {control!r} ({err})"
        ) from None
    if pattern.fullmatch(value) is None:
        raise mismatch('MatchesValidationMatcher', field_name, value, control)


@default_matchers.register('IsNumber')
def is_number(field_name: str, value: str, params: List[str], context: Any) -> None:
    if to_number(value.strip()) != to_number(value.strip()):
        raise mismatch('IsNumberValidationMatcher', field_name, value)


@default_matchers.register('LowerThan')
def lower_than(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = number_param('LowerThan', params)
    if not to_number(value.strip()) < control:
        raise mismatch('LowerThanValidationMatcher', field_name, value, params[0])


@default_matchers.register('GreaterThan')
def greater_than(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = number_param('GreaterThan', params)
    if not to_number(value.strip()) > control:
        raise mismatch('GreaterThanValidationMatcher', field_name, value, params[0])


@default_matchers.register('StringLength')
def string_length(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = number_param('StringLength', params)
    if len(value) != control:
        raise mismatch('StringLengthValidationMatcher', field_name, value, params[0])


@default_matchers.register('Empty')
def empty(field_name: str, value: str, params: List[str], context: Any) -> None:
    if value:
        raise mismatch('EmptyValidationMatcher', field_name, value)


@default_matchers.register('NotEmpty')
def not_empty(field_name: str, value: str, params: List[str], context: Any) -> None:
    if not value:
        raise mismatch('NotEmptyValidationMatcher', field_name, value)


@default_matchers.register('Null')
def null(field_name: str, value: str, params: List[str], context: Any) -> None:
    if value not in ('', 'null'):
        raise mismatch('NullValidationMatcher', field_name, value)


@default_matchers.register('IgnoreNewLine')
def ignore_new_line(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('IgnoreNewLine', params)
    if re.sub(r'\r?\n', '', value) != re.sub(r'\r?\n', '', control):
        raise mismatch('IgnoreNewLineValidationMatcher', field_name, value, control)


@default_matchers.register('Trim')
def trim(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('Trim', params)
    if value.strip() != control.strip():
        raise mismatch('TrimValidationMatcher', field_name, value, control)


@default_matchers.register('Variable')
def variable(field_name: str, value: str, params: List[str], context: 'TestContext') -> None:
    """Saves the value in a test variable, named after the field if no name is given."""
    name = params[0].strip() if params and params[0].strip() else field_name
    context.set_variable(name, value)


@default_matchers.register('DatePattern')
def date_pattern(field_name: str, value: str, params: List[str], context: Any) -> None:
    control = first_param('DatePattern', params)
    try:
        datetime.datetime.strptime(value, to_strftime_format(control))
    except ValueError:
        raise mismatch('DatePatternValidationMatcher', field_name, value, control) from None


def default_matcher_registry(settings: ValidationSettings = DEFAULT_SETTINGS) \
        -> ValidationMatcherRegistry:
    """Returns a new registry with a copy of the default matcher library."""
    return ValidationMatcherRegistry([default_matchers.copy()], settings)


__all__ = ['MatcherExpression', 'MatcherType', 'ValidationMatcherLibrary',
           'ValidationMatcherRegistry', 'default_matchers', 'default_matcher_registry',
           'extract_control_values', 'is_matcher_expression', 'parse_matcher_expression']
