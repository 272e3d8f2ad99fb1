#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Function libraries for template expressions (eg. "core:Concat('a', ${b})").
"""
import base64
import binascii
import datetime
import random
import re
import uuid
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional
from xml.sax.saxutils import escape, unescape

import structlog

from .exceptions import xmlcontrol_error
from .helpers import to_number, format_number, round_half_up, to_strftime_format

if TYPE_CHECKING:
    from .context import TestContext  # noqa: F401

logger = structlog.get_logger(__name__)

FunctionType = Callable[[List[str], 'TestContext'], str]

DATE_OFFSET_PATTERN = re.compile(r'^\s*([+-])\s*(\d+)\s*([smhdw])\s*$')
DATE_OFFSET_UNITS = {'s': 'seconds', 'm': 'minutes', 'h': 'hours', 'd': 'days', 'w': 'weeks'}


class FunctionLibrary:
    """
    A named collection of functions bound to a prefix.

    :param name: the name of the library.
    :param prefix: the prefix of the function calls, without the colon.
    """
    def __init__(self, name: str, prefix: str,
                 functions: Optional[Dict[str, FunctionType]] = None) -> None:
        self.name = name
        self.prefix = prefix
        self.functions: Dict[str, FunctionType] = dict(functions or ())

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(name={self.name!r}, prefix={self.prefix!r})'

    def __contains__(self, name: object) -> bool:
        return name in self.functions

    def register(self, name: str) -> Callable[[FunctionType], FunctionType]:
        """Decorator for registering a function in the library."""
        def decorator(func: FunctionType) -> FunctionType:
            self.functions[name] = func
            return func
        return decorator

    def get_function(self, name: str) -> FunctionType:
        try:
            return self.functions[name]
        except KeyError:
            for key, func in self.functions.items():
                if key.lower() == name.lower():
                    return func
            raise xmlcontrol_error(
                'XCFN0001', f"Can not find function '{name}' in library {self.name} "
                            f"({self.prefix}:)"
            ) from None

    def copy(self) -> 'FunctionLibrary':
        return FunctionLibrary(self.name, self.prefix, self.functions)


class FunctionRegistry:
    """A registry of function libraries, indexed by prefix."""

    def __init__(self, libraries: Optional[List[FunctionLibrary]] = None) -> None:
        self.libraries: Dict[str, FunctionLibrary] = {}
        for library in libraries or ():
            self.add_library(library)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(prefixes={list(self.libraries)!r})'

    def __iter__(self) -> Iterator[FunctionLibrary]:
        return iter(self.libraries.values())

    @property
    def prefixes(self) -> List[str]:
        return list(self.libraries)

    def add_library(self, library: FunctionLibrary) -> None:
        self.libraries[library.prefix] = library

    def is_function_prefix(self, prefix: str) -> bool:
        return prefix in self.libraries

    def get_library(self, prefix: str) -> FunctionLibrary:
        try:
            return self.libraries[prefix]
        except KeyError:
            raise xmlcontrol_error(
                'XCFN0002', f"Can not find function library for prefix '{prefix}'"
            ) from None

    def invoke(self, prefix: str, name: str, args: List[str], context: 'TestContext') -> str:
        """
        Invokes a function, returning its string result.

        :param prefix: the prefix of the function library.
        :param name: the name of the function.
        :param args: the resolved arguments.
        :param context: the test context.
        """
        func = self.get_library(prefix).get_function(name)
        result = func(args, context)
        logger.debug("Function invoked", function=f'{prefix}:{name}', args=args)
        return result

    def copy(self) -> 'FunctionRegistry':
        return FunctionRegistry([library.copy() for library in self])


###
# Argument helpers

def check_args(name: str, args: List[str], min_args: int,
               max_args: Optional[int] = None) -> None:
    if len(args) < min_args:
        raise xmlcontrol_error(
            'XCFN0003', f"Function {name} requires at least {min_args} argument(s), "
                        f"{len(args)} provided"
        )
    elif max_args is not None and len(args) > max_args:
        raise xmlcontrol_error(
            'XCFN0003', f"Function {name} accepts at most {max_args} argument(s), "
                        f"{len(args)} provided"
        )


def numeric_args(name: str, args: List[str]) -> List[float]:
    values = []
    for arg in args:
        value = to_number(arg)
        if value != value:
            raise xmlcontrol_error('XCFN0003', f"Function {name}: {arg!r} is not a number")
        values.append(value)
    return values


def boolean_arg(arg: str) -> bool:
    return arg.strip().lower() in ('true', 'yes', '1')


###
# The core library
core_library = FunctionLibrary('core', 'core')


@core_library.register('Concat')
def concat(args: List[str], context: Any) -> str:
    check_args('Concat', args, 1)
    return ''.join(args)


@core_library.register('UpperCase')
def upper_case(args: List[str], context: Any) -> str:
    check_args('UpperCase', args, 1, 1)
    return args[0].upper()


@core_library.register('LowerCase')
def lower_case(args: List[str], context: Any) -> str:
    check_args('LowerCase', args, 1, 1)
    return args[0].lower()


@core_library.register('Substring')
def substring(args: List[str], context: Any) -> str:
    check_args('Substring', args, 2, 3)
    indexes = [int(x) for x in numeric_args('Substring', args[1:])]
    if len(indexes) == 1:
        return args[0][indexes[0]:]
    return args[0][indexes[0]:indexes[1]]


@core_library.register('StringLength')
def string_length(args: List[str], context: Any) -> str:
    check_args('StringLength', args, 1, 1)
    return str(len(args[0]))


@core_library.register('Translate')
def translate(args: List[str], context: Any) -> str:
    check_args('Translate', args, 3, 3)
    try:
        return re.sub(args[1], args[2], args[0])
    except re.error as err:
        raise xmlcontrol_error('XCFN0003', f"Function Translate: invalid regex ({err})")


@core_library.register('Trim')
def trim(args: List[str], context: Any) -> str:
    check_args('Trim', args, 1, 1)
    return args[0].strip()


@core_library.register('CurrentDate')
def current_date(args: List[str], context: Any) -> str:
    """
    Returns the current date, formatted with an optional pattern (default
    'yyyy-MM-dd'). A second optional argument is an offset like '+1d' or '-2h'.
    """
    check_args('CurrentDate', args, 0, 2)
    now = datetime.datetime.now()
    date_format = to_strftime_format(args[0]) if args and args[0] else '%Y-%m-%d'

    if len(args) > 1 and args[1].strip():
        match = DATE_OFFSET_PATTERN.match(args[1])
        if match is None:
            raise xmlcontrol_error(
                'XCFN0003', f"Function CurrentDate: invalid date offset {args[1]!r}"
            )
        sign, amount, unit = match.groups()
        delta = datetime.timedelta(**{DATE_OFFSET_UNITS[unit]: int(amount)})
        now = now + delta if sign == '+' else now - delta

    return now.strftime(date_format)


@core_library.register('EscapeXml')
def escape_xml(args: List[str], context: Any) -> str:
    check_args('EscapeXml', args, 1, 1)
    return escape(args[0], {'"': '&quot;', "'": '&apos;'})


@core_library.register('UnescapeXml')
def unescape_xml(args: List[str], context: Any) -> str:
    check_args('UnescapeXml', args, 1, 1)
    return unescape(args[0], {'&quot;': '"', '&apos;': "'"})


@core_library.register('RandomNumber')
def random_number(args: List[str], context: Any) -> str:
    """Returns a random number with the given count of digits (padding optional)."""
    check_args('RandomNumber', args, 1, 2)
    length = int(numeric_args('RandomNumber', args[:1])[0])
    if length <= 0:
        raise xmlcontrol_error('XCFN0003', "Function RandomNumber: length must be positive")

    padding = boolean_arg(args[1]) if len(args) > 1 else True
    digits = [str(random.randint(0, 9)) for _ in range(length)]
    if not padding and length > 1 and digits[0] == '0':
        digits[0] = str(random.randint(1, 9))
    return ''.join(digits)


@core_library.register('RandomUUID')
def random_uuid(args: List[str], context: Any) -> str:
    check_args('RandomUUID', args, 0, 0)
    return str(uuid.uuid4())


@core_library.register('EncodeBase64')
def encode_base64(args: List[str], context: Any) -> str:
    check_args('EncodeBase64', args, 1, 2)
    charset = args[1] if len(args) > 1 else 'utf-8'
    return base64.b64encode(args[0].encode(charset)).decode('ascii')


@core_library.register('DecodeBase64')
def decode_base64(args: List[str], context: Any) -> str:
    check_args('DecodeBase64', args, 1, 2)
    charset = args[1] if len(args) > 1 else 'utf-8'
    try:
        return base64.b64decode(args[0], validate=True).decode(charset)
    except (binascii.Error, UnicodeDecodeError) as err:
        raise xmlcontrol_error('XCFN0003', f"Function DecodeBase64: {err}") from None


@core_library.register('Sum')
def sum_numbers(args: List[str], context: Any) -> str:
    check_args('Sum', args, 1)
    return format_number(sum(numeric_args('Sum', args)))


@core_library.register('Max')
def max_number(args: List[str], context: Any) -> str:
    check_args('Max', args, 1)
    return format_number(max(numeric_args('Max', args)))


@core_library.register('Min')
def min_number(args: List[str], context: Any) -> str:
    check_args('Min', args, 1)
    return format_number(min(numeric_args('Min', args)))


@core_library.register('Round')
def round_number(args: List[str], context: Any) -> str:
    check_args('Round', args, 1, 1)
    return format_number(round_half_up(numeric_args('Round', args)[0]))


@core_library.register('AbsoluteValue')
def absolute_value(args: List[str], context: Any) -> str:
    check_args('AbsoluteValue', args, 1, 1)
    return format_number(abs(numeric_args('AbsoluteValue', args)[0]))


def default_function_registry() -> FunctionRegistry:
    """Returns a new registry with a copy of the core library."""
    return FunctionRegistry([core_library.copy()])


__all__ = ['FunctionLibrary', 'FunctionRegistry', 'FunctionType', 'core_library',
           'default_function_registry']
