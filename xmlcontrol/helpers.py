#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
import re
import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

###
# Data validation helpers

WHITESPACES_PATTERN = re.compile(r'[^\S\xa0]+')  # include ASCII 160 (non-breaking space)
NCNAME_PATTERN = re.compile(r'^[^\d\W][\w.\-\u00B7\u0300-\u036F\u203F\u2040]*$')
QNAME_PATTERN = re.compile(
    r'^(?:(?P<prefix>[^\d\W][\w\-.\u00B7\u0300-\u036F\u0387\u06DD\u06DE\u203F\u2040]*):)?'
    r'(?P<local>[^\d\W][\w\-.\u00B7\u0300-\u036F\u0387\u06DD\u06DE\u203F\u2040]*)$',
)
XPATH_NUMBER_PATTERN = re.compile(r'^\s*-?(?:\d+(?:\.\d*)?|\.\d+)\s*$')


class Patterns:
    namespace_uri = re.compile(r'^\{([^}]*)}')
    expanded_name = re.compile(r'^(?:\{([^}]*)})?([^{}]+)$')

    # {uri}local inside expressions, excluding ${variable} references
    dynamic_namespace = re.compile(r'(?<!\$)\{([^{}\s]+)}(?=[^\d\W])')


def collapse_white_spaces(s: str) -> str:
    return WHITESPACES_PATTERN.sub(' ', s).strip(' ')


def is_ncname(value: Any) -> bool:
    return isinstance(value, str) and NCNAME_PATTERN.match(value) is not None


def is_qname(value: Any) -> bool:
    return isinstance(value, str) and QNAME_PATTERN.match(value) is not None


###
# Number helpers (XPath 1.0 number model)

def to_number(value: Any) -> float:
    """Converts a value to an XPath number, returning NaN if not numeric."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    elif isinstance(value, (int, float, Decimal)):
        return float(value)
    elif isinstance(value, str) and XPATH_NUMBER_PATTERN.match(value) is not None:
        return float(value)
    return math.nan


def format_number(value: float) -> str:
    """Returns the XPath string representation of a number."""
    if math.isnan(value):
        return 'NaN'
    elif math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    elif value == int(value):
        return str(int(value))
    return repr(value)


def round_half_up(value: float) -> float:
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return float(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return float(round(value))


def boolean_to_string(value: bool) -> str:
    return 'true' if value else 'false'


###
# Date pattern helpers

JAVA_DATE_TOKENS = (
    ('yyyy', '%Y'), ('yy', '%y'), ('MMMM', '%B'), ('MMM', '%b'), ('MM', '%m'),
    ('dd', '%d'), ('HH', '%H'), ('hh', '%I'), ('mm', '%M'), ('ss', '%S'),
    ('SSS', '%f'), ('EEEE', '%A'), ('EEE', '%a'), ('a', '%p'), ('Z', '%z'),
)
JAVA_DATE_TOKENS_PATTERN = re.compile('|'.join(t for t, _ in JAVA_DATE_TOKENS))


def to_strftime_format(pattern: str) -> str:
    """
    Translates a date pattern written with letters (eg. 'yyyy-MM-dd') to a
    strftime format. Patterns that already contain directives are returned
    unchanged.
    """
    if '%' in pattern:
        return pattern
    tokens = dict(JAVA_DATE_TOKENS)
    return JAVA_DATE_TOKENS_PATTERN.sub(lambda m: tokens[m.group()], pattern)


def strip_quotes(value: str, quotes: str = '\'"') -> Optional[str]:
    """Returns the content of a quoted string, `None` if the value is not quoted."""
    if len(value) >= 2 and value[0] in quotes and value[-1] == value[0]:
        return value[1:-1]
    return None
