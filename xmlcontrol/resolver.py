#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Resolver of template expressions. A template is a text that can contain
variable references (eg. '${name}') and function calls of the registered
function libraries (eg. "core:Concat('Hello ', ${name})").

A template is parsed into a tree of nodes and then rendered with the
variables and the functions of a test context, in a single left to right
pass. Variable references that contain other variable references or
function calls are rejected.
"""
import re
from typing import TYPE_CHECKING, List, NamedTuple, Optional, Pattern, Tuple, Union

import structlog

from .exceptions import xmlcontrol_error
from .helpers import strip_quotes
from .settings import DEFAULT_SETTINGS, ValidationSettings

if TYPE_CHECKING:
    from .context import TestContext  # noqa: F401

logger = structlog.get_logger(__name__)

QUOTES = '\'"'


class TextSegment(NamedTuple):
    value: str


class Literal(NamedTuple):
    """A function argument. An unquoted literal is a variable name if the variable exists."""
    value: str
    quoted: bool = False


class VariableReference(NamedTuple):
    name: str


class FunctionCall(NamedTuple):
    prefix: str
    name: str
    arguments: Tuple['ExpressionNode', ...]


class Template(NamedTuple):
    nodes: Tuple['ExpressionNode', ...]


ExpressionNode = Union[TextSegment, Literal, VariableReference, FunctionCall, Template]


###
# Helper functions

def is_variable_expression(text: str, settings: ValidationSettings = DEFAULT_SETTINGS) -> bool:
    """Returns `True` if the text is a variable expression (eg. '${name}')."""
    if not isinstance(text, str) or not text:
        return False
    return len(text) > len(settings.variable_prefix) + len(settings.variable_suffix) and \
        text.startswith(settings.variable_prefix) and text.endswith(settings.variable_suffix)


def cut_off_variable_prefix(text: str, settings: ValidationSettings = DEFAULT_SETTINGS) -> str:
    """Returns the name of a variable expression, or the text if it's not a variable."""
    if is_variable_expression(text, settings):
        return text[len(settings.variable_prefix):-len(settings.variable_suffix)]
    return text


def cut_off_quotes(text: str) -> str:
    """Removes the single or double quotes around a text."""
    value = strip_quotes(text)
    return text if value is None else value


class ExpressionResolver:
    """
    Resolves template expressions with the variables and the functions of
    a test context.

    :param context: the test context.
    :param enable_quoting: if `True` the substituted values are enclosed \
    in single quotes.
    """
    def __init__(self, context: 'TestContext', enable_quoting: bool = False) -> None:
        self.context = context
        self.settings = context.settings
        self.enable_quoting = enable_quoting

        self.function_pattern: Optional[Pattern[str]]
        prefixes = sorted(context.functions.prefixes, key=len, reverse=True)
        if prefixes:
            self.function_pattern = re.compile(
                r'(?<![\w.\-:])(%s):([^\d\W][\w.\-]*)\s*\(' % '|'.join(map(re.escape, prefixes))
            )
        else:
            self.function_pattern = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(enable_quoting={self.enable_quoting!r})'

    def resolve(self, text: str) -> str:
        """
        Returns the text with the variable references and the function calls
        replaced by their values.
        """
        if not isinstance(text, str):
            raise TypeError(f"the argument must be a string, not {type(text)!r}")

        template = self.parse(text)
        if all(isinstance(node, TextSegment) for node in template.nodes):
            return text

        chunks = []
        for node in template.nodes:
            if isinstance(node, TextSegment):
                chunks.append(node.value)
            elif self.enable_quoting:
                chunks.append(f"'{self.render(node)}'")
            else:
                chunks.append(self.render(node))

        result = ''.join(chunks)
        logger.debug("Expression resolved", expression=text, result=result)
        return result

    ###
    # Parsing
    def parse(self, text: str) -> Template:
        """Parses a text into a template of text segments and expressions."""
        nodes: List[ExpressionNode] = []
        prefix = self.settings.variable_prefix
        start = pos = 0
        length = len(text)

        while pos < length:
            if text.startswith(prefix, pos):
                node, end = self.parse_variable(text, pos)
            else:
                match = self.function_pattern.match(text, pos) \
                    if self.function_pattern is not None else None
                if match is None:
                    pos += 1
                    continue
                node, end = self.parse_function(text, match)

            if start < pos:
                nodes.append(TextSegment(text[start:pos]))
            nodes.append(node)
            start = pos = end

        if start < length:
            nodes.append(TextSegment(text[start:]))
        return Template(tuple(nodes))

    def parse_variable(self, text: str, pos: int) -> Tuple[VariableReference, int]:
        prefix, suffix = self.settings.variable_prefix, self.settings.variable_suffix
        start = pos + len(prefix)
        end = text.find(suffix, start)
        if end < 0:
            raise xmlcontrol_error(
                'XCEX0001', f"Unclosed variable expression at position {pos} of {text!r}"
            )

        name = text[start:end].strip()
        if not name:
            raise xmlcontrol_error(
                'XCEX0001', f"Empty variable expression at position {pos} of {text!r}"
            )
        elif prefix in name:
            raise xmlcontrol_error(
                'XCEX0002', f"Nested variable expressions are not supported: {text!r}"
            )
        elif self.function_pattern is not None and self.function_pattern.match(name):
            raise xmlcontrol_error(
                'XCEX0002', f"Function calls inside variable expressions are "
                            f"not supported: {text!r}"
            )
        return VariableReference(name), end + len(suffix)

    def parse_function(self, text: str, match: 're.Match[str]') -> Tuple[FunctionCall, int]:
        prefix, name = match.groups()
        arguments, end = self.parse_arguments(text, match.end())
        return FunctionCall(prefix, name, arguments), end

    def parse_arguments(self, text: str, pos: int) -> Tuple[Tuple[ExpressionNode, ...], int]:
        """
        Parses the arguments of a function call, starting after the opening
        parenthesis. Returns the arguments and the position after the closing
        parenthesis.
        """
        arguments: List[ExpressionNode] = []
        length = len(text)

        pos = self.skip_spaces(text, pos)
        if pos < length and text[pos] == ')':
            return (), pos + 1

        while True:
            pos = self.skip_spaces(text, pos)
            if pos >= length:
                break
            elif text[pos] in QUOTES:
                end = text.find(text[pos], pos + 1)
                if end < 0:
                    raise xmlcontrol_error(
                        'XCEX0001', f"Unclosed quoted argument at position {pos} of {text!r}"
                    )
                arguments.append(self.quoted_argument(text[pos + 1:end]))
                pos = self.skip_spaces(text, end + 1)
            else:
                start, pos = pos, self.skip_argument(text, pos)
                arguments.append(self.bare_argument(text[start:pos].strip()))

            if pos >= length:
                break
            elif text[pos] == ',':
                pos += 1
            elif text[pos] == ')':
                return tuple(arguments), pos + 1
            else:
                raise xmlcontrol_error(
                    'XCEX0001', f"Unexpected character {text[pos]!r} at position "
                                f"{pos} of {text!r}"
                )

        raise xmlcontrol_error('XCEX0001', f"Unclosed function call in {text!r}")

    @staticmethod
    def skip_spaces(text: str, pos: int) -> int:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos

    def skip_argument(self, text: str, pos: int) -> int:
        """Returns the end position of an unquoted argument."""
        prefix, suffix = self.settings.variable_prefix, self.settings.variable_suffix
        depth = 0
        length = len(text)

        while pos < length:
            char = text[pos]
            if text.startswith(prefix, pos):
                end = text.find(suffix, pos + len(prefix))
                pos = length if end < 0 else end + len(suffix)
                continue
            elif char == '(':
                depth += 1
            elif char == ')':
                if not depth:
                    break
                depth -= 1
            elif char in QUOTES and depth:
                end = text.find(char, pos + 1)
                pos = length if end < 0 else end + 1
                continue
            elif char == ',' and not depth:
                break
            pos += 1
        return pos

    def quoted_argument(self, value: str) -> ExpressionNode:
        template = self.parse(value)
        if all(isinstance(node, TextSegment) for node in template.nodes):
            return Literal(value, quoted=True)
        return template

    def bare_argument(self, value: str) -> ExpressionNode:
        template = self.parse(value)
        if all(isinstance(node, TextSegment) for node in template.nodes):
            return Literal(value)
        elif len(template.nodes) == 1:
            return template.nodes[0]
        return template

    ###
    # Rendering
    def render(self, node: ExpressionNode) -> str:
        """Returns the string value of a parsed node."""
        if isinstance(node, TextSegment):
            return node.value
        elif isinstance(node, Literal):
            if not node.quoted and node.value and self.context.has_variable(node.value):
                return str(self.context.get_variable(node.value))
            return node.value
        elif isinstance(node, VariableReference):
            return str(self.context.get_variable(node.name))
        elif isinstance(node, FunctionCall):
            args = [self.render(arg) for arg in node.arguments]
            return self.context.functions.invoke(node.prefix, node.name, args, self.context)
        else:
            return ''.join(self.render(child) for child in node.nodes)


def resolve(text: str, context: Optional['TestContext'] = None,
            enable_quoting: bool = False) -> str:
    """
    Resolves the variables and the function calls of a text.

    :param text: the template text.
    :param context: the test context, for default an empty context.
    :param enable_quoting: if `True` the substituted values are enclosed \
    in single quotes.
    """
    if context is None:
        from .context import TestContext
        context = TestContext()
    return ExpressionResolver(context, enable_quoting).resolve(text)


__all__ = ['ExpressionResolver', 'ExpressionNode', 'TextSegment', 'Literal',
           'VariableReference', 'FunctionCall', 'Template', 'resolve',
           'is_variable_expression', 'cut_off_variable_prefix', 'cut_off_quotes']
