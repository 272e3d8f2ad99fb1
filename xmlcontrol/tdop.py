#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Base classes of a top down operator precedence parser (Pratt parser).

A concrete language is defined by subclassing :class:`Parser`, declaring its
SYMBOLS, registering a token class for each symbol and finally calling the
build() classmethod, which compiles the tokenizer.

See https://tdop.github.io/ for the original paper of Vaughan R. Pratt (1973)
and http://crockford.com/javascript/tdop/tdop.html for a JavaScript rendition.
"""
import re
from collections.abc import MutableSequence
from decimal import Decimal
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Generic, Iterator, \
    List, Optional, Pattern, Tuple, Type, TypeVar, Union, overload
from unicodedata import name as unicode_name

from .exceptions import xmlcontrol_error

# Special symbols are names enclosed in round brackets, eg. '(name)' or '(end)'
SPECIAL_SYMBOL_PATTERN = re.compile(r'\(\w+\)')

NAME_PATTERN = r'[^\d\W][\w.\-]*'

LITERAL_PATTERN = r"'[^']*'|\"[^\"]*\"|(?:\d+|\.\d+)(?:\.\d*)?(?:[Ee][+-]?\d+)?"


def is_special_symbol(symbol: str) -> bool:
    return SPECIAL_SYMBOL_PATTERN.match(symbol) is not None


def symbol_to_classname(symbol: str) -> str:
    """Maps a symbol to a string usable within a class name."""
    if symbol.isalnum():
        return symbol.title()
    elif is_special_symbol(symbol):
        return symbol[1:-1].title()

    chunks = []
    for char in symbol:
        if char.isalnum() or char == '_':
            chunks.append(char)
        elif char in '- ':
            chunks.append('_')
        else:
            chunks.append(''.join(unicode_name(char).title().split()).replace('-', ''))
    return ''.join(chunks)


def create_tokenizer(symbol_table: Dict[str, Any], name_pattern: str = NAME_PATTERN) -> Pattern[str]:
    """
    Compiles the tokenizer of a language from its table of token classes.

    The tokenizer has four groups, matched in this order: literals, symbols,
    names and unexpected characters. Whitespaces are matched outside of
    groups so they produce empty matches. Special symbols and symbols that
    are also names (keywords, function names) are left out of the symbols
    group: matched names are mapped to token classes by the parser.

    :param symbol_table: a map from symbols to token classes.
    :param name_pattern: the regex that matches the names of the language.
    """
    name_regex = re.compile(name_pattern)
    multi_chars: List[str] = []
    single_chars: List[str] = []

    for symbol, token_class in symbol_table.items():
        if is_special_symbol(symbol) or name_regex.fullmatch(symbol) is not None:
            continue

        pattern = token_class.pattern
        if ' ' in pattern:
            raise ValueError(f'pattern {pattern!r} contains spaces')
        elif len(pattern) == 1 or len(pattern) == 2 and pattern[0] == '\\':
            single_chars.append(pattern)
        else:
            multi_chars.append(pattern)

    # Longest patterns first, so '//' is tried before '/'
    alternatives = sorted(multi_chars, key=len, reverse=True)
    if single_chars:
        alternatives.append('[%s]' % ''.join(single_chars))

    groups = (LITERAL_PATTERN, '|'.join(alternatives), name_pattern, r'\S')
    return re.compile('|'.join(f'({g})' for g in groups) + r'|\s+')


TK = TypeVar('TK', bound='Token[Any]')


class Token(MutableSequence, Generic[TK]):  # type: ignore[type-arg]
    """
    A node of the parse tree. The items of a token are its operands, so the
    length of a token is the arity of the operator it stands for. Literals and
    names have no items.

    :param parser: the parser that is creating the token.
    :param value: the value of the token, the symbol if not provided.

    :cvar symbol: the symbol the token class is registered for.
    :cvar lbp: the left binding power.
    :cvar rbp: the right binding power.
    :cvar pattern: the tokenizer regex of the symbol, the escaped symbol by default.
    :cvar label: the kind of token ('symbol', 'literal', 'operator', 'function', ...).
    """
    symbol: ClassVar[str] = ''
    lbp: ClassVar[int] = 0
    rbp: ClassVar[int] = 0
    pattern: ClassVar[str] = ''
    label: ClassVar[str] = 'symbol'

    parser: 'Parser[TK]'
    value: Any
    span: Tuple[int, int]
    position: Tuple[int, int]  # line and column in the parsed source
    _items: List[TK]

    def __init__(self, parser: 'Parser[TK]', value: Optional[Any] = None) -> None:
        self._items = []
        self.parser = parser
        self.value = self.symbol if value is None else value

        match = parser.next_match
        if match is None:
            end = len(parser.source)
            self.span = end, end
        else:
            self.span = match.span()
        self.position = parser.get_position(self.span[0])

    @overload
    def __getitem__(self, i: int) -> TK: ...

    @overload
    def __getitem__(self, i: slice) -> List[TK]: ...

    def __getitem__(self, i: Union[int, slice]) -> Union[TK, List[TK]]:
        return self._items[i]

    def __setitem__(self, i: Union[int, slice], item: Any) -> None:
        self._items[i] = item

    def __delitem__(self, i: Union[int, slice]) -> None:
        del self._items[i]

    def __len__(self) -> int:
        return len(self._items)

    def insert(self, i: int, item: TK) -> None:
        self._items.insert(i, item)

    def __str__(self) -> str:
        if is_special_symbol(self.symbol):
            return f'{self.value!r} {self.symbol[1:-1]}'
        return f'{self.symbol!r} {self.label}'

    def __repr__(self) -> str:
        name = self.__class__.__name__
        return f'{name}()' if self.value == self.symbol else f'{name}(value={self.value!r})'

    @property
    def arity(self) -> int:
        return len(self)

    @property
    def tree(self) -> str:
        """The parse tree in a Lisp-like notation, eg. '(+ (1) (2))'."""
        if self.symbol == '(name)':
            return f'({self.value})'
        elif is_special_symbol(self.symbol):
            return f'({self.value!r})'
        elif self.symbol == '(':
            return self[0].tree if self else '()'
        elif not self:
            return f'({self.symbol})'
        return '(%s %s)' % (self.symbol, ' '.join(item.tree for item in self))

    @property
    def source(self) -> str:
        """The source rebuilt from the parse tree."""
        if self.symbol == '(name)':
            return str(self.value)
        elif is_special_symbol(self.symbol):
            return repr(self.value)

        operands = [item.source for item in self]
        if len(operands) == 2:
            return f'{operands[0]} {self.symbol} {operands[1]}'
        return ' '.join([self.symbol] + operands)

    def nud(self) -> TK:
        """Null denotation: the token starts an expression."""
        raise self.wrong_syntax()

    def led(self, left: TK) -> TK:
        """Left denotation: the token continues the expression *left*."""
        raise self.wrong_syntax()

    def evaluate(self, *args: Any, **kwargs: Any) -> Any:
        """Evaluates the token, the base implementation returns `None`."""

    def iter(self, *symbols: str) -> Iterator['Token[TK]']:
        """Iterates the parse tree in source order, optionally filtering by symbols."""
        if self:
            yield from self[0].iter(*symbols)
        if not symbols or self.symbol in symbols:
            yield self
        for item in self[1:]:
            yield from item.iter(*symbols)

    def expected(self, *symbols: str, message: Optional[str] = None) -> None:
        if symbols and self.symbol not in symbols:
            raise self.wrong_syntax(message)

    def unexpected(self, *symbols: str, message: Optional[str] = None) -> None:
        if not symbols or self.symbol in symbols:
            raise self.wrong_syntax(message)

    def wrong_syntax(self, message: Optional[str] = None, code: str = 'XPST0003') -> Exception:
        symbol = self.value if is_special_symbol(self.symbol) else self.symbol
        previous = self.parser.token

        if previous is None or previous is self or symbol == previous.symbol:
            msg = f"symbol {symbol!r}"
        else:
            msg = f"symbol {symbol!r} after {previous}"

        if message:
            msg = f'{msg}: {message}'
        elif symbol == '(end)':
            msg = f'unexpected end of source after {previous}'
        else:
            msg = f'unexpected {msg}'
        return xmlcontrol_error(code, msg, self)

    def error(self, code: str, message: Optional[str] = None) -> Exception:
        return xmlcontrol_error(code, message, self)


class Parser(Generic[TK]):
    """
    Base class of Pratt parsers. Every subclass gets its own symbol table
    and has to be completed with the registration of its token classes and
    a call to build().

    :cvar SYMBOLS: the symbols of the language. The base set contains only \
    the special symbols, eg. literals and the end of the source.
    :cvar symbol_table: the token classes of the language, keyed by symbol.
    :cvar token_base_class: the base class of the registered token classes.
    :cvar tokenizer: the compiled tokenizer, `None` until build() is called.
    :cvar name_pattern: the regex that matches the names of the language.
    :cvar max_length: the maximum length of a source.
    """
    SYMBOLS: ClassVar[FrozenSet[str]] = frozenset((
        '(string)', '(float)', '(decimal)', '(integer)', '(name)', '(end)'
    ))
    token_base_class: Type[Token[Any]] = Token
    tokenizer: Optional[Pattern[str]] = None
    symbol_table: Dict[str, Type[TK]] = {}
    name_pattern: ClassVar[str] = NAME_PATTERN
    max_length: int = 4096

    token: Optional[TK]
    next_token: Optional[TK]
    next_match: Optional['re.Match[str]']

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if 'symbol_table' not in cls.__dict__:
            cls.symbol_table = dict(cls.symbol_table)
        if 'tokenizer' not in cls.__dict__:
            cls.tokenizer = None

    def __init__(self) -> None:
        if self.tokenizer is None:
            raise ValueError(f"Incomplete parser class {self.__class__.__name__} registration")
        self.source = ''
        self.tokens: Iterator['re.Match[str]'] = iter(())
        self.reset()

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}()'

    def reset(self) -> None:
        self.token = None
        self.next_token = None
        self.next_match = None

    def parse(self, source: str) -> TK:
        """
        Parses a source and returns the root of its parse tree.

        :param source: the source string.
        """
        if not isinstance(source, str):
            raise TypeError(f"the source must be a string, not {type(source)!r}")
        elif len(source) > self.max_length:
            raise xmlcontrol_error(
                'XPST0003', f"expression too long ({len(source)} > {self.max_length} characters)"
            )

        self.source = source
        self.tokens = iter(self.tokenizer.finditer(source))  # type: ignore[union-attr]
        self.reset()
        try:
            self.advance()
            root_token = self.expression()
            assert self.next_token is not None
            self.next_token.expected('(end)')
            return root_token
        finally:
            self.tokens = iter(())
            self.reset()

    def advance(self, *symbols: str, message: Optional[str] = None) -> TK:
        """
        Moves on to the next token of the source.

        :param symbols: if provided the current next token must have one of \
        these symbols, otherwise a syntax error is raised.
        :param message: an optional message for the syntax error.
        :return: the new next token.
        """
        if self.next_token is not None:
            if self.next_token.symbol == '(end)':
                if self.token is None:
                    raise self.next_token.wrong_syntax("source is empty")
                raise self.next_token.wrong_syntax()
            self.next_token.expected(*symbols, message=message)

        self.token = self.next_token
        for self.next_match in self.tokens:
            next_token = self.match_to_token(self.next_match)
            if next_token is not None:
                self.next_token = next_token
                break
        else:
            self.next_match = None
            self.next_token = self.symbol_table['(end)'](self)

        return self.next_token

    def match_to_token(self, match: 're.Match[str]') -> Optional[TK]:
        """Creates the token of a tokenizer match, `None` for whitespaces."""
        literal, symbol, name, unexpected = match.groups()
        if symbol is not None:
            try:
                return self.symbol_table[symbol.strip()](self)
            except KeyError:
                raise xmlcontrol_error('XPST0003', f"unknown symbol {symbol!r}") from None
        elif literal is not None:
            if literal[0] in '\'"':
                return self.symbol_table['(string)'](self, literal[1:-1])
            elif 'e' in literal or 'E' in literal:
                return self.symbol_table['(float)'](self, float(literal))
            elif '.' in literal:
                return self.symbol_table['(decimal)'](self, Decimal(literal))
            return self.symbol_table['(integer)'](self, int(literal))
        elif name is not None:
            if name in self.symbol_table:
                return self.symbol_table[name](self)
            return self.symbol_table['(name)'](self, name)
        elif unexpected is not None:
            line, column = self.get_position(match.start())
            raise xmlcontrol_error(
                'XPST0003', f"unexpected symbol {unexpected!r} at line {line}, column {column}"
            )
        return None

    def expression(self, rbp: int = 0) -> TK:
        """
        Parses an expression, consuming tokens while their left binding
        power is greater than *rbp*.
        """
        token = self.next_token
        self.advance()
        left = token.nud()
        while self.next_token.lbp > rbp:
            token = self.next_token
            self.advance()
            left = token.led(left)
        return left

    def get_position(self, index: int) -> Tuple[int, int]:
        line_start = self.source.rfind('\n', 0, index)
        return self.source.count('\n', 0, index) + 1, index - line_start

    @classmethod
    def build(cls) -> None:
        """Checks the registrations and compiles the tokenizer."""
        unregistered = [s for s in sorted(cls.SYMBOLS) if s not in cls.symbol_table]
        if unregistered:
            raise ValueError(f"The parser {cls!r} has unregistered symbols: {unregistered!r}")
        cls.tokenizer = create_tokenizer(cls.symbol_table, cls.name_pattern)

    @classmethod
    def register(cls, symbol: Union[str, Type[TK]], **kwargs: Any) -> Type[TK]:
        """
        Creates the token class of a symbol or updates an already registered one.
        On update the binding powers can only be raised and only the callables
        of *kwargs* are set.

        :param symbol: a symbol or a registered token class.
        :param kwargs: attributes and methods of the token class.
        """
        if not isinstance(symbol, str):
            token_class, symbol = symbol, symbol.symbol
            if cls.symbol_table.get(symbol) is not token_class:
                raise ValueError(f"Token class {token_class!r} is not registered")
            return cls._update_token_class(token_class, kwargs)
        elif ' ' in symbol:
            raise ValueError(f"{symbol!r}: a symbol can't contain whitespaces")
        elif symbol in cls.symbol_table:
            return cls._update_token_class(cls.symbol_table[symbol], kwargs)
        elif symbol not in cls.SYMBOLS:
            raise ValueError(f'{symbol!r} is not a symbol of the parser {cls!r}')

        kwargs['symbol'] = symbol
        kwargs.setdefault('pattern', re.escape(symbol))
        label = str(kwargs.get('label', 'symbol'))
        class_name = f"_{symbol_to_classname(symbol)}{label.title().replace(' ', '')}"
        kwargs.update(__module__=cls.__module__, __qualname__=class_name)

        token_class = type(cls.token_base_class)(class_name, (cls.token_base_class,), kwargs)
        cls.symbol_table[symbol] = token_class
        return token_class

    @staticmethod
    def _update_token_class(token_class: Type[TK], kwargs: Dict[str, Any]) -> Type[TK]:
        for key, value in kwargs.items():
            if key in ('lbp', 'rbp'):
                setattr(token_class, key, max(value, getattr(token_class, key)))
            elif callable(value):
                setattr(token_class, key, value)
        return token_class

    @classmethod
    def unregister(cls, symbol: str) -> None:
        del cls.symbol_table[symbol.strip()]

    @classmethod
    def literal(cls, symbol: str, bp: int = 0) -> Type[TK]:
        """Registers a literal, that evaluates to its own value."""
        def nud(self: Token[TK]) -> Token[TK]:
            return self

        def evaluate(self: Token[TK], *args: Any, **kwargs: Any) -> Any:
            return self.value

        return cls.register(symbol, label='literal', lbp=bp, evaluate=evaluate, nud=nud)

    @classmethod
    def nullary(cls, symbol: str, bp: int = 0) -> Type[TK]:
        """Registers an operator without operands."""
        def nud(self: Token[TK]) -> Token[TK]:
            return self

        return cls.register(symbol, label='operator', lbp=bp, nud=nud)

    @classmethod
    def prefix(cls, symbol: str, bp: int = 0) -> Type[TK]:
        """Registers a unary operator that precedes its operand."""
        def nud(self: Token[TK]) -> Token[TK]:
            self[:] = [self.parser.expression(rbp=bp)]
            return self

        return cls.register(symbol, label='operator', lbp=bp, rbp=bp, nud=nud)

    @classmethod
    def infix(cls, symbol: str, bp: int = 0) -> Type[TK]:
        """Registers a left-associative binary operator."""
        def led(self: Token[TK], left: Token[TK]) -> Token[TK]:
            self[:] = [left, self.parser.expression(rbp=bp)]
            return self

        return cls.register(symbol, label='operator', lbp=bp, rbp=bp, led=led)

    @classmethod
    def method(cls, symbol: Union[str, Type[TK]], bp: int = 0) -> Callable[[Callable[..., Any]],
                                                                          Callable[..., Any]]:
        """
        Decorator factory that sets the decorated function as a method of the
        token class of *symbol*. The name of the function must be the name of
        an existing method. An unregistered symbol is registered as an operator.
        """
        if isinstance(symbol, str) and symbol not in cls.symbol_table:
            token_class = cls.register(symbol, label='operator', lbp=bp, rbp=bp)
        else:
            token_class = cls.register(symbol, lbp=bp, rbp=bp)

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            if not callable(getattr(token_class, func.__name__, None)):
                raise ValueError(f"{token_class!r} has no method {func.__name__!r}")
            setattr(token_class, func.__name__, func)
            return func
        return decorator


__all__ = ['Token', 'Parser', 'create_tokenizer', 'symbol_to_classname']
