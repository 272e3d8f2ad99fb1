#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional

import structlog

from .exceptions import xmlcontrol_error
from .functions import FunctionRegistry, default_function_registry
from .matchers import ValidationMatcherRegistry, default_matcher_registry
from .resolver import ExpressionResolver, cut_off_variable_prefix
from .settings import DEFAULT_SETTINGS, ValidationSettings

__all__ = ['TestContext']

logger = structlog.get_logger(__name__)


class TestContext(MutableMapping[str, Any]):
    """
    The context of a test: a variable store bundled with the function and
    validation matcher registries used for resolving expressions.

    :param variables: initial variables.
    :param functions: the function registry, for default a registry with \
    the core library.
    :param matchers: the validation matcher registry, for default a registry \
    with the default matchers.
    :param settings: the validation settings.
    """
    __test__ = False  # not a test case class

    def __init__(self, variables: Optional[Mapping[str, Any]] = None,
                 functions: Optional[FunctionRegistry] = None,
                 matchers: Optional[ValidationMatcherRegistry] = None,
                 settings: Optional[ValidationSettings] = None) -> None:
        self.settings = settings if settings is not None else DEFAULT_SETTINGS
        self.functions = functions if functions is not None else default_function_registry()
        if matchers is None:
            matchers = default_matcher_registry(self.settings)
        self.matchers = matchers

        self._variables: Dict[str, Any] = {}
        if variables is not None:
            for name, value in variables.items():
                self.set_variable(name, value)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(variables={self._variables!r})'

    def __getitem__(self, name: str) -> Any:
        return self.get_variable(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set_variable(name, value)

    def __delitem__(self, name: str) -> None:
        del self._variables[cut_off_variable_prefix(name, self.settings)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def get_variable(self, name: str) -> Any:
        """
        Returns the value of a variable. The name can be written as a variable
        expression (eg. '${name}').
        """
        name = cut_off_variable_prefix(name, self.settings)
        try:
            return self._variables[name]
        except KeyError:
            raise xmlcontrol_error('XCVR0001', f"Variable: {name} could not be found") from None

    def set_variable(self, name: str, value: Any) -> None:
        name = cut_off_variable_prefix(name, self.settings)
        if not name or not name.strip():
            raise xmlcontrol_error('XCEX0001', "Can not create variable with empty name")
        elif value is None:
            raise xmlcontrol_error(
                'XCEX0001', f"Can not create variable {name!r} with a null value"
            )

        self._variables[name] = value
        logger.debug("Setting variable", name=name, value=value)

    def has_variable(self, name: str) -> bool:
        return cut_off_variable_prefix(name, self.settings) in self._variables

    def resolve(self, text: str, enable_quoting: bool = False) -> str:
        """Replaces the variables and the function calls of a text."""
        return ExpressionResolver(self, enable_quoting).resolve(text)

    def copy(self) -> 'TestContext':
        return TestContext(self._variables, self.functions.copy(),
                           self.matchers.copy(), self.settings)
