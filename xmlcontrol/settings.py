#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
"""
Configuration settings for the validation engine.
"""
import dataclasses
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

ENV_PREFIX = 'XMLCONTROL_'
TRUE_VALUES = frozenset(('1', 'true', 'yes', 'on'))
FALSE_VALUES = frozenset(('0', 'false', 'no', 'off'))


@dataclass(frozen=True)
class ValidationSettings:
    """
    Immutable settings of a validator.

    Example:
        settings = ValidationSettings.from_env()
        strict = settings.replace(trim_text=False)
    """
    variable_prefix: str = '${'
    variable_suffix: str = '}'
    ignore_placeholder: str = '@Ignore@'
    matcher_prefix: str = '@'
    matcher_suffix: str = '@'

    # Result types used when an expression has no result-type prefix
    validation_result_type: str = 'node'
    extraction_result_type: str = 'string'

    trim_text: bool = True
    default_namespaces: Mapping[str, str] = field(default_factory=dict, hash=False)
    lookup_document_namespaces: bool = False
    strict_namespace_count: bool = False
    max_expression_length: int = 4096

    def __post_init__(self) -> None:
        if not self.variable_prefix or not self.variable_suffix:
            raise ValueError("variable prefix and suffix cannot be empty")
        elif not self.matcher_prefix or not self.matcher_suffix:
            raise ValueError("validation matcher prefix and suffix cannot be empty")
        elif self.max_expression_length <= 0:
            raise ValueError("max_expression_length must be a positive integer")

        # Freeze a read-only copy of the mapping
        object.__setattr__(self, 'default_namespaces',
                           MappingProxyType(dict(self.default_namespaces)))

    def replace(self, **changes: Any) -> 'ValidationSettings':
        """Returns a copy of the settings with some values changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}
        data['default_namespaces'] = dict(self.default_namespaces)
        return data

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 prefix: str = ENV_PREFIX) -> 'ValidationSettings':
        """
        Creates settings from environment variables. Each field is read from
        an uppercase variable with the given prefix (eg. XMLCONTROL_TRIM_TEXT).
        Default namespaces are provided as a comma separated list of
        `prefix=uri` items in XMLCONTROL_DEFAULT_NAMESPACES.

        :param environ: the mapping to read, for default `os.environ`.
        :param prefix: the prefix of the variable names.
        """
        if environ is None:
            environ = os.environ

        kwargs: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            key = prefix + f.name.upper()
            if key not in environ:
                continue

            value = environ[key]
            if f.name == 'default_namespaces':
                kwargs[f.name] = parse_namespaces_string(value)
            elif f.type in (bool, 'bool'):
                kwargs[f.name] = parse_boolean(value, key)
            elif f.type in (int, 'int'):
                try:
                    kwargs[f.name] = int(value)
                except ValueError:
                    raise ValueError(f"{key}: invalid integer {value!r}") from None
            else:
                kwargs[f.name] = value

        if kwargs:
            logger.debug("Settings loaded from environment", keys=sorted(kwargs))
        return cls(**kwargs)


def parse_boolean(value: str, name: str = 'value') -> bool:
    if value.strip().lower() in TRUE_VALUES:
        return True
    elif value.strip().lower() in FALSE_VALUES:
        return False
    raise ValueError(f"{name}: invalid boolean {value!r}")


def parse_namespaces_string(value: str) -> Dict[str, str]:
    """Parses a string like 'ns0=http://a.example, =http://default.example'."""
    namespaces: Dict[str, str] = {}
    for item in value.split(','):
        if not item.strip():
            continue
        try:
            prefix, uri = item.split('=', 1)
        except ValueError:
            raise ValueError(f"invalid namespace mapping {item.strip()!r}") from None
        namespaces[prefix.strip()] = uri.strip()
    return namespaces


DEFAULT_SETTINGS = ValidationSettings()

__all__ = ['ValidationSettings', 'DEFAULT_SETTINGS', 'parse_boolean',
           'parse_namespaces_string']
