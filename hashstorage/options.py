# -*- coding: utf-8 -*-
"""Validation of the keyword options accepted by resource constructors.

Every resource takes its optional facets as keyword arguments. Constructors
pop the options they understand with :func:`take_option` and then call
:func:`deny_remaining_options`, so a misspelled keyword fails loudly instead
of being ignored.
"""

import json
import unicodedata
from datetime import datetime
from typing import Any, Iterable, MutableMapping, Optional

from .exceptions import InvalidArgumentError


FILENAME_FORBIDDEN = ("..", ":", "/", "\\")

_MISSING = object()


def strip_unprintable(value: str) -> str:
    """Remove control characters and everything outside printable ASCII."""
    return "".join(char for char in value if 0x20 <= ord(char) <= 0x7E)


def sanitize_filename(value: str) -> str:
    value = unicodedata.normalize("NFC", value)
    value = strip_unprintable(value)
    for token in FILENAME_FORBIDDEN:
        value = value.replace(token, "")
    return value


def sanitize_mimetype(value: str) -> str:
    return strip_unprintable(value)


def _type_name(value: Any) -> str:
    return type(value).__name__


def _require_type(key: str, value: Any, types, label: str) -> None:
    if not isinstance(value, types) or isinstance(value, bool):
        raise InvalidArgumentError(
            'Expected option "{0}" to be {1} but got {2}.'.format(
                key, label, _type_name(value)))


def _require_non_empty(key: str, value: str) -> None:
    if not value.strip():
        raise InvalidArgumentError('Option "{0}" is empty.'.format(key))


def validate_option(key: str, value: Any) -> Any:
    """Validate a single option and return its sanitized value."""
    if key == "content":
        _require_type(key, value, (bytes, str), "bytes or str")

    elif key == "stream":
        if not callable(value):
            raise InvalidArgumentError(
                'Expected option "{0}" to be callable but got {1}.'.format(
                    key, _type_name(value)))

    elif key == "filename":
        _require_type(key, value, str, "of type str")
        _require_non_empty(key, value)
        value = sanitize_filename(value)
        if not value:
            raise InvalidArgumentError(
                'Option "{0}" is empty after sanitizing.'.format(key))

    elif key == "mimetype":
        _require_type(key, value, str, "of type str")
        _require_non_empty(key, value)
        value = sanitize_mimetype(value)
        if not value.strip():
            raise InvalidArgumentError(
                'Option "{0}" is empty after sanitizing.'.format(key))

    elif key == "length":
        if value is not None:
            _require_type(key, value, int, "of type int")
            if value < 0:
                raise InvalidArgumentError(
                    'Invalid option "{0}": {1}.'.format(key, value))

    elif key == "last_modified":
        if not isinstance(value, datetime):
            raise InvalidArgumentError(
                'Expected option "{0}" to be a datetime but got {1}.'.format(
                    key, _type_name(value)))

    elif key == "hash":
        _require_type(key, value, str, "of type str")
        _require_non_empty(key, value)

    elif key == "timeout":
        _require_type(key, value, (int, float), "a number")
        if value <= 0:
            raise InvalidArgumentError(
                'Invalid option "{0}": {1}.'.format(key, value))

    elif key == "attributes":
        if not isinstance(value, dict):
            raise InvalidArgumentError(
                'Expected option "{0}" to be dict but got {1}.'.format(
                    key, _type_name(value)))
        if not all(isinstance(name, str) for name in value):
            raise InvalidArgumentError(
                'Option "{0}" must have str keys.'.format(key))
        try:
            json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(
                'Option "{0}" must be JSON serializable.'.format(key)) from exc
        value = dict(value)

    else:
        raise InvalidArgumentError('Unknown option "{0}".'.format(key))

    return value


def validate_optional(key: str, value: Any, default: Any = None) -> Any:
    if value is None:
        return default
    return validate_option(key, value)


def take_option(key: str,
                options: MutableMapping[str, Any],
                default: Any = None) -> Any:
    """Pop `key` from `options` and return its validated value."""
    value = options.pop(key, _MISSING)
    if value is _MISSING:
        return default
    return validate_option(key, value)


def require_options(options: MutableMapping[str, Any],
                    keys: Iterable[str]) -> None:
    missing = [key for key in keys if key not in options]
    if missing:
        raise InvalidArgumentError(
            'Missing options "{0}".'.format('", "'.join(missing)))


def require_either_option(options: MutableMapping[str, Any],
                          key1: str,
                          key2: str) -> None:
    if key1 not in options and key2 not in options:
        raise InvalidArgumentError(
            'Missing option "{0}" or "{1}".'.format(key1, key2))


def mutually_exclusive_options(options: MutableMapping[str, Any],
                               key1: str,
                               key2: str) -> None:
    if key1 in options and key2 in options:
        raise InvalidArgumentError(
            'The options "{0}" and "{1}" are mutually exclusive.'.format(
                key1, key2))


def deny_remaining_options(options: MutableMapping[str, Any]) -> None:
    if options:
        raise InvalidArgumentError(
            'Unknown options "{0}".'.format('", "'.join(options)))


def validate_options(options: MutableMapping[str, Any],
                     keys: Optional[Iterable[str]] = None) -> dict:
    """Validate every option in `options`, restricted to `keys` if given."""
    if keys is not None:
        deny_remaining_options(
            {key: value for key, value in options.items() if key not in keys})
    return {key: validate_option(key, value) for key, value in options.items()}
