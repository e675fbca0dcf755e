"""
Command document construction.

MongoDB reads the command name from the first key of a command document, so
documents built here are ``bson.SON`` instances: the command name mapped to
the target collection comes first, followed by the caller's options in the
order they were supplied.

Options are normalized to a list of ``(key, value)`` pairs before the
document is built. Callers may pass a mapping, an iterable of pairs, keyword
arguments, or a mapping/pairs followed by keywords.

This module is part of MDB_PLUGIN - MongoDB plugin.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Union

from bson.son import SON

from ..constants import AS_CURSOR_OPTIONS
from ..exceptions import CommandError

logger = logging.getLogger(__name__)

OptionPairs = list[tuple[str, Any]]
OptionsInput = Union[Mapping[str, Any], Iterable[tuple[str, Any]], None]


def normalize_options(
    options: OptionsInput = None,
    extra: Mapping[str, Any] | None = None,
    command_name: str | None = None,
) -> OptionPairs:
    """
    Turn caller options into an ordered list of ``(key, value)`` pairs.

    Args:
        options: Mapping or iterable of pairs, or None
        extra: Keyword options, appended after ``options``
        command_name: Command being built, used in error context

    Returns:
        Ordered list of option pairs

    Raises:
        CommandError: If an entry is not a (str, value) pair
    """
    pairs: OptionPairs = []

    if options is not None:
        items = options.items() if isinstance(options, Mapping) else options
        for item in items:
            try:
                key, value = item
            except (TypeError, ValueError) as e:
                raise CommandError(
                    f"Command options must be (key, value) pairs, got {item!r}",
                    command_name=command_name,
                ) from e
            pairs.append((key, value))

    if extra:
        pairs.extend(extra.items())

    for key, _ in pairs:
        if not isinstance(key, str):
            raise CommandError(
                f"Command option keys must be strings, got {key!r}",
                command_name=command_name,
            )

    return pairs


def pop_as_cursor(pairs: OptionPairs) -> tuple[bool, OptionPairs]:
    """
    Remove the cursor flag from map-reduce options.

    Returns:
        Tuple of (flag value, remaining pairs in their original order)
    """
    as_cursor = False
    remaining: OptionPairs = []
    for key, value in pairs:
        if key in AS_CURSOR_OPTIONS:
            as_cursor = bool(value)
        else:
            remaining.append((key, value))
    return as_cursor, remaining


def build_command(command_name: str, collection_name: str, options: OptionPairs) -> SON:
    """
    Build an ordered command document.

    Args:
        command_name: Command key, always the first key of the document
        collection_name: Value of the command key
        options: Remaining options, emitted in order

    Returns:
        SON command document

    Raises:
        CommandError: If the collection name is empty or an option repeats
            the command key
    """
    if not isinstance(collection_name, str) or not collection_name:
        raise CommandError(
            "Collection name must be a non-empty string",
            command_name=command_name,
            context={"collection_name": repr(collection_name)},
        )

    cmd = SON([(command_name, collection_name)])
    for key, value in options:
        if key == command_name:
            raise CommandError(
                f"Option '{key}' repeats the command name",
                command_name=command_name,
                collection_name=collection_name,
            )
        cmd[key] = value

    logger.debug("Built %s command on '%s' with keys %s", command_name, collection_name, list(cmd))
    return cmd
