"""
=======================================
Identifier quoting and binding names.
=======================================

Low-level helpers shared by the statement builder:

- quote_identifier: wrap a table/column/alias name in backticks
- BindingNameGenerator: hand out unique named-placeholder tokens

Example:
    >>> from sql.identifiers import quote_identifier, BindingNameGenerator
    >>>
    >>> quote_identifier('orders')
    '`orders`'
    >>> quote_identifier('odd`name')
    '`odd``name`'
    >>>
    >>> names = BindingNameGenerator()
    >>> token = names.generate()   # e.g. 'qzmha'
"""

import random
import string
from typing import Optional, Set

QUOTE_CHAR = '`'
BINDING_NAME_LENGTH = 5


def quote_identifier(identifier: str) -> str:
    """
    Quote an identifier for safe inclusion in SQL text.

    Every embedded backtick is doubled. Empty identifiers are not rejected
    here; callers decide whether to render them at all.

    Args:
        identifier: Raw table, column or alias name

    Returns:
        Backtick-quoted identifier
    """
    escaped = identifier.replace(QUOTE_CHAR, QUOTE_CHAR * 2)
    return f"{QUOTE_CHAR}{escaped}{QUOTE_CHAR}"


def qualify(column: str, table: Optional[str] = None) -> str:
    """
    Quote a column, optionally prefixed by a quoted table or alias.

    A bare ``*`` is emitted unquoted so ``alias.*`` projections stay valid.
    """
    rendered = column if column == '*' else quote_identifier(column)
    if table:
        return f"{quote_identifier(table)}.{rendered}"
    return rendered


class BindingNameGenerator:
    """Generator of unique lowercase placeholder names.

    Each token is BINDING_NAME_LENGTH distinct lowercase letters. The
    generator remembers every name it has handed out (or that was reserved)
    and draws again on collision, so names never repeat within one
    generator.

    Attributes:
        length: Number of letters per token

    Example:
        >>> names = BindingNameGenerator()
        >>> first = names.generate()
        >>> second = names.generate()
        >>> first != second
        True
    """

    def __init__(self, length: int = BINDING_NAME_LENGTH, rng: Optional[random.Random] = None):
        self.length = length
        self._rng = rng or random.Random()
        self._used: Set[str] = set()

    @property
    def used(self) -> Set[str]:
        """Names already handed out or reserved."""
        return set(self._used)

    def reserve(self, name: str) -> None:
        """Mark a name as taken so generate() never returns it."""
        self._used.add(name)

    def generate(self) -> str:
        """Return a fresh token not previously used by this generator."""
        while True:
            name = ''.join(self._rng.sample(string.ascii_lowercase, self.length))
            if name not in self._used:
                self._used.add(name)
                return name

    def copy(self) -> 'BindingNameGenerator':
        """Independent generator that knows the same used names."""
        clone = BindingNameGenerator(self.length, self._rng)
        clone._used = set(self._used)
        return clone
