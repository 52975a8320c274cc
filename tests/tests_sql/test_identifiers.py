"""
==================================================
Pytest suite for sql/identifiers.py
==================================================

Sections:
---------
1. Unit tests - quote_identifier / qualify
2. Unit tests - BindingNameGenerator
3. Edge case tests - collisions and escaping

Available markers:
------------------
unit, edge_case

How to Execute:
---------------
All tests:          pytest tests/tests_sql/test_identifiers.py -v
By category:        pytest tests/tests_sql/test_identifiers.py -m unit
"""

import re

import pytest

from sql.identifiers import BINDING_NAME_LENGTH, BindingNameGenerator, qualify, quote_identifier

# ====================
# Mock Helper Classes
# ====================

class ScriptedRandom:
    """Stand-in for random.Random whose sample() replays fixed tokens."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.calls = 0

    def sample(self, population, k):
        token = self.tokens[self.calls]
        self.calls += 1
        return list(token)


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_quote_identifier_wraps_in_backticks():
    """Plain names are wrapped in backticks."""
    assert quote_identifier('orders') == '`orders`'


@pytest.mark.unit
def test_quote_identifier_doubles_embedded_backtick():
    """An embedded backtick is doubled so it cannot close the quote."""
    assert quote_identifier('odd`name') == '`odd``name`'
    assert quote_identifier('``') == '``````'


@pytest.mark.unit
def test_quote_identifier_does_not_reject_empty():
    """Empty identifiers are quoted as-is; callers decide whether to render them."""
    assert quote_identifier('') == '``'


@pytest.mark.unit
def test_qualify_with_and_without_table():
    assert qualify('price') == '`price`'
    assert qualify('price', 'o') == '`o`.`price`'


@pytest.mark.unit
def test_qualify_leaves_wildcard_unquoted():
    assert qualify('*') == '*'
    assert qualify('*', 'o') == '`o`.*'


# ===============================
# 2. BINDING NAME GENERATOR
# ===============================

@pytest.mark.unit
def test_generate_returns_five_lowercase_letters():
    """
    Every generated name is exactly five lowercase ASCII letters.
    """
    names = BindingNameGenerator()

    for _ in range(50):
        assert re.fullmatch(r'[a-z]{5}', names.generate())
    assert BINDING_NAME_LENGTH == 5


@pytest.mark.unit
def test_generate_never_repeats_within_generator():
    names = BindingNameGenerator()

    generated = [names.generate() for _ in range(500)]

    assert len(set(generated)) == len(generated)
    assert names.used == set(generated)


@pytest.mark.unit
def test_copy_shares_history_but_not_future():
    """A copied generator knows earlier names; names it generates later stay local."""
    names = BindingNameGenerator()
    first = names.generate()

    clone = names.copy()
    second = clone.generate()

    assert first in clone.used
    assert second not in names.used


# ===============================
# 3. EDGE CASE TESTS
# ===============================

@pytest.mark.edge_case
def test_generate_regenerates_on_collision():
    """
    When the random draw hits an already used name, the generator draws again.
    """
    rng = ScriptedRandom(['abcde', 'abcde', 'fghij'])
    names = BindingNameGenerator(rng=rng)

    assert names.generate() == 'abcde'
    assert names.generate() == 'fghij'
    assert rng.calls == 3


@pytest.mark.edge_case
def test_generate_skips_reserved_names():
    rng = ScriptedRandom(['qwert', 'yuiop'])
    names = BindingNameGenerator(rng=rng)
    names.reserve('qwert')

    assert names.generate() == 'yuiop'
