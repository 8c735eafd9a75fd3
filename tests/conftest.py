"""Shared fixtures for pytest.

See https://docs.pytest.org/en/6.2.x/fixture.html.
"""

import pytest

from cfglearn.grammar import Grammar


@pytest.fixture
def ab_plus() -> Grammar:
    """(ab)+ in CNF, start symbol <S>."""
    return {
        "<S>": [["<S>", "<S>"], ["<A>", "<B>"]],
        "<A>": [["a"]],
        "<B>": [["b"]],
    }


@pytest.fixture
def balanced_parens() -> Grammar:
    """Non-empty balanced parentheses in CNF, start symbol <S>."""
    return {
        "<S>": [["<L>", "<R>"], ["<S>", "<S>"]],
        "<L>": [["("], ["<L>", "<S>"], ["<S>", "<L>"]],
        "<R>": [[")"], ["<R>", "<S>"], ["<S>", "<R>"]],
    }


@pytest.fixture
def anbn() -> Grammar:
    """a^n b^n for n >= 1 in CNF, start symbol <S>."""
    return {
        "<S>": [["<A>", "<T>"]],
        "<T>": [["b"], ["<S>", "<B>"]],
        "<A>": [["a"]],
        "<B>": [["b"]],
    }
