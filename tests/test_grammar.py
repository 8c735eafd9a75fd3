"""Tests for grammar.py."""

import pytest

from cfglearn.grammar import (
    add_rule,
    check_grammar,
    from_rules,
    is_cnf_branch,
    is_cnf_leaf,
    is_nt,
    load_grammar,
    nonterminals,
    null_free,
    nullable,
    nullable_witnesses,
    prune,
    remove_rule,
    rule_seq,
    save_grammar,
    show_grammar,
    terminals,
)


def test_is_nt() -> None:
    """Nonterminals are written in angle brackets."""
    assert is_nt("<S>")
    assert is_nt("<start>")
    assert not is_nt("a")
    assert not is_nt("(")
    assert not is_nt("<")
    assert not is_nt(">")


def test_add_and_remove_rule() -> None:
    """Rules behave like a multimap of sets."""
    g = {}
    assert add_rule(g, ("<S>", ("a",)))
    assert not add_rule(g, ("<S>", ("a",)))
    assert add_rule(g, ("<S>", ("<S>", "<S>")))
    assert rule_seq(g, "<S>") == [("<S>", ("a",)), ("<S>", ("<S>", "<S>"))]

    assert remove_rule(g, ("<S>", ("a",)))
    assert not remove_rule(g, ("<S>", ("a",)))
    assert not remove_rule(g, ("<X>", ("a",)))
    assert remove_rule(g, ("<S>", ("<S>", "<S>")))
    assert g == {"<S>": []}


def test_cnf_shapes() -> None:
    """Leaves yield one terminal, branches two nonterminals."""
    assert is_cnf_leaf(("<A>", ("a",)))
    assert not is_cnf_leaf(("<A>", ("<B>",)))
    assert not is_cnf_leaf(("<A>", ("a", "b")))
    assert is_cnf_branch(("<A>", ("<B>", "<C>")))
    assert not is_cnf_branch(("<A>", ("<B>", "c")))
    assert not is_cnf_branch(("<A>", ("<B>",)))


def test_symbols(ab_plus) -> None:
    """Terminals and nonterminals are collected from all rules."""
    assert terminals(ab_plus) == ["a", "b"]
    assert nonterminals(ab_plus) == ["<S>", "<A>", "<B>"]
    assert nonterminals({"<S>": [["<X>"]]}) == ["<S>", "<X>"]


def test_nullable() -> None:
    """Nullability is a fixpoint through nullable rhs symbols."""
    g = {
        "<S>": [["<A>", "<B>"], ["c"]],
        "<A>": [[], ["a"]],
        "<B>": [["<A>"], ["b"]],
        "<C>": [["<C>"], ["c"]],
    }
    assert nullable(g) == {"<S>", "<A>", "<B>"}
    witnesses = nullable_witnesses(g)
    assert witnesses["<A>"] == ("<A>", ())
    assert witnesses["<B>"] == ("<B>", ("<A>",))
    assert witnesses["<S>"] == ("<S>", ("<A>", "<B>"))


def test_null_free() -> None:
    """Only empty alternatives are dropped."""
    g = {"<S>": [["<S>", "A"], []], "<E>": [[]]}
    assert null_free(g) == {"<S>": [["<S>", "A"]], "<E>": []}
    assert g["<S>"] == [["<S>", "A"], []]


def test_prune_removes_unproductive_and_unreachable() -> None:
    """Pruning keeps only rules that are both productive and reachable."""
    g = {
        "<S>": [["<A>", "<B>"], ["<A>", "<D>"]],
        "<A>": [["a"]],
        "<B>": [["b"]],
        "<C>": [["c"]],
        "<D>": [["<D>", "<D>"]],
    }
    assert prune(g, "<S>") == {
        "<S>": [["<A>", "<B>"]],
        "<A>": [["a"]],
        "<B>": [["b"]],
    }


def test_prune_empty_language() -> None:
    """A start symbol that derives nothing keeps an empty entry."""
    g = {"<S>": [["<S>", "<S>"]], "<A>": [["a"]]}
    assert prune(g, "<S>") == {"<S>": []}
    assert prune({}, "<S>") == {"<S>": []}


def test_prune_idempotent(ab_plus, balanced_parens) -> None:
    """Pruning a pruned grammar changes nothing."""
    noisy = dict(ab_plus)
    noisy["<X>"] = [["<X>", "<A>"]]
    noisy["<Y>"] = [["y"]]
    for g in (noisy, balanced_parens, {"<S>": [["<S>", "<S>"]]}):
        once = prune(g, "<S>")
        assert prune(once, "<S>") == once


def test_check_grammar(ab_plus) -> None:
    """Structural problems are reported."""
    check_grammar(ab_plus, "<S>")
    with pytest.raises(ValueError):
        check_grammar(ab_plus, "<Z>")
    with pytest.raises(ValueError):
        check_grammar({"<S>": [["<Q>"]]}, "<S>")
    with pytest.raises(TypeError):
        check_grammar({"<S>": [[1]]}, "<S>")
    with pytest.raises(TypeError):
        check_grammar({"S": [["a"]]}, "S")


def test_show_grammar(ab_plus) -> None:
    """Start symbol first, alternatives separated by bars."""
    text = show_grammar(ab_plus, "<S>")
    assert text.splitlines() == [
        "<S> -> <S> <S> | <A> <B>",
        "<A> -> a",
        "<B> -> b",
    ]
    assert show_grammar({"<S>": [[]]}, "<S>") == "<S> -> ε"


def test_save_and_load(tmp_path, ab_plus) -> None:
    """Grammars persist as JSON with their start symbol."""
    path = str(tmp_path / "cache" / "g.json")
    save_grammar(path, ab_plus, "<S>")
    g, start = load_grammar(path)
    assert start == "<S>"
    assert g == ab_plus


def test_from_rules() -> None:
    """Duplicate rules collapse."""
    g = from_rules([("<S>", ("a",)), ("<S>", ("a",)), ("<T>", ("<S>", "<S>"))])
    assert g == {"<S>": [["a"]], "<T>": [["<S>", "<S>"]]}
