"""
Grammar representation and utilities.

Grammar convention (compatible with the fuzzing tooling):
- dict[str, list[list[str]]] mapping each nonterminal to its alternatives
- Nonterminals are strings in angle brackets, e.g. '<S>'
- Anything else is a terminal token
- Epsilon is the empty production []

The start symbol is not stored in the grammar; it travels alongside it as a
(grammar, start) pair.
"""

import json
import os
from typing import Dict, Iterable, Iterator, List, Set, Tuple

import simplefuzzer as fuzzer

# Types
Grammar = Dict[str, List[List[str]]]
Rule = Tuple[str, Tuple[str, ...]]


def is_nt(symbol: str) -> bool:
    return fuzzer.is_nonterminal(symbol)


def rule_seq(g: Grammar, nt: str) -> List[Rule]:
    return [(nt, tuple(alt)) for alt in g.get(nt, [])]


def rules(g: Grammar) -> Iterator[Rule]:
    for nt in g:
        yield from rule_seq(g, nt)


def add_rule(g: Grammar, rule: Rule) -> bool:
    """Add `rule` to `g` in place. Returns False if it was already present."""
    lhs, rhs = rule
    alts = g.setdefault(lhs, [])
    if list(rhs) in alts:
        return False
    alts.append(list(rhs))
    return True


def remove_rule(g: Grammar, rule: Rule) -> bool:
    """Remove `rule` from `g` in place. The lhs key is kept even if emptied."""
    lhs, rhs = rule
    alts = g.get(lhs)
    if not alts or list(rhs) not in alts:
        return False
    alts.remove(list(rhs))
    return True


def is_cnf_leaf(rule: Rule) -> bool:
    _, rhs = rule
    return len(rhs) == 1 and not is_nt(rhs[0])


def is_cnf_branch(rule: Rule) -> bool:
    _, rhs = rule
    return len(rhs) == 2 and all(is_nt(s) for s in rhs)


def nonterminals(g: Grammar) -> List[str]:
    seen = {k: None for k in g}
    for _, rhs in rules(g):
        for s in rhs:
            if is_nt(s):
                seen.setdefault(s, None)
    return list(seen)


def terminals(g: Grammar) -> List[str]:
    syms = set()
    for _, rhs in rules(g):
        for s in rhs:
            if not is_nt(s):
                syms.add(s)
    return sorted(syms)


# --- Nullability and epsilon elimination ---

def nullable_witnesses(g: Grammar) -> Dict[str, Rule]:
    """
    Compute the nullable nonterminals of `g` as a fixpoint.

    Each nullable nonterminal is mapped to the rule that first proved it
    nullable. A witness rule only mentions nonterminals proved nullable in an
    earlier pass, so following witnesses always bottoms out in an empty rule.
    """
    witnesses: Dict[str, Rule] = {}
    changed = True
    while changed:
        changed = False
        proved = set(witnesses)
        for lhs, rhs in rules(g):
            if lhs in witnesses:
                continue
            if all(s in proved for s in rhs):
                witnesses[lhs] = (lhs, rhs)
                changed = True
    return witnesses


def nullable(g: Grammar) -> Set[str]:
    return set(nullable_witnesses(g))


def null_free(g: Grammar) -> Grammar:
    """A copy of `g` without empty alternatives. Emptied keys are kept."""
    return {k: [list(alt) for alt in alts if alt] for k, alts in g.items()}


# --- Pruning ---

def productive(g: Grammar) -> Set[str]:
    alive: Set[str] = set()
    cont = True
    while cont:
        cont = False
        for lhs, rhs in rules(g):
            if lhs in alive:
                continue
            if all(s in alive or not is_nt(s) for s in rhs):
                alive.add(lhs)
                cont = True
    return alive


def reachable(g: Grammar, start: str) -> Set[str]:
    seen = {start}
    todo = [start]
    while todo:
        k = todo.pop()
        for alt in g.get(k, []):
            for s in alt:
                if is_nt(s) and s not in seen:
                    seen.add(s)
                    todo.append(s)
    return seen


def prune(g: Grammar, start: str) -> Grammar:
    """
    Remove rules that cannot derive any terminal string, then rules not
    reachable from `start`. The start key always survives, with no
    alternatives if the language is empty.
    """
    alive = productive(g)
    new_g: Grammar = {}
    for k in g:
        if k not in alive:
            continue
        new_g[k] = [list(alt) for alt in g[k]
                    if all(s in alive or not is_nt(s) for s in alt)]
    keep = reachable(new_g, start)
    pruned: Grammar = {k: alts for k, alts in new_g.items() if k in keep}
    if start not in pruned:
        return {start: []}
    return pruned


# --- Validation, display and persistence ---

def check_grammar(g: Grammar, start: str) -> None:
    """
    Raise if `g` is not structurally valid: non-string symbols, a missing
    start symbol, or a referenced nonterminal that has no entry.
    """
    for nt, alts in g.items():
        if not isinstance(nt, str) or not nt or not is_nt(nt):
            raise TypeError(f"Grammar key {nt!r} is not a nonterminal")
        for alt in alts:
            for t in alt:
                if not isinstance(t, str) or not t:
                    raise TypeError(f"Grammar contains bad symbol {t!r} in production {nt} -> {alt}")
    if start not in g:
        raise ValueError(f"Start symbol {start} has no entry in the grammar")
    undefined = [s for s in nonterminals(g) if s not in g]
    if undefined:
        raise ValueError(f"Undefined nonterminals: {', '.join(undefined)}")


def show_grammar(g: Grammar, start: str) -> str:
    def show_alt(alt: List[str]) -> str:
        return " ".join(alt) if alt else "ε"

    order = [start] + sorted(k for k in g if k != start)
    lines = []
    for k in order:
        alts = g.get(k, [])
        lines.append(f"{k} -> {' | '.join(show_alt(a) for a in alts)}")
    return "\n".join(lines)


def save_grammar(path: str, g: Grammar, start: str) -> None:
    data = {
        "start_sym": start,
        "grammar": g,
    }
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def load_grammar(path: str) -> Tuple[Grammar, str]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    g = data["grammar"]
    start = data["start_sym"]
    check_grammar(g, start)
    return g, start


def from_rules(rs: Iterable[Rule]) -> Grammar:
    g: Grammar = {}
    for r in rs:
        add_rule(g, r)
    return g
