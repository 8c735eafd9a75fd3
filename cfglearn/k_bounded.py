"""
k-bounded CFG learning from membership and counterexample queries.

The hypothesis is a CNF grammar over a fixed set of nonterminals `nts`:

- It starts with every branch rule A -> B C over `nts` and no leaf rules.
- Branch rules are only ever removed. Leaf rules A -> t are added when a
  counterexample cannot be derived at all, and a leaf rule that is found to be
  wrong is blacklisted for the rest of the run.

Each round the pruned hypothesis is shown to the counterexample oracle. If the
unpruned hypothesis derives the counterexample, its parse tree is walked
breadth first to find the rules to blame (see `diagnose`).
"""

from collections import deque
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .earley import EarleyRecognizer, ParseTree
from .grammar import Grammar, Rule, add_rule, is_cnf_leaf, prune, remove_rule, show_grammar
from .teacher import GrammarTeacher, InteractiveTeacher

# Oracle types
Member = Callable[[str, Sequence[str]], bool]
Counter = Callable[[Grammar, str], Optional[Sequence[str]]]


class LearningExhausted(RuntimeError):
    """Raised when the round limit passed to `learn` is hit."""

    def __init__(self, rounds: int, grammar: Grammar, start: str):
        super().__init__(f"No grammar accepted after {rounds} rounds")
        self.rounds = rounds
        self.grammar = grammar
        self.start = start


def memoize_member(member: Member) -> Member:
    cache: Dict[Tuple[str, Tuple[str, ...]], bool] = {}

    def cached(nt: str, toks: Sequence[str]) -> bool:
        key = (nt, tuple(toks))
        if key not in cache:
            cache[key] = bool(member(nt, toks))
        return cache[key]

    return cached


def diagnose(member: Member, tree: ParseTree) -> Set[Rule]:
    """
    Return the rules in `tree` that are to blame, given that the root of
    `tree` does not belong to the target language.

    A node whose children are all confirmed by `member` owns the error, so its
    rule is blamed. Otherwise the search moves on to the first child that
    `member` rejects.
    """
    bad_rules: Set[Rule] = set()
    q = deque([tree])
    while q:
        node = q.popleft()
        bad_child = next(
            (c for c in node.children if not member(c.symbol, c.tokens)), None
        )
        if bad_child is not None:
            q.append(bad_child)
        else:
            bad_rules.add(node.rule)
    return bad_rules


def candidates(nts: Iterable[str], blacklist: Set[Rule], toks: Sequence[str]) -> List[Rule]:
    """Leaf rules that would let a grammar over `nts` yield every token in `toks`."""
    nts = list(nts)
    leaves = {(nt, (t,)): None for t in toks for nt in nts}
    return [leaf for leaf in leaves if leaf not in blacklist]


def init_grammar(nts: Iterable[str]) -> Grammar:
    """Every branch rule over `nts`, no leaves."""
    nts = list(nts)
    g: Grammar = {nt: [] for nt in nts}
    for a in nts:
        for b in nts:
            for c in nts:
                add_rule(g, (a, (b, c)))
    return g


class KBoundedLearner:
    """
    The mutable state of one learning run: the unpruned hypothesis `g` and the
    blacklist of leaf rules. `refine` applies one counterexample.
    """

    def __init__(self, member: Member, nts: Iterable[str], start: Optional[str] = None):
        self.nts: List[str] = list(nts)
        if not self.nts:
            raise ValueError("At least one nonterminal is required")
        self.start: str = self.nts[0] if start is None else start
        if self.start not in self.nts:
            raise ValueError(f"Start symbol {self.start} is not one of {self.nts}")
        self.member: Member = memoize_member(member)
        self.g: Grammar = init_grammar(self.nts)
        self.blacklist: Set[Rule] = set()

    def hypothesis(self) -> Grammar:
        return prune(self.g, self.start)

    def refine(self, c: Sequence[str]) -> Tuple[Set[Rule], List[Rule]]:
        """
        Update the hypothesis with counterexample `c`.

        Returns:
            (removed rules, added rules); exactly one of them is non-empty
            unless the oracles are inconsistent.
        """
        t = EarleyRecognizer(self.g, self.start).parse_tree(self.start, c)
        if t is None:
            added = [r for r in candidates(self.nts, self.blacklist, c) if add_rule(self.g, r)]
            return set(), added
        bad_rules = diagnose(self.member, t)
        for r in bad_rules:
            remove_rule(self.g, r)
        self.blacklist.update(r for r in bad_rules if is_cnf_leaf(r))
        return bad_rules, []


def learn(
    counter: Counter,
    member: Member,
    nts: Iterable[str],
    start: Optional[str] = None,
    max_rounds: Optional[int] = None,
    log: bool = False,
) -> Tuple[Grammar, str]:
    """
    Learn a CNF grammar over `nts`.

    - counter(grammar, start) returns None if the grammar is correct, otherwise
      a token sequence the grammar gets wrong (accepts a non-member, or
      rejects a member).
    - member(nt, tokens) decides whether `nt` yields `tokens` in the target.

    `start` defaults to the first of `nts`. Membership answers are cached for
    the run. The loop has no bound unless `max_rounds` is given.

    Returns:
        (grammar, start) with the grammar pruned.
    """
    learner = KBoundedLearner(member, nts, start)
    start = learner.start
    rounds = 0

    while True:
        pg = learner.hypothesis()
        c = counter(pg, start)
        if c is None:
            if log:
                print(f"[INFO] Accepted after {rounds} rounds:\n{show_grammar(pg, start)}")
            return pg, start

        rounds += 1
        if max_rounds is not None and rounds > max_rounds:
            raise LearningExhausted(rounds - 1, pg, start)

        c = list(c)
        removed, added = learner.refine(c)
        if log:
            print(f"[ROUND {rounds}] counterexample={' '.join(c)!r} | removed={len(removed)} | "
                  f"added={len(added)} | blacklist={len(learner.blacklist)}")


def learn_from_grammar(
    target: Grammar,
    start: str,
    alphabet: Sequence[str],
    max_length: int = 6,
    max_rounds: Optional[int] = None,
    log: bool = False,
) -> Tuple[Grammar, str]:
    """
    Convenience wrapper: learn a grammar over the nonterminals of `target`
    with a teacher that knows `target`.
    """
    teacher = GrammarTeacher(target, start, alphabet, max_length=max_length)
    return learn(teacher.counterexample, teacher.is_member, list(target),
                 start=start, max_rounds=max_rounds, log=log)


def interactive_learn(
    nts: Iterable[str],
    start: Optional[str] = None,
    max_rounds: Optional[int] = None,
) -> Tuple[Grammar, str]:
    """Learn with the user answering both kinds of query."""
    teacher = InteractiveTeacher()
    return learn(teacher.counterexample, teacher.is_member, nts, start=start, max_rounds=max_rounds)
