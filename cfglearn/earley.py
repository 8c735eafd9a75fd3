"""
Earley recogniser for context-free grammars.

The grammar is split into a null-free copy (no empty alternatives) and the set
of nullable nonterminals. Whenever a nullable nonterminal is predicted, the
predicting item also steps over it with zero width, which accounts for every
empty derivation without needing empty rules in the chart.

One stepping function serves every operation. It consumes a single input
position and is parameterised by a shift predicate deciding whether a terminal
may be shifted at that position:

- recognize / derivation_length / parse_tree: the input holds that token there
- language: always, so every terminal transition is explored

Exposes:
    * class EarleyRecognizer
    * class ParseTree
    * in_lang(grammar, start) -> predicate over token sequences
    * parse_tree(grammar, nt, tokens) -> ParseTree or None
"""

import enum
from collections import deque
from itertools import count
from typing import Callable, Deque, Dict, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

from .grammar import Grammar, Rule, is_nt, null_free, nullable_witnesses

# Synthetic goal symbol; the seed item is <$done> -> start
GOAL = "<$done>"
SUCCESS_KEY = (0, GOAL)

ShiftPredicate = Callable[[int, str], bool]
Tokens = Tuple[str, ...]


class Link(NamedTuple):
    """Where the derivation of one rhs nonterminal of an item can be found.

    `end` is None when the nonterminal was skipped as nullable.
    """
    symbol: str
    start: int
    end: Optional[int]


class Item(NamedTuple):
    rule: Rule
    start: int
    offset: int
    deriv_len: int
    toks: Tokens
    links: Tuple[Link, ...] = ()

    @property
    def lhs(self) -> str:
        return self.rule[0]

    def next_sym(self) -> Optional[str]:
        rhs = self.rule[1]
        return rhs[self.offset] if self.offset < len(rhs) else None

    def processed_key(self) -> Tuple[Rule, int, int, Tokens]:
        # deriv_len and links are not part of the key
        return (self.rule, self.start, self.offset, self.toks)

    def reduxn_key(self) -> Tuple[int, str]:
        return (self.start, self.lhs)

    def shift(self, toks: Sequence[str], link: Optional[Link] = None) -> "Item":
        return self._replace(
            offset=self.offset + 1,
            toks=self.toks + tuple(toks),
            links=self.links + ((link,) if link is not None else ()),
        )

    def inc_deriv_len(self, n: int) -> "Item":
        return self._replace(deriv_len=self.deriv_len + n)


def new_item(rule: Rule, start: int) -> Item:
    return Item(rule, start, 0, 1, ())


class Action(enum.Enum):
    SHIFT = "shift"
    PREDICT = "predict"
    REDUCE = "reduce"


def classify(item: Item) -> Action:
    """Determine what should be done with the given item."""
    if item.offset < 0:
        raise ValueError(f"Negative offset in item {item}")
    sym = item.next_sym()
    if sym is None:
        return Action.REDUCE
    return Action.PREDICT if is_nt(sym) else Action.SHIFT


class Chart:
    """
    Parser state carried from one input position to the next.

    - items: worklist for the position about to be consumed
    - reduxns: (start, nt) -> items waiting for nt to complete from start.
      Persists for the whole parse.
    - complete: (start, nt) -> {tokens: smallest derivation length} for the
      position just consumed.
    - derivations: (start, nt, end) -> (rule, links) of the first completion
      seen, only kept when trees are wanted.
    """
    __slots__ = ("items", "reduxns", "complete", "derivations", "track")

    def __init__(self, seed: Item, has_empty: bool, track: bool = False):
        self.items: Deque[Item] = deque([seed])
        self.reduxns: Dict[Tuple[int, str], List[Item]] = {}
        self.complete: Dict[Tuple[int, str], Dict[Tokens, int]] = {}
        if has_empty:
            self.complete[SUCCESS_KEY] = {(): seed.deriv_len}
        self.derivations: Dict[Tuple[int, str, int], Tuple[Rule, Tuple[Link, ...]]] = {}
        self.track = track

    def reset(self) -> Deque[Item]:
        items = self.items
        self.items = deque()
        self.complete = {}
        return items

    def associate_reduxn(self, r_key: Tuple[int, str], item: Item) -> None:
        self.reduxns.setdefault(r_key, []).append(item)

    def perform_reduxns(self, item: Item, index: int) -> List[Item]:
        link = Link(item.lhs, item.start, index)
        return [
            waiting.shift(item.toks, link).inc_deriv_len(item.deriv_len)
            for waiting in self.reduxns.get(item.reduxn_key(), [])
        ]

    def complete_item(self, item: Item, index: int) -> None:
        done = self.complete.setdefault(item.reduxn_key(), {})
        known = done.get(item.toks)
        if known is None or item.deriv_len < known:
            done[item.toks] = item.deriv_len
        if self.track:
            self.derivations.setdefault((item.start, item.lhs, index), (item.rule, item.links))


class ParseTree(NamedTuple):
    """One derivation of `tokens` (input[start:end]) using `rule` at the root.

    `children` holds one subtree per nonterminal in the rule's rhs, in order.
    """
    rule: Rule
    start: int
    end: int
    tokens: Tokens
    children: Tuple["ParseTree", ...]

    @property
    def symbol(self) -> str:
        return self.rule[0]


class EarleyRecognizer:
    def __init__(self, grammar: Grammar, start: str):
        self.witnesses: Dict[str, Rule] = nullable_witnesses(grammar)
        self.nullable: Set[str] = set(self.witnesses)
        self.grammar: Grammar = null_free(grammar)
        self.start = start

    # --- Stepping ---

    def _init_items(self, nt: str, index: int) -> List[Item]:
        return [new_item((nt, tuple(alt)), index) for alt in self.grammar.get(nt, [])]

    def _initial_chart(self, nt: str, track: bool = False) -> Chart:
        seed = new_item((GOAL, (nt,)), 0)
        return Chart(seed, nt in self.nullable, track)

    def _consume(self, chart: Chart, index: int, shift_ok: ShiftPredicate) -> None:
        """Process every item for input position `index`."""
        items = chart.reset()
        # processed key -> smallest derivation length seen for it
        processed: Dict[Tuple[Rule, int, int, Tokens], int] = {}
        while items:
            item = items.popleft()
            p_key = item.processed_key()
            known = processed.get(p_key)
            if known is not None and known <= item.deriv_len:
                continue
            processed[p_key] = item.deriv_len
            action = classify(item)

            if action is Action.SHIFT:
                tok = item.next_sym()
                if shift_ok(index, tok):
                    chart.items.append(item.shift((tok,)))

            elif action is Action.REDUCE:
                items.extend(chart.perform_reduxns(item, index))
                chart.complete_item(item, index)

            else:
                nt = item.next_sym()
                r_key = (index, nt)
                predicted = r_key in chart.reduxns
                if nt in self.nullable:
                    items.append(item.shift((), Link(nt, index, None)).inc_deriv_len(1))
                if not predicted:
                    items.extend(self._init_items(nt, index))
                chart.associate_reduxn(r_key, item)

    def _run(self, nt: str, tokens: Sequence[str], track: bool = False) -> Chart:
        toks = list(tokens)

        def shift_ok(i: int, sym: str) -> bool:
            return i < len(toks) and toks[i] == sym

        chart = self._initial_chart(nt, track)
        # Completions for the k-th token happen while consuming position k+1.
        for index in range(len(toks) + 1):
            self._consume(chart, index, shift_ok)
            if not chart.items:
                break
        return chart

    # --- Public operations ---

    def recognize(self, tokens: Sequence[str]) -> bool:
        chart = self._run(self.start, tokens)
        return tuple(tokens) in chart.complete.get(SUCCESS_KEY, {})

    def derivation_length(self, tokens: Sequence[str]) -> Optional[int]:
        """Fewest derivation steps from the start symbol to `tokens`, or None."""
        chart = self._run(self.start, tokens)
        n = chart.complete.get(SUCCESS_KEY, {}).get(tuple(tokens))
        if n is None:
            return None
        # Not counting the synthetic <$done> -> start step.
        return n - 1

    def language(self) -> Iterator[Tokens]:
        """
        Lazily generate the strings of the language, position by position.
        Strings come out in the order their completions are found, which
        groups them by length. Stops only when the language is finite and
        exhausted.
        """
        chart = self._initial_chart(self.start)
        for index in count():
            if not chart.items:
                return
            self._consume(chart, index, lambda i, sym: True)
            yield from list(chart.complete.get(SUCCESS_KEY, {}))

    def parse_tree(self, nt: str, tokens: Sequence[str]) -> Optional[ParseTree]:
        """One derivation of `tokens` from `nt`, or None if there is none."""
        toks = tuple(tokens)
        chart = self._run(nt, toks, track=True)
        found = chart.derivations.get((0, GOAL, len(toks)))
        if found is None:
            return None
        _, (link,) = found
        return self._build(chart, toks, link)

    # --- Tree reconstruction ---

    def _build(self, chart: Chart, toks: Tokens, link: Link) -> ParseTree:
        if link.end is None:
            return self._empty_tree(link.symbol, link.start)
        rule, links = chart.derivations[(link.start, link.symbol, link.end)]
        children = tuple(self._build(chart, toks, l) for l in links)
        return ParseTree(rule, link.start, link.end, toks[link.start:link.end], children)

    def _empty_tree(self, nt: str, pos: int) -> ParseTree:
        rule = self.witnesses[nt]
        children = tuple(self._empty_tree(s, pos) for s in rule[1])
        return ParseTree(rule, pos, pos, (), children)


def in_lang(grammar: Grammar, start: str) -> Callable[[Sequence[str]], bool]:
    """Returns the recogniser function for `grammar`."""
    return EarleyRecognizer(grammar, start).recognize


def parse_tree(grammar: Grammar, nt: str, tokens: Sequence[str]) -> Optional[ParseTree]:
    return EarleyRecognizer(grammar, nt).parse_tree(nt, tokens)


def to_derivation_tree(tree: ParseTree) -> Tuple[str, list]:
    """Convert to the (symbol, children) tree shape used by simplefuzzer."""
    kids = iter(tree.children)
    children = []
    for s in tree.rule[1]:
        children.append(to_derivation_tree(next(kids)) if is_nt(s) else (s, []))
    return (tree.symbol, children)


def format_tree(tree: ParseTree, indent: int = 0) -> str:
    pad = "  " * indent
    rhs = " ".join(tree.rule[1]) if tree.rule[1] else "ε"
    lines = [f"{pad}{tree.symbol} -> {rhs}  [{tree.start}:{tree.end}]"]
    for child in tree.children:
        lines.append(format_tree(child, indent + 1))
    return "\n".join(lines)
