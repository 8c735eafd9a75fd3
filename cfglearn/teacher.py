"""
Teachers (oracles) for k-bounded grammar learning.

Every teacher answers two kinds of query:
- is_member(nt, tokens): does nonterminal `nt` yield `tokens` in the target?
- counterexample(grammar, start): None if the hypothesis is acceptable,
  otherwise a token list that the hypothesis handles wrongly.

Teachers:
- GrammarTeacher: knows a target grammar; checks every string up to a length
  bound, shortest first.
- SamplingTeacher: knows a target grammar; checks a corpus of positives plus
  strings fuzzed from the hypothesis.
- InteractiveTeacher: asks the user.
"""

import itertools
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import earleyparser
import simplefuzzer as fuzzer

from .earley import EarleyRecognizer
from .grammar import Grammar, show_grammar, terminals

# Counterexample answer standing for the empty sequence
EMPTY = "ε"


class Oracle:
    def is_member(self, nt: str, tokens: Sequence[str]) -> bool:
        raise NotImplementedError

    def counterexample(self, grammar: Grammar, start: str) -> Optional[List[str]]:
        raise NotImplementedError


class GrammarTeacher(Oracle):
    """
    Teacher backed by a target grammar.

    - is_member(nt, tokens): recognition of `tokens` from `nt` in the target
    - counterexample(grammar, start): the shortest string over `alphabet` of
      length <= max_length on which hypothesis and target disagree
    """

    def __init__(self, target: Grammar, start: str, alphabet: Iterable[str], max_length: int = 6):
        self.g, self.s = target, start
        self.alphabet: List[str] = list(alphabet)
        self.max_length = max_length
        self._recognizers: Dict[str, EarleyRecognizer] = {}
        self._answers: Dict[Tuple[str, Tuple[str, ...]], bool] = {}
        self.equivalence_query_counter = 0

    def _recognizer(self, nt: str) -> EarleyRecognizer:
        if nt not in self._recognizers:
            self._recognizers[nt] = EarleyRecognizer(self.g, nt)
        return self._recognizers[nt]

    # Membership query
    def is_member(self, nt: str, tokens: Sequence[str]) -> bool:
        key = (nt, tuple(tokens))
        if key not in self._answers:
            self._answers[key] = self._recognizer(nt).recognize(tokens)
        return self._answers[key]

    # Bounded equivalence query
    def counterexample(self, grammar: Grammar, start: str) -> Optional[List[str]]:
        self.equivalence_query_counter += 1
        hyp = EarleyRecognizer(grammar, start)
        for length in range(self.max_length + 1):
            for w in itertools.product(self.alphabet, repeat=length):
                if hyp.recognize(w) != self.is_member(self.s, w):
                    return list(w)
        return None


class SamplingTeacher(Oracle):
    """
    Corpus and fuzzing based teacher.

    Membership is decided by an Earley parser over the target grammar, so
    terminals must be single characters. A hypothesis is wrong if it rejects a
    corpus entry or if a string fuzzed from it is rejected by the target; the
    shortest such string is returned.
    """

    def __init__(
        self,
        target: Grammar,
        start: str,
        corpus: Iterable[Sequence[str]],
        samples: int = 30,
        max_depth: int = 10,
    ):
        long_terminals = [t for t in terminals(target) if len(t) != 1]
        if long_terminals:
            raise ValueError(f"Terminals must be single characters, got {long_terminals}")
        self.g, self.s = target, start
        self.parser = earleyparser.EarleyParser(self.g)
        self.corpus: List[List[str]] = [list(w) for w in corpus]
        for w in self.corpus:
            if any(len(t) != 1 for t in w):
                raise ValueError(f"Corpus entry {w} has tokens that are not single characters")
        self.samples = samples
        self.max_depth = max_depth

    # Membership query
    def is_member(self, nt: str, tokens: Sequence[str]) -> bool:
        try:
            list(self.parser.recognize_on("".join(tokens), nt))
        except Exception:
            return False
        return True

    def fuzz(self, grammar: Grammar, start: str) -> List[List[str]]:
        """Sample strings from the hypothesis. Empty languages give no samples."""
        if not grammar.get(start):
            return []
        gf = fuzzer.LimitFuzzer(grammar)
        out: List[List[str]] = []
        for _ in range(self.samples):
            s = gf.iter_fuzz(key=start, max_depth=self.max_depth)
            if isinstance(s, str):
                out.append(list(s))
        return out

    def counterexample(self, grammar: Grammar, start: str) -> Optional[List[str]]:
        hyp = EarleyRecognizer(grammar, start)
        missed = [w for w in self.corpus if not hyp.recognize(w)]
        wrong = [w for w in self.fuzz(grammar, start) if not self.is_member(self.s, w)]
        bad = missed + wrong
        if not bad:
            return None
        return min(bad, key=len)


class InteractiveTeacher(Oracle):
    """
    Pose both queries to the user. Tokens are read whitespace separated.

    A blank answer to the counterexample query accepts the grammar, so the
    empty sequence is given as `ε` instead.
    """

    def __init__(self, read: Callable[[str], str] = input, write: Callable[[str], None] = print):
        self.read = read
        self.write = write

    def is_member(self, nt: str, tokens: Sequence[str]) -> bool:
        answer = self.read(f"{nt} =>* {' '.join(tokens)}? Y/N: ")
        return answer[:1] in ("y", "Y")

    def counterexample(self, grammar: Grammar, start: str) -> Optional[List[str]]:
        self.write("Correct?")
        self.write(show_grammar(grammar, start))
        answer = self.read(f"Blank for yes, Counter-example for no ({EMPTY} for empty): ")
        self.write("")
        if not answer.strip():
            return None
        if answer.strip() == EMPTY:
            return []
        return answer.split()
