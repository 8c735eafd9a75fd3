"""
Automated learning rig.

Runs k-bounded learning against a teacher and reports the learned grammar
along with the number of queries of each kind that reached the teacher.
Membership answers can be flipped at a given error rate to see how the learner
copes with a noisy teacher; with `verbose` every query and answer is printed.

API:
- run_rig(teacher, nts, start=None, error=0.0, verbose=False, seed=None, max_rounds=None)
- grammar_rig(target, start, alphabet, max_length=6, **kwargs)
    -> {"grammar": ..., "start": ..., "member_calls": int, "counter_calls": int}
"""

import random
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from .grammar import Grammar, show_grammar
from .k_bounded import learn
from .teacher import GrammarTeacher, Oracle


def inject_error(
    err: float,
    pred: Callable[..., bool],
    rng: Optional[random.Random] = None,
    verbose: bool = False,
) -> Callable[..., bool]:
    """Wrap `pred` so that each answer is negated with probability `err`."""
    rng = rng or random.Random()

    def wrapped(*args: Any) -> bool:
        b = pred(*args)
        if rng.random() < err:
            if verbose:
                print("*** ERROR ***")
            return not b
        return b

    return wrapped


class CallCounter:
    def __init__(self, f: Callable[..., Any]):
        self.f = f
        self.calls = 0

    def __call__(self, *args: Any) -> Any:
        self.calls += 1
        return self.f(*args)


def inject_printer(prt_fn: Callable[[Tuple[Any, ...], Any], None], f: Callable[..., Any]) -> Callable[..., Any]:
    def wrapped(*args: Any) -> Any:
        y = f(*args)
        prt_fn(args, y)
        return y

    return wrapped


def member_print(args: Tuple[Any, ...], ans: bool) -> None:
    nt, toks = args
    print(f"{nt} =>* {' '.join(toks)}? {'y' if ans else 'n'}")


def counter_print(args: Tuple[Any, ...], ans: Optional[Sequence[str]]) -> None:
    g, start = args
    print("counter*")
    print(show_grammar(g, start))
    if ans is None:
        print("DONE!")
    else:
        print(f"\t=> {' '.join(ans)}")


def run_rig(
    teacher: Oracle,
    nts: Iterable[str],
    start: Optional[str] = None,
    error: float = 0.0,
    verbose: bool = False,
    seed: Optional[int] = None,
    max_rounds: Optional[int] = None,
) -> Dict[str, Any]:
    member = CallCounter(inject_error(error, teacher.is_member, random.Random(seed), verbose))
    counter = CallCounter(teacher.counterexample)

    member_fn: Callable[..., Any] = member
    counter_fn: Callable[..., Any] = counter
    if verbose:
        member_fn = inject_printer(member_print, member)
        counter_fn = inject_printer(counter_print, counter)

    grammar, start = learn(counter_fn, member_fn, nts, start=start, max_rounds=max_rounds)
    return {
        "grammar": grammar,
        "start": start,
        "member_calls": member.calls,
        "counter_calls": counter.calls,
    }


def grammar_rig(
    target: Grammar,
    start: str,
    alphabet: Iterable[str],
    max_length: int = 6,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Rig with a GrammarTeacher for `target`, learning over its nonterminals."""
    teacher = GrammarTeacher(target, start, alphabet, max_length=max_length)
    return run_rig(teacher, list(target), start=start, **kwargs)
