#!/usr/bin/env python3
"""
Command line front-end.

Subcommands:
  recognize  Decide membership of a token sequence; optionally show a parse tree
  enumerate  Print the first strings of a grammar's language
  learn      Learn a CNF grammar with k-bounded learning

Grammars are JSON files with keys "start_sym" and "grammar" (see
cfglearn.grammar.save_grammar). Token sequences are whitespace separated.

Usage example:
  cfglearn learn --target grammars/ab_plus.json --alphabet a b \
    --max-length 6 --output cache/learned.json --verbose

Environment overrides for defaults:
  CFGLEARN_MAX_ROUNDS (default: unbounded)
  CFGLEARN_MAX_LENGTH (default: 6)
  CFGLEARN_SAMPLES    (default: 30)
  CFGLEARN_MAX_DEPTH  (default: 10)
"""

import argparse
import itertools
import os
import sys
import time
import traceback
from typing import List, Optional

from .earley import EarleyRecognizer, format_tree
from .grammar import load_grammar, save_grammar, show_grammar
from .k_bounded import LearningExhausted, interactive_learn
from .rig import run_rig
from .teacher import GrammarTeacher, SamplingTeacher


def env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        print(f"[WARN] Ignoring {name}={value!r}: not an integer")
        return default


def read_corpus(path: str) -> List[List[str]]:
    """One token sequence per line; an empty line is the empty sequence."""
    vals: List[List[str]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            vals.append(line.split())
    return vals


def cmd_recognize(args: argparse.Namespace) -> int:
    g, start = load_grammar(args.grammar)
    start = args.start or start
    rec = EarleyRecognizer(g, start)
    n = rec.derivation_length(args.tokens)
    if n is None:
        print(f"[INFO] Rejected: {' '.join(args.tokens)!r}")
        return 1
    print(f"[INFO] Accepted: {' '.join(args.tokens)!r} (derivation length {n})")
    if args.tree:
        print(format_tree(rec.parse_tree(start, args.tokens)))
    return 0


def cmd_enumerate(args: argparse.Namespace) -> int:
    g, start = load_grammar(args.grammar)
    start = args.start or start
    rec = EarleyRecognizer(g, start)
    for w in itertools.islice(rec.language(), args.count):
        print(" ".join(w) if w else "ε")
    return 0


def cmd_learn(args: argparse.Namespace) -> int:
    max_rounds = args.max_rounds if args.max_rounds is not None else env_int("CFGLEARN_MAX_ROUNDS", None)

    try:
        if args.interactive:
            if not args.nts:
                print("[ERROR] --interactive needs --nts")
                return 2
            grammar, start = interactive_learn(args.nts, start=args.start, max_rounds=max_rounds)
        else:
            if not args.target:
                print("[ERROR] Either --target or --interactive is required.")
                return 2
            target, start = load_grammar(args.target)
            start = args.start or start
            if args.teacher == "sampling":
                corpus = read_corpus(args.corpus) if args.corpus else []
                samples = args.samples if args.samples is not None else env_int("CFGLEARN_SAMPLES", 30)
                max_depth = args.max_depth if args.max_depth is not None else env_int("CFGLEARN_MAX_DEPTH", 10)
                teacher = SamplingTeacher(target, start, corpus, samples=samples, max_depth=max_depth)
                print(f"[INFO] Loaded target with {len(target)} nonterminals, corpus={len(corpus)}")
            else:
                if not args.alphabet:
                    print("[ERROR] --alphabet is required with the exhaustive teacher.")
                    return 2
                max_length = args.max_length if args.max_length is not None else env_int("CFGLEARN_MAX_LENGTH", 6)
                teacher = GrammarTeacher(target, start, args.alphabet, max_length=max_length)
                print(f"[INFO] Loaded target with {len(target)} nonterminals, max_length={max_length}")

            nts = args.nts or list(target)
            t0 = time.time()
            result = run_rig(teacher, nts, start=start, error=args.error,
                             verbose=args.verbose, seed=args.seed, max_rounds=max_rounds)
            t1 = time.time()
            grammar, start = result["grammar"], result["start"]
            print(f"[PROFILE] learn: {t1 - t0:.2f}s")
            print(f"[SUMMARY] member_calls={result['member_calls']}, counter_calls={result['counter_calls']}")
    except LearningExhausted as e:
        print(f"[ERROR] {e}")
        print(show_grammar(e.grammar, e.start))
        return 1

    print(show_grammar(grammar, start))
    if args.output:
        save_grammar(args.output, grammar, start)
        print(f"[INFO] Saved grammar to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="cfglearn", description="Earley recognition and k-bounded CFG learning")
    sub = ap.add_subparsers(dest="command", required=True)

    rp = sub.add_parser("recognize", help="Decide whether the grammar derives the given tokens")
    rp.add_argument("--grammar", required=True, help="Path to grammar JSON")
    rp.add_argument("--start", help="Start symbol (defaults to the file's start_sym)")
    rp.add_argument("--tree", action="store_true", help="Print one parse tree when accepted")
    rp.add_argument("tokens", nargs="*", help="Tokens of the input")
    rp.set_defaults(func=cmd_recognize)

    ep = sub.add_parser("enumerate", help="Print strings of the language")
    ep.add_argument("--grammar", required=True, help="Path to grammar JSON")
    ep.add_argument("--start", help="Start symbol (defaults to the file's start_sym)")
    ep.add_argument("--count", type=int, default=10, help="Number of strings to print")
    ep.set_defaults(func=cmd_enumerate)

    lp = sub.add_parser("learn", help="Learn a CNF grammar from a teacher")
    lp.add_argument("--target", help="Path to the target grammar JSON the teacher knows")
    lp.add_argument("--interactive", action="store_true", help="Answer the queries yourself")
    lp.add_argument("--nts", nargs="+", help="Nonterminals to learn over (defaults to the target's)")
    lp.add_argument("--start", help="Start symbol")
    lp.add_argument("--teacher", default="exhaustive", choices=["exhaustive", "sampling"],
                    help="exhaustive: check all strings up to --max-length; sampling: corpus + fuzzing")
    lp.add_argument("--alphabet", nargs="+", help="Terminal alphabet for the exhaustive teacher")
    lp.add_argument("--max-length", type=int, help="Longest string the exhaustive teacher checks. Overrides env CFGLEARN_MAX_LENGTH.")
    lp.add_argument("--corpus", help="Positive examples for the sampling teacher (one per line)")
    lp.add_argument("--samples", type=int, help="Strings fuzzed per counterexample query. Overrides env CFGLEARN_SAMPLES.")
    lp.add_argument("--max-depth", type=int, help="Fuzzer depth limit. Overrides env CFGLEARN_MAX_DEPTH.")
    lp.add_argument("--max-rounds", type=int, help="Give up after this many rounds. Overrides env CFGLEARN_MAX_ROUNDS.")
    lp.add_argument("--error", type=float, default=0.0, help="Rate at which membership answers are flipped")
    lp.add_argument("--seed", type=int, help="Random seed for error injection")
    lp.add_argument("--verbose", action="store_true", help="Print every query and answer")
    lp.add_argument("--output", help="Write the learned grammar JSON here")
    lp.set_defaults(func=cmd_learn)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (OSError, ValueError, TypeError, KeyError) as e:
        print(f"[ERROR] {e}")
        if getattr(args, "verbose", False):
            print(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
