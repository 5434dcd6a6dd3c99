import argparse
import itertools as it
import logging
import string
import sys
from collections import defaultdict, namedtuple
from functools import cached_property

log = logging.getLogger(__name__)

NULL = "\\"
NULL_RHS = (NULL,)
DEFAULT_START = "S"


class GrammarError(ValueError):
    pass


class MalformedRule(GrammarError):
    pass


class SymbolExhaustion(GrammarError):
    pass


def is_nonterminal(sym):
    return sym.isupper()


def is_terminal(sym):
    return sym.islower()


def removals(indices):
    """Every non-empty subset of `indices`, smallest first."""
    s = list(indices)
    return it.chain.from_iterable(it.combinations(s, r) for r in range(1, len(s) + 1))


class Rule(namedtuple("Rule", "lhs rhs")):
    __slots__ = ()

    def __new__(cls, lhs, rhs):
        return super().__new__(cls, lhs, tuple(rhs))

    def is_null(self):
        return self.rhs == NULL_RHS

    def is_unit(self):
        return len(self.rhs) == 1 and is_nonterminal(self.rhs[0])

    def __str__(self):
        return f"{self.lhs} -> {''.join(self.rhs)}"


class NameAllocator:
    """Hands out unused nonterminal names for the CNF transform.

    Names are taken from `candidates` in order. Each terminal gets one
    stand-in nonterminal, minted the first time it is asked for and reused
    after that.
    """

    def __init__(self, used, candidates=string.ascii_uppercase):
        self.used = set(used)
        self.candidates = candidates
        self.stand_ins = {}

    def fresh(self):
        for name in self.candidates:
            if name not in self.used:
                self.used.add(name)
                log.debug("Allocated nonterminal %s", name)
                return name
        raise SymbolExhaustion(
            f"no unused nonterminal left among {self.candidates!r}"
        )

    def stand_in(self, terminal):
        if terminal not in self.stand_ins:
            self.stand_ins[terminal] = self.fresh()
        return self.stand_ins[terminal]

    def terminal_rules(self):
        return [Rule(name, (t,)) for t, name in sorted(self.stand_ins.items())]


class Grammar:
    def __init__(self, rules=(), start: str = DEFAULT_START):
        self.rules = tuple(dict.fromkeys(Rule(lhs, rhs) for lhs, rhs in rules))
        self.start = start

    @cached_property
    def rules_by_lhs(self):
        by_lhs = defaultdict(list)
        for lhs, rhs in self.rules:
            by_lhs[lhs].append(rhs)
        return {lhs: tuple(options) for lhs, options in by_lhs.items()}

    @cached_property
    def nonterminals(self):
        return frozenset(
            sym
            for lhs, rhs in self.rules
            for sym in (lhs,) + rhs
            if is_nonterminal(sym)
        )

    @cached_property
    def terminals(self):
        return frozenset(
            sym for _, rhs in self.rules for sym in rhs if is_terminal(sym)
        )

    def __iter__(self):
        return iter(self.rules)

    def __len__(self):
        return len(self.rules)

    def __eq__(self, other):
        if not isinstance(other, Grammar):
            return NotImplemented
        return self.start == other.start and set(self.rules) == set(other.rules)

    def __repr__(self):
        return f"Grammar({list(self.rules)!r}, start={self.start!r})"

    @staticmethod
    def from_string(s: str, start: str = DEFAULT_START):
        rules = []
        for i, line in enumerate(s.splitlines(), start=1):
            line = line.strip()
            if not line:
                if rules:
                    break
                continue

            lhs, arrow, rhs = line.partition("->")
            if not arrow:
                raise MalformedRule(f'Line {i} <<< {line} >>> contains no "->"')
            lhs = lhs.strip()
            if len(lhs) != 1 or not is_nonterminal(lhs):
                raise MalformedRule(
                    f"Line {i} <<< {line} >>> left-hand side {lhs!r} "
                    "is not a single nonterminal"
                )

            for option in rhs.split("|"):
                runs = option.split()
                if not runs:
                    raise MalformedRule(f"Line {i} <<< {line} >>> has an empty option")
                for run in runs:
                    Grammar._check_run(run, i, line)
                    rules.append(Rule(lhs, run))

        return Grammar(rules, start)

    @staticmethod
    def _check_run(run, i, line):
        for sym in run:
            if sym != NULL and not (is_terminal(sym) or is_nonterminal(sym)):
                raise MalformedRule(f"Line {i} <<< {line} >>> bad symbol {sym!r}")
        if NULL in run and run != NULL:
            raise MalformedRule(
                f"Line {i} <<< {line} >>> mixes {NULL!r} with other symbols"
            )

    def to_string(self):
        return "".join(f"{rule}\n" for rule in self.rules)

    def to_grouped_string(self):
        s = ""

        def format(lhs, rhs):
            rhs_string = " | ".join("".join(opt) for opt in sorted(rhs))
            return f"{lhs} -> {rhs_string}\n"

        by_lhs = self.rules_by_lhs
        if self.start in by_lhs:
            s += format(self.start, by_lhs[self.start])
        for lhs, rhs in sorted(by_lhs.items()):
            if lhs != self.start:
                s += format(lhs, rhs)
        return s

    @staticmethod
    def stringof(s, alphabet):
        return all(sym in alphabet for sym in s)

    def is_cnf(self):
        return all(
            (len(rhs) == 1 and is_terminal(rhs[0]))
            or (len(rhs) == 2 and all(map(is_nonterminal, rhs)))
            for _, rhs in self.rules
        )

    def _nullable_nonterminals(self):
        nullable = set()
        new_nullable = set(rule.lhs for rule in self.rules if rule.is_null())

        while new_nullable != nullable:
            nullable = set(new_nullable)
            for lhs, rhs in self.rules:
                if Grammar.stringof(rhs, nullable):
                    new_nullable.add(lhs)

        log.debug("Nullable nonterminals: %s", sorted(nullable))
        return frozenset(nullable)

    def without_null_rules(self):
        nullable = self._nullable_nonterminals()
        new_rules = []

        for rule in self.rules:
            if rule.is_null():
                continue
            new_rules.append(rule)

            lhs, opt = rule
            indices = [i for i, sym in enumerate(opt) if sym in nullable]
            for removed in removals(indices):
                new_opt = tuple(sym for i, sym in enumerate(opt) if i not in removed)
                if new_opt and new_opt != (lhs,):
                    new_rules.append(Rule(lhs, new_opt))

        return Grammar(new_rules, self.start)

    def without_unit_rules(self):
        original = self.rules_by_lhs
        rules = set(self.rules)
        expanded = set()

        units = set(rule for rule in rules if rule.is_unit())
        while units:
            expanded |= units
            for lhs, (target,) in units:
                for opt in original.get(target, ()):
                    rules.add(Rule(lhs, opt))
            rules -= expanded
            units = set(rule for rule in rules if rule.is_unit())

        log.debug("Expanded unit rules: %s", sorted(map(str, expanded)))
        return Grammar(sorted(rules), self.start)

    def _productive_symbols(self):
        productive = set()
        new_productive = set(self.terminals)

        while new_productive != productive:
            productive = set(new_productive)
            for lhs, rhs in self.rules:
                if Grammar.stringof(rhs, productive):
                    new_productive.add(lhs)

        log.debug("Productive symbols: %s", sorted(productive))
        return frozenset(productive)

    def _reachable_symbols(self):
        reachable = set()
        new_reachable = set([self.start])

        while reachable != new_reachable:
            reachable = set(new_reachable)
            for X in reachable:
                for opt in self.rules_by_lhs.get(X, ()):
                    new_reachable.update(opt)

        log.debug("Reachable symbols: %s", sorted(reachable))
        return frozenset(reachable)

    def with_symbols(self, symbols):
        return Grammar(
            (
                rule
                for rule in self.rules
                if rule.lhs in symbols and Grammar.stringof(rule.rhs, symbols)
            ),
            self.start,
        )

    def with_productive_symbols(self):
        return self.with_symbols(self._productive_symbols())

    def with_reachable_symbols(self):
        return self.with_symbols(self._reachable_symbols())

    def with_useful_symbols(self):
        productive = self._productive_symbols()
        generating = self.with_symbols(productive)
        reachable = generating._reachable_symbols()
        return self.with_symbols(productive & reachable)

    def to_cnf(self, candidates=string.ascii_uppercase):
        names = NameAllocator(self.nonterminals | {self.start}, candidates)
        new_rules = []

        for lhs, rhs in self.rules:
            if len(rhs) == 1:
                new_rules.append(Rule(lhs, rhs))
                continue

            opt = tuple(names.stand_in(sym) if is_terminal(sym) else sym for sym in rhs)
            if len(opt) == 2:
                new_rules.append(Rule(lhs, opt))
                continue

            last = names.fresh()
            new_rules.append(Rule(last, opt[-2:]))
            for sym in reversed(opt[1:-2]):
                aux = names.fresh()
                new_rules.append(Rule(aux, (sym, last)))
                last = aux
            new_rules.append(Rule(lhs, (opt[0], last)))

        new_rules.extend(names.terminal_rules())
        return Grammar(new_rules, self.start)

    def __str__(self):
        return self.to_string()


class Pipeline:
    def __init__(self, *actions):
        self.actions = list(actions)

    def add_actions(self, *actions):
        self.actions.extend(actions)

    def __call__(self, g: Grammar, show=None):
        for a in self.actions:
            if isinstance(a, Pipeline):
                g = a(g, show)
                continue
            g = a(g)
            if show is not None and hasattr(a, "__name__"):
                show(a.__name__.replace("_", " ").title(), g)
        return g

    @staticmethod
    def without_null_rules():
        return Pipeline(Grammar.without_null_rules)

    @staticmethod
    def without_unit_rules():
        return Pipeline(Grammar.without_unit_rules)

    @staticmethod
    def with_productive_symbols():
        return Pipeline(Grammar.with_productive_symbols)

    @staticmethod
    def with_reachable_symbols():
        return Pipeline(Grammar.with_reachable_symbols)

    @staticmethod
    def with_useful_symbols():
        return Pipeline(Grammar.with_useful_symbols)

    @staticmethod
    def to_cnf():
        return Pipeline(Grammar.to_cnf)

    @staticmethod
    def chomsky_normal_form():
        return Pipeline(
            Pipeline.without_null_rules(),
            Pipeline.without_unit_rules(),
            Pipeline.with_useful_symbols(),
            Pipeline.to_cnf(),
        )


def main(argv=None):
    parser = getparser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    def render(g):
        return g.to_grouped_string() if args.grouped else g.to_string()

    def show(title, g):
        print(title)
        print(render(g))

    p = Pipeline()
    if args.null:
        p.add_actions(Pipeline.without_null_rules())
    if args.unit:
        p.add_actions(Pipeline.without_unit_rules())
    if args.reach:
        p.add_actions(Pipeline.with_reachable_symbols())
    if args.prod:
        p.add_actions(Pipeline.with_productive_symbols())
    if args.useless:
        p.add_actions(Pipeline.with_useful_symbols())
    if args.cnf or not p.actions:
        p.add_actions(Pipeline.chomsky_normal_form())

    try:
        with args.file as f:
            g = Grammar.from_string(f.read(), args.start)
        if args.steps:
            show("Original", g)
            p(g, show)
        else:
            sys.stdout.write(render(p(g)))
    except GrammarError as e:
        parser.exit(1, f"{parser.prog}: error: {e}\n")
    return 0


def start_symbol(value):
    if len(value) != 1 or not is_nonterminal(value):
        raise argparse.ArgumentTypeError(f"{value!r} is not a single nonterminal")
    return value


def getparser():
    parser = argparse.ArgumentParser(
        prog="cnfnorm",
        description="Convert context free grammars to Chomsky normal form",
        fromfile_prefix_chars="@",
    )
    parser.add_argument(
        "file", type=argparse.FileType("r"), nargs="?", default=sys.stdin
    )
    parser.add_argument(
        "-s", "--start", type=start_symbol, default=DEFAULT_START,
        help="start symbol (default: %(default)s)",
    )
    parser.add_argument(
        "-p", "--prod", action="store_true", help="eliminate nonproductive nonterminals"
    )
    parser.add_argument(
        "-r", "--reach", action="store_true", help="eliminate unreachable symbols"
    )
    parser.add_argument(
        "-l", "--useless", action="store_true", help="eliminate useless symbols"
    )
    parser.add_argument(
        "-n", "--null", action="store_true", help="eliminate null rules"
    )
    parser.add_argument(
        "-u", "--unit", action="store_true", help="eliminate unit rules"
    )
    parser.add_argument(
        "-c", "--cnf", action="store_true",
        help="convert to chomsky normal form (the default with no other pass)",
    )
    parser.add_argument(
        "-g", "--grouped", action="store_true", help="print one line per nonterminal"
    )
    parser.add_argument(
        "-t", "--steps", action="store_true", help="print intermediate steps"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log fixpoint computations"
    )
    return parser


if __name__ == "__main__":
    sys.exit(main())
