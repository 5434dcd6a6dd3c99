from cnfnorm import Grammar, Pipeline, Rule


def test_unreachable_rules_dropped():
    g = Grammar.from_string("S -> a\nT -> b").with_useful_symbols()

    assert list(g) == [Rule("S", "a")]


def test_nonproductive_loop_dropped_after_unit_elimination():
    g = Grammar.from_string("S -> A\nA -> A")
    p = Pipeline(Pipeline.without_unit_rules(), Pipeline.with_useful_symbols())

    assert len(p(g)) == 0


def test_nonproductive_symbol_drops_every_rule_mentioning_it():
    g = Grammar.from_string("S -> a | XB\nX -> aX\nB -> b").with_useful_symbols()

    assert list(g) == [Rule("S", "a")]


def test_reachable_and_productive_sets():
    g = Grammar.from_string("S -> a | XB\nX -> aX\nB -> b")

    assert g._productive_symbols() == {"a", "b", "S", "B"}
    assert g._reachable_symbols() == {"S", "a", "X", "B", "b"}


def test_single_filters():
    g = Grammar.from_string("S -> a | XB\nX -> aX\nB -> b\nC -> c")

    assert list(g.with_productive_symbols()) == [
        Rule("S", "a"),
        Rule("B", "b"),
        Rule("C", "c"),
    ]
    assert list(g.with_reachable_symbols()) == [
        Rule("S", "a"),
        Rule("S", "XB"),
        Rule("X", "aX"),
        Rule("B", "b"),
    ]


def test_missing_start_symbol_gives_empty_grammar():
    g = Grammar.from_string("A -> a").with_useful_symbols()

    assert len(g) == 0


def test_custom_start_symbol():
    g = Grammar.from_string("S -> a\nT -> bS", start="T").with_useful_symbols()

    assert list(g) == [Rule("S", "a"), Rule("T", "bS")]


def test_useful_grammar_unchanged():
    g = Grammar.from_string("S -> aSb | ab")

    assert list(g.with_useful_symbols()) == list(g)
