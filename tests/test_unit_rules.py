from cnfnorm import Grammar, Rule


def rules(text):
    return set(Grammar.from_string(text))


def test_unit_cycle_terminates():
    g = Grammar.from_string("A -> B\nB -> A\nB -> a").without_unit_rules()

    assert list(g) == [Rule("A", "a"), Rule("B", "a")]


def test_self_loop_removed():
    g = Grammar.from_string("S -> A\nA -> A").without_unit_rules()

    assert len(g) == 0


def test_unit_chain_closure():
    g = Grammar.from_string("S -> A\nA -> B\nB -> b | bb").without_unit_rules()

    assert set(g) == rules("S -> b | bb\nA -> b | bb\nB -> b | bb")
    assert not any(rule.is_unit() for rule in g)


def test_output_is_sorted():
    g = Grammar.from_string("S -> b | A | aS\nA -> a").without_unit_rules()

    assert list(g) == sorted(g)
    assert list(g) == [
        Rule("A", "a"),
        Rule("S", "a"),
        Rule("S", "aS"),
        Rule("S", "b"),
    ]


def test_non_unit_rules_pass_through():
    g = Grammar.from_string("S -> AB | a\nA -> a\nB -> b")

    assert set(g.without_unit_rules()) == set(g)


def test_unit_to_symbol_without_rules_is_dropped():
    g = Grammar.from_string("S -> A | a").without_unit_rules()

    assert list(g) == [Rule("S", "a")]


def test_start_symbol_preserved():
    g = Grammar.from_string("T -> A\nA -> a", start="T").without_unit_rules()

    assert g.start == "T"
    assert set(g) == {Rule("A", "a"), Rule("T", "a")}
