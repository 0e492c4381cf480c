import pytest

from lexaard.automata import DFA, EPSILON, NFA, FSABuilder, fresh_state, parse_fsa
from lexaard.automata.build import read_fsa
from lexaard.errors import DefinitionError

# Accepts strings whose number of 0s is divisible by three
MOD3 = """M1
0 1
*q0 q1 q0
q1 q2 q1
q2 q0 q2
"""

# Accepts strings ending in 11; the second row makes it an NFA
ENDS_11 = """N1
0 1
q0 q0 q1
q1 q0 q1,q2
*q2
"""

# Accepts exactly "a", through an epsilon cycle between q0 and q1
LOOP = """Loop
a ..
q0 , q1
q1 q2 q0
*q2 , q2
"""


def strings(alphabet, maxlen):
    from itertools import product

    for n in range(maxlen + 1):
        for chars in product(alphabet, repeat=n):
            yield "".join(chars)


def test_fresh_state():
    assert fresh_state([]) == "q0"
    assert fresh_state(["q0", "q1", "q3"]) == "q2"
    assert fresh_state({"a", "q0"}) == "q1"


def test_add_state_renames_collisions():
    fsa = DFA("x")
    assert fsa.add_state("q0") == "q0"
    assert fsa.add_state("q0") == "q1"
    assert fsa.add_state("q1") == "q2"
    assert fsa.add_state("s") == "s"
    assert fsa.states == ["q0", "q1", "q2", "s"]
    assert fsa.initial == "q0"


def test_set_alphabet():
    fsa = DFA("x")
    assert fsa.set_alphabet("ab cd e") is False
    assert fsa.alphabet == ["a", "c", "e"]

    fsa = DFA("y")
    assert fsa.set_alphabet("a b ..") is True
    assert fsa.alphabet == ["a", "b", EPSILON]
    assert fsa.symbols == ["a", "b"]


def test_bad_alphabets():
    with pytest.raises(DefinitionError):
        DFA("x").set_alphabet("a b a")
    with pytest.raises(DefinitionError):
        DFA("x").set_alphabet("   ")

    fsa = DFA("x")
    fsa.set_alphabet("a")
    with pytest.raises(DefinitionError):
        fsa.set_alphabet("b")


def test_dfa_add_row():
    dfa = DFA("M")
    dfa.set_alphabet("0 1")
    assert dfa.add_row("q0 q0 q1")
    assert dfa.add_row("*q1 q1 q0")
    assert dfa.initial == "q0"
    assert dfa.final_states == {"q1"}
    assert dfa.next_state("q0", "1") == "q1"
    assert dfa.next_state("q1", "1") == "q0"


def test_dfa_add_row_refuses_nondeterminism():
    dfa = DFA("M")
    dfa.set_alphabet("0 1")
    dfa.add_row("q0 q0 q1")
    before = dfa.copy()

    assert dfa.add_row("*q1 q0,q1 q1") is False
    assert dfa == before
    assert dfa.states == ["q0"]


def test_promotion():
    dfa = DFA("M")
    dfa.set_alphabet("0 1")
    dfa.add_row("q0 q0 q1")
    dfa.add_row("*q1 q1 q1")

    nfa = dfa.to_nfa()
    assert isinstance(nfa, NFA)
    assert nfa.label == "M"
    assert nfa.states == ["q0", "q1"]
    assert nfa.initial == "q0"
    assert nfa.final_states == {"q1"}
    assert nfa.targets("q0", "0") == {"q0"}
    assert nfa.targets("q0", "1") == {"q1"}

    assert nfa.add_row("q2 q0,q1 q2")
    assert nfa.targets("q2", "0") == {"q0", "q1"}
    # The DFA is untouched
    assert dfa.states == ["q0", "q1"]

    again = nfa.to_nfa()
    assert again == nfa
    assert again is not nfa
    assert again.transitions["q0"]["0"] is not nfa.transitions["q0"]["0"]


def test_nfa_empty_and_missing_targets():
    nfa = NFA("N")
    nfa.set_alphabet("a b c")
    nfa.add_row("q0 , q0")
    assert nfa.transitions["q0"]["a"] == set()
    assert nfa.transitions["q0"]["b"] == {"q0"}
    assert "c" not in nfa.transitions["q0"]
    assert nfa.targets("q0", "c") == frozenset()


def test_bad_rows():
    dfa = DFA("M")
    dfa.set_alphabet("0 1")
    with pytest.raises(DefinitionError):
        dfa.add_row("q0 q0 q0 q0")
    with pytest.raises(DefinitionError):
        dfa.add_row("* q0 q0")
    with pytest.raises(DefinitionError):
        dfa.add_row("q-0 q0 q0")
    dfa.add_row("q0 q0 q0")
    with pytest.raises(DefinitionError):
        dfa.add_row("*q0 q0 q0")
    assert dfa.states == ["q0"]

    with pytest.raises(DefinitionError):
        DFA("no alphabet").add_row("q0")


def test_parse_dfa():
    dfa = parse_fsa(MOD3)
    assert isinstance(dfa, DFA)
    assert dfa.label == "M1"
    assert dfa.alphabet == ["0", "1"]
    assert dfa.states == ["q0", "q1", "q2"]
    assert dfa.initial == "q0"
    assert dfa.final_states == {"q0"}


def test_parse_promotes_midway():
    nfa = parse_fsa(ENDS_11)
    assert isinstance(nfa, NFA)
    assert nfa.states == ["q0", "q1", "q2"]
    assert nfa.initial == "q0"
    assert nfa.final_states == {"q2"}
    # The row declared before the promotion survived it
    assert nfa.targets("q0", "0") == {"q0"}
    assert nfa.targets("q0", "1") == {"q1"}
    assert nfa.targets("q1", "1") == {"q1", "q2"}


def test_epsilon_alphabet_builds_nfa():
    builder = FSABuilder("E")
    builder.alphabet("a ..")
    assert isinstance(builder.fsa, NFA)
    builder.row("q0 q0 q1")
    builder.row("*q1")
    nfa = builder.finish()
    assert nfa.targets("q0", EPSILON) == {"q1"}


def test_parse_errors():
    with pytest.raises(DefinitionError):
        parse_fsa("")
    with pytest.raises(DefinitionError):
        parse_fsa("M\n")
    with pytest.raises(DefinitionError):
        parse_fsa("M\n0 1\n\n")
    with pytest.raises(DefinitionError):
        parse_fsa("M\n0 1\nq0 q0 q9\n")
    with pytest.raises(DefinitionError):
        parse_fsa("M\n0 1\nq0 q0,q9 q0\n")


def test_parse_stops_at_blank_line():
    fsa = parse_fsa(MOD3 + "\nq3 q3 q3\n")
    assert fsa.states == ["q0", "q1", "q2"]


def test_read_fsa_skips_bad_definition():
    lines = iter(["M", "0 1", "q0 q0 q0 q0", "q1 q1 q1", "", "next"])
    with pytest.raises(DefinitionError):
        read_fsa(lines)
    assert next(lines) == "next"

    lines = iter(["M", "0 1", "q0 q0 q9", "", "next"])
    with pytest.raises(DefinitionError):
        read_fsa(lines)
    assert next(lines) == "next"


def test_dfa_run():
    dfa = parse_fsa(MOD3)
    assert dfa.run("000") == "accept"
    assert dfa.run("0") == "reject"
    assert dfa.run("") == "accept"
    assert dfa.run("0101011") == "accept"
    assert dfa.run("00x0") == "reject"

    for s in strings("01", 6):
        assert dfa.accept(s) == (s.count("0") % 3 == 0)


def test_dfa_missing_transition_rejects():
    dfa = parse_fsa("M\n0 1\n*q0 q0\n")
    assert dfa.next_state("q0", "1") is None
    assert dfa.accept("000")
    assert not dfa.accept("01")


def test_nfa_run():
    nfa = parse_fsa(ENDS_11)
    for s in strings("01", 6):
        assert nfa.accept(s) == s.endswith("11")
    assert nfa.run("0011") == "accept"
    assert nfa.run("2") == "reject"


def test_nfa_epsilon_cycle_terminates():
    nfa = parse_fsa(LOOP)
    assert not nfa.accept("")
    assert nfa.accept("a")
    assert not nfa.accept("aa")
    assert not nfa.accept("b")
    assert nfa.epsilon_closure({"q0"}) == {"q0", "q1"}
    assert nfa.start_states() == {"q0", "q1"}


def test_to_dfa():
    nfa = parse_fsa(ENDS_11)
    dfa = nfa.to_dfa()
    assert isinstance(dfa, DFA)
    assert dfa.alphabet == ["0", "1"]
    assert dfa.initial == "{q0}"
    for s in strings("01", 7):
        assert dfa.accept(s) == nfa.accept(s)


def test_to_dfa_with_epsilon():
    nfa = parse_fsa(LOOP)
    dfa = nfa.to_dfa()
    assert dfa.alphabet == ["a"]
    assert dfa.states == ["{q0,q1}", "{q2}", "{}"]
    assert dfa.final_states == {"{q2}"}
    assert dfa.next_state("{}", "a") == "{}"
    for s in strings("ab", 4):
        assert dfa.accept(s) == nfa.accept(s)


def test_dfa_to_dfa_is_a_copy():
    dfa = parse_fsa(MOD3)
    other = dfa.to_dfa()
    assert other == dfa
    other.add_transition("q0", "0", "q0")
    assert dfa.next_state("q0", "0") == "q1"


def test_completed():
    dfa = parse_fsa("M\n0 1\n*q0 q0\n")
    assert not dfa.is_complete()
    full = dfa.completed(["2"])
    assert full.alphabet == ["0", "1", "2"]
    assert full.states == ["q0", "q1"]
    assert full.is_complete()
    assert full.next_state("q0", "1") == "q1"
    assert full.next_state("q1", "0") == "q1"
    assert dfa.alphabet == ["0", "1"]

    assert parse_fsa(MOD3).completed() == parse_fsa(MOD3)


def test_render_dfa():
    dfa = parse_fsa(MOD3)
    assert dfa.render() == (
        "M1\n"
        "     0   1   \n"
        "*q0  q1  q0\n"
        " q1  q2  q1\n"
        " q2  q0  q2"
    )
    assert str(dfa) == dfa.render()


def test_render_nfa():
    lines = parse_fsa(ENDS_11).render().splitlines()
    assert lines[0] == "N1"
    assert lines[1].split() == ["0", "1"]
    assert lines[2].split() == ["q0", "q0", "q1"]
    assert lines[3].split() == ["q1", "q0", "q1,q2"]
    assert lines[4].split() == ["*q2"]
    # Columns line up
    assert len(lines[2]) == len(lines[3]) == len(lines[4])

    lines = parse_fsa(LOOP).render().splitlines()
    assert lines[1].split() == ["a", ".."]
    assert lines[4].split() == ["*q2", "q2"]


def test_dump():
    from io import StringIO

    out = StringIO()
    parse_fsa(MOD3).dump(out)
    assert out.getvalue() == parse_fsa(MOD3).render() + "\n"


def test_dump_defaults_to_current_stdout(capsys):
    parse_fsa(MOD3).dump()
    assert capsys.readouterr().out == parse_fsa(MOD3).render() + "\n"


def test_equality_ignores_label():
    a = parse_fsa(MOD3)
    b = parse_fsa(MOD3.replace("M1", "Other"))
    assert a == b
    assert a != a.to_nfa()
