"""
Constructions over automata.

Every function here returns a new automaton and leaves its operands alone;
results never share lists, sets or transition rows with the operands.
"""

import operator

from loguru import logger

from lexaard.automata.fsa import DFA, EPSILON, NFA, fresh_state


def merge_alphabets(*alphabets, epsilon=False):
    """
    Unions alphabets, keeping the order in which symbols first appear.

    Epsilon is always moved to the end. It is included if any alphabet has it
    or if ``epsilon`` is True.
    """
    symbols = []
    for alphabet in alphabets:
        for symbol in alphabet:
            if symbol is EPSILON:
                epsilon = True
            elif symbol not in symbols:
                symbols.append(symbol)
    if epsilon:
        symbols.append(EPSILON)
    return symbols


# Product constructions


def product(fsa1, op, fsa2, label=None):
    """
    Compute the product of two automata.

    Both operands are converted to DFAs and completed over the union of their
    alphabets. The result has one state ``(r1,r2)`` for every pair of operand
    states, whether or not it is reachable, and moves on each symbol
    component-wise::

        delta((r1, r2), a) = (delta1(r1, a), delta2(r2, a))

    A pair is accepting when ``op(r1 accepts, r2 accepts)`` is true.

    Args:
        fsa1 (FSA): The first automaton.
        op (function): Combines the two acceptance flags, for example
            ``operator.or_`` for union.
        fsa2 (FSA): The second automaton.
        label (str, optional): The label of the result.

    Returns:
        DFA: The product DFA.
    """
    dfa1 = fsa1.to_dfa()
    dfa2 = fsa2.to_dfa()
    symbols = merge_alphabets(dfa1.alphabet, dfa2.alphabet)
    dfa1 = dfa1.completed(symbols)
    dfa2 = dfa2.completed(symbols)

    dfa = DFA(label or f"{fsa1.label} x {fsa2.label}")
    dfa.alphabet = symbols

    names = {}
    for r1 in dfa1.states:
        for r2 in dfa2.states:
            names[(r1, r2)] = dfa.add_state(f"({r1},{r2})")
    dfa.initial = names[(dfa1.initial, dfa2.initial)]

    for (r1, r2), name in names.items():
        if op(dfa1.is_final(r1), dfa2.is_final(r2)):
            dfa.add_final_state(name)
        for symbol in symbols:
            dest = (dfa1.next_state(r1, symbol), dfa2.next_state(r2, symbol))
            dfa.add_transition(name, symbol, names[dest])

    logger.debug(
        "Product of {!r} and {!r} has {} states", fsa1.label, fsa2.label, len(dfa)
    )
    return dfa


def union(fsa1, fsa2):
    """
    Computes the union of two DFAs with the product construction.

    NFA operands are converted to DFAs first.

    Example:
        >>> u = union(dfa1, dfa2)
        >>> u.accept(s) == (dfa1.accept(s) or dfa2.accept(s))
        True
    """
    return product(fsa1, operator.or_, fsa2, f"{fsa1.label} U {fsa2.label}")


def intersection(fsa1, fsa2):
    """
    Computes a DFA accepting the strings both automata accept.
    """
    return product(fsa1, operator.and_, fsa2, f"{fsa1.label} ∩ {fsa2.label}")


def symmetric_difference(fsa1, fsa2):
    """
    Computes a DFA accepting the strings exactly one of the automata accepts,
    that is ``(L1 & ~L2) | (~L1 & L2)``.
    """
    return product(fsa1, operator.xor, fsa2, f"{fsa1.label} ⊕ {fsa2.label}")


def complement(fsa, alphabet=None):
    """
    Computes a DFA accepting exactly the strings over its alphabet that
    ``fsa`` rejects.

    Args:
        fsa (FSA): The automaton to complement.
        alphabet (iterable, optional): Extra symbols to complement over.

    Returns:
        DFA: The complement.
    """
    dfa = fsa.to_dfa().completed(alphabet)
    dfa.label = f"~{fsa.label}"
    dfa.final_states = set(dfa.states).difference(dfa.final_states)
    return dfa


# Thompson-style NFA constructions


def _embed(nfa, other):
    # Copies the states and transitions of ``other`` into ``nfa``. States whose
    # names are already used in ``nfa`` get fresh names. Returns the mapping
    # from old to new names.
    taken = set(nfa.states).union(other.states)
    mapping = {}
    for state in other.states:
        name = state
        if state in nfa.states:
            name = fresh_state(taken)
            taken.add(name)
        mapping[state] = name
        nfa.add_state(name)

    for src, trans in other.transitions.items():
        row = nfa.transitions.setdefault(mapping[src], {})
        for label, dests in trans.items():
            row.setdefault(label, set()).update(mapping[dest] for dest in dests)
    return mapping


def nfa_union(fsa1, fsa2):
    r"""
    Creates an NFA accepting the strings either automaton accepts.

    A fresh start state has epsilon transitions to both original start
    states and nothing else::

          -> n1
         /
        s
         \
          -> n2

    The accept states are those of both operands. DFA operands are promoted
    first.
    """
    n1 = fsa1.to_nfa()
    n2 = fsa2.to_nfa()
    nfa = NFA(f"{n1.label} U {n2.label}")
    nfa.alphabet = merge_alphabets(n1.alphabet, n2.alphabet, epsilon=True)

    start = nfa.add_state(fresh_state(set(n1.states).union(n2.states)))
    for n in (n1, n2):
        mapping = _embed(nfa, n)
        nfa.final_states.update(mapping[state] for state in n.final_states)
        if n.initial is not None:
            nfa.add_transition(start, EPSILON, mapping[n.initial])
    nfa.initial = start
    return nfa


def concat(fsa1, fsa2):
    """
    Creates an NFA accepting every string ``uv`` where the first automaton
    accepts ``u`` and the second accepts ``v``.

    The result starts at the first operand's start state, each of the first
    operand's accept states gains an epsilon transition to the second
    operand's start state, and only the second operand's accept states
    accept. DFA operands are promoted first.
    """
    n1 = fsa1.to_nfa()
    n2 = fsa2.to_nfa()
    nfa = NFA(f"{n1.label} ○ {n2.label}")
    nfa.alphabet = merge_alphabets(n1.alphabet, n2.alphabet, epsilon=True)

    m1 = _embed(nfa, n1)
    m2 = _embed(nfa, n2)
    nfa.initial = m1.get(n1.initial)
    nfa.final_states = {m2[state] for state in n2.final_states}
    if n2.initial is not None:
        for state in n1.final_states:
            nfa.add_transition(m1[state], EPSILON, m2[n2.initial])
    return nfa


def star(fsa):
    r"""
    Creates an NFA accepting any concatenation of zero or more strings the
    automaton accepts.

    A fresh start state, which also accepts, has an epsilon transition to the
    original start state, and every original accept state gains an epsilon
    transition back to it::

             -----<-----
            /           \
      s -> n0 ---> ... -> f

    A DFA operand is promoted first.
    """
    n = fsa.to_nfa()
    nfa = NFA(f"{n.label}*")
    nfa.alphabet = merge_alphabets(n.alphabet, epsilon=True)

    start = nfa.add_state(fresh_state(n.states))
    mapping = _embed(nfa, n)
    nfa.initial = start
    finals = {mapping[state] for state in n.final_states}
    nfa.final_states = {start} | finals
    if n.initial is not None:
        first = mapping[n.initial]
        nfa.add_transition(start, EPSILON, first)
        for state in finals:
            nfa.add_transition(state, EPSILON, first)
    return nfa


# Analysis


def reachable_states(fsa):
    """
    Returns the set of states reachable from the start state.

    Every transition is followed, epsilon transitions included.
    """
    if fsa.initial is None:
        return set()

    reached = {fsa.initial}
    stack = [fsa.initial]
    while stack:
        src = stack.pop()
        for dest in fsa.successors(src):
            if dest not in reached:
                reached.add(dest)
                stack.append(dest)
    return reached


def prune(fsa):
    """
    Returns a copy of the automaton without the states unreachable from the
    start state.

    The label, alphabet and start state are kept, as are the transitions and
    accept flags of the remaining states, so the language does not change.
    """
    reachable = reachable_states(fsa)
    pruned = fsa.copy()
    pruned.states = [state for state in fsa.states if state in reachable]
    pruned.final_states.intersection_update(reachable)
    pruned.transitions = {
        src: trans for src, trans in pruned.transitions.items() if src in reachable
    }
    logger.debug(
        "Pruned {} unreachable states from {!r}",
        len(fsa) - len(pruned),
        fsa.label,
    )
    return pruned


def is_empty(fsa):
    """
    Checks if the automaton accepts no string at all, meaning no accept state
    is reachable from the start state.
    """
    return fsa.final_states.isdisjoint(reachable_states(fsa))


def equivalent(fsa1, fsa2):
    """
    Checks if two automata accept exactly the same strings.

    The automata are equivalent if and only if the DFA for the symmetric
    difference of their languages has no reachable accept state. Different
    alphabets are allowed; a symbol one automaton lacks is simply rejected by
    it.

    Args:
        fsa1 (FSA): The first automaton.
        fsa2 (FSA): The second automaton.

    Returns:
        bool: True if the automata are equivalent, False otherwise.
    """
    return is_empty(symmetric_difference(fsa1, fsa2))
