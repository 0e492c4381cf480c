import re
from collections import deque
from itertools import count

from loguru import logger

from lexaard.errors import DefinitionError

# Definition syntax
EPSILON_TOKEN = ".."
ACCEPT_MARKER = "*"

_state_name = re.compile(r"\w+")


class Marker:
    """
    Represents a marker object.

    Markers are used as transition labels that can never be confused with an
    input character.

    Attributes:
        name (str): The name of the marker.

    Example:
        >>> marker = Marker("EPSILON")
        >>> repr(marker)
        '<EPSILON>'
    """

    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return f"<{self.name}>"


EPSILON = Marker("EPSILON")


def fresh_state(taken):
    """
    Returns the first of ``q0``, ``q1``, ``q2``, ... that is not in ``taken``.

    Args:
        taken (container): The state names already in use.

    Returns:
        str: An unused state name.
    """
    for n in count():
        name = f"q{n}"
        if name not in taken:
            return name


# Base class


class FSA:
    """
    Finite State Automaton (FSA) class.

    This is the part shared by :class:`DFA` and :class:`NFA`: a label, an
    ordered alphabet, an ordered list of named states, a start state and a set
    of accept states. The subclasses decide how transitions are stored.

    Attributes:
        label (str): A descriptive name, only used for display.
        alphabet (list): The input symbols in declaration order. An NFA may
            also carry the :data:`EPSILON` marker.
        states (list): The state names in declaration order.
        initial (str): The start state, or None before the first state exists.
        final_states (set): The accept states.
        transitions (dict): Maps a source state to a dictionary of labels.

    Methods:
        add_state(name): Adds a state, renaming it if the name is taken.
        set_alphabet(line): Declares the alphabet from a definition line.
        add_row(line): Adds a state and its transitions from a definition line.
        accept(string): Checks whether the automaton accepts a string.
        run(string): Like accept(), but returns ``"accept"`` or ``"reject"``.
        render(): Returns the canonical multi-line text of the automaton.
    """

    def __init__(self, label):
        """
        Initialize an empty automaton with the given label.

        Args:
            label (str): A descriptive identifier for the automaton.
        """
        self.label = label
        self.alphabet = []
        self.states = []
        self.initial = None
        self.final_states = set()
        self.transitions = {}

    def __len__(self):
        """
        Returns the number of states in the automaton.
        """
        return len(self.states)

    def __eq__(self, other):
        """
        Check if two automata are structurally equal.

        The label is not compared. Two automata that accept the same language
        but are built differently are not equal; use
        :func:`lexaard.automata.ops.equivalent` for that.
        """
        if type(self) is not type(other):
            return False
        if self.initial != other.initial:
            return False
        if self.final_states != other.final_states:
            return False
        if self.alphabet != other.alphabet or self.states != other.states:
            return False
        return self.transitions == other.transitions

    def __repr__(self):
        return f"<{type(self).__name__} {self.label!r} with {len(self)} states>"

    def __str__(self):
        return self.render()

    @property
    def symbols(self):
        """
        The alphabet without the epsilon marker.
        """
        return [symbol for symbol in self.alphabet if symbol is not EPSILON]

    @property
    def has_epsilon(self):
        return EPSILON in self.alphabet

    def is_final(self, state):
        """
        Checks if a given state is an accept state.

        Args:
            state (str): The state to check.

        Returns:
            bool: True if the state is an accept state, False otherwise.
        """
        return state in self.final_states

    def add_state(self, name):
        """
        Adds a state to the automaton.

        If ``name`` is already used, the first free name of ``q0``, ``q1``,
        ... is stored instead. The first state ever added becomes the start
        state.

        Args:
            name (str): The desired name for the state.

        Returns:
            str: The name actually stored.
        """
        if name in self.states:
            name = fresh_state(self.states)
        self.states.append(name)
        if self.initial is None:
            self.initial = name
        return name

    def add_final_state(self, state):
        """
        Adds an accept state to the automaton.

        Args:
            state (str): The state to mark as accepting.
        """
        self.final_states.add(state)

    def set_alphabet(self, line):
        """
        Declares the alphabet from a whitespace separated list of symbols.

        Only the first character of each token is used. The token ``..``
        stands for epsilon and means the automaton must be an NFA.

        Args:
            line (str): The alphabet line of a definition.

        Returns:
            bool: True if the alphabet enables epsilon transitions.

        Raises:
            DefinitionError: If the alphabet was already declared, is empty,
                or repeats a symbol.
        """
        if self.alphabet:
            raise DefinitionError("alphabet declared twice", line)

        symbols = []
        for token in line.split():
            symbol = EPSILON if token == EPSILON_TOKEN else token[0]
            if symbol in symbols:
                raise DefinitionError(f"symbol {token!r} declared twice", line)
            symbols.append(symbol)
        if not symbols:
            raise DefinitionError("empty alphabet", line)

        self.alphabet = symbols
        return EPSILON in symbols

    def _parse_row(self, line):
        # Validates a state row without touching the automaton. Returns the
        # state name, whether it accepts, and one target list per cell.
        if not self.alphabet:
            raise DefinitionError("state declared before the alphabet", line)

        tokens = line.split()
        if not tokens:
            raise DefinitionError("empty state row", line)

        head = tokens[0]
        accepting = head.startswith(ACCEPT_MARKER)
        name = head[len(ACCEPT_MARKER) :] if accepting else head
        if not _state_name.fullmatch(name):
            raise DefinitionError(f"invalid state name {name!r}", line)
        if name in self.states:
            raise DefinitionError(f"state {name!r} declared twice", line)

        cells = tokens[1:]
        if len(cells) > len(self.alphabet):
            raise DefinitionError("more transitions than alphabet symbols", line)

        row = []
        for cell in cells:
            targets = [target for target in cell.split(",") if target]
            for target in targets:
                if not _state_name.fullmatch(target):
                    raise DefinitionError(f"invalid target {target!r}", line)
            row.append(targets)
        return name, accepting, row

    def _declare(self, name, accepting):
        self.add_state(name)
        if accepting:
            self.add_final_state(name)

    def add_row(self, line):
        """
        Adds a state and its transitions from one definition line.

        The line holds the state name, optionally prefixed by ``*`` to make it
        an accept state, followed by one transition token per alphabet symbol.

        Args:
            line (str): The state row.

        Returns:
            bool: True if the row was added.

        Raises:
            NotImplementedError: This method should be implemented in a subclass.
        """
        raise NotImplementedError

    def add_transition(self, src, label, dest):
        raise NotImplementedError

    def triples(self):
        """
        Generates every (source state, label, destination state) triple.
        """
        raise NotImplementedError

    def successors(self, state):
        """
        Returns the set of states one transition away from ``state``, epsilon
        moves included.
        """
        raise NotImplementedError

    def accept(self, string):
        """
        Checks if a given string is accepted by the automaton.

        Args:
            string (str): The string to check.

        Returns:
            bool: True if the string is accepted, False otherwise.
        """
        raise NotImplementedError

    def run(self, string):
        """
        Runs the automaton on a string.

        Returns:
            str: ``"accept"`` or ``"reject"``.
        """
        return "accept" if self.accept(string) else "reject"

    def copy(self):
        """
        Returns an independent copy of the automaton.
        """
        raise NotImplementedError

    def to_dfa(self):
        raise NotImplementedError

    def to_nfa(self):
        raise NotImplementedError

    def _copy_base(self, cls):
        # New automaton of class ``cls`` owning copies of the shared fields
        other = cls(self.label)
        other.alphabet = list(self.alphabet)
        other.states = list(self.states)
        other.initial = self.initial
        other.final_states = set(self.final_states)
        return other

    def _cell(self, state, symbol):
        raise NotImplementedError

    def render(self):
        """
        Returns the canonical text of the automaton.

        The first line is the label, the second the alphabet (epsilon is
        written ``..``), then one line per state: ``*`` for an accept state or
        a space, the state name, and each transition right-justified in a
        column four characters wide (wider if a cell would not fit with a
        space in front of it).

        Example:
            >>> print(dfa.render())
            M1
                 0   1
             q0  q1  q0
            *q1  q2  q1
             q2  q0  q2
        """
        rows = [
            [self._cell(state, symbol) for symbol in self.alphabet]
            for state in self.states
        ]
        width = max([4] + [len(cell) + 1 for row in rows for cell in row])

        header = " " * 5
        for symbol in self.alphabet:
            token = EPSILON_TOKEN if symbol is EPSILON else symbol
            header += token.ljust(width)

        lines = [self.label, header]
        for state, row in zip(self.states, rows):
            marker = ACCEPT_MARKER if state in self.final_states else " "
            lines.append(marker + state + "".join(cell.rjust(width) for cell in row))
        return "\n".join(lines)

    def dump(self, stream=None):
        """
        Prints the canonical text of the automaton to the specified stream,
        standard output by default.
        """
        print(self.render(), file=stream)


# Implementations


class NFA(FSA):
    """
    Non-Deterministic Finite Automaton.

    Transitions map a source state to a dictionary of labels, each holding a
    set of destination states. A label is an alphabet symbol or
    :data:`EPSILON`. A missing label and an empty set both mean "no
    transition".
    """

    def add_transition(self, src, label, dest):
        """
        Adds ``dest`` to the targets of ``src`` on ``label``.
        """
        self.transitions.setdefault(src, {}).setdefault(label, set()).add(dest)

    def set_targets(self, src, label, dests):
        """
        Replaces the targets of ``src`` on ``label`` (possibly with nothing).
        """
        self.transitions.setdefault(src, {})[label] = set(dests)

    def targets(self, src, label):
        """
        Returns the states reached from ``src`` on ``label`` in one step.
        """
        return frozenset(self.transitions.get(src, {}).get(label, ()))

    def triples(self):
        for src, trans in self.transitions.items():
            for label, dests in trans.items():
                for dest in dests:
                    yield src, label, dest

    def successors(self, state):
        found = set()
        for dests in self.transitions.get(state, {}).values():
            found.update(dests)
        return found

    def add_row(self, line):
        """
        Adds a state and its transitions from one definition line.

        Each token is a comma separated list of target states. A token made
        only of commas is an explicit empty set and tokens missing at the end
        of the line mean no transition.

        Returns:
            bool: Always True; malformed lines raise instead.

        Raises:
            DefinitionError: If the line cannot be parsed.
        """
        name, accepting, row = self._parse_row(line)
        self._declare(name, accepting)
        for symbol, targets in zip(self.alphabet, row):
            self.set_targets(name, symbol, targets)
        return True

    def epsilon_closure(self, states):
        """
        Expands the given set of states by following epsilon transitions.

        Args:
            states (iterable): The states to expand.

        Returns:
            frozenset: The smallest superset of ``states`` closed under
            epsilon transitions.
        """
        transitions = self.transitions
        closure = set(states)
        frontier = list(closure)
        while frontier:
            state = frontier.pop()
            if state in transitions and EPSILON in transitions[state]:
                new_states = transitions[state][EPSILON].difference(closure)
                frontier.extend(new_states)
                closure.update(new_states)
        return frozenset(closure)

    def start_states(self):
        """
        Returns the epsilon closure of the start state.
        """
        if self.initial is None:
            return frozenset()
        return self.epsilon_closure({self.initial})

    def next_states(self, states, label):
        """
        Returns the set of states reached from ``states`` on ``label``,
        including everything reachable afterwards by epsilon transitions.

        Example:
            >>> nfa.next_states({"q0"}, "a")
            frozenset({'q1'})
        """
        transitions = self.transitions
        dest_states = set()
        for state in states:
            if state in transitions:
                dest_states.update(transitions[state].get(label, ()))
        return self.epsilon_closure(dest_states)

    def any_final(self, states):
        """
        Checks if any of the given states is an accept state.
        """
        return not self.final_states.isdisjoint(states)

    def accept(self, string):
        """
        Checks if some path through the automaton consumes the whole string
        and ends in an accept state.

        The search walks a frontier of ``(state, position)`` pairs. Symbol
        moves advance the position, epsilon moves keep it, and a pair is never
        expanded twice, so epsilon cycles terminate and memory is bounded by
        ``len(states) * (len(string) + 1)`` pairs.

        Args:
            string (str): The string to check.

        Returns:
            bool: True if the string is accepted, False otherwise.
        """
        if self.initial is None:
            return False

        end = len(string)
        transitions = self.transitions
        stack = [(self.initial, 0)]
        seen = set()
        while stack:
            pair = stack.pop()
            if pair in seen:
                continue
            seen.add(pair)

            state, pos = pair
            if pos == end and state in self.final_states:
                return True

            trans = transitions.get(state)
            if not trans:
                continue
            stack.extend((dest, pos) for dest in trans.get(EPSILON, ()))
            if pos < end:
                stack.extend((dest, pos + 1) for dest in trans.get(string[pos], ()))
        return False

    def copy(self):
        nfa = self._copy_base(NFA)
        nfa.transitions = {
            src: {label: set(dests) for label, dests in trans.items()}
            for src, trans in self.transitions.items()
        }
        return nfa

    def to_nfa(self):
        """
        Returns an independent copy; promoting an NFA changes nothing else.
        """
        return self.copy()

    def to_dfa(self):
        """
        Converts the NFA to an equivalent DFA using the subset construction.

        Each DFA state stands for a set of NFA states. The start state is the
        epsilon closure of the NFA's start state, and the successor of a set
        ``R`` on symbol ``a`` is the epsilon closure of every state reached
        from ``R`` on ``a``. A set is accepting if it contains an accept state
        of the NFA. Sets are discovered breadth first, so only reachable sets
        become states; the empty set becomes a dead state if it is reached.

        DFA states are named after their sets, for example ``{q0,q2}``.

        Returns:
            DFA: The converted DFA. The NFA is not modified.
        """
        symbols = self.symbols
        dfa = DFA(self.label)
        dfa.alphabet = list(symbols)
        if self.initial is None:
            return dfa

        names = {}

        def name_of(subset):
            if subset not in names:
                name = dfa.add_state("{" + ",".join(sorted(subset)) + "}")
                names[subset] = name
                if self.any_final(subset):
                    dfa.add_final_state(name)
            return names[subset]

        start = self.start_states()
        name_of(start)
        frontier = deque([start])
        while frontier:
            current = frontier.popleft()
            src = name_of(current)
            for symbol in symbols:
                new_state = self.next_states(current, symbol)
                if new_state not in names:
                    frontier.append(new_state)
                dfa.add_transition(src, symbol, name_of(new_state))

        logger.debug(
            "Converted NFA {!r} ({} states) to a DFA with {} states",
            self.label,
            len(self),
            len(dfa),
        )
        return dfa

    def _cell(self, state, symbol):
        order = {name: i for i, name in enumerate(self.states)}
        dests = self.transitions.get(state, {}).get(symbol, ())
        return ",".join(sorted(dests, key=lambda s: (order.get(s, len(order)), s)))


class DFA(FSA):
    """
    Deterministic Finite Automaton.

    Transitions map a source state to a dictionary of symbols, each holding
    exactly one destination state. A missing entry is an implicit transition
    to a dead, rejecting state.
    """

    def add_transition(self, src, label, dest):
        """
        Sets the transition from ``src`` on ``label`` to ``dest``.
        """
        self.transitions.setdefault(src, {})[label] = dest

    def next_state(self, src, label):
        """
        Returns the next state given the current state and a symbol, or None
        if the transition is undefined.

        Example:
            >>> dfa.next_state("q0", "0")
            'q1'
            >>> dfa.next_state("q0", "x") is None
            True
        """
        return self.transitions.get(src, {}).get(label)

    def triples(self):
        for src, trans in self.transitions.items():
            for label, dest in trans.items():
                yield src, label, dest

    def successors(self, state):
        return set(self.transitions.get(state, {}).values())

    def add_row(self, line):
        """
        Adds a state and its transitions from one definition line.

        A DFA row names exactly one target per token. If any token lists
        several targets (it contains a comma), or the alphabet enables
        epsilon, the row cannot belong to a DFA: nothing is changed and False
        is returned so the caller can promote the automaton with
        :meth:`to_nfa` and retry.

        Returns:
            bool: True if the row was added, False if it needs an NFA.

        Raises:
            DefinitionError: If the line cannot be parsed.
        """
        if self.has_epsilon or "," in line:
            return False

        name, accepting, row = self._parse_row(line)
        self._declare(name, accepting)
        for symbol, targets in zip(self.alphabet, row):
            self.add_transition(name, symbol, targets[0])
        return True

    def accept(self, string):
        """
        Runs the DFA over the string.

        An undefined transition, including any character outside the
        alphabet, rejects immediately.
        """
        state = self.initial
        for label in string:
            state = self.next_state(state, label)
            if state is None:
                return False
        return state is not None and self.is_final(state)

    def copy(self):
        dfa = self._copy_base(DFA)
        dfa.transitions = {src: dict(trans) for src, trans in self.transitions.items()}
        return dfa

    def to_dfa(self):
        """
        Returns an independent copy of the DFA.
        """
        return self.copy()

    def to_nfa(self):
        """
        Promotes the DFA to an equivalent NFA.

        Every state, accept flag and the start state are kept, and each
        transition target becomes a one element target set. The DFA is not
        modified.

        Returns:
            NFA: The promoted automaton.
        """
        nfa = self._copy_base(NFA)
        for src, label, dest in self.triples():
            nfa.add_transition(src, label, dest)
        return nfa

    def is_complete(self, alphabet=None):
        """
        Checks if every state has a transition on every symbol.
        """
        symbols = self.symbols if alphabet is None else alphabet
        return all(
            self.next_state(state, symbol) is not None
            for state in self.states
            for symbol in symbols
            if symbol is not EPSILON
        )

    def completed(self, alphabet=None):
        """
        Returns a copy in which every state has a transition on every symbol.

        Missing transitions are sent to a new non-accepting sink state, named
        by the fresh-name policy, that loops to itself. No sink is added if the
        DFA is already complete.

        Args:
            alphabet (iterable, optional): Extra symbols to complete over. They
                are appended to the copy's alphabet.

        Returns:
            DFA: The completed copy.
        """
        dfa = self.copy()
        for symbol in alphabet or ():
            if symbol is not EPSILON and symbol not in dfa.alphabet:
                dfa.alphabet.append(symbol)

        symbols = dfa.symbols
        sink = None
        if not dfa.states:
            sink = dfa.add_state(fresh_state(dfa.states))
        for state in list(dfa.states):
            for symbol in symbols:
                if dfa.next_state(state, symbol) is None:
                    if sink is None:
                        sink = dfa.add_state(fresh_state(dfa.states))
                    dfa.add_transition(state, symbol, sink)
        if sink is not None:
            for symbol in symbols:
                dfa.add_transition(sink, symbol, sink)
        return dfa

    def _cell(self, state, symbol):
        dest = self.next_state(state, symbol)
        return "" if dest is None else dest
