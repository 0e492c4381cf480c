"""
Reads automata from their text definition.

A definition is a label line, an alphabet line, one row per state and a
blank line::

    M1
    0 1
    q0 q1 q0
    *q1 q2 q1
    q2 q0 q2

The first row declares the start state and ``*`` marks accept states. The
automaton starts out as a DFA and is promoted to an NFA as soon as the
alphabet contains ``..`` (epsilon) or a row lists several targets for one
symbol.
"""

from loguru import logger

from lexaard.automata.fsa import DFA
from lexaard.errors import DefinitionError


class FSABuilder:
    """
    Builds one automaton, a definition line at a time.

    Usage:
        builder = FSABuilder("M1")
        builder.alphabet("0 1")
        builder.row("q0 q1 q0")
        builder.row("*q1 q1 q1")
        fsa = builder.finish()
    """

    def __init__(self, label):
        label = label.strip()
        if not label:
            raise DefinitionError("missing label")
        self.fsa = DFA(label)

    def alphabet(self, line):
        if self.fsa.set_alphabet(line):
            # Epsilon means an NFA from the first row onward
            self.fsa = self.fsa.to_nfa()

    def row(self, line):
        """
        Adds one state row, promoting the automaton to an NFA if the row is
        nondeterministic.
        """
        if not self.fsa.add_row(line):
            logger.debug(
                "Row {!r} is nondeterministic, promoting {!r} to an NFA",
                line.strip(),
                self.fsa.label,
            )
            self.fsa = self.fsa.to_nfa()
            self.fsa.add_row(line)

    def finish(self):
        """
        Checks the automaton and returns it.

        Raises:
            DefinitionError: If no state was declared or a transition points to
                a state that was never declared.
        """
        fsa = self.fsa
        if fsa.initial is None:
            raise DefinitionError(f"automaton {fsa.label!r} has no states")

        declared = set(fsa.states)
        for src, _, dest in fsa.triples():
            if dest not in declared:
                raise DefinitionError(
                    f"state {src!r} has a transition to undeclared state {dest!r}"
                )

        logger.debug(
            "Built {} {!r} with {} states", type(fsa).__name__, fsa.label, len(fsa)
        )
        return fsa


def read_fsa(lines):
    """
    Reads one definition from an iterator of lines.

    Lines are consumed up to and including the blank line that ends the
    definition (or the end of the input). If the definition is malformed the
    rest of it is still consumed before the error is raised, so a caller
    reading commands from the same iterator resumes after the definition.

    Args:
        lines (iterator): An iterator of definition lines.

    Returns:
        FSA: The finished :class:`DFA` or :class:`NFA`.

    Raises:
        DefinitionError: If the definition is malformed.
    """
    ended = False
    try:
        label = next(lines, None)
        if label is None or not label.strip():
            ended = True
            raise DefinitionError("missing label")
        builder = FSABuilder(label)

        alphabet = next(lines, None)
        if alphabet is None or not alphabet.strip():
            ended = True
            raise DefinitionError("missing alphabet")
        builder.alphabet(alphabet)

        for line in lines:
            if not line.strip():
                break
            builder.row(line)
        ended = True
        return builder.finish()
    except DefinitionError:
        if not ended:
            skip_definition(lines)
        raise


def skip_definition(lines):
    """
    Consumes lines up to and including the next blank line (or the end of
    the input) without parsing them.
    """
    for line in lines:
        if not line.strip():
            break


def parse_fsa(source):
    """
    Parses a complete definition.

    Args:
        source (str or iterable): The definition text, or its lines.

    Returns:
        FSA: The finished :class:`DFA` or :class:`NFA`.

    Raises:
        DefinitionError: If the definition is malformed.

    Example:
        >>> fsa = parse_fsa("M\\na\\n*q0 q0\\n")
        >>> fsa.run("aaa")
        'accept'
    """
    if isinstance(source, str):
        source = source.splitlines()
    return read_fsa(iter(source))
