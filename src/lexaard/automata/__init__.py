from loguru import logger

from lexaard.automata.build import FSABuilder, parse_fsa, read_fsa, skip_definition
from lexaard.automata.fsa import DFA, EPSILON, FSA, NFA, fresh_state
from lexaard.automata.ops import (
    complement,
    concat,
    equivalent,
    intersection,
    is_empty,
    nfa_union,
    product,
    prune,
    reachable_states,
    star,
    symmetric_difference,
    union,
)

# Silent unless an application enables it, see lexaard.interpreter.main
logger.disable("lexaard")
