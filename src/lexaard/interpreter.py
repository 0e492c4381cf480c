"""
An interactive interpreter for the Lexaard command language.

Commands::

    define <name> <expr>     store a value under a name
    print <expr>             print a value
    run <expr> <expr>        run an automaton on a string
    quit                     stop reading commands

Expressions are a defined name, a quoted string such as ``"0110"``,
``true``/``false``, ``fsa`` (the definition follows on the next lines, up
to a blank line), or one of the functions ``nfa2dfa``, ``dfaUnion``,
``nfaUnion``, ``nfaConcat``, ``nfaStar``, ``pruneFSA`` and ``fsaEquivP``
followed by its arguments.
"""

import argparse
import re
import shlex
import sys
from collections import deque, namedtuple

from cached_property import cached_property
from loguru import logger

from lexaard import versionstring
from lexaard.automata import (
    FSA,
    concat,
    equivalent,
    nfa_union,
    prune,
    read_fsa,
    skip_definition,
    star,
    union,
)
from lexaard.errors import CommandError, LexaardError, UnknownNameError

_name = re.compile(r"\w+")

# Reads a definition block from the following lines
FSA_KEYWORD = "fsa"

#: The outcome of one command. ``error`` holds the exception of a failed
#: command and is None otherwise.
Result = namedtuple("Result", ["ok", "text", "error"], defaults=(None,))


class Registry:
    """
    Maps names to defined values: strings, automata and booleans.

    Defining a name replaces whatever it held before, whatever its kind.
    """

    def __init__(self):
        self._values = {}

    def __contains__(self, name):
        return name in self._values

    def __len__(self):
        return len(self._values)

    def names(self):
        return sorted(self._values)

    def define(self, name, value):
        self._values[name] = value

    def lookup(self, name):
        """
        Returns the value defined for ``name``.

        Raises:
            UnknownNameError: If ``name`` was never defined.
        """
        try:
            return self._values[name]
        except KeyError:
            raise UnknownNameError(name) from None


def format_value(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Interpreter:
    """
    Executes Lexaard commands against a :class:`Registry`.

    Usage:
        interp = Interpreter()
        interp.execute('define s "0110"')
        interp.interact(open("script.lex"))
    """

    def __init__(self, registry=None):
        self.registry = Registry() if registry is None else registry
        self.running = True
        self._block_pending = False

    @cached_property
    def commands(self):
        return {
            "define": self._define,
            "print": self._print,
            "run": self._run,
            "quit": self._quit,
        }

    @cached_property
    def functions(self):
        # name -> (function, number of automaton arguments)
        return {
            "nfa2dfa": (lambda fsa: fsa.to_dfa(), 1),
            "dfaUnion": (union, 2),
            "nfaUnion": (nfa_union, 2),
            "nfaConcat": (concat, 2),
            "nfaStar": (star, 1),
            "pruneFSA": (prune, 1),
            "fsaEquivP": (equivalent, 2),
        }

    def execute(self, line, lines=()):
        """
        Executes one command.

        Args:
            line (str): The command line.
            lines (iterable, optional): Where ``fsa`` expressions read their
                definition from, normally the rest of the input.

        Returns:
            Result: The outcome. Errors are reported here, never raised. If a
            failed command had a definition block that was never read, the
            block is skipped so it is not taken for commands.
        """
        lines = iter(lines)
        try:
            tokens = deque(shlex.split(line, posix=False))
        except ValueError as e:
            if FSA_KEYWORD in line.split():
                skip_definition(lines)
            return self._fail(CommandError(str(e)))
        if not tokens:
            return Result(True, "")

        self._block_pending = FSA_KEYWORD in tokens
        command = tokens.popleft()
        try:
            handler = self.commands.get(command)
            if handler is None:
                raise CommandError(f"unknown command {command!r}")
            text = handler(tokens, lines)
        except LexaardError as e:
            if self._block_pending:
                skip_definition(lines)
            return self._fail(e)
        finally:
            self._block_pending = False
        return Result(True, text)

    def interact(self, lines, stream=None):
        """
        Executes commands from ``lines`` until they run out or ``quit`` is
        read, printing each result to ``stream`` (standard output by default).
        """
        lines = iter(lines)
        for line in lines:
            if not line.strip():
                continue
            result = self.execute(line, lines)
            if not result.ok:
                print(f"error: {result.text}", file=stream)
            elif result.text:
                print(result.text, file=stream)
            if not self.running:
                break

    def evaluate(self, tokens, lines=()):
        """
        Evaluates the expression at the front of ``tokens``, consuming it.
        """
        if not tokens:
            raise CommandError("missing argument")
        token = tokens.popleft()

        if token == FSA_KEYWORD:
            if tokens:
                raise CommandError("the definition of an fsa starts on the next line")
            self._block_pending = False
            return read_fsa(iter(lines))
        # Defined names shadow the other keywords
        if token in self.registry:
            return self.registry.lookup(token)
        if len(token) >= 2 and token[0] == token[-1] == '"':
            return token[1:-1]
        if token in ("true", "false"):
            return token == "true"
        if token in self.functions:
            function, arity = self.functions[token]
            args = [self.evaluate(tokens, lines) for _ in range(arity)]
            for arg in args:
                if not isinstance(arg, FSA):
                    raise CommandError(f"{token} expects {arity} automata")
            return function(*args)
        raise UnknownNameError(token)

    def _fail(self, error):
        logger.info("Command failed: {}", error)
        return Result(False, str(error), error)

    def _check_end(self, tokens):
        if tokens:
            raise CommandError(f"unexpected {' '.join(tokens)!r}")

    def _define(self, tokens, lines):
        if not tokens:
            raise CommandError("define needs a name")
        name = tokens.popleft()
        if not _name.fullmatch(name):
            raise CommandError(f"invalid name {name!r}")
        if name == FSA_KEYWORD:
            raise CommandError(f"{name!r} is reserved")
        value = self.evaluate(tokens, lines)
        self._check_end(tokens)
        self.registry.define(name, value)
        logger.info("Defined {} as {}", name, type(value).__name__)
        return ""

    def _print(self, tokens, lines):
        value = self.evaluate(tokens, lines)
        self._check_end(tokens)
        return format_value(value)

    def _run(self, tokens, lines):
        fsa = self.evaluate(tokens, lines)
        string = self.evaluate(tokens, lines)
        self._check_end(tokens)
        if not isinstance(fsa, FSA):
            raise CommandError("the first argument of run must be an automaton")
        if not isinstance(string, str):
            raise CommandError("the second argument of run must be a string")
        return fsa.run(string)

    def _quit(self, tokens, lines):
        self._check_end(tokens)
        self.running = False
        return ""


def _read_lines(stream, prompt=None):
    while True:
        if prompt:
            sys.stdout.write(prompt)
            sys.stdout.flush()
        line = stream.readline()
        if not line:
            return
        yield line


def configure_logging(level="WARNING"):
    """
    Sends Lexaard's log messages at ``level`` and above to standard error.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level: <8}</level> | {name}:{function} - {message}",
    )
    logger.enable("lexaard")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="lexaard", description="Define, print and run finite-state automata."
    )
    parser.add_argument(
        "files", nargs="*", help="command files to execute instead of standard input"
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="read standard input after the files have run",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="minimum level of log messages on standard error",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="same as --log-level DEBUG"
    )
    parser.add_argument(
        "--no-prompt", action="store_true", help="do not prompt for commands"
    )
    parser.add_argument("--version", action="version", version=versionstring())
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else args.log_level)

    interp = Interpreter()
    for path in args.files:
        with open(path, encoding="utf8") as f:
            interp.interact(f)
        if not interp.running:
            return 0

    if args.interactive or not args.files:
        prompt = None if args.no_prompt or not sys.stdin.isatty() else "> "
        interp.interact(_read_lines(sys.stdin, prompt))
    return 0


if __name__ == "__main__":
    sys.exit(main())
