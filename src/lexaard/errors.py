"""Exceptions raised by the automaton builder and the interpreter."""


class LexaardError(ValueError):
    """
    Base class for every error Lexaard reports.

    It is a subclass of ``ValueError`` so callers that only care about bad
    input can catch that instead.
    """


class DefinitionError(LexaardError):
    """
    Raised when an automaton definition cannot be parsed.

    Attributes:
        line (str or None): The offending definition line, if there is one.
    """

    def __init__(self, message, line=None):
        if line is not None:
            message = f"{message}: {line.strip()!r}"
        super().__init__(message)
        self.line = line


class UnknownNameError(LexaardError):
    """
    Raised when a command refers to a name that was never defined.
    """

    def __init__(self, name):
        super().__init__(f"{name!r} is not defined")
        self.name = name


class CommandError(LexaardError):
    """
    Raised when a command is malformed or its arguments have the wrong kind.
    """
