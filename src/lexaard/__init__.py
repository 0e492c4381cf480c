"""
Lexaard: build, run and combine finite-state automata.

The algorithms live in :mod:`lexaard.automata`; :mod:`lexaard.interpreter`
provides the small command language used to define and run automata
interactively.
"""

__version__ = (1, 0, 0)


def versionstring(build=True, extra=True):
    """
    Returns the version number of Lexaard as a string.

    Args:
        build (bool, optional): Whether to include the build number in the
            string. Defaults to True.
        extra (bool, optional): Whether to include alpha/beta/rc etc. tags.
            Defaults to True. Only has an effect when ``build`` is True.

    Returns:
        str: The version string, for example ``"1.0.0"``.
    """
    if build:
        first = 3
    else:
        first = 2

    s = ".".join(str(n) for n in __version__[:first])
    if build and extra:
        s += "".join(str(n) for n in __version__[3:])

    return s
