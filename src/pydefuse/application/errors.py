"""
Error handling for pydefuse analyses.

Two families of failures exist. Contract violations (a missing statement list,
a node without a source location, a jump with no target) indicate a bug in the
caller or in the analysis itself and are raised as InternalError. Problems with
user supplied spec files are raised as SpecLoadError. Unresolved symbols are
never errors; they are logged and handled conservatively.
"""


class InternalError(Exception):
    """
    Exception raised when an analysis invariant is broken.

    This indicates a defect in the caller or in pydefuse itself, as opposed to
    a problem with the program being analyzed. It is never retried.
    """
    pass


class SpecLoadError(Exception):
    """
    Exception raised when a side-effect spec file cannot be read or parsed.
    """
    pass


def require(value, what):
    """
    Fail fast when a mandatory argument is missing.

    Args:
        value: The argument to check
        what: Human-readable name of the argument, used in the message

    Returns:
        The value, unchanged

    Raises:
        InternalError: If value is None
    """
    if value is None:
        raise InternalError("%s must not be None" % what)
    return value
