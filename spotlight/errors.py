"""Exception types shared by the launcher engine.

None of these escape the public helpers: the calculator maps its
failures to ``None``, sessions finalise on producer failures and the
launcher logs failed opens.
"""

from __future__ import annotations


class SpotlightError(Exception):
    """Base class for every launcher error."""


class InvalidExpression(SpotlightError, ValueError):
    """Malformed or disallowed calculator input."""


class InvalidNumber(InvalidExpression):
    """A number token with no digits in it."""


class NonFiniteResult(InvalidExpression):
    """The expression evaluated to infinity or NaN."""


class ProducerFailure(SpotlightError):
    """The path producer died before signalling end-of-stream."""


class LaunchFailure(SpotlightError):
    """Opening a matched path failed."""
