"""
Errors raised by the flow algebra, the rule set and the engine.

Non-matching rules and empty intersections are not errors: they show up as
empty flows. Loops are reported in the reachability result.
"""


class HSAError(Exception):
    """Base class for every error raised by hsanet"""


class StructuralError(HSAError, ValueError):
    """A flow, rule or rule set that violates the field layout"""


class TraversalLimitExceeded(HSAError, RuntimeError):
    """The reachability traversal did more steps than the value domain allows"""

    def __init__(self, steps, max_steps):
        self.steps = steps
        self.max_steps = max_steps
        super(TraversalLimitExceeded, self).__init__(
            'Reachability exceeded %d steps (done %d); '
            'the value domain is not finite' % (max_steps, steps))


class DeclarationError(HSAError):
    """Malformed network declaration text"""

    def __init__(self, msg, line=None, lineno=None, col=None):
        self.line = line
        self.lineno = lineno
        self.col = col
        if lineno is not None:
            msg = '%s (line %d, column %d)' % (msg, lineno, col)
        super(DeclarationError, self).__init__(msg)
