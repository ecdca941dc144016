# -*- test-case-name: paracuke.test.test_constants -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Scenario outcomes and the names of the environment variables every worker
receives.
"""

from constantly import Values, ValueConstant



class Outcome(Values):
    """
    The closed set of outcomes a scenario can have.  The value of each
    constant is the status word used in Cucumber JSON reports and on the
    wire between workers and the master.
    """
    PASSED = ValueConstant("passed")
    FAILED = ValueConstant("failed")
    SKIPPED = ValueConstant("skipped")
    PENDING = ValueConstant("pending")
    UNDEFINED = ValueConstant("undefined")
    UNKNOWN = ValueConstant("unknown")


    @classmethod
    def fromStatus(cls, status):
        """
        Return the outcome for a status word, or L{Outcome.UNKNOWN} if the
        word is not one of ours.

        @type status: C{str}
        @rtype: L{ValueConstant}
        """
        try:
            return cls.lookupByValue(status)
        except ValueError:
            return cls.UNKNOWN



# Outcomes which make a run fail.
FAILING_OUTCOMES = (Outcome.FAILED, Outcome.UNKNOWN)

TEST_MARKER = "TEST"
WORKER_INDEX = "TEST_PROCESS_NUMBER"
EXPORTS_MANIFEST = "PARALLEL_CUCUMBER_EXPORTS"
