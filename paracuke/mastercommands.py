# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Commands for reporting scenario outcomes to the master.
"""

from twisted.protocols.amp import Command, Unicode, Boolean



class ReportOutcome(Command):
    """
    Report the outcome of one scenario.
    """
    arguments = [(b'scenario', Unicode()), (b'outcome', Unicode())]
    response = [(b'success', Boolean())]
