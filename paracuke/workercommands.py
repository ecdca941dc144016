# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Commands for telling a worker to drain the work queue.
"""

from twisted.protocols.amp import Command, Unicode, Integer, ListOf

from paracuke.error import QueueError, ScriptError



class Start(Command):
    """
    Drain the work queue, running scenarios in batches of C{batchSize}.  The
    answer comes once the queue is drained and gives the number of scenarios
    the worker ran.
    """
    arguments = [(b'index', Integer()),
                 (b'queueURL', Unicode()),
                 (b'queueName', Unicode()),
                 (b'batchSize', Integer()),
                 (b'cucumberOptions', ListOf(Unicode())),
                 (b'setupScript', Unicode(optional=True)),
                 (b'teardownScript', Unicode(optional=True)),
                 (b'logDirectory', Unicode())]
    response = [(b'scenarios', Integer())]
    errors = {QueueError: b'QUEUE_ERROR',
              ScriptError: b'SCRIPT_ERROR'}
