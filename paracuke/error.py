# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Exceptions raised by paracuke.
"""



class ParacukeError(Exception):
    """
    Base class for all paracuke errors.
    """



class ConfigurationError(ParacukeError):
    """
    An C{--env-variables} entry has a shape which cannot be turned into an
    environment variable.
    """



class QueueError(ParacukeError):
    """
    The work queue service could not be reached or refused a command.
    """



class QueueNotEmptyError(ParacukeError):
    """
    The work queue already holds scenarios when a run starts; it may belong
    to another run which is still going.
    """



class DiscoveryError(ParacukeError):
    """
    The Cucumber dry run failed or produced an unreadable report.

    @ivar exitCode: the exit status of the dry run, or C{None} if it never
        ran to completion.
    @ivar stderr: what the dry run wrote on its standard error.
    """

    def __init__(self, message, exitCode=None, stderr=b""):
        ParacukeError.__init__(self, message)
        self.exitCode = exitCode
        self.stderr = stderr



class ScriptError(ParacukeError):
    """
    A worker setup or teardown script exited with a non-zero status.

    @ivar exitCode: the exit status of the script.
    """

    def __init__(self, message, exitCode=None):
        ParacukeError.__init__(self, message)
        self.exitCode = exitCode
