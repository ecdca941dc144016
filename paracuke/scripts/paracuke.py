# -*- test-case-name: paracuke.test.test_script -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
The C{paracuke} command.
"""

import sys

from twisted.internet.task import react
from twisted.logger import (
    FilteringLogObserver, LogLevel, LogLevelFilterPredicate,
    globalLogBeginner, textFileLogObserver)
from twisted.python.usage import UsageError

from paracuke import cucumber
from paracuke.options import ParacukeOptions
from paracuke.orchestrator import Orchestrator
from paracuke.workqueue import RedisQueue
from paracuke.worker import LocalWorkerLauncher



def getConfig(argv=None):
    """
    Get configuration from C{argv}, C{sys.argv[1:]} by default.

    @return: a L{ParacukeOptions} instance.

    @raise SystemExit: if the command-line options are not parseable.
    """
    if argv is None:
        argv = sys.argv[1:]
    config = ParacukeOptions()
    try:
        config.parseOptions(argv)
    except UsageError as ue:
        raise SystemExit("%s: %s" % (sys.argv[0], ue))
    return config



def startLogging(config, stream=None):
    """
    Log to C{stream}, standard output by default, at info level or at debug
    level if C{--debug} was given.
    """
    if stream is None:
        stream = sys.stdout
    level = LogLevel.debug if config['debug'] else LogLevel.info
    predicate = LogLevelFilterPredicate(defaultLogLevel=level)
    observer = FilteringLogObserver(textFileLogObserver(stream), [predicate])
    globalLogBeginner.beginLoggingTo([observer], redirectStandardIO=False)



def makeOrchestrator(config, reactor):
    """
    Wire the real collaborators together.
    """
    queue = RedisQueue(config['queue-url'], config['queue-name'])

    def discover(cucumberOptions, selectionArgs):
        return cucumber.discover(cucumberOptions, selectionArgs,
                                 reactor=reactor)

    return Orchestrator(config, queue, discover,
                        LocalWorkerLauncher(config, reactor.spawnProcess),
                        reactor=reactor)



def main(reactor, config):
    """
    Run paracuke; the exit status is the orchestrator's exit code.
    """
    d = makeOrchestrator(config, reactor).run()

    def finished(code):
        if code:
            raise SystemExit(code)

    return d.addCallback(finished)



def run():
    """
    Main run function to fire paracuke.
    """
    config = getConfig()
    startLogging(config)
    react(main, [config])
