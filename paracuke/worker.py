# -*- test-case-name: paracuke.test.test_worker -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
This module implements the master side of the worker processes.
"""

import os
import sys

from zope.interface import implementer

from twisted.internet.defer import Deferred
from twisted.internet.error import ProcessDone
from twisted.internet.interfaces import ITransport
from twisted.internet.protocol import ProcessProtocol
from twisted.logger import Logger, LogLevel
from twisted.protocols.amp import AMP
from twisted.python.filepath import FilePath

from paracuke import mastercommands, workercommands
from paracuke.constants import Outcome



class LocalWorkerAMP(AMP):
    """
    Local implementation of the master commands.

    @ivar workerIndex: the index of the worker this protocol talks to.
    @ivar outcomes: a C{dict} mapping the identifiers of the scenarios the
        worker reported to their L{Outcome}.
    """

    def __init__(self, workerIndex, log=None):
        super(LocalWorkerAMP, self).__init__()
        self.workerIndex = workerIndex
        self.outcomes = {}
        if log is None:
            log = Logger()
        self.log = log


    def reportOutcome(self, scenario, outcome):
        """
        Record the outcome of a scenario.  Only the first report of a
        scenario counts.
        """
        if scenario in self.outcomes:
            self.log.error(
                "Worker {index} reported {scenario} twice "
                "({first} then {second}); keeping the first",
                index=self.workerIndex, scenario=scenario,
                first=self.outcomes[scenario].value, second=outcome)
        else:
            self.outcomes[scenario] = Outcome.fromStatus(outcome)
            self.log.debug("Worker {index}: {scenario} {outcome}",
                           index=self.workerIndex, scenario=scenario,
                           outcome=outcome)
        return {'success': True}

    mastercommands.ReportOutcome.responder(reportOutcome)



@implementer(ITransport)
class LocalWorker(ProcessProtocol):
    """
    Local process worker protocol.  The worker runs as a local process and
    communicates via stdin/out.

    @ivar ampProtocol: the L{LocalWorkerAMP} speaking to the process.
    @ivar logDirectory: directory where logs will reside.
    @ivar startArguments: the arguments of the L{workercommands.Start}
        command sent once the process is running.
    @ivar finished: a L{Deferred} firing with the outcomes the worker
        reported once the process has ended, whatever its exit status.
    """

    def __init__(self, ampProtocol, logDirectory, startArguments, log=None):
        self.ampProtocol = ampProtocol
        self.logDirectory = logDirectory
        self.startArguments = startArguments
        self.finished = Deferred()
        self._ended = False
        if log is None:
            log = Logger()
        self.log = log


    def write(self, data):
        """
        Forward data to transport.
        """
        self.writeLog.write(data)
        self.transport.write(data)


    def writeSequence(self, sequence):
        for data in sequence:
            self.write(data)


    def loseConnection(self):
        """
        Closes the transport.
        """
        self.transport.loseConnection()


    def getHost(self):
        """
        Return host string.
        """
        return "string"


    def getPeer(self):
        """
        Return a peer tuple.
        """
        return "string", "string"


    def connectionMade(self):
        """
        When connection is made, create the log files and tell the worker to
        start draining the queue.
        """
        FilePath(self.logDirectory).makedirs(ignoreExistingDirectory=True)
        logDirectory = self.logDirectory
        self.writeLog = open(os.path.join(logDirectory, "write.log"), "wb")
        self.errLog = open(os.path.join(logDirectory, "err.log"), "wb")
        self.ampProtocol.makeConnection(self)
        d = self.ampProtocol.callRemote(workercommands.Start,
                                        **self.startArguments)
        d.addCallbacks(self._started, self._startFailed)


    def _started(self, response):
        self.log.info("Worker {index} ran {count} scenarios",
                      index=self.ampProtocol.workerIndex,
                      count=response['scenarios'])
        self.transport.closeStdin()


    def _startFailed(self, failure):
        if self._ended:
            # processEnded reports why.
            return
        self.log.failure("Worker {index} failed to run its scenarios",
                         failure, LogLevel.error,
                         index=self.ampProtocol.workerIndex)
        self.transport.closeStdin()


    def outReceived(self, data):
        """
        Send data received from stdout to the AMP protocol's dataReceived.
        """
        self.ampProtocol.dataReceived(data)


    def errReceived(self, data):
        """
        Write error data to log.
        """
        self.errLog.write(data)


    def processEnded(self, reason):
        """
        Close the logs and fire L{finished} with what the worker reported.
        """
        self._ended = True
        self.writeLog.close()
        self.errLog.close()
        self.ampProtocol.connectionLost(reason)
        if not reason.check(ProcessDone):
            self.log.error(
                "Worker {index} exited abnormally: {reason}; see {errLog}",
                index=self.ampProtocol.workerIndex,
                reason=reason.getErrorMessage(),
                errLog=os.path.join(self.logDirectory, "err.log"))
        self.finished.callback(self.ampProtocol.outcomes)



class LocalWorkerLauncher(object):
    """
    Start workers as local child processes.  Calling an instance launches
    one worker and returns a L{Deferred} of its outcomes.

    @ivar config: the run configuration.
    @ivar spawner: a function which will spawn a local process, given a
        process protocol, an executable and keyword arguments C{args} and
        C{env}; C{reactor.spawnProcess} by default.
    """

    def __init__(self, config, spawner=None, log=None):
        self.config = config
        if spawner is None:
            from twisted.internet import reactor
            spawner = reactor.spawnProcess
        self.spawner = spawner
        if log is None:
            log = Logger()
        self.log = log


    def workerArguments(self):
        """
        Return the command line of worker processes.  The worker module is
        run with C{-m} so that the package directory never lands on the
        worker's C{sys.path}.
        """
        return [sys.executable, "-m", "paracuke.workerprocess"]


    def startArguments(self, workerIndex, batchSize, logDirectory):
        """
        Return the arguments of the L{workercommands.Start} command for one
        worker.
        """
        return dict(
            index=workerIndex,
            queueURL=self.config['queue-url'],
            queueName=self.config['queue-name'],
            batchSize=batchSize,
            cucumberOptions=list(self.config['cucumber-options']),
            setupScript=self.config['setup-worker'],
            teardownScript=self.config['teardown-worker'],
            logDirectory=os.path.abspath(logDirectory))


    def __call__(self, workerIndex, environment, batchSize):
        """
        Spawn worker C{workerIndex} with C{environment} layered over the
        environment of this process.

        @return: L{LocalWorker.finished}.
        """
        logDirectory = os.path.join(self.config['log-dir'], str(workerIndex))
        worker = LocalWorker(
            LocalWorkerAMP(workerIndex, self.log), logDirectory,
            self.startArguments(workerIndex, batchSize, logDirectory),
            self.log)
        env = dict(os.environ)
        env.update(environment)
        args = self.workerArguments()
        self.spawner(worker, args[0], args=args, env=env)
        return worker.finished
