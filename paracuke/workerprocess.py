# -*- test-case-name: paracuke.test.test_workerprocess -*-
#
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Implementation of the worker commands, and the main point of worker
processes.

A worker process speaks AMP with the master over its stdin and stdout, so
nothing else may be written to its stdout: Cucumber output goes to one log
file per batch and stray writes go to stderr.
"""

import os
import subprocess
import sys
import tempfile

from twisted.internet.protocol import FileWrapper
from twisted.logger import (
    Logger, LogLevel, globalLogBeginner, textFileLogObserver)
from twisted.protocols.amp import AMP
from twisted.python.filepath import FilePath

from paracuke import mastercommands, workercommands
from paracuke.constants import Outcome
from paracuke.cucumber import batchArguments, findExecutable, readReport
from paracuke.error import ScriptError
from paracuke.workqueue import RedisQueue



class CucumberBatchRunner(object):
    """
    Run batches of scenarios with the C{cucumber} executable, in the
    environment of this process.
    """

    log = Logger()

    def __init__(self, executable="cucumber"):
        self.executable = executable


    def __call__(self, cucumberOptions, scenarioIds, logPath):
        """
        Run C{scenarioIds}, writing Cucumber's output to C{logPath}.

        A non-zero exit status only means some scenarios failed, which the
        report tells.

        @return: a C{dict} mapping scenario identifiers to L{Outcome}s, empty
            if Cucumber left no readable report.
        """
        fd, reportPath = tempfile.mkstemp(prefix="paracuke-batch-",
                                          suffix=".json")
        os.close(fd)
        try:
            args = batchArguments(cucumberOptions, scenarioIds, reportPath)
            with open(logPath, "wb") as output:
                code = subprocess.call(
                    [findExecutable(self.executable)] + args,
                    stdin=subprocess.DEVNULL, stdout=output,
                    stderr=subprocess.STDOUT)
            try:
                return readReport(reportPath)
            except ValueError as e:
                self.log.error(
                    "Unreadable report for batch logged in {logPath} "
                    "(exit status {code}): {error}",
                    logPath=logPath, code=code, error=e)
                return {}
        finally:
            os.remove(reportPath)



def runScript(script, logPath):
    """
    Run a setup or teardown shell command, writing its output to
    C{logPath}.

    @raise ScriptError: if it exits with a non-zero status.
    """
    with open(logPath, "wb") as output:
        code = subprocess.call(script, shell=True, stdin=subprocess.DEVNULL,
                               stdout=output, stderr=subprocess.STDOUT)
    if code != 0:
        raise ScriptError("%r exited with status %d, see %s"
                          % (script, code, logPath), code)



class WorkerProtocol(AMP):
    """
    The worker-side paracuke protocol.

    @ivar queueFactory: a callable taking a queue URL and name and returning
        an L{IWorkQueue} provider.
    @ivar runBatch: a callable running a batch, with the signature of
        L{CucumberBatchRunner.__call__}.
    @ivar runScript: a callable running a setup or teardown script, with the
        signature of L{runScript}.
    """

    log = Logger()

    def __init__(self, queueFactory=RedisQueue, runBatch=None,
                 runScript=runScript):
        super(WorkerProtocol, self).__init__()
        self.queueFactory = queueFactory
        if runBatch is None:
            runBatch = CucumberBatchRunner()
        self.runBatch = runBatch
        self.runScript = runScript


    def start(self, index, queueURL, queueName, batchSize, cucumberOptions,
              logDirectory, setupScript=None, teardownScript=None):
        """
        Drain the queue batch by batch, reporting the outcome of every
        scenario of a batch once it has run.  Scenarios missing from a
        batch's report are reported as unknown.
        """
        FilePath(logDirectory).makedirs(ignoreExistingDirectory=True)
        queue = self.queueFactory(queueURL, queueName)
        if setupScript:
            self.runScript(setupScript,
                           os.path.join(logDirectory, "setup.log"))

        count = batch = 0
        try:
            while True:
                scenarioIds = queue.dequeueBatch(batchSize)
                if not scenarioIds:
                    break
                logPath = os.path.join(logDirectory, "batch-%d.log" % (batch,))
                self.log.info("Worker {index} running {size} scenarios",
                              index=index, size=len(scenarioIds))
                outcomes = self.runBatch(cucumberOptions, scenarioIds, logPath)
                for scenarioId in scenarioIds:
                    outcome = outcomes.get(scenarioId, Outcome.UNKNOWN)
                    self.callRemote(mastercommands.ReportOutcome,
                                    scenario=scenarioId, outcome=outcome.value)
                count += len(scenarioIds)
                batch += 1
        finally:
            if teardownScript:
                try:
                    self.runScript(teardownScript,
                                   os.path.join(logDirectory, "teardown.log"))
                except ScriptError:
                    self.log.failure("Worker {index} teardown failed",
                                     level=LogLevel.error, index=index)
        return {'scenarios': count}

    workercommands.Start.responder(start)



class _FlushingFileWrapper(FileWrapper):
    """
    A L{FileWrapper} which flushes after every write, so the master gets
    outcomes as soon as they are sent.
    """

    def write(self, data):
        FileWrapper.write(self, data)
        self.file.flush()



def main(stdin=None, stdout=None):
    """
    Main function to be run if __name__ == "__main__".
    """
    if stdin is None:
        stdin = sys.__stdin__.buffer
    if stdout is None:
        stdout = sys.__stdout__.buffer
    # Keep everything but AMP off stdout.
    sys.stdout = sys.stderr
    globalLogBeginner.beginLoggingTo([textFileLogObserver(sys.stderr)],
                                     redirectStandardIO=False)

    workerProtocol = WorkerProtocol()
    workerProtocol.makeConnection(_FlushingFileWrapper(stdout))

    while True:
        data = stdin.read1(4096)
        if not data:
            break
        workerProtocol.dataReceived(data)


if __name__ == '__main__':
    main()
