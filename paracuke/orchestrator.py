# -*- test-case-name: paracuke.test.test_orchestrator -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
This module contains the orchestrator, the class responsible for
coordinating a paracuke run at the highest level: it checks the queue,
discovers and enqueues every scenario, sizes the worker pool, starts the
workers and turns their merged outcomes into an exit code.
"""

import random

from twisted.internet.defer import (
    DeferredList, inlineCallbacks, maybeDeferred)
from twisted.internet.task import deferLater
from twisted.logger import Logger, LogLevel

from paracuke.constants import Outcome, FAILING_OUTCOMES
from paracuke.environment import deriveEnvironment, inferWorkerCount
from paracuke.error import (
    ConfigurationError, DiscoveryError, QueueError, QueueNotEmptyError)



def resolveWorkerCount(configured, envSpec):
    """
    Return C{configured}, or the worker count inferred from C{envSpec} if
    C{configured} is 0.
    """
    if configured == 0:
        return inferWorkerCount(envSpec)
    return configured



def clampWorkerCount(requested, testCount):
    """
    Never start more workers than there are scenarios.
    """
    return min(requested, testCount)



def normalizeBatchSize(batchSize, workers, testCount):
    """
    Shrink C{batchSize} to C{ceil(testCount / workers)} when a round of full
    batches would leave some workers without any.

    @rtype: C{int}
    """
    if workers > 0 and (batchSize - 1) * workers >= testCount:
        return (testCount + workers - 1) // workers
    return batchSize



def mergeResults(partials):
    """
    Merge the outcomes reported by each worker.

    A scenario reported by more than one worker is a collision: the outcome
    of the worker with the lowest index is kept and the collision is
    returned.

    @param partials: the outcome mappings of the workers, by worker index.
    @type partials: C{list} of C{dict}

    @return: a 2-C{tuple} of the merged C{dict} and a C{list} of
        C{(scenarioId, [(workerIndex, outcome), ...])} collisions.
    """
    merged = {}
    claims = {}
    for index, partial in enumerate(partials):
        for scenarioId, outcome in partial.items():
            claims.setdefault(scenarioId, []).append((index, outcome))
            if scenarioId not in merged:
                merged[scenarioId] = outcome
    collisions = [
        (scenarioId, claimants)
        for scenarioId, claimants in sorted(claims.items())
        if len(claimants) > 1]
    return merged, collisions



class RunSummary(object):
    """
    The outcome of a run.

    @ivar results: a C{dict} mapping scenario identifiers to L{Outcome}s.
    @ivar byOutcome: a C{dict} mapping each L{Outcome} to the sorted
        C{list} of scenarios which had it.
    @ivar notRun: the sorted C{list} of discovered scenarios without an
        outcome.
    @ivar collisions: the collisions found when merging, see
        L{mergeResults}.
    """

    def __init__(self, discovered, results, collisions=()):
        self.results = dict(results)
        self.collisions = list(collisions)
        self.byOutcome = {}
        for outcome in Outcome.iterconstants():
            self.byOutcome[outcome] = sorted(
                scenarioId for scenarioId, result in self.results.items()
                if result is outcome)
        self.notRun = sorted(set(discovered) - set(self.results))


    def wasSuccessful(self):
        """
        Every scenario ran, once, and none failed or ended unknown.
        """
        if self.notRun or self.collisions:
            return False
        for outcome in FAILING_OUTCOMES:
            if self.byOutcome[outcome]:
                return False
        return True


    def exitCode(self):
        return 0 if self.wasSuccessful() else 1



class Orchestrator(object):
    """
    The paracuke master.

    @ivar config: the run configuration, a L{ParacukeOptions}.
    @ivar queue: the L{IWorkQueue} provider scenarios are pushed to.
    @ivar discover: a callable taking the Cucumber options and the selection
        arguments and returning the set of scenario identifiers, or a
        L{Deferred} of it.
    @ivar runWorker: a callable taking a worker index, its environment and
        the batch size, and returning a L{Deferred} firing with the
        outcomes the worker reported.
    @ivar reactor: provider of L{IReactorTime}, for worker delays and
        timings.
    @ivar shuffle: a callable shuffling a C{list} in place.
    """

    def __init__(self, config, queue, discover, runWorker, log=None,
                 reactor=None, shuffle=random.shuffle):
        self.config = config
        self.queue = queue
        self.discover = discover
        self.runWorker = runWorker
        if log is None:
            log = Logger()
        self.log = log
        if reactor is None:
            from twisted.internet import reactor
        self.reactor = reactor
        self.shuffle = shuffle


    def _discover(self):
        """
        Enumerate the scenarios, timing the dry run.
        """
        started = self.reactor.seconds()

        def done(tests):
            elapsed = self.reactor.seconds() - started
            self.log.debug(
                "Generating all tests took {minutes} minutes "
                "{seconds} seconds",
                minutes=int(elapsed // 60), seconds=int(elapsed % 60))
            return tests

        d = maybeDeferred(self.discover, self.config['cucumber-options'],
                          self.config['tests'])
        return d.addCallback(done)


    def workerCount(self, testCount):
        """
        Decide how many workers to start for C{testCount} scenarios.

        @raise ConfigurationError: if the worker count has to be inferred
            from a malformed environment specification.
        """
        configured = self.config['n']
        requested = resolveWorkerCount(configured,
                                       self.config['env-variables'])
        if configured == 0:
            self.log.info(
                "Inferred worker count {count} from env_variables option",
                count=requested)
        workers = clampWorkerCount(requested, testCount)
        if workers != requested:
            self.log.info(
                "Number of workers was overridden to {workers}: "
                "requested more workers ({requested}) than tests ({tests})",
                workers=workers, requested=requested, tests=testCount)
        return workers


    def batchSize(self, workers, testCount):
        """
        Decide the batch size handed to workers.
        """
        configured = self.config['batch-size']
        batchSize = normalizeBatchSize(configured, workers, testCount)
        if batchSize != configured:
            self.log.info(
                "Batch size was overridden to {batchSize}: presumably more "
                "optimal for {tests} tests and {workers} workers than "
                "{original}",
                batchSize=batchSize, tests=testCount, workers=workers,
                original=configured)
        return batchSize


    def dispatch(self, environments, batchSize):
        """
        Start one worker per environment, worker I{i} after C{worker-delay *
        i} seconds, and wait for all of them.

        @return: a L{Deferred} firing with the C{list} of outcome mappings,
            by worker index.  A worker which failed counts as having
            reported nothing.
        """
        delay = self.config['worker-delay']
        deferreds = []
        for index, env in enumerate(environments):
            if delay:
                self.log.info(
                    "Waiting {wait} seconds before starting worker {index}",
                    wait=delay * index, index=index)
                d = deferLater(self.reactor, delay * index, self.runWorker,
                               index, env, batchSize)
            else:
                d = maybeDeferred(self.runWorker, index, env, batchSize)
            deferreds.append(d)

        def gathered(results):
            partials = []
            for index, (success, result) in enumerate(results):
                if success:
                    partials.append(result)
                else:
                    self.log.failure("Worker {index} failed", result,
                                     LogLevel.error, index=index)
                    partials.append({})
            return partials

        d = DeferredList(deferreds, consumeErrors=True)
        return d.addCallback(gathered)


    def report(self, summary, elapsed):
        """
        Log the anomalies and the scenarios of each outcome.
        """
        for scenarioId, claimants in summary.collisions:
            self.log.error(
                "Test {scenario} was reported by more than one worker: "
                "{claimants}",
                scenario=scenarioId,
                claimants=", ".join("worker %d: %s" % (index, outcome.name)
                                    for index, outcome in claimants))
        if summary.notRun:
            self.log.error("Tests {tests} were not run",
                           tests=" ".join(summary.notRun))
        for outcome in Outcome.iterconstants():
            tests = summary.byOutcome[outcome]
            if tests:
                self.log.info("Total: {outcome} tests ({count}): {tests}",
                              outcome=outcome.name, count=len(tests),
                              tests=" ".join(tests))
        self.log.info("Took {minutes} minutes {seconds} seconds",
                      minutes=int(elapsed // 60), seconds=int(elapsed % 60))


    def _queueIsEmpty(self):
        """
        Check the queue after the run; problems are logged, not raised.
        """
        try:
            empty = self.queue.isEmpty()
        except QueueError as e:
            self.log.error("Cannot check queue {queue}: {error}",
                           queue=self.queue.name, error=e)
            return
        if not empty:
            self.log.error("Queue {queue} is not empty",
                           queue=self.queue.name)


    def _checkQueue(self):
        """
        @raise QueueNotEmptyError: if the queue holds scenarios already.
        @raise QueueError: if the queue cannot be reached.
        """
        self.log.debug("Connecting to queue {queue}", queue=self.queue.name)
        if not self.queue.isEmpty():
            raise QueueNotEmptyError(
                "Queue %s is not empty" % (self.queue.name,))


    @inlineCallbacks
    def run(self):
        """
        Run every discovered scenario across the workers.

        @return: a L{Deferred} firing with the exit code: 0 if every
            scenario ran once and none failed or ended unknown, 1 otherwise.
        """
        try:
            self._checkQueue()
        except (QueueError, QueueNotEmptyError) as e:
            self.log.error("{error}", error=e)
            return 1

        try:
            discovered = yield self._discover()
        except DiscoveryError as e:
            self.log.error("Cannot generate the list of tests: {error}\n"
                           "{stderr}", error=e,
                           stderr=e.stderr.decode("utf-8", "replace"))
            return 1

        tests = sorted(discovered)
        self.shuffle(tests)
        # Nothing may fail between the push and the dispatch, or the
        # scenarios would be stranded in the queue.
        try:
            workers = self.workerCount(len(tests))
            batchSize = self.batchSize(workers, len(tests))
            environments = [
                deriveEnvironment(self.config['env-variables'], index)
                for index in range(workers)]
        except ConfigurationError as e:
            self.log.error("{error}", error=e)
            return 1

        self.log.info("Adding {count} tests to queue {queue}",
                      count=len(tests), queue=self.queue.name)
        try:
            self.queue.enqueueAll(tests)
        except QueueError as e:
            self.log.error("{error}", error=e)
            return 1

        started = self.reactor.seconds()
        partials = yield self.dispatch(environments, batchSize)
        merged, collisions = mergeResults(partials)
        summary = RunSummary(tests, merged, collisions)
        self._queueIsEmpty()
        self.report(summary, self.reactor.seconds() - started)
        return summary.exitCode()
