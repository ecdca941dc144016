# -*- test-case-name: paracuke.test.test_options -*-
#
# Copyright (c) paracuke developers.
# See LICENSE for details.

import json
import shlex

from twisted.python.usage import Options, UsageError

from paracuke.environment import inferWorkerCount
from paracuke.error import ConfigurationError



class ParacukeOptions(Options):
    """
    Options for paracuke.  Positional arguments select the scenarios, as
    they would on Cucumber's command line.
    """

    synopsis = "Usage: paracuke [options] [feature files, directories ...]"

    optFlags = [
        ['debug', None, 'Log at debug level'],
        ]

    optParameters = [
        ['n', 'n', 0, 'Number of workers; 0 infers it from --env-variables',
         int],
        ['batch-size', None, 1,
         'Number of scenarios a worker takes from the queue at once', int],
        ['worker-delay', None, 0.0,
         'Seconds to wait before starting each worker, times its index',
         float],
        ['queue-url', 'q', 'redis://127.0.0.1:6379',
         'Redis URL of the work queue'],
        ['queue-name', None, 'queue', 'Name of the work queue'],
        ['env-variables', 'e', '{}',
         'JSON object of environment variables for the workers: a scalar '
         'for all of them, a list or an object keyed by worker index for '
         'one value per worker'],
        ['cucumber-options', 'o', '',
         'Options passed to every Cucumber invocation'],
        ['setup-worker', None, None,
         'Command each worker runs before taking scenarios'],
        ['teardown-worker', None, None,
         'Command each worker runs once the queue is drained'],
        ['log-dir', None, '_paracuke_logs',
         'Directory holding one log directory per worker'],
        ]

    def __init__(self):
        Options.__init__(self)
        self['tests'] = []


    def parseArgs(self, *args):
        self['tests'] = list(args)


    def postOptions(self):
        if self['n'] < 0:
            raise UsageError(
                "argument to --n must be a positive integer or 0")
        if self['batch-size'] <= 0:
            raise UsageError(
                "argument to --batch-size must be a strictly positive integer")
        if self['worker-delay'] < 0:
            raise UsageError("argument to --worker-delay must not be negative")

        try:
            envSpec = json.loads(self['env-variables'])
        except ValueError as e:
            raise UsageError("--env-variables is not valid JSON: %s" % (e,))
        if not isinstance(envSpec, dict):
            raise UsageError("--env-variables must be a JSON object")
        try:
            inferWorkerCount(envSpec)
        except ConfigurationError as e:
            raise UsageError(str(e))
        self['env-variables'] = envSpec

        try:
            self['cucumber-options'] = shlex.split(self['cucumber-options'])
        except ValueError as e:
            raise UsageError("cannot parse --cucumber-options: %s" % (e,))
