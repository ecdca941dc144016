# -*- test-case-name: paracuke.test.test_cucumber -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Running Cucumber and reading its JSON reports.

A scenario is identified by C{"<feature uri>:<line>"}, which is also what
Cucumber accepts on its command line to run that scenario alone.
"""

import json
import os
import tempfile

from twisted.internet.defer import fail
from twisted.internet.utils import getProcessOutputAndValue
from twisted.python.procutils import which

from paracuke.constants import Outcome
from paracuke.error import DiscoveryError

# Worst first: the outcome of a scenario is that of its worst step.
_PRECEDENCE = [
    Outcome.FAILED,
    Outcome.UNKNOWN,
    Outcome.UNDEFINED,
    Outcome.PENDING,
    Outcome.SKIPPED,
    Outcome.PASSED,
    ]



def findExecutable(executable):
    """
    Return the full path of C{executable}, searching C{PATH} unless it
    already contains a directory.

    @raise DiscoveryError: if it cannot be found.
    """
    if os.path.dirname(executable):
        return executable
    found = which(executable)
    if not found:
        raise DiscoveryError("Cannot find %r on PATH" % (executable,))
    return found[0]



def dryRunArguments(cucumberOptions, selectionArgs, reportPath):
    """
    Build the arguments of a Cucumber dry run writing a JSON report to
    C{reportPath}.
    """
    return (list(cucumberOptions)
            + ["--dry-run", "--format", "json", "--out", reportPath]
            + list(selectionArgs))



def batchArguments(cucumberOptions, scenarioIds, reportPath):
    """
    Build the arguments of a Cucumber run of the given scenarios writing a
    JSON report to C{reportPath}.
    """
    return (list(cucumberOptions)
            + ["--format", "json", "--out", reportPath]
            + list(scenarioIds))



def scenarioOutcome(steps):
    """
    Return the outcome of a scenario given its steps and hooks, as found in
    a Cucumber JSON report.
    """
    worst = Outcome.PASSED
    for step in steps:
        status = step.get("result", {}).get("status")
        outcome = Outcome.fromStatus(status)
        if _PRECEDENCE.index(outcome) < _PRECEDENCE.index(worst):
            worst = outcome
    return worst



def parseReport(report):
    """
    Parse a decoded Cucumber JSON report.

    Background steps count for the scenarios which follow the background.

    @param report: the list of features of the report.

    @return: a C{dict} mapping scenario identifiers to L{Outcome}s.

    @raise ValueError: if the report does not have the expected structure.
    """
    if not isinstance(report, list):
        raise ValueError("Cucumber JSON report must be a list of features")
    outcomes = {}
    for feature in report:
        uri = feature.get("uri")
        background = []
        for element in feature.get("elements", []):
            steps = (element.get("before", [])
                     + element.get("steps", [])
                     + element.get("after", []))
            if element.get("type") == "background":
                background = steps
                continue
            if uri is None or "line" not in element:
                raise ValueError("Scenario without uri or line: %r"
                                 % (element.get("name"),))
            scenarioId = "%s:%s" % (uri, element["line"])
            outcomes[scenarioId] = scenarioOutcome(background + steps)
    return outcomes



def readReport(path):
    """
    Load and parse the JSON report at C{path}.

    @raise ValueError: if the file is not a valid report.
    """
    with open(path) as f:
        content = f.read()
    if not content.strip():
        return {}
    return parseReport(json.loads(content))



def discover(cucumberOptions, selectionArgs, reactor=None,
             executable="cucumber", env=None):
    """
    Enumerate every scenario selected by C{selectionArgs} with a Cucumber
    dry run.

    @param cucumberOptions: options given to every Cucumber invocation.
    @type cucumberOptions: C{list} of C{str}

    @param selectionArgs: feature files, directories, tags or any other
        selection arguments.
    @type selectionArgs: C{list} of C{str}

    @param reactor: the reactor to spawn the dry run with.

    @param env: the environment of the dry run, C{os.environ} by default.

    @return: a L{Deferred} firing with the C{set} of scenario identifiers,
        or failing with L{DiscoveryError}.
    """
    if reactor is None:
        from twisted.internet import reactor
    if env is None:
        env = dict(os.environ)
    fd, reportPath = tempfile.mkstemp(prefix="paracuke-dry-run-",
                                      suffix=".json")
    os.close(fd)

    def cleanup(passthrough):
        if os.path.exists(reportPath):
            os.remove(reportPath)
        return passthrough

    def gotResult(result):
        out, err, code = result
        if code != 0:
            raise DiscoveryError(
                "Cucumber dry run exited with status %d" % (code,),
                exitCode=code, stderr=err)
        try:
            return set(readReport(reportPath))
        except ValueError as e:
            raise DiscoveryError("Unreadable dry run report: %s" % (e,),
                                 exitCode=code, stderr=err)

    def failed(failure):
        if failure.check(DiscoveryError):
            return failure
        raise DiscoveryError("Cucumber dry run did not complete: %s"
                             % (failure.getErrorMessage(),))

    try:
        path = findExecutable(executable)
    except DiscoveryError:
        cleanup(None)
        return fail()
    d = getProcessOutputAndValue(
        path, dryRunArguments(cucumberOptions, selectionArgs, reportPath),
        env=env, reactor=reactor)
    d.addCallback(gotResult)
    d.addErrback(failed)
    d.addBoth(cleanup)
    return d
