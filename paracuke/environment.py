# -*- test-case-name: paracuke.test.test_environment -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Derivation of the environment of each worker process.

The C{--env-variables} specification maps variable names to values of four
possible shapes:

  - a scalar (string, number or boolean), given identically to every
    worker;

  - a list, whose item at position I{i} is given to worker I{i};

  - a mapping keyed by the stringified worker index, whose value is given to
    that worker only;

  - C{None}, which sets nothing.

L{classify} turns each entry into one of the L{IEnvironmentValue} providers
below, so resolution never has to look at the raw value again.
"""

from zope.interface import implementer

from paracuke.constants import TEST_MARKER, WORKER_INDEX, EXPORTS_MANIFEST
from paracuke.error import ConfigurationError
from paracuke.interfaces import IEnvironmentValue

_SCALARS = (str, int, float, bool)



def _render(name, value):
    """
    Render a scalar as the text of an environment variable.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, _SCALARS):
        return str(value)
    raise ConfigurationError(
        "Don't know how to set %r <%s> to the environment variable %r"
        % (value, type(value).__name__, name))



@implementer(IEnvironmentValue)
class Scalar(object):
    """
    A value shared by every worker.
    """

    def __init__(self, name, value):
        self.name = name
        self.value = _render(name, value)


    def resolve(self, workerIndex):
        return self.value


    def slots(self):
        return None



@implementer(IEnvironmentValue)
class Indexed(object):
    """
    One value per worker, by position.  Workers past the end of the list, or
    whose item is C{None}, do not get the variable.
    """

    def __init__(self, name, values):
        self.name = name
        self.values = [
            None if value is None else _render(name, value)
            for value in values]


    def resolve(self, workerIndex):
        if 0 <= workerIndex < len(self.values):
            return self.values[workerIndex]
        return None


    def slots(self):
        return len(self.values)



@implementer(IEnvironmentValue)
class Keyed(object):
    """
    Values for some workers, keyed by the worker index as a string.
    """

    def __init__(self, name, values):
        self.name = name
        self.values = {}
        for key, value in values.items():
            if value is not None:
                self.values[str(key)] = _render(name, value)
        self._size = len(values)


    def resolve(self, workerIndex):
        return self.values.get(str(workerIndex))


    def slots(self):
        return self._size



@implementer(IEnvironmentValue)
class Absent(object):
    """
    A variable explicitly left unset.
    """

    def __init__(self, name):
        self.name = name


    def resolve(self, workerIndex):
        return None


    def slots(self):
        return None



def classify(name, value):
    """
    Wrap one entry of the environment specification in the
    L{IEnvironmentValue} provider matching its shape.

    @raise ConfigurationError: if C{value} has none of the supported shapes.
    """
    if value is None:
        return Absent(name)
    if isinstance(value, _SCALARS):
        return Scalar(name, value)
    if isinstance(value, (list, tuple)):
        return Indexed(name, value)
    if isinstance(value, dict):
        return Keyed(name, value)
    raise ConfigurationError(
        "Don't know how to set %r <%s> to the environment variable %r"
        % (value, type(value).__name__, name))



def deriveEnvironment(envSpec, workerIndex):
    """
    Compute the environment variables of one worker.

    Configured variables win over the C{TEST} and C{TEST_PROCESS_NUMBER}
    defaults.  C{PARALLEL_CUCUMBER_EXPORTS} always lists the names of all
    the other variables, whatever the specification says about it.

    @param envSpec: the environment specification.
    @type envSpec: C{dict}

    @param workerIndex: the index of the worker, from 0.
    @type workerIndex: C{int}

    @return: a new C{dict} mapping C{str} names to C{str} values.

    @raise ConfigurationError: if an entry has an unsupported shape.
    """
    # Defaults come first so the manifest lists them first.
    env = {TEST_MARKER: "1", WORKER_INDEX: str(workerIndex)}
    for name, value in envSpec.items():
        resolved = classify(name, value).resolve(workerIndex)
        if resolved is not None:
            env[str(name)] = resolved

    env.pop(EXPORTS_MANIFEST, None)
    env[EXPORTS_MANIFEST] = ",".join(env)
    return env



def inferWorkerCount(envSpec):
    """
    Infer how many workers the specification was written for: the largest
    number of per-worker values of any list or mapping entry, or 1 if there
    is none.

    @raise ConfigurationError: if an entry has an unsupported shape.
    """
    counts = [1]
    for name, value in envSpec.items():
        slots = classify(name, value).slots()
        if slots is not None:
            counts.append(slots)
    return max(counts)
