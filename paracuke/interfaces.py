# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Interfaces for paracuke.
"""

from zope.interface import Interface, Attribute



class IEnvironmentValue(Interface):
    """
    One entry of the environment specification, classified by its shape.
    """

    name = Attribute("The environment variable name.")


    def resolve(workerIndex):
        """
        Return the value this entry gives to the worker with index
        C{workerIndex}, as a C{str}, or C{None} if the variable is not set
        for that worker.
        """


    def slots():
        """
        Return the number of per-worker values this entry configures, or
        C{None} if its value does not depend on the worker.
        """



class IWorkQueue(Interface):
    """
    The shared queue of scenario identifiers waiting to be run.
    """

    name = Attribute("A C{str} identifying the queue in diagnostics.")


    def isEmpty():
        """
        Return C{True} if no scenario is waiting in the queue.
        """


    def enqueueAll(scenarioIds):
        """
        Push every scenario identifier of the iterable C{scenarioIds} in a
        single operation.
        """


    def dequeueBatch(size):
        """
        Pop up to C{size} scenario identifiers and return them as a C{list};
        an empty list means the queue is drained.
        """
