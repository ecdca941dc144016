# -*- test-case-name: paracuke.test.test_workqueue -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
The work queue: a Redis list shared by the master, which fills it once, and
every worker, which drains it batch by batch.
"""

from redis import Redis
from redis.exceptions import RedisError
from zope.interface import implementer

from paracuke.error import QueueError
from paracuke.interfaces import IWorkQueue



@implementer(IWorkQueue)
class RedisQueue(object):
    """
    A FIFO of scenario identifiers stored in the Redis list C{name}.

    @ivar url: the Redis URL the queue lives on.
    @ivar name: the key of the list.
    @ivar connection: the L{Redis} client.
    """

    def __init__(self, url, name, connection=None):
        self.url = url
        self.name = name
        if connection is None:
            connection = Redis.from_url(url, decode_responses=True)
        self.connection = connection


    def __repr__(self):
        return "<RedisQueue %s at %s>" % (self.name, self.url)


    def _call(self, method, *args):
        try:
            return method(*args)
        except RedisError as e:
            raise QueueError("Queue %r at %s: %s" % (self.name, self.url, e))


    def isEmpty(self):
        """
        Return C{True} if the list is empty or does not exist.
        """
        return self._call(self.connection.llen, self.name) == 0


    def enqueueAll(self, scenarioIds):
        """
        Append all of C{scenarioIds} with a single C{RPUSH}, so the list goes
        from empty to full in one step.
        """
        scenarioIds = list(scenarioIds)
        if not scenarioIds:
            return
        self._call(self.connection.rpush, self.name, *scenarioIds)


    def dequeueBatch(self, size):
        """
        Pop up to C{size} identifiers from the head of the list inside one
        C{MULTI}/C{EXEC} transaction.
        """
        def popMany():
            pipe = self.connection.pipeline(transaction=True)
            for i in range(size):
                pipe.lpop(self.name)
            return pipe.execute()
        return [
            scenarioId for scenarioId in self._call(popMany)
            if scenarioId is not None]
