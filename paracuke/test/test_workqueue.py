# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Tests for L{paracuke.workqueue}.
"""

from redis.exceptions import ConnectionError

from zope.interface.verify import verifyObject

from twisted.trial.unittest import TestCase

from paracuke.error import QueueError
from paracuke.interfaces import IWorkQueue
from paracuke.workqueue import RedisQueue



class FakePipeline(object):
    """
    A transactional pipeline of L{FakeRedis}, supporting C{LPOP} only.
    """

    def __init__(self, redis):
        self.redis = redis
        self.names = []


    def lpop(self, name):
        self.names.append(name)
        return self


    def execute(self):
        self.redis.transactions += 1
        return [self.redis.lpop(name) for name in self.names]



class FakeRedis(object):
    """
    An in-memory stand-in for the few Redis list commands the queue uses.

    @ivar down: if C{True}, every command fails as if the server were
        unreachable.
    """

    def __init__(self):
        self.lists = {}
        self.commands = []
        self.transactions = 0
        self.down = False


    def _check(self, command):
        self.commands.append(command)
        if self.down:
            raise ConnectionError("Connection refused")


    def llen(self, name):
        self._check("LLEN")
        return len(self.lists.get(name, []))


    def rpush(self, name, *values):
        self._check("RPUSH")
        self.lists.setdefault(name, []).extend(values)
        return len(self.lists[name])


    def lpop(self, name):
        items = self.lists.get(name)
        if items:
            return items.pop(0)
        return None


    def pipeline(self, transaction=True):
        self._check("MULTI")
        return FakePipeline(self)



class RedisQueueTestCase(TestCase):
    """
    Tests for L{RedisQueue}.
    """

    def setUp(self):
        self.redis = FakeRedis()
        self.queue = RedisQueue("redis://example:6379", "tests", self.redis)


    def test_interface(self):
        """
        L{RedisQueue} provides L{IWorkQueue}.
        """
        self.assertTrue(verifyObject(IWorkQueue, self.queue))


    def test_name(self):
        """
        The queue is named after its list.
        """
        self.assertEqual(self.queue.name, "tests")
        self.assertIn("tests", repr(self.queue))


    def test_isEmpty(self):
        """
        A missing or empty list is an empty queue.
        """
        self.assertTrue(self.queue.isEmpty())
        self.redis.lists["tests"] = ["a.feature:3"]
        self.assertFalse(self.queue.isEmpty())


    def test_enqueueAllOneCommand(self):
        """
        All identifiers are pushed with a single command.
        """
        self.queue.enqueueAll(set(["a:1", "b:2", "c:3"]))
        self.assertEqual(self.redis.commands, ["RPUSH"])
        self.assertEqual(sorted(self.redis.lists["tests"]),
                         ["a:1", "b:2", "c:3"])


    def test_enqueueNothing(self):
        """
        Enqueueing nothing sends nothing.
        """
        self.queue.enqueueAll([])
        self.assertEqual(self.redis.commands, [])


    def test_dequeueBatchFIFO(self):
        """
        Identifiers come out in the order they went in, up to the batch
        size, within one transaction.
        """
        self.queue.enqueueAll(["a:1", "b:2", "c:3"])
        self.assertEqual(self.queue.dequeueBatch(2), ["a:1", "b:2"])
        self.assertEqual(self.redis.transactions, 1)
        self.assertEqual(self.queue.dequeueBatch(2), ["c:3"])
        self.assertEqual(self.queue.dequeueBatch(2), [])
        self.assertTrue(self.queue.isEmpty())


    def test_connectionFailure(self):
        """
        Redis errors become L{QueueError}s naming the queue.
        """
        self.redis.down = True
        error = self.assertRaises(QueueError, self.queue.isEmpty)
        self.assertIn("tests", str(error))
        self.assertRaises(QueueError, self.queue.enqueueAll, ["a:1"])
        self.assertRaises(QueueError, self.queue.dequeueBatch, 3)
