# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Tests for L{paracuke.environment}.
"""

from zope.interface.verify import verifyObject

from twisted.trial.unittest import TestCase

from paracuke.environment import (
    Absent, Indexed, Keyed, Scalar, classify, deriveEnvironment,
    inferWorkerCount)
from paracuke.error import ConfigurationError
from paracuke.interfaces import IEnvironmentValue



class ClassifyTestCase(TestCase):
    """
    Tests for L{classify}.
    """

    def test_shapes(self):
        """
        Each supported shape gets its own L{IEnvironmentValue} provider.
        """
        self.assertIsInstance(classify("A", "x"), Scalar)
        self.assertIsInstance(classify("A", 3), Scalar)
        self.assertIsInstance(classify("A", True), Scalar)
        self.assertIsInstance(classify("A", ["x", "y"]), Indexed)
        self.assertIsInstance(classify("A", {"0": "x"}), Keyed)
        self.assertIsInstance(classify("A", None), Absent)


    def test_interface(self):
        """
        Every variant provides L{IEnvironmentValue}.
        """
        for value in ["x", ["x"], {"0": "x"}, None]:
            self.assertTrue(
                verifyObject(IEnvironmentValue, classify("A", value)))


    def test_unsupportedShape(self):
        """
        A value of any other shape is a L{ConfigurationError} naming the
        variable.
        """
        error = self.assertRaises(ConfigurationError, classify, "A", object())
        self.assertIn("'A'", str(error))


    def test_unsupportedItem(self):
        """
        A list item which is not a scalar is a L{ConfigurationError} too.
        """
        self.assertRaises(ConfigurationError, classify, "A", [["nested"]])
        self.assertRaises(ConfigurationError, classify, "A", {"0": {}})


    def test_slots(self):
        """
        Lists and mappings configure one slot per item; other shapes do not
        depend on the worker.
        """
        self.assertEqual(classify("A", ["x", "y", "z"]).slots(), 3)
        self.assertEqual(classify("A", {"0": "x", "4": "y"}).slots(), 2)
        self.assertIdentical(classify("A", "xyz").slots(), None)
        self.assertIdentical(classify("A", None).slots(), None)



class DeriveEnvironmentTestCase(TestCase):
    """
    Tests for L{deriveEnvironment}.
    """

    def test_scalar(self):
        """
        A scalar is given to every worker, as a string.
        """
        for index in range(3):
            env = deriveEnvironment({"FOO": "bar", "N": 4}, index)
            self.assertEqual(env["FOO"], "bar")
            self.assertEqual(env["N"], "4")


    def test_boolean(self):
        """
        Booleans are rendered in lower case.
        """
        env = deriveEnvironment({"ON": True, "OFF": False}, 0)
        self.assertEqual((env["ON"], env["OFF"]), ("true", "false"))


    def test_indexed(self):
        """
        A list gives its item at the worker's position.
        """
        spec = {"DEVICE": ["a", "b", "c"]}
        self.assertEqual(deriveEnvironment(spec, 0)["DEVICE"], "a")
        self.assertEqual(deriveEnvironment(spec, 2)["DEVICE"], "c")


    def test_indexedOutOfRange(self):
        """
        A worker past the end of a list does not get the variable at all.
        """
        env = deriveEnvironment({"DEVICE": ["a"]}, 1)
        self.assertNotIn("DEVICE", env)


    def test_keyed(self):
        """
        A mapping gives the value under the worker's stringified index, and
        nothing to other workers.
        """
        spec = {"PORT": {"1": 8001, "3": None}}
        self.assertEqual(deriveEnvironment(spec, 1)["PORT"], "8001")
        self.assertNotIn("PORT", deriveEnvironment(spec, 0))
        self.assertNotIn("PORT", deriveEnvironment(spec, 3))


    def test_absent(self):
        """
        C{None} sets nothing, not even an empty string.
        """
        self.assertNotIn("FOO", deriveEnvironment({"FOO": None}, 0))


    def test_defaults(self):
        """
        C{TEST} and C{TEST_PROCESS_NUMBER} are set when not configured.
        """
        env = deriveEnvironment({}, 5)
        self.assertEqual(env["TEST"], "1")
        self.assertEqual(env["TEST_PROCESS_NUMBER"], "5")


    def test_configuredBeatsDefaults(self):
        """
        Configured values take precedence over the defaults.
        """
        env = deriveEnvironment(
            {"TEST": "0", "TEST_PROCESS_NUMBER": ["x", "y"]}, 1)
        self.assertEqual(env["TEST"], "0")
        self.assertEqual(env["TEST_PROCESS_NUMBER"], "y")


    def test_manifest(self):
        """
        C{PARALLEL_CUCUMBER_EXPORTS} lists exactly the other variables,
        whatever the specification sets it to.
        """
        env = deriveEnvironment(
            {"FOO": "bar", "PARALLEL_CUCUMBER_EXPORTS": "forged"}, 0)
        self.assertEqual(
            sorted(env["PARALLEL_CUCUMBER_EXPORTS"].split(",")),
            ["FOO", "TEST", "TEST_PROCESS_NUMBER"])


    def test_manifestOrder(self):
        """
        The manifest names the defaults first, then the configured variables
        in the order they were given, even when a default is overridden.
        """
        env = deriveEnvironment(
            {"ZED": "1", "TEST_PROCESS_NUMBER": "7", "ALPHA": "2"}, 0)
        self.assertEqual(env["PARALLEL_CUCUMBER_EXPORTS"],
                         "TEST,TEST_PROCESS_NUMBER,ZED,ALPHA")
        self.assertEqual(env["TEST_PROCESS_NUMBER"], "7")


    def test_manifestSkipsAbsent(self):
        """
        Variables which are not set for a worker are not in its manifest.
        """
        env = deriveEnvironment({"FOO": None, "BAR": ["x"]}, 1)
        self.assertEqual(
            sorted(env["PARALLEL_CUCUMBER_EXPORTS"].split(",")),
            ["TEST", "TEST_PROCESS_NUMBER"])


    def test_allStrings(self):
        """
        Every name and value is a C{str}.
        """
        env = deriveEnvironment({"A": 1.5, "B": [2], "C": {"0": True}}, 0)
        for name, value in env.items():
            self.assertIsInstance(name, str)
            self.assertIsInstance(value, str)


    def test_pure(self):
        """
        Deriving twice gives the same environment and leaves the
        specification untouched.
        """
        spec = {"FOO": ["a", "b"], "PARALLEL_CUCUMBER_EXPORTS": "x"}
        first = deriveEnvironment(spec, 1)
        self.assertEqual(first, deriveEnvironment(spec, 1))
        self.assertEqual(
            spec, {"FOO": ["a", "b"], "PARALLEL_CUCUMBER_EXPORTS": "x"})


    def test_configurationError(self):
        """
        A malformed entry fails the derivation.
        """
        self.assertRaises(ConfigurationError, deriveEnvironment,
                          {"FOO": set()}, 0)



class InferWorkerCountTestCase(TestCase):
    """
    Tests for L{inferWorkerCount}.
    """

    def test_fromList(self):
        """
        A list of five values asks for five workers.
        """
        self.assertEqual(inferWorkerCount({"DEVICE": list("abcde")}), 5)


    def test_largest(self):
        """
        The largest list or mapping wins.
        """
        spec = {"A": ["x", "y"], "B": {"0": 1, "1": 2, "2": 3}, "C": "z"}
        self.assertEqual(inferWorkerCount(spec), 3)


    def test_noIndexedEntries(self):
        """
        Without lists or mappings, one worker; strings do not count.
        """
        self.assertEqual(inferWorkerCount({}), 1)
        self.assertEqual(inferWorkerCount({"A": "long string", "B": None}), 1)


    def test_malformed(self):
        """
        Malformed entries are reported.
        """
        self.assertRaises(ConfigurationError, inferWorkerCount,
                          {"A": object()})
