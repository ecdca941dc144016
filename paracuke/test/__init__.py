# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Tests for L{paracuke}.
"""
