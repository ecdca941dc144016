# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
Command line entry points.
"""
