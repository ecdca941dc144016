# -*- test-case-name: paracuke.test -*-
# Copyright (c) paracuke developers.
# See LICENSE for details.

"""
This package implements a parallel runner for Cucumber scenarios:

  - The L{paracuke.orchestrator} module implements the coordinating
    process: it discovers every scenario, fills the work queue, launches the
    worker processes and turns their merged outcomes into an exit code.

  - The L{paracuke.environment} module derives the environment given to
    each worker from the C{--env-variables} specification.

  - The L{paracuke.workqueue} module wraps the shared Redis list the workers
    drain scenarios from.

  - The L{paracuke.cucumber} module runs Cucumber dry runs and parses its
    JSON reports into scenario outcomes.

  - The L{paracuke.mastercommands} module defines AMP commands which are
    sent from worker processes back to the master process to report the
    outcome of scenarios.

  - The L{paracuke.workercommands} module defines AMP commands which are
    sent from the master process to the worker processes to start them.

  - The L{paracuke.worker} module defines the master's AMP protocol for
    accepting outcomes from worker processes and a process protocol for
    running workers as local child processes.

  - The L{paracuke.workerprocess} module is a runnable script which is the
    main point for worker processes.

  - The L{paracuke.options} module defines the command line options.
"""

__version__ = "0.3.0"
