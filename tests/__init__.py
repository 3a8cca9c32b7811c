"""Test package for termwatch.

The core tests run headlessly against a fake clock and scripted schedulers.
The scheduler tests arm real timers for a few hundred milliseconds; run
``pytest`` from the project root.
"""
