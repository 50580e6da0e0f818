"""
Tests Package.

This package contains test suites for the LFA design engine, including unit
tests for the graph snapshot, toolbox registry, structural validator,
simulators and compiler, plus end-to-end tests of the pipeline, the service
adapter and the command line driver.
"""

# Tests Package
