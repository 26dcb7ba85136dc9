"""
dashpipe — declarative pipeline runner.

A workflow file lists steps that read data from a source, run an external
program, or write data to a sink.  Steps run strictly in order and hand
data to each other through a shared in-memory cache.
"""

__version__ = "0.1.0"
