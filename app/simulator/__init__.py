"""Synthetic flaky external dependency.

A fixed, weighted table of outcomes (success with latency, unauthorized, server
error, timeout) drawn once per call to exercise the observability pipeline.
"""
