"""
Lookup Table Rectification Examples and Tests

This package contains example scripts and tests for the lookup table rectification core:
- Rectification examples and benchmarks
- Tests for camera models, lookup tables, the builder, the rectifier and bound finding
"""
