"""
Test suite for basesync.

This package contains unit tests for all basesync components:
- Schema models, delta computation and field conversion
- The reconciler against mocked and in-memory stores
- The Airtable store client against mocked HTTP responses
- Configuration and the command-line interface
"""
