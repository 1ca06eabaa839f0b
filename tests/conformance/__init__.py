"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the facility.
Any compliant processor/store pair MUST pass these tests.

The tests are organized by invariant:
1. test_invariants.py - Balance invariants over arbitrary operation sequences
2. test_atomicity.py - Rejected operations change nothing
3. test_concurrency.py - Per-user serialization under threads

These tests use hypothesis for property-based testing.
"""
