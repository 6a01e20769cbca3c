"""Property-based tests for probe-listener.

Property-based testing validates invariants that must hold for ALL inputs,
not just the examples we think of.

Test categories:
- probes/: validator totality, hook table merge invariants
"""
