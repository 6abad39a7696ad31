"""Counter store adapters.

Every store implements ``AbstractCounterStore``; Redis is the shared store
for multi-process deployments and the in-memory store serves tests and
single-process setups.
"""
