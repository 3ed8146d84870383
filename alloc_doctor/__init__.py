"""alloc-doctor: validation and rule inference for client/worker/task allocation data."""

__version__ = "0.1.0"
