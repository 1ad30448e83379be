"""Core primitives: ring buffer, delta codec, thinning, range queries, RoR.

Every function here is a synchronous computation over an in-memory sequence;
the only mutable state lives in the buffers and the device registry.
"""
