"""Core runtime package.

Architectural role:
    Holds the process-wide pieces shared by the signing, image and adapter
    layers: configuration, the error taxonomy, wire data contracts, failure
    reporting, and the single-flight concurrency gate.

Composition:
    - `config`: environment-driven client configuration.
    - `errors`: typed failures surfaced to callers.
    - `types`: task status and response envelopes.
    - `reporting`: error-reporting interface and logging implementation.
    - `gate`: mutual exclusion for generation-related operations.

Determinism and side effects:
    Importing `config` loads `.env` into the process environment. All other
    modules are import-side-effect free.
"""
