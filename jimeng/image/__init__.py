"""Image generation adapter package.

Scope:
    Provides the signed transport for the visual API, the Jimeng 3.0
    text-to-image and image-to-image operations, the task polling loop, and
    a service façade used by the HTTP and CLI adapters.

Module split:
    - `constants`: service identifiers, size and watermark catalogs, limits.
    - `client`: request dispatcher (signing, action routing, error typing).
    - `api`: payload building, validation, submit/query operations.
    - `tasks`: fixed-interval polling until a terminal status or deadline.
    - `service`: gate-guarded operations and result rendering.

Non-goals:
    - No local file reading or Base64 encoding of image files.
    - No image-format validation.
"""
