"""Jimeng client adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and CLI interfaces.
- Performs transport-level validation and response shaping.
- Delegates generation work to `jimeng.image.service.ImageService`.

Scope:
- Request lifecycle control for adapter concerns only.
- No signing or polling logic is implemented in this package.
"""
